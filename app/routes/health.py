"""
Module routes/health.py
Rôle:
- Endpoints de santé (service OK + ping de l'Oracle).

Intégrations:
- settings: nom d'app + paramètres LLM.
- query_oracle: question courte au provider (latence, échantillon). Ne lève jamais :
  un provider injoignable se lit dans l'échantillon (réplique d'excuse).
"""
from fastapi import APIRouter
import time

from app.config.settings import settings
from app.services.oracle import APOLOGY_NOT_CONFIGURED, APOLOGY_SILENT, APOLOGY_UNREACHABLE, query_oracle

router = APIRouter(prefix="/health", tags=["health"])

@router.get("")
async def health():
    """Renvoie un OK minimal avec le nom de service configuré."""
    return {"ok": True, "service": settings.APP_NAME}

@router.get("/llm")
async def health_llm():
    """
    Vérifie la disponibilité de l'Oracle en mesurant une latence simple.
    - Question courte ("Answer: pong.") pour minimiser le temps de calcul.
    - `ok` est faux si la réponse est une des répliques de repli.
    """
    t0 = time.perf_counter()
    sample = query_oracle("Answer: pong.")
    dt = time.perf_counter() - t0
    return {
        "ok": sample not in (APOLOGY_UNREACHABLE, APOLOGY_SILENT, APOLOGY_NOT_CONFIGURED),
        "provider": settings.LLM_PROVIDER,
        "model": settings.LLM_MODEL,
        "latency_s": round(dt, 3),
        "sample": sample[:120],  # ← coupe l'aperçu
    }
