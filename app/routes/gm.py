"""
Module routes/gm.py
Rôle:
- Outils du Maître du Jeu hors combat : ajustement rapide des PV / or / XP d'une fiche.

Règles:
- PV bornés à [0, max], or et XP jamais négatifs.
- Tout delta non nul publie un message système dans le chat de la table.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from app.deps.auth import get_controller, gm_required
from app.models.base import CamelModel
from app.models.enums import AdjustableStat
from app.services.session_controller import SessionController

router = APIRouter(prefix="/games/{session_id}/gm", tags=["gm"])


class AdjustPayload(CamelModel):
    character_id: str
    stat: AdjustableStat
    delta: int = Field(description="Delta signé (ex: -5 dégâts, +50 or)")


@router.post("/adjust")
async def adjust(
    payload: AdjustPayload,
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    try:
        character = controller.adjust_stat(gm_id, payload.character_id, payload.stat, payload.delta)
    except KeyError:
        raise HTTPException(status_code=404, detail="character_not_found")
    return {"ok": True, "character": character.to_json()}
