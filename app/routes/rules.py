"""
Module routes/rules.py
Rôle:
- Bibliothèque de règles en lecture seule : systèmes, bestiaire, boutique de départ,
  descriptions de classes et de races (système de référence).
"""
from fastapi import APIRouter, HTTPException

from app.services.rules_catalog import CLASS_FEATURES, RACE_FEATURES, RULES

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("/systems")
async def list_systems():
    return [s.to_json() for s in RULES.systems()]


@router.get("/systems/{system_id}")
async def read_system(system_id: str):
    system = RULES.system(system_id)
    if system is None:
        raise HTTPException(status_code=404, detail="system_not_found")
    return system.to_json()


@router.get("/monsters")
async def list_monsters():
    return [m.to_json() for m in RULES.monsters()]


@router.get("/gear")
async def list_gear():
    return [i.to_json() for i in RULES.gear()]


@router.get("/features")
async def list_features():
    """Descriptions courtes des classes et races (Old Dragon 2e)."""
    return {"classes": CLASS_FEATURES, "races": RACE_FEATURES}
