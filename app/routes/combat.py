"""
Routes du combat (scope MJ pour toute mutation).

Objectifs :
- Lecture de l'état du tracker d'initiative (phase, round, tour, combattants triés).
- Cycle de vie : start / end / next (le passage de round publie une bannière dans le chat).
- Ajout de monstres (bestiaire ou modèle libre) et import des fiches de la table.

⚠️ `gm_required` est posé route par route (préflight CORS).
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from app.deps.auth import get_controller, gm_required
from app.models.base import CamelModel
from app.models.combat import MonsterTemplate
from app.services.rules_catalog import RULES
from app.services.session_controller import SessionController

router = APIRouter(prefix="/games/{session_id}/combat", tags=["combat"])


# ---------------------------------------------------------------------------
# Modèles Pydantic
# ---------------------------------------------------------------------------
class MonsterPayload(CamelModel):
    name: str
    count: int = Field(1, ge=1, le=50)
    hp: Optional[str] = Field(None, description="Formule de PV (défaut: bestiaire ou 1d6)")
    ac: Optional[int] = None
    initiative: Optional[int] = None


def _template(payload: MonsterPayload) -> MonsterTemplate:
    """Modèle du bestiaire (insensible à la casse) surchargé par les champs fournis."""
    base = RULES.monster(payload.name) or MonsterTemplate(name=payload.name.strip())
    overrides = {
        key: value
        for key, value in {"hp": payload.hp, "ac": payload.ac, "initiative": payload.initiative}.items()
        if value is not None
    }
    return base.model_copy(update=overrides)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
async def combat_state(controller: SessionController = Depends(get_controller)):
    return controller.combat.snapshot()


@router.post("/start")
async def start_combat(
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    started = controller.start_combat(gm_id)
    return {"ok": True, "started": started, "combat": controller.combat.snapshot()}


@router.post("/end")
async def end_combat(
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    ended = controller.end_combat(gm_id)
    return {"ok": True, "ended": ended, "combat": controller.combat.snapshot()}


@router.post("/next")
async def next_turn(
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    """Tour suivant ; en fin de liste, nouveau round + bannière système."""
    banner = controller.advance_turn(gm_id)
    return {
        "ok": True,
        "banner": banner.to_json() if banner else None,
        "combat": controller.combat.snapshot(),
    }


@router.post("/monsters")
async def add_monsters(
    payload: MonsterPayload,
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    if not payload.name.strip():
        raise HTTPException(400, "Missing name.")
    added = controller.add_monsters(gm_id, _template(payload), payload.count)
    return {
        "ok": True,
        "added": [c.to_json() for c in added],
        "combat": controller.combat.snapshot(),
    }


@router.post("/players")
async def import_players(
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    """Importe les fiches de la table absentes du tracker (idempotent)."""
    added = controller.import_players(gm_id)
    return {
        "ok": True,
        "added": [c.to_json() for c in added],
        "combat": controller.combat.snapshot(),
    }


@router.delete("/combatants/{combatant_id}")
async def remove_combatant(
    combatant_id: str,
    controller: SessionController = Depends(get_controller),
    gm_id: str = Depends(gm_required),
):
    removed = controller.remove_combatant(gm_id, combatant_id)
    return {"ok": True, "removed": removed, "combat": controller.combat.snapshot()}
