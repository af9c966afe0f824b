"""
Routes des sessions de jeu (tableau de bord).

Objectifs :
- Lister / créer / modifier les sessions.
- Rejoindre une table par code d'invitation (insensible à la casse).

Les sessions sont exposées en camelCase (`inviteCode`, `gmId`, ...), comme le front les consomme.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from app.models.base import CamelModel
from app.models.game import GameSession
from app.services.session_store import (
    find_session_by_invite_code,
    get_session,
    get_store,
    save_session,
)

router = APIRouter(prefix="/games", tags=["games"])


# ---------------------------------------------------------------------------
# Modèles Pydantic
# ---------------------------------------------------------------------------
class GameUpdatePayload(CamelModel):
    name: Optional[str] = None
    system_id: Optional[str] = None
    gm_name: Optional[str] = None
    player_count: Optional[int] = Field(None, ge=0)
    next_session: Optional[str] = None
    description: Optional[str] = None
    banner_url: Optional[str] = None
    invite_code: Optional[str] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.get("")
async def list_games():
    return [g.to_json() for g in get_store().fetch_games()]


@router.post("")
async def create_game(game: GameSession):
    """Upsert d'une session ; un code d'invitation unique est généré si absent."""
    if not game.name.strip():
        raise HTTPException(400, "Missing name.")
    return save_session(game).to_json()


@router.get("/join/{invite_code}")
async def join_game(invite_code: str):
    """Résout un code d'invitation → session (404 `session_not_found`)."""
    game = find_session_by_invite_code(invite_code)
    if game is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return game.to_json()


@router.get("/{session_id}")
async def read_game(session_id: str):
    game = get_session(session_id)
    if game is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return game.to_json()


@router.put("/{session_id}")
async def update_game(session_id: str, payload: GameUpdatePayload):
    """Mise à jour partielle : seuls les champs fournis sont modifiés."""
    game = get_session(session_id)
    if game is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    return save_session(game.model_copy(update=changes)).to_json()
