"""
Module routes/chat.py
Rôle:
- Historique du chat d'une table (100 derniers messages, FIFO).
- Envoi d'un message texte (commande `/oracle` incluse) et jets de dés publiés.

Intégrations:
- `POST /games/{id}/chat` : ajout brut d'un message déjà construit (utilisé par le store HTTP client).
- `POST /games/{id}/chat/send` : message d'un joueur/MJ ; `/oracle ...` ajoute la réponse de l'Oracle.
- `POST /games/{id}/chat/roll` : formule libre (`2d6+3`) ou jet rapide (`sides` + `modifier`).
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from app.deps.auth import get_controller
from app.models.base import CamelModel
from app.models.chat import ChatMessage
from app.services.session_controller import SessionController

router = APIRouter(prefix="/games/{session_id}/chat", tags=["chat"])


class SendPayload(CamelModel):
    sender_id: str
    sender_name: str
    content: str
    character_id: Optional[str] = Field(None, description="Fiche de l'auteur (contexte de l'Oracle)")


class RollPayload(CamelModel):
    sender_id: str
    sender_name: str
    formula: Optional[str] = None
    sides: Optional[int] = Field(None, ge=2)
    modifier: int = 0


@router.get("")
async def chat_history(controller: SessionController = Depends(get_controller)):
    state = controller.refresh(include_roster=False)
    return [m.to_json() for m in state.messages]


@router.post("")
async def append_message(message: ChatMessage, controller: SessionController = Depends(get_controller)):
    """Ajout brut (id / horodatage fournis par l'émetteur)."""
    return controller.append_message(message).to_json()


@router.post("/send")
async def send_message(payload: SendPayload, controller: SessionController = Depends(get_controller)):
    character = None
    if payload.character_id:
        try:
            character = controller.character(payload.character_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="character_not_found")
    try:
        posted = controller.post_message(
            payload.sender_id,
            payload.sender_name,
            payload.content,
            character=character,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [m.to_json() for m in posted]


@router.post("/roll")
async def roll(payload: RollPayload, controller: SessionController = Depends(get_controller)):
    try:
        message = controller.post_roll(
            payload.sender_id,
            payload.sender_name,
            formula=payload.formula,
            sides=payload.sides,
            modifier=payload.modifier,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return message.to_json()
