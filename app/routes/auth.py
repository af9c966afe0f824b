"""
Module routes/auth.py
Rôle:
- Connexion simplifiée : le pseudo fait foi (pas de mot de passe, pas de jeton).
- Le premier login crée l'utilisateur, les suivants renvoient le même enregistrement.
"""
from fastapi import APIRouter, HTTPException

from app.models.game import User
from app.services.session_store import get_store

router = APIRouter(tags=["auth"])


@router.post("/login")
async def login(user: User):
    """Upsert par pseudo → profil utilisateur (camelCase)."""
    username = user.username.strip()
    if not username:
        raise HTTPException(400, "Missing username.")
    saved = get_store().save_user(user.model_copy(update={"username": username}))
    return saved.to_json()
