"""
Dépendances de table (session) et de privilège MJ (Maître du Jeu)
=================================================================

Objectif
--------
- `get_controller` : résout `{session_id}` vers le `SessionController` de la table (404 sinon).
- `gm_required`    : autorise les actions MJ (combat, ajustement de stats) via
  1) l'en-tête `X-User-Id` égal au `gm_id` de la session (front), *ou*
  2) un **Bearer token** `settings.GM_TOKEN` (dev/CLI).

Pas d'authentification réelle ici (hors périmètre) : l'identité déclarée fait foi.

Comportement & codes retour
---------------------------
- 404 si la session est inconnue.
- 403 si aucune identité valide (ni MJ déclaré, ni Bearer correct).
- Sinon : renvoie l'identifiant MJ effectif (transmis au contrôleur).

Pourquoi pas sur le router entier ?
-----------------------------------
Le navigateur envoie une requête **OPTIONS** (préflight CORS) sans en-têtes d'identité :
la dépendance est posée route par route.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config.settings import settings
from app.services.session_controller import SessionController
from app.services.session_store import get_session_controller

# Schéma Bearer (désactive l'erreur auto pour qu'on rende nos 403)
bearer = HTTPBearer(auto_error=False)


def get_controller(session_id: str) -> SessionController:
    """Contrôleur de la table `{session_id}` (404 `session_not_found` si inconnue)."""
    try:
        return get_session_controller(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="session_not_found")


def gm_required(
    controller: SessionController = Depends(get_controller),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    """
    Dépendance d'accès MJ.

    Autorise si:
    - X-User-Id == gm_id de la session, OU
    - Authorization: Bearer <settings.GM_TOKEN>
    """
    # 1) Identité déclarée par le front
    if x_user_id:
        if controller.is_gm(x_user_id):
            return x_user_id
        raise HTTPException(status_code=403, detail="game_master_only")

    # 2) Bearer (dev/CLI)
    if credentials and (credentials.scheme or "").lower() == "bearer":
        if credentials.credentials == settings.GM_TOKEN:
            return controller.session.gm_id
        raise HTTPException(status_code=403, detail="Invalid token")

    # Rien de valide → refus
    raise HTTPException(status_code=403, detail="game_master_only")
