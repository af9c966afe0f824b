"""
Models / game.py
Rôle:
- Décrire une session de jeu (table) : identité, système de règles, MJ et code d'invitation.

Champs:
- invite_code: clé de jonction partagée par le MJ (unique parmi les sessions, comparée en majuscules).
- gm_id / gm_name: identité du Maître du Jeu (seul autorisé aux actions MJ).
- player_count, next_session, description, banner_url: métadonnées d'affichage (tableau de bord).
"""
from typing import Optional

from pydantic import Field

from app.models.base import CamelModel
from app.models.character import new_id


class GameSession(CamelModel):
    """Session de jeu telle que listée sur le tableau de bord."""
    id: str = Field(default_factory=new_id)
    name: str
    system_id: str = "od2"
    gm_id: str
    gm_name: str = ""
    player_count: int = Field(0, ge=0)
    next_session: Optional[str] = None
    description: str = ""
    banner_url: Optional[str] = None
    invite_code: str = ""


class User(CamelModel):
    """Utilisateur minimal (pas d'authentification : le pseudo fait foi)."""
    id: str = Field(default_factory=new_id)
    username: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class RulesSystem(CamelModel):
    """Système de règles : attributs (ordre fixe), races et classes jouables."""
    id: str
    name: str
    description: str = ""
    attributes: list[str] = Field(default_factory=list)
    races: list[str] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)
