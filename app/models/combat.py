"""
Models / combat.py
Rôle:
- Participants d'une rencontre (éphémères, jamais persistés) et modèles de monstres.

Champs:
- Combatant.id: id de la fiche pour un joueur, id synthétique `m-...` pour un monstre.
- MonsterTemplate.hp: formule de dés (ex: `1d8+1`), tirée à chaque instance.
- MonsterTemplate.initiative: modificateur fixe ajouté au d20.
"""
from pydantic import Field

from app.models.base import CamelModel
from app.models.enums import CombatantType


class Combatant(CamelModel):
    id: str
    name: str
    hp: int
    max_hp: int
    ac: int
    initiative: int
    type: CombatantType


class MonsterTemplate(CamelModel):
    name: str
    hp: str = "1d6"
    ac: int = 10
    initiative: int = 0
    xp: int = Field(0, ge=0)
