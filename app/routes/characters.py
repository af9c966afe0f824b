"""
Module routes/characters.py
Rôle:
- Fiches de personnage : lecture, upsert, création guidée, fiche calculée.
- Mutations joueur (équiper/déséquiper, valeur d'attribut) persistées immédiatement.

Intégrations:
- Création : tirage d'attributs (CLASSIC / ADVENTURER / HEROIC), or de départ 3d6×10,
  achats dans la boutique de départ, PV = dé de vie de classe + mod CON.
- Une fiche rattachée à une table passe par son `SessionController` (roster local à jour).

Codes retour:
- 404 `character_not_found` / `session_not_found`, 400 pour une entrée refusée par les règles.
"""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from app.deps.auth import get_controller
from app.models.base import CamelModel
from app.models.character import Attribute, Character
from app.models.enums import RollingMethod
from app.services import character_service, dice, stats
from app.services.rules_catalog import REFERENCE_SYSTEM_ID, RULES
from app.services.session_controller import SessionController
from app.services.session_store import get_session_controller, get_store

router = APIRouter(tags=["characters"])

# Bornes des valeurs tirées fournies à la création
ATTRIBUTE_MIN, ATTRIBUTE_MAX = 3, 20


# ---------------------------------------------------------------------------
# Modèles Pydantic
# ---------------------------------------------------------------------------
class RollAttributesPayload(CamelModel):
    system_id: str = "od2"
    method: RollingMethod = RollingMethod.CLASSIC


class ReassignPayload(CamelModel):
    attributes: List[Attribute]
    values: List[int]
    method: RollingMethod = RollingMethod.ADVENTURER


class CharacterCreatePayload(CamelModel):
    name: str = ""
    player_name: Optional[str] = None
    race: str
    character_class: str = Field(alias="class")
    method: RollingMethod = RollingMethod.CLASSIC
    attributes: Optional[List[Attribute]] = Field(None, description="Valeurs déjà tirées (sinon tirage serveur)")
    gold: Optional[int] = Field(None, ge=0, description="Or de départ déjà tiré (sinon 3d6×10)")
    purchases: List[str] = Field(default_factory=list, description="Noms d'objets de la boutique de départ")
    history: str = ""
    avatar_url: Optional[str] = None


class AttributeValuePayload(CamelModel):
    value: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _load_character(character_id: str) -> Character:
    character = get_store().fetch_character(character_id)
    if character is None:
        raise HTTPException(status_code=404, detail="character_not_found")
    return character


def _owner(character: Character) -> Optional[SessionController]:
    """Contrôleur de la table de la fiche (None pour une fiche orpheline)."""
    if not character.session_id:
        return None
    try:
        return get_session_controller(character.session_id)
    except KeyError:
        return None


def _save(character: Character) -> Character:
    controller = _owner(character)
    if controller is not None:
        return controller.save_character(character)
    return get_store().save_character(character)


def _sheet(character: Character) -> dict:
    return {"character": character.to_json(), "derived": stats.derived_stats(character)}


# ---------------------------------------------------------------------------
# Lecture / upsert
# ---------------------------------------------------------------------------
@router.get("/games/{session_id}/characters")
async def list_characters(controller: SessionController = Depends(get_controller)):
    """Roster de la table (relu depuis le store)."""
    state = controller.refresh(include_roster=True)
    return [c.to_json() for c in state.roster]


@router.post("/characters")
async def upsert_character(character: Character):
    """Upsert par id (last write wins)."""
    return _save(character).to_json()


@router.get("/characters/{character_id}")
async def read_character(character_id: str):
    return _load_character(character_id).to_json()


@router.get("/characters/{character_id}/sheet")
async def read_sheet(character_id: str):
    """Fiche + valeurs dérivées (CA, BA, dégâts, modificateurs)."""
    return _sheet(_load_character(character_id))


# ---------------------------------------------------------------------------
# Création guidée
# ---------------------------------------------------------------------------
@router.post("/characters/roll")
async def roll_attributes(payload: RollAttributesPayload):
    """Tirage des attributs (ordre du système) + or de départ."""
    codes = RULES.attribute_codes(payload.system_id)
    if not codes:
        raise HTTPException(status_code=404, detail="system_not_found")
    attributes = dice.roll_attributes(codes, payload.method)
    return {
        "method": payload.method.value,
        "attributes": [a.to_json() for a in attributes],
        "gold": dice.roll_gold(),
    }


@router.post("/characters/roll/reassign")
async def reassign_attributes(payload: ReassignPayload):
    """Méthode ADVENTURER : redistribue les totaux tirés entre les attributs."""
    try:
        attributes = dice.reassign_scores(payload.attributes, payload.values, payload.method)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [a.to_json() for a in attributes]


@router.post("/games/{session_id}/characters/create")
async def create_character(
    payload: CharacterCreatePayload,
    controller: SessionController = Depends(get_controller),
):
    """
    Assistant de création :
    1) race / classe validées contre le système de la table,
    2) attributs fournis (contrôlés) ou tirés selon `method`,
    3) or fourni ou tiré, puis achats dans la boutique de départ,
    4) fiche niveau 1, PV pleins, persistée et ajoutée au roster.
    """
    session = controller.session
    system = RULES.system(session.system_id)
    codes = RULES.attribute_codes(session.system_id) or RULES.attribute_codes(REFERENCE_SYSTEM_ID)
    if system is not None:
        if payload.race not in system.races:
            raise HTTPException(status_code=400, detail="unknown_race")
        if payload.character_class not in system.classes:
            raise HTTPException(status_code=400, detail="unknown_class")

    if payload.attributes is None:
        attributes = dice.roll_attributes(codes, payload.method)
    else:
        attributes = payload.attributes
        if codes and sorted(a.code for a in attributes) != sorted(codes):
            raise HTTPException(status_code=400, detail="attributes_mismatch")
        if any(not ATTRIBUTE_MIN <= a.value <= ATTRIBUTE_MAX for a in attributes):
            raise HTTPException(status_code=400, detail="attribute_out_of_range")

    gold = payload.gold if payload.gold is not None else dice.roll_gold()
    character = character_service.create_character(
        name=payload.name.strip(),
        race=payload.race,
        character_class=payload.character_class,
        attributes=attributes,
        system_id=session.system_id,
        session_id=session.id,
        player_name=payload.player_name,
        gold=gold,
        history=payload.history,
        avatar_url=payload.avatar_url,
    )

    items = []
    for name in payload.purchases:
        item = RULES.gear_item(name)
        if item is None:
            raise HTTPException(status_code=400, detail=f"unknown_item: {name}")
        items.append(item)
    try:
        character = character_service.buy_items(character, items)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _sheet(controller.save_character(character))


# ---------------------------------------------------------------------------
# Mutations joueur
# ---------------------------------------------------------------------------
@router.post("/characters/{character_id}/equip/{instance_id}")
async def toggle_equip(character_id: str, instance_id: str):
    """Bascule équipé/déséquipé d'un objet de l'inventaire (CA / dégâts recalculés)."""
    character = _load_character(character_id)
    try:
        updated = character_service.toggle_equip(character, instance_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="item_not_found")
    return _sheet(_save(updated))


@router.put("/characters/{character_id}/attributes/{code}")
async def set_attribute(character_id: str, code: str, payload: AttributeValuePayload):
    """Nouvelle valeur brute d'un attribut (le modificateur suit)."""
    character = _load_character(character_id)
    try:
        updated = character_service.set_attribute(character, code, payload.value)
    except KeyError:
        raise HTTPException(status_code=404, detail="attribute_not_found")
    return _sheet(_save(updated))
