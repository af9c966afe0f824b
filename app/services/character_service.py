"""
Service: character_service.py
Role:
- Character creation (rolled attributes, starting gold, shop purchases, backstory).
- Character sheet mutations: attribute edit, equip toggle, GM signed-delta adjustments.

Conventions:
- Every function works on a deep copy and returns the updated character; persisting it
  is the caller's job (session controller → store, last write wins).
- Modifiers are never written: `Attribute.modifier` is derived from the raw value.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from app.models.character import Attribute, Character, HitPoints, InventoryItem, Item
from app.models.chat import ChatMessage
from app.models.enums import AdjustableStat
from app.services import stats

logger = logging.getLogger(__name__)

_STAT_LABELS = {
    AdjustableStat.HP: "HP",
    AdjustableStat.GOLD: "Gold",
    AdjustableStat.XP: "XP",
}


def create_character(
    *,
    name: str,
    race: str,
    character_class: str,
    attributes: Sequence[Attribute],
    system_id: str = "od2",
    session_id: Optional[str] = None,
    player_name: Optional[str] = None,
    gold: int = 0,
    equipment: Sequence[InventoryItem] = (),
    history: str = "",
    avatar_url: Optional[str] = None,
) -> Character:
    """Assemble a level-1 character with full hit points (class hit die + CON modifier)."""
    attrs = [Attribute(code=a.code, name=a.name, value=a.value) for a in attributes]
    con_mod = next((a.modifier for a in attrs if a.code == stats.CON), 0)
    hp = stats.hp_max(character_class, con_mod)
    return Character(
        session_id=session_id,
        name=name or (player_name or "Adventurer"),
        player_name=player_name,
        system_id=system_id,
        race=race,
        character_class=character_class,
        level=1,
        hp=HitPoints(current=hp, max=hp),
        xp=0,
        gold=gold,
        attributes=attrs,
        equipment=list(equipment),
        history=history,
        avatar_url=avatar_url,
    )


def buy_item(character: Character, item: Item) -> Character:
    """Deduct the item cost and append a fresh, unequipped instance."""
    if character.gold < item.cost:
        raise ValueError("not_enough_gold")
    updated = character.model_copy(deep=True)
    updated.gold -= item.cost
    updated.equipment.append(InventoryItem.from_item(item))
    return updated


def buy_items(character: Character, items: Sequence[Item]) -> Character:
    for item in items:
        character = buy_item(character, item)
    return character


def refund_item(character: Character, instance_id: str) -> Character:
    """Remove an inventory instance and give its cost back (creation shop)."""
    item = character.item(instance_id)
    if item is None:
        raise KeyError(instance_id)
    updated = character.model_copy(deep=True)
    updated.equipment = [i for i in updated.equipment if i.instance_id != instance_id]
    updated.gold += item.cost
    return updated


def toggle_equip(character: Character, instance_id: str) -> Character:
    if character.item(instance_id) is None:
        raise KeyError(instance_id)
    updated = character.model_copy(deep=True)
    for item in updated.equipment:
        if item.instance_id == instance_id:
            item.equipped = not item.equipped
    return updated


def set_attribute(character: Character, code: str, value: int) -> Character:
    """Replace the raw value of one attribute; its modifier follows automatically."""
    if character.attribute(code) is None:
        raise KeyError(code)
    updated = character.model_copy(deep=True)
    updated.attributes = [
        Attribute(code=a.code, name=a.name, value=value) if a.code == code else a
        for a in updated.attributes
    ]
    return updated


def adjust_stat(
    character: Character,
    stat: AdjustableStat | str,
    delta: int,
) -> Tuple[Character, Optional[ChatMessage]]:
    """
    Apply a GM signed delta.
    - hp: added to current hp then clamped to [0, max]
    - gold / xp: added then clamped to a minimum of 0
    Returns the updated character and, for a non-zero delta, the system chat message.
    """
    stat = AdjustableStat(stat)
    updated = character.model_copy(deep=True)
    if stat == AdjustableStat.HP:
        updated.hp = character.hp.adjusted(delta)
    elif stat == AdjustableStat.GOLD:
        updated.gold = max(0, character.gold + delta)
    else:
        updated.xp = max(0, character.xp + delta)

    if delta == 0:
        return updated, None

    action = "gained" if delta > 0 else "lost"
    message = ChatMessage.system(f"{character.name} {action} {abs(delta)} {_STAT_LABELS[stat]}.")
    logger.info(
        "GM stat adjustment",
        extra={"character_id": character.id, "stat": stat.value, "delta": delta},
    )
    return updated, message
