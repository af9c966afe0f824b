"""
Service: stats.py
Rôle:
- Moteur de statistiques dérivées d'une fiche (système de référence Old Dragon 2e).
- Fonctions pures, sans effet de bord : même fiche en entrée → mêmes valeurs en sortie.

Formules:
- modifier_for(valeur) : table par paliers (3→-3 … 19+→+4).
- armor_class  : 10 + mod DES + Σ CA des ARMURES équipées.
- attack_bonus : floor(niveau / 2) + 1 (BA simplifiée, sans bonus de classe/race).
- damage       : dé de l'arme équipée (ou 1d3 à mains nues) + mod FOR signé.
- hp_max       : dé de vie de la classe + mod CON, minimum 1.

Remarque:
- Le modificateur n'est jamais stocké : il est recalculé depuis la valeur brute
  (cf. `Attribute.modifier`, champ calculé).
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from app.models.enums import ItemType

if TYPE_CHECKING:
    from app.models.character import Character, InventoryItem

# Codes d'attributs du système de référence (od2)
STR = "FOR"
DEX = "DES"
CON = "CON"

UNARMED_DAMAGE = "1d3"
BASE_ARMOR_CLASS = 10

# Dés de vie par famille de classes
MARTIAL_CLASSES = frozenset({"Guerreiro", "Bárbaro", "Paladino", "Cavaleiro", "Lutador"})
ARCANE_CLASSES = frozenset({"Mago", "Arcanista"})
SKILL_CLASSES = frozenset({"Ladrão", "Ladino", "Bardo"})
HIT_DIE_MARTIAL = 10
HIT_DIE_ARCANE = 4
HIT_DIE_SKILL = 6
HIT_DIE_DEFAULT = 8

# (borne haute incluse, modificateur), au-delà de 18 : +4
_MODIFIER_STEPS = (
    (3, -3),
    (5, -2),
    (8, -1),
    (12, 0),
    (14, 1),
    (16, 2),
    (18, 3),
)


def modifier_for(value: int) -> int:
    """Modificateur associé à une valeur brute d'attribut."""
    for upper, mod in _MODIFIER_STEPS:
        if value <= upper:
            return mod
    return 4


def signed(value: int) -> str:
    """Formatte un entier avec son signe (`+2`, `-1`, `+0`)."""
    return f"+{value}" if value >= 0 else str(value)


def attribute_modifier(character: "Character", code: str) -> int:
    """Modificateur de l'attribut `code` (0 si la fiche ne le possède pas)."""
    for attr in character.attributes:
        if attr.code == code:
            return attr.modifier
    return 0


def _equipped(character: "Character", item_type: ItemType):
    return [item for item in character.equipment if item.equipped and item.type == item_type]


def armor_bonus(character: "Character") -> int:
    """Somme des bonus de CA des armures équipées (les armes/équipements ne comptent pas)."""
    return sum(item.ac or 0 for item in _equipped(character, ItemType.ARMOR))


def armor_class(character: "Character") -> int:
    return BASE_ARMOR_CLASS + attribute_modifier(character, DEX) + armor_bonus(character)


def attack_bonus(character: "Character") -> int:
    return character.level // 2 + 1


def equipped_weapon(character: "Character") -> Optional["InventoryItem"]:
    """Première arme équipée dans l'ordre de l'inventaire (ou None)."""
    weapons = _equipped(character, ItemType.WEAPON)
    return weapons[0] if weapons else None


def damage(character: "Character") -> str:
    """Formule de dégâts affichée sur la fiche, ex: `1d8+2` ou `1d3-1`."""
    weapon = equipped_weapon(character)
    base = weapon.damage if weapon and weapon.damage else UNARMED_DAMAGE
    return f"{base}{signed(attribute_modifier(character, STR))}"


def hit_die(character_class: str) -> int:
    if character_class in MARTIAL_CLASSES:
        return HIT_DIE_MARTIAL
    if character_class in ARCANE_CLASSES:
        return HIT_DIE_ARCANE
    if character_class in SKILL_CLASSES:
        return HIT_DIE_SKILL
    return HIT_DIE_DEFAULT


def hp_max(character_class: str, constitution_modifier: int) -> int:
    return max(1, hit_die(character_class) + constitution_modifier)


def derived_stats(character: "Character") -> Dict[str, Any]:
    """Snapshot des valeurs dérivées (affichage fiche / MJ)."""
    weapon = equipped_weapon(character)
    return {
        "armor_class": armor_class(character),
        "attack_bonus": attack_bonus(character),
        "damage": damage(character),
        "unarmed": weapon is None,
        "modifiers": {attr.code: attr.modifier for attr in character.attributes},
    }
