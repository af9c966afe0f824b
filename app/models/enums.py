"""
Models / enums.py
Énumérations fermées partagées par les modèles et le moteur de stats.
"""
from enum import Enum


class ItemType(str, Enum):
    WEAPON = "WEAPON"
    ARMOR = "ARMOR"
    GEAR = "GEAR"


class CombatantType(str, Enum):
    PLAYER = "PLAYER"
    MONSTER = "MONSTER"


class MessageType(str, Enum):
    TEXT = "TEXT"
    ROLL = "ROLL"
    SYSTEM = "SYSTEM"
    AI = "AI"


class RollingMethod(str, Enum):
    """Méthodes de tirage des attributs à la création."""
    CLASSIC = "CLASSIC"          # 3d6 dans l'ordre
    ADVENTURER = "ADVENTURER"    # 3d6, puis réarrangement libre des totaux
    HEROIC = "HEROIC"            # 4d6, on retire le plus faible


class CombatPhase(str, Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"


class AdjustableStat(str, Enum):
    """Statistiques modifiables par le MJ via un delta signé."""
    HP = "hp"
    GOLD = "gold"
    XP = "xp"
