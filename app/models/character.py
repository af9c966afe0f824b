"""
Models / character.py
Rôle:
- Fiche de personnage (Pydantic) telle que persistée dans le store et échangée avec le front.

Champs notables:
- attributes: liste ordonnée (ordre du système de règles), codes uniques.
  Le `modifier` est un champ calculé : il est sérialisé mais jamais relu en entrée.
- equipment: inventaire ordonné d'instances (plusieurs exemplaires d'un même objet possibles,
  chacun avec son propre état `equipped`).
- hp: `current` toujours ramené dans [0, max].
- session_id: rattachement explicite fiche → session (clé étrangère).
"""
from typing import List, Optional
from uuid import uuid4

from pydantic import Field, computed_field, field_validator, model_validator

from app.models.base import CamelModel
from app.models.enums import ItemType
from app.services.stats import modifier_for


def new_id() -> str:
    return uuid4().hex


class Attribute(CamelModel):
    code: str
    name: str = ""
    value: int = 0

    @model_validator(mode="after")
    def _default_name(self) -> "Attribute":
        if not self.name:
            self.name = self.code
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def modifier(self) -> int:
        return modifier_for(self.value)


class Item(CamelModel):
    """Objet du catalogue (boutique). `damage` pour les armes, `ac` pour les armures."""
    name: str
    cost: int = Field(0, ge=0)
    type: ItemType = ItemType.GEAR
    damage: Optional[str] = None
    ac: Optional[int] = None


class InventoryItem(Item):
    instance_id: str = Field(default_factory=new_id)
    equipped: bool = False

    @classmethod
    def from_item(cls, item: Item) -> "InventoryItem":
        """Nouvelle instance (non équipée) d'un objet du catalogue."""
        return cls(**item.model_dump())


class HitPoints(CamelModel):
    current: int
    max: int = Field(ge=0)

    @model_validator(mode="after")
    def _clamp(self) -> "HitPoints":
        self.current = max(0, min(self.current, self.max))
        return self

    def adjusted(self, delta: int) -> "HitPoints":
        """Nouveaux PV après application d'un delta signé (borné)."""
        return HitPoints(current=self.current + delta, max=self.max)


class Character(CamelModel):
    id: str = Field(default_factory=new_id)
    session_id: Optional[str] = None
    name: str
    player_name: Optional[str] = None
    system_id: str = "od2"
    race: str = ""
    character_class: str = Field("", alias="class")
    level: int = Field(1, ge=1)
    hp: HitPoints
    xp: int = Field(0, ge=0)
    gold: int = Field(0, ge=0)
    attributes: List[Attribute] = Field(default_factory=list)
    equipment: List[InventoryItem] = Field(default_factory=list)
    history: str = ""
    avatar_url: Optional[str] = None

    @field_validator("attributes")
    @classmethod
    def _unique_codes(cls, attributes: List[Attribute]) -> List[Attribute]:
        codes = [a.code for a in attributes]
        if len(codes) != len(set(codes)):
            raise ValueError("duplicate attribute code")
        return attributes

    def attribute(self, code: str) -> Optional[Attribute]:
        for attr in self.attributes:
            if attr.code == code:
                return attr
        return None

    def item(self, instance_id: str) -> Optional[InventoryItem]:
        for item in self.equipment:
            if item.instance_id == instance_id:
                return item
        return None
