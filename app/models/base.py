"""
Models / base.py
Rôle:
- Base Pydantic commune : champs Python en snake_case, JSON en camelCase
  (format historique du front : `playerName`, `systemId`, `instanceId`...).

Notes:
- `populate_by_name=True` : on accepte les deux écritures en entrée.
- Toujours sérialiser avec `to_json()` (alias + types JSON) pour rester compatible front/store.
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base des enregistrements persistés/échangés (JSON camelCase)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
