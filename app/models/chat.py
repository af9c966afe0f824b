"""
Models / chat.py
Rôle:
- Message du chat partagé d'une session (texte, jet de dés, message système, réponse de l'Oracle).

Notes:
- Append-only : le store ne conserve que les N derniers messages par session (FIFO).
- `roll_data` n'est renseigné que pour les messages de type ROLL.
- `timestamp` en UTC (aware).
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import Field

from app.models.base import CamelModel
from app.models.character import new_id
from app.models.enums import MessageType

SYSTEM_SENDER_ID = "sys"
SYSTEM_SENDER_NAME = "System"
COMBAT_SENDER_NAME = "Combat"
ORACLE_SENDER_ID = "ai"
ORACLE_SENDER_NAME = "Oracle"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RollData(CamelModel):
    formula: str
    results: List[int] = Field(default_factory=list)
    total: int


class ChatMessage(CamelModel):
    id: str = Field(default_factory=new_id)
    sender_id: str
    sender_name: str
    content: str
    type: MessageType = MessageType.TEXT
    timestamp: datetime = Field(default_factory=utcnow)
    is_gm: bool = Field(False, alias="isGM")
    roll_data: Optional[RollData] = None

    @classmethod
    def system(cls, content: str, sender_name: str = SYSTEM_SENDER_NAME) -> "ChatMessage":
        """Message système (attribué au MJ)."""
        return cls(
            sender_id=SYSTEM_SENDER_ID,
            sender_name=sender_name,
            content=content,
            type=MessageType.SYSTEM,
            is_gm=True,
        )
