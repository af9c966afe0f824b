"""
Service: session_controller.py
Rôle:
- Porter l'état applicatif d'une table (`TableState`) : session, fiches (roster), chat, combat.
- Un seul point d'entrée de mutation par tranche d'état :
  * chat    → append_message / post_message / post_roll / post_system
  * roster  → save_character / adjust_stat / toggle_equip / set_attribute
  * combat  → start_combat / end_combat / add_monsters / import_players / advance_turn / remove_combatant
  * synchro → refresh (remplacement complet par le snapshot du store, sans fusion)

Privilège MJ:
- Les opérations de combat et l'ajustement de stats exigent l'identité du MJ (`require_gm`).

Persistance:
- Chaque mutation de fiche est écrite immédiatement (last write wins, pas de détection de conflit).
- Le combat est éphémère : jamais persisté.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from threading import RLock
from typing import List, Optional

from app.config.settings import settings
from app.models.character import Character
from app.models.chat import (
    COMBAT_SENDER_NAME,
    ORACLE_SENDER_ID,
    ORACLE_SENDER_NAME,
    ChatMessage,
    RollData,
)
from app.models.combat import Combatant, MonsterTemplate
from app.models.enums import AdjustableStat, MessageType
from app.models.game import GameSession
from app.services import character_service
from app.services.combat_tracker import CombatTracker
from app.services.dice import roll_formula, roll_quick
from app.services.oracle import ORACLE_COMMAND, build_context, query_oracle, strip_command
from app.services.rules_catalog import RULES
from app.services.storage import Store

logger = logging.getLogger(__name__)


@dataclass
class TableState:
    """État local d'une table, remplacé/muté uniquement via `SessionController`."""
    session: GameSession
    roster: List[Character] = field(default_factory=list)
    messages: List[ChatMessage] = field(default_factory=list)
    combat: CombatTracker = field(default_factory=CombatTracker)


class SessionController:
    def __init__(
        self,
        session: GameSession,
        store: Store,
        *,
        tracker: Optional[CombatTracker] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.rng = rng
        self._lock = RLock()
        self.state = TableState(session=session, combat=tracker or CombatTracker(rng=rng))

    # -----------------------------
    # Identité / privilèges
    # -----------------------------
    @property
    def session(self) -> GameSession:
        return self.state.session

    def is_gm(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id == self.session.gm_id

    def require_gm(self, user_id: Optional[str]) -> None:
        if not self.is_gm(user_id):
            raise PermissionError("game master privilege required")

    def update_session(self, session: GameSession) -> None:
        with self._lock:
            self.state.session = session

    # -----------------------------
    # Synchro (snapshot complet)
    # -----------------------------
    def refresh(self, include_roster: bool = True) -> TableState:
        """Recharge l'historique (et le roster si demandé) et remplace l'état local tel quel."""
        messages = self.store.fetch_chat_history(self.session.id)
        roster = self.store.fetch_characters(self.session.id) if include_roster else None
        with self._lock:
            self.state.messages = messages
            if roster is not None:
                self.state.roster = roster
            return self.state

    def ensure_welcome(self, user_id: Optional[str]) -> Optional[ChatMessage]:
        """Premier passage du MJ sur une table sans historique : message d'ouverture."""
        if not self.is_gm(user_id) or self.state.messages:
            return None
        system = RULES.system(self.session.system_id)
        system_name = system.name if system else self.session.system_id
        return self.post_system(f"Adventure started: {self.session.name}\nSystem: {system_name}")

    # -----------------------------
    # Chat
    # -----------------------------
    def append_message(self, message: ChatMessage) -> ChatMessage:
        stored = self.store.append_chat_message(self.session.id, message)
        with self._lock:
            # Mise à jour optimiste : le prochain refresh remplacera la liste entière
            self.state.messages.append(stored)
            limit = settings.CHAT_HISTORY_LIMIT
            if len(self.state.messages) > limit:
                del self.state.messages[:-limit]
        return stored

    def post_system(self, content: str, sender_name: str = "System") -> ChatMessage:
        return self.append_message(ChatMessage.system(content, sender_name=sender_name))

    def post_message(
        self,
        sender_id: str,
        sender_name: str,
        content: str,
        *,
        character: Optional[Character] = None,
    ) -> List[ChatMessage]:
        """
        Publie un message texte. Un message commençant par `/oracle` déclenche en plus
        une question à l'Oracle, dont la réponse est publiée comme message AI.
        """
        text = (content or "").strip()
        if not text:
            raise ValueError("empty_message")
        is_gm = self.is_gm(sender_id)
        posted = [
            self.append_message(
                ChatMessage(sender_id=sender_id, sender_name=sender_name, content=text, is_gm=is_gm)
            )
        ]
        if text.lower().startswith(ORACLE_COMMAND):
            context = build_context(self.session, character, is_gm)
            answer = query_oracle(strip_command(text), context)
            posted.append(
                self.append_message(
                    ChatMessage(
                        sender_id=ORACLE_SENDER_ID,
                        sender_name=ORACLE_SENDER_NAME,
                        content=answer,
                        type=MessageType.AI,
                        is_gm=True,
                    )
                )
            )
        return posted

    def post_roll(
        self,
        sender_id: str,
        sender_name: str,
        *,
        formula: Optional[str] = None,
        sides: Optional[int] = None,
        modifier: int = 0,
    ) -> ChatMessage:
        """Jet de dés publié dans le chat (formule libre ou jet rapide d'un dé + modificateur)."""
        if formula:
            roll = roll_formula(formula, self.rng)
        elif sides:
            roll = roll_quick(sides, modifier, self.rng)
        else:
            raise ValueError("formula_or_sides_required")
        return self.append_message(
            ChatMessage(
                sender_id=sender_id,
                sender_name=sender_name,
                content=f"Rolled {roll.formula}",
                type=MessageType.ROLL,
                is_gm=self.is_gm(sender_id),
                roll_data=RollData(**roll.as_roll_data()),
            )
        )

    # -----------------------------
    # Roster
    # -----------------------------
    def character(self, character_id: str) -> Character:
        """Fiche la plus fraîche : store d'abord, copie locale ensuite. KeyError si inconnue."""
        found = self.store.fetch_character(character_id)
        if found is None:
            found = next((c for c in self.state.roster if c.id == character_id), None)
        if found is None or (found.session_id and found.session_id != self.session.id):
            raise KeyError(character_id)
        return found

    def save_character(self, character: Character) -> Character:
        """Upsert immédiat dans le store + remplacement dans le roster local."""
        if not character.session_id:
            character = character.model_copy(update={"session_id": self.session.id})
        saved = self.store.save_character(character)
        with self._lock:
            roster = [c for c in self.state.roster if c.id != saved.id]
            index = next((i for i, c in enumerate(self.state.roster) if c.id == saved.id), len(roster))
            roster.insert(index, saved)
            self.state.roster = roster
        return saved

    def adjust_stat(
        self,
        user_id: str,
        character_id: str,
        stat: AdjustableStat | str,
        delta: int,
    ) -> Character:
        """Ajustement MJ (delta signé, borné) + message système pour tout delta non nul."""
        self.require_gm(user_id)
        updated, message = character_service.adjust_stat(self.character(character_id), stat, delta)
        saved = self.save_character(updated)
        if message is not None:
            self.append_message(message)
        logger.info(
            "Character stat adjusted",
            extra={"session_id": self.session.id, "character_id": character_id, "stat": str(stat), "delta": delta},
        )
        return saved

    def toggle_equip(self, character_id: str, instance_id: str) -> Character:
        return self.save_character(character_service.toggle_equip(self.character(character_id), instance_id))

    def set_attribute(self, character_id: str, code: str, value: int) -> Character:
        return self.save_character(character_service.set_attribute(self.character(character_id), code, value))

    # -----------------------------
    # Combat (MJ uniquement)
    # -----------------------------
    @property
    def combat(self) -> CombatTracker:
        return self.state.combat

    def start_combat(self, user_id: str) -> bool:
        self.require_gm(user_id)
        with self._lock:
            return self.combat.start()

    def end_combat(self, user_id: str) -> bool:
        self.require_gm(user_id)
        with self._lock:
            return self.combat.end()

    def add_monsters(self, user_id: str, template: MonsterTemplate, count: int = 1) -> List[Combatant]:
        self.require_gm(user_id)
        with self._lock:
            return self.combat.add_monsters(template, count)

    def import_players(self, user_id: str) -> List[Combatant]:
        """Importe les fiches de la session (roster rechargé depuis le store avant calcul)."""
        self.require_gm(user_id)
        roster = self.store.fetch_characters(self.session.id)
        with self._lock:
            self.state.roster = roster
            return self.combat.import_players(roster)

    def advance_turn(self, user_id: str) -> Optional[ChatMessage]:
        self.require_gm(user_id)
        with self._lock:
            banner = self.combat.advance_turn()
        if banner is None:
            return None
        return self.post_system(banner, sender_name=COMBAT_SENDER_NAME)

    def remove_combatant(self, user_id: str, combatant_id: str) -> bool:
        self.require_gm(user_id)
        with self._lock:
            return self.combat.remove_combatant(combatant_id)
