"""
Service: combat_tracker.py
Rôle:
- Suivi d'une rencontre : liste ordonnée des combattants (joueurs + monstres),
  pointeur de tour et compteur de rounds.

Machine à états:
- IDLE (pas de rencontre) → ACTIVE (start) → IDLE (end). Aucune autre transition.
- Les combattants peuvent être préparés en IDLE (le MJ monte la rencontre avant de la lancer).

Ordre d'initiative:
- Tri stable décroissant sur l'initiative après chaque insertion (égalité → ordre d'insertion).
- Si la rencontre est ACTIVE, le pointeur suit le combattant actif à travers le re-tri.

Robustesse:
- advance/remove sur une liste vide : no-op, jamais d'exception.
- Formule de PV de monstre invalide : repli du moteur de dés (1 PV), l'ajout continue.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from app.models.character import Character
from app.models.combat import Combatant, MonsterTemplate
from app.models.enums import CombatantType, CombatPhase
from app.services import stats
from app.services.dice import roll_initiative, roll_total

logger = logging.getLogger(__name__)


def round_banner(round_number: int) -> str:
    return f"--- Round {round_number} begins ---"


@dataclass
class CombatTracker:
    rng: Optional[random.Random] = field(default=None, repr=False)
    phase: CombatPhase = CombatPhase.IDLE
    combatants: List[Combatant] = field(default_factory=list)
    turn: int = 0
    round: int = 1

    # -----------------------------
    # Lecture
    # -----------------------------
    @property
    def active(self) -> bool:
        return self.phase == CombatPhase.ACTIVE

    def current(self) -> Optional[Combatant]:
        """Combattant dont c'est le tour (None si la liste est vide)."""
        if not self.combatants:
            return None
        return self.combatants[self.turn]

    def ids(self) -> set[str]:
        return {c.id for c in self.combatants}

    def snapshot(self) -> Dict[str, Any]:
        current = self.current()
        return {
            "phase": self.phase.value,
            "round": self.round,
            "turn": self.turn,
            "current_id": current.id if current else None,
            "combatants": [c.to_json() for c in self.combatants],
        }

    # -----------------------------
    # Cycle de vie
    # -----------------------------
    def start(self) -> bool:
        """IDLE → ACTIVE (round 1, premier combattant). False si déjà active."""
        if self.active:
            return False
        self.phase = CombatPhase.ACTIVE
        self.turn = 0
        self.round = 1
        logger.info("Combat started", extra={"combatants": len(self.combatants)})
        return True

    def end(self) -> bool:
        """
        ACTIVE → IDLE : la rencontre est close et ses combattants oubliés.
        En IDLE, vide seulement la liste préparée (pas de transition, renvoie False).
        """
        if not self.active:
            self.combatants = []
            self.turn = 0
            return False
        self.phase = CombatPhase.IDLE
        self.combatants = []
        self.turn = 0
        self.round = 1
        logger.info("Combat ended")
        return True

    # -----------------------------
    # Ajouts
    # -----------------------------
    def _insert(self, newcomers: List[Combatant]) -> None:
        current = self.current()
        self.combatants.extend(newcomers)
        # sort() est stable : les égalités gardent l'ordre d'insertion
        self.combatants.sort(key=lambda c: c.initiative, reverse=True)
        if current is not None and self.active:
            self.turn = next(i for i, c in enumerate(self.combatants) if c.id == current.id)

    def add_monsters(self, template: MonsterTemplate, count: int = 1) -> List[Combatant]:
        """Ajoute `count` instances : PV et initiative tirés indépendamment pour chacune."""
        count = max(0, int(count))
        batch = uuid4().hex[:8]
        added: List[Combatant] = []
        for i in range(count):
            hp = max(1, roll_total(template.hp, self.rng))
            added.append(
                Combatant(
                    id=f"m-{batch}-{i}",
                    name=f"{template.name} {i + 1}" if count > 1 else template.name,
                    hp=hp,
                    max_hp=hp,
                    ac=template.ac,
                    initiative=roll_initiative(template.initiative, self.rng),
                    type=CombatantType.MONSTER,
                )
            )
        self._insert(added)
        logger.info("Monsters added", extra={"monster": template.name, "count": count})
        return added

    def import_players(self, characters: Iterable[Character]) -> List[Combatant]:
        """
        Ajoute chaque fiche absente de la rencontre (par id) : CA calculée, initiative d20 + DES.
        Idempotent : un second appel n'ajoute rien pour les fiches déjà présentes.
        """
        present = self.ids()
        added: List[Combatant] = []
        for character in characters:
            if character.id in present:
                continue
            present.add(character.id)
            added.append(
                Combatant(
                    id=character.id,
                    name=character.name,
                    hp=character.hp.current,
                    max_hp=character.hp.max,
                    ac=stats.armor_class(character),
                    initiative=roll_initiative(stats.attribute_modifier(character, stats.DEX), self.rng),
                    type=CombatantType.PLAYER,
                )
            )
        self._insert(added)
        logger.info("Players imported", extra={"count": len(added)})
        return added

    # -----------------------------
    # Tours
    # -----------------------------
    def advance_turn(self) -> Optional[str]:
        """
        Passe au combattant suivant. En bouclant après le dernier : round + 1, pointeur à 0,
        et renvoie le texte d'annonce du nouveau round (None sinon).
        """
        if not self.combatants:
            return None
        self.turn += 1
        if self.turn < len(self.combatants):
            return None
        self.turn = 0
        self.round += 1
        logger.info("New round", extra={"round": self.round})
        return round_banner(self.round)

    def remove_combatant(self, combatant_id: str) -> bool:
        """Retire un combattant ; le pointeur reste toujours dans les bornes (0 si liste vide)."""
        index = next((i for i, c in enumerate(self.combatants) if c.id == combatant_id), None)
        if index is None:
            return False
        del self.combatants[index]
        if index < self.turn:
            self.turn -= 1
        if self.turn >= len(self.combatants):
            self.turn = 0
        return True
