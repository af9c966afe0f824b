"""
Service: sync_loop.py
Rôle:
- Boucle de synchronisation coopérative d'une table (pseudo temps réel par polling).
- À intervalle fixe : relit l'historique du chat et, pour le MJ, le roster de la session,
  puis remplace l'état local en bloc (`SessionController.refresh`).

Contrat:
- Pas de fusion incrémentale : le store (source de vérité) renvoie toujours l'historique récent complet.
- Les doublons entre deux relectures sont sans effet (messages identifiés par id).
- `stop()` DOIT être appelé à la sortie de la table : aucun timer orphelin ne continue
  à muter l'état une fois la vue fermée.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from app.config.settings import settings
from app.services.session_controller import SessionController, TableState

logger = logging.getLogger(__name__)


@dataclass
class SessionSync:
    controller: SessionController
    include_roster: bool = False
    interval: float = field(default_factory=lambda: settings.POLL_INTERVAL_SECONDS)
    on_refresh: Optional[Callable[[TableState], None]] = None
    _task: Optional[asyncio.Task] = field(default=None, init=False, repr=False)
    _pending: Optional[asyncio.Future] = field(default=None, init=False, repr=False)
    ticks: int = field(default=0, init=False)

    @property
    def running(self) -> bool:
        return bool(self._task and not self._task.done())

    def tick(self) -> Optional[TableState]:
        """Une relecture. Une erreur inattendue est journalisée : la boucle continue au tick suivant."""
        try:
            state = self.controller.refresh(include_roster=self.include_roster)
        except Exception:
            logger.exception(
                "Session refresh failed",
                extra={"session_id": self.controller.session.id},
            )
            return None
        self.ticks += 1
        if self.on_refresh is not None:
            self.on_refresh(state)
        return state

    async def _runner(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                # Relecture (I/O store bloquante) hors de la boucle d'événements
                self._pending = asyncio.ensure_future(asyncio.to_thread(self.tick))
                await asyncio.shield(self._pending)
        except asyncio.CancelledError:
            return

    async def start(self) -> None:
        """Chargement initial puis démarrage du polling (idempotent)."""
        if self.running:
            return
        await asyncio.to_thread(self.tick)
        self._task = asyncio.create_task(self._runner())
        logger.info(
            "Session sync started",
            extra={"session_id": self.controller.session.id, "interval": self.interval},
        )

    async def stop(self) -> None:
        """Annule le polling et attend la relecture en vol : plus aucune mutation ensuite."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._pending is not None and not self._pending.done():
            # Le thread de relecture ne s'annule pas : on attend sa fin
            await asyncio.wait({self._pending})
        self._pending = None
        self._task = None
