"""
Client de table
===============

Côté joueur/MJ : login, jonction par code d'invitation puis ouverture d'une table
synchronisée par polling.

- Le store est la chaîne API distante → copie JSON locale (`build_client_store`) :
  si l'API tombe, la table continue sur la copie locale.
- Le MJ relit aussi le roster à chaque tick, un joueur seulement le chat.
- `close()` arrête la boucle de synchro (aucun timer orphelin).

Exemple
-------
    client = TableClient()
    user = client.login("Aragorn")
    await client.open(client.join("skel123"), user)
    client.controller.post_message(user.id, user.username, "/oracle what does a goblin fear?")
    await client.close()
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from app.models.game import GameSession, User
from app.services.session_controller import SessionController, TableState
from app.services.storage import Store, build_client_store, find_game_by_invite_code
from app.services.sync_loop import SessionSync

logger = logging.getLogger(__name__)


class TableClient:
    def __init__(
        self,
        store: Optional[Store] = None,
        *,
        interval: Optional[float] = None,
        on_refresh: Optional[Callable[[TableState], None]] = None,
    ) -> None:
        self.store = store or build_client_store()
        self.interval = interval
        self.on_refresh = on_refresh
        self.user: Optional[User] = None
        self.controller: Optional[SessionController] = None
        self.sync: Optional[SessionSync] = None

    def login(self, username: str) -> User:
        self.user = self.store.save_user(User(username=username.strip()))
        return self.user

    def join(self, invite_code: str) -> GameSession:
        """Session correspondant au code (casse ignorée). KeyError si aucune."""
        game = find_game_by_invite_code(self.store, invite_code)
        if game is None:
            raise KeyError("session_not_found")
        return game

    async def open(self, session: GameSession, user: Optional[User] = None) -> SessionController:
        """Ouvre la table : chargement initial, polling, message d'ouverture pour le MJ."""
        await self.close()
        user = user or self.user
        user_id = user.id if user else None
        self.controller = SessionController(session, self.store)
        options = {"interval": self.interval} if self.interval is not None else {}
        self.sync = SessionSync(
            self.controller,
            include_roster=self.controller.is_gm(user_id),
            on_refresh=self.on_refresh,
            **options,
        )
        await self.sync.start()
        self.controller.ensure_welcome(user_id)
        logger.info("Table opened", extra={"session_id": session.id, "user_id": user_id})
        return self.controller

    async def close(self) -> None:
        if self.sync is not None:
            await self.sync.stop()
            logger.info("Table closed", extra={"session_id": self.sync.controller.session.id})
        self.sync = None
        self.controller = None
