"""
Session store registry
======================

Expose des helpers pour récupérer le `SessionController` d'une table côté serveur.
Les contrôleurs (état de combat inclus, éphémère) sont mis en cache en mémoire et
initialisés à la demande depuis le store JSON du serveur.

- `get_store()` / `use_store(store)` : store serveur (remplaçable, ex: tests).
- `save_session(game)` : upsert d'une session avec code d'invitation unique.
- `find_session_by_invite_code(code)` : jonction par code (insensible à la casse).
"""
from __future__ import annotations

from threading import RLock
from typing import Dict, Optional

from app.models.game import GameSession
from .session_controller import SessionController
from .storage import (
    JsonFileStore,
    Store,
    default_store_path,
    find_game_by_invite_code,
    generate_invite_code,
)

_CONTROLLERS: Dict[str, SessionController] = {}
_STORE: Optional[Store] = None
_LOCK = RLock()


def get_store() -> Store:
    """Store du serveur (base JSON unique), créé au premier accès."""
    global _STORE
    with _LOCK:
        if _STORE is None:
            _STORE = JsonFileStore(default_store_path())
        return _STORE


def use_store(store: Optional[Store]) -> None:
    """Remplace le store serveur (None : store par défaut) et vide le cache des contrôleurs."""
    global _STORE
    with _LOCK:
        _STORE = store
        _CONTROLLERS.clear()


def get_session(session_id: str) -> Optional[GameSession]:
    for game in get_store().fetch_games():
        if game.id == session_id:
            return game
    return None


def get_session_controller(session_id: str) -> SessionController:
    """
    Retourne le contrôleur associé à `session_id` (créé et rafraîchi si nécessaire).
    KeyError si la session n'existe pas dans le store.
    """
    with _LOCK:
        controller = _CONTROLLERS.get(session_id)
        if controller is not None:
            return controller
        session = get_session(session_id)
        if session is None:
            raise KeyError(session_id)
        controller = SessionController(session, get_store())
        controller.refresh(include_roster=True)
        _CONTROLLERS[session_id] = controller
        return controller


def drop_session(session_id: str) -> None:
    """Retire une table du cache (le combat en cours est perdu, les données restent)."""
    with _LOCK:
        _CONTROLLERS.pop(session_id, None)


def list_session_ids() -> list[str]:
    """Tables actuellement chargées en mémoire."""
    with _LOCK:
        return list(_CONTROLLERS.keys())


def save_session(game: GameSession) -> GameSession:
    """
    Upsert d'une session. Un code d'invitation absent ou déjà pris par une autre session
    est (re)généré ; le code stocké est toujours en majuscules.
    """
    with _LOCK:
        store = get_store()
        others = [g for g in store.fetch_games() if g.id != game.id]
        taken = {g.invite_code.upper() for g in others}
        code = game.invite_code.strip().upper()
        if not code or code in taken:
            code = generate_invite_code(taken)
        game = game.model_copy(update={"invite_code": code})
        saved = store.save_game(game)
        controller = _CONTROLLERS.get(saved.id)
        if controller is not None:
            controller.update_session(saved)
        return saved


def find_session_by_invite_code(code: Optional[str]) -> Optional[GameSession]:
    return find_game_by_invite_code(get_store(), code)
