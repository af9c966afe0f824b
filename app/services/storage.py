"""
Service: storage.py
Rôle:
- Contrat de stockage consommé par le cœur (sessions, fiches, chat, utilisateurs).
- Trois implémentations :
  1) `JsonFileStore` : base JSON unique `{users, games, characters, chats}` (serveur, sauvegarde locale).
  2) `HttpStore`     : client de l'API HTTP de ce backend (clients distants).
  3) `FallbackStore` : chaîne ordonnée primaire → secondaire. Les lectures basculent sur le
     secondaire si le primaire est indisponible ; les écritures sont toujours recopiées dans le
     secondaire (copie locale). Aucune erreur de transport ne remonte à l'appelant.

Cohérence (faiblesse connue, assumée):
- "Last write wins" : aucune détection de conflit entre écrivains concurrents (MJ + joueur,
  deux onglets...). Le store primaire reste la seule source de vérité quand il répond.

Chat:
- Seuls les `CHAT_HISTORY_LIMIT` derniers messages d'une session sont conservés (FIFO).
"""
from __future__ import annotations

import logging
import random
import string
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config.settings import settings
from app.models.character import Character
from app.models.chat import ChatMessage
from app.models.game import GameSession, User
from .io_utils import read_json, write_json
from .rules_catalog import RULES

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVITE_ALPHABET = string.ascii_uppercase + string.digits


class StoreUnavailableError(RuntimeError):
    """Le store (réseau ou fichier) n'a pas pu traiter la requête."""


class Store(Protocol):
    def fetch_games(self) -> List[GameSession]: ...

    def save_game(self, game: GameSession) -> GameSession: ...

    def fetch_characters(self, session_id: str) -> List[Character]: ...

    def fetch_character(self, character_id: str) -> Optional[Character]: ...

    def save_character(self, character: Character) -> Character: ...

    def fetch_chat_history(self, session_id: str) -> List[ChatMessage]: ...

    def append_chat_message(self, session_id: str, message: ChatMessage) -> ChatMessage: ...

    def save_user(self, user: User) -> User: ...


# ---------------------------------------------------------------------------
# Helpers communs
# ---------------------------------------------------------------------------
def normalize_invite_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def find_game_by_invite_code(store: Store, code: Optional[str]) -> Optional[GameSession]:
    """Recherche une session par code d'invitation (insensible à la casse)."""
    wanted = normalize_invite_code(code)
    if not wanted:
        return None
    for game in store.fetch_games():
        if normalize_invite_code(game.invite_code) == wanted:
            return game
    return None


def generate_invite_code(
    existing: Iterable[str] = (),
    length: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Code opaque en majuscules, régénéré tant qu'il entre en collision avec une session connue."""
    taken = {normalize_invite_code(c) for c in existing}
    size = length or settings.INVITE_CODE_LENGTH
    source = rng or random
    while True:
        code = "".join(source.choice(INVITE_ALPHABET) for _ in range(size))
        if code not in taken:
            return code


def _empty_db() -> Dict[str, Any]:
    return {"users": [], "games": [], "characters": [], "chats": {}}


# ---------------------------------------------------------------------------
# Store fichier
# ---------------------------------------------------------------------------
class JsonFileStore:
    """
    Base JSON unique (orjson). Le document est gardé en mémoire et réécrit à chaque mutation.
    Au premier lancement (fichier absent), les sessions d'exemple sont injectées.
    """

    def __init__(self, path: Path | str, *, history_limit: Optional[int] = None, seed: bool = True) -> None:
        self.path = Path(path)
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT
        self.seed = seed
        self._lock = RLock()
        self._db: Optional[Dict[str, Any]] = None

    # -----------------------------
    # Chargement / sauvegarde
    # -----------------------------
    def _load(self) -> Dict[str, Any]:
        if self._db is not None:
            return self._db
        try:
            raw = read_json(self.path)
        except Exception as exc:
            raise StoreUnavailableError(f"cannot read {self.path}") from exc
        if raw is None:
            raw = _empty_db()
            if self.seed:
                raw["games"] = [g.to_json() for g in RULES.sample_games()]
            self._db = raw
            self._save()
            return raw
        for key, value in _empty_db().items():
            raw.setdefault(key, value)
        self._db = raw
        return raw

    def _save(self) -> None:
        try:
            write_json(self.path, self._db)
        except Exception as exc:
            raise StoreUnavailableError(f"cannot write {self.path}") from exc

    def reload(self) -> None:
        """Oublie le cache mémoire (relecture disque au prochain accès)."""
        with self._lock:
            self._db = None

    # -----------------------------
    # Utilisateurs
    # -----------------------------
    def save_user(self, user: User) -> User:
        """Login simplifié : l'utilisateur est créé au premier passage, puis réutilisé (par pseudo)."""
        with self._lock:
            db = self._load()
            for raw in db["users"]:
                if raw.get("username") == user.username:
                    return User.model_validate(raw)
            db["users"].append(user.to_json())
            self._save()
            return user

    # -----------------------------
    # Sessions
    # -----------------------------
    def fetch_games(self) -> List[GameSession]:
        with self._lock:
            return [GameSession.model_validate(g) for g in self._load()["games"]]

    def save_game(self, game: GameSession) -> GameSession:
        """Upsert par id (nouvelle session en tête de liste)."""
        with self._lock:
            db = self._load()
            games: List[Dict[str, Any]] = db["games"]
            payload = game.to_json()
            for idx, raw in enumerate(games):
                if raw.get("id") == game.id:
                    games[idx] = payload
                    break
            else:
                games.insert(0, payload)
            self._save()
            return game

    # -----------------------------
    # Fiches
    # -----------------------------
    def fetch_characters(self, session_id: str) -> List[Character]:
        with self._lock:
            return [
                Character.model_validate(c)
                for c in self._load()["characters"]
                if c.get("sessionId") == session_id
            ]

    def fetch_character(self, character_id: str) -> Optional[Character]:
        with self._lock:
            for raw in self._load()["characters"]:
                if raw.get("id") == character_id:
                    return Character.model_validate(raw)
            return None

    def save_character(self, character: Character) -> Character:
        """Upsert par id (last write wins)."""
        with self._lock:
            db = self._load()
            chars: List[Dict[str, Any]] = db["characters"]
            payload = character.to_json()
            for idx, raw in enumerate(chars):
                if raw.get("id") == character.id:
                    chars[idx] = payload
                    break
            else:
                chars.append(payload)
            self._save()
            return character

    # -----------------------------
    # Chat
    # -----------------------------
    def fetch_chat_history(self, session_id: str) -> List[ChatMessage]:
        with self._lock:
            history = self._load()["chats"].get(session_id) or []
            return [ChatMessage.model_validate(m) for m in history[-self.history_limit:]]

    def append_chat_message(self, session_id: str, message: ChatMessage) -> ChatMessage:
        with self._lock:
            db = self._load()
            history: List[Dict[str, Any]] = db["chats"].setdefault(session_id, [])
            history.append(message.to_json())
            overflow = len(history) - self.history_limit
            if overflow > 0:
                del history[:overflow]
            self._save()
            return message


# ---------------------------------------------------------------------------
# Store HTTP (client de l'API)
# ---------------------------------------------------------------------------
class HttpStore:
    """
    Client HTTP vers l'API de ce backend.
    - Toute erreur réseau / statut non-2xx est convertie en `StoreUnavailableError`.
    - Retries courts (le repli local prend le relais ensuite).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.base_url = (base_url or settings.REMOTE_API_URL).rstrip("/")
        self.session = session or self._build_session()
        self.timeout = timeout or settings.REMOTE_TIMEOUT_SECONDS

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=2,
            backoff_factor=0.2,
            status_forcelist=(502, 503, 504),
            allowed_methods=frozenset({"GET", "POST", "PUT"}),
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Remote store unavailable", extra={"store_url": url, "method": method})
            raise StoreUnavailableError(f"{method} {url} failed") from exc

    def save_user(self, user: User) -> User:
        return User.model_validate(self._request("POST", "/login", user.to_json()))

    def fetch_games(self) -> List[GameSession]:
        return [GameSession.model_validate(g) for g in self._request("GET", "/games")]

    def save_game(self, game: GameSession) -> GameSession:
        return GameSession.model_validate(self._request("POST", "/games", game.to_json()))

    def fetch_characters(self, session_id: str) -> List[Character]:
        return [Character.model_validate(c) for c in self._request("GET", f"/games/{session_id}/characters")]

    def fetch_character(self, character_id: str) -> Optional[Character]:
        try:
            return Character.model_validate(self._request("GET", f"/characters/{character_id}"))
        except StoreUnavailableError as exc:
            cause = exc.__cause__
            if isinstance(cause, requests.HTTPError) and cause.response is not None and cause.response.status_code == 404:
                return None
            raise

    def save_character(self, character: Character) -> Character:
        return Character.model_validate(self._request("POST", "/characters", character.to_json()))

    def fetch_chat_history(self, session_id: str) -> List[ChatMessage]:
        return [ChatMessage.model_validate(m) for m in self._request("GET", f"/games/{session_id}/chat")]

    def append_chat_message(self, session_id: str, message: ChatMessage) -> ChatMessage:
        return ChatMessage.model_validate(self._request("POST", f"/games/{session_id}/chat", message.to_json()))


# ---------------------------------------------------------------------------
# Chaîne de repli
# ---------------------------------------------------------------------------
class FallbackStore:
    """
    Store primaire (distant) + store secondaire (local).
    - Lectures : primaire, sinon secondaire ; si les deux échouent → valeur vide.
    - Écritures : primaire (échec journalisé), puis copie systématique dans le secondaire.
    """

    def __init__(self, primary: Store, secondary: Store) -> None:
        self.primary = primary
        self.secondary = secondary

    def _read(self, op: str, call: Callable[[Store], T], empty: T) -> T:
        try:
            return call(self.primary)
        except StoreUnavailableError:
            logger.warning("Primary store unavailable, reading local copy", extra={"store_op": op})
        try:
            return call(self.secondary)
        except StoreUnavailableError:
            logger.error("Local store unavailable", extra={"store_op": op})
            return empty

    def _write(self, op: str, call: Callable[[Store], T], value: T) -> T:
        result = value
        try:
            result = call(self.primary)
        except StoreUnavailableError:
            logger.warning("Primary store unavailable, keeping local copy only", extra={"store_op": op})
        try:
            call(self.secondary)
        except StoreUnavailableError:
            logger.error("Local store unavailable", extra={"store_op": op})
        return result

    def save_user(self, user: User) -> User:
        return self._write("save_user", lambda s: s.save_user(user), user)

    def fetch_games(self) -> List[GameSession]:
        try:
            games = self.primary.fetch_games()
        except StoreUnavailableError:
            logger.warning("Primary store unavailable, reading local copy", extra={"store_op": "fetch_games"})
            try:
                return self.secondary.fetch_games()
            except StoreUnavailableError:
                logger.error("Local store unavailable", extra={"store_op": "fetch_games"})
                return []
        # Synchronise la copie locale
        for game in games:
            try:
                self.secondary.save_game(game)
            except StoreUnavailableError:
                logger.error("Local store unavailable", extra={"store_op": "fetch_games"})
                break
        return games

    def save_game(self, game: GameSession) -> GameSession:
        return self._write("save_game", lambda s: s.save_game(game), game)

    def fetch_characters(self, session_id: str) -> List[Character]:
        return self._read("fetch_characters", lambda s: s.fetch_characters(session_id), [])

    def fetch_character(self, character_id: str) -> Optional[Character]:
        return self._read("fetch_character", lambda s: s.fetch_character(character_id), None)

    def save_character(self, character: Character) -> Character:
        return self._write("save_character", lambda s: s.save_character(character), character)

    def fetch_chat_history(self, session_id: str) -> List[ChatMessage]:
        return self._read("fetch_chat_history", lambda s: s.fetch_chat_history(session_id), [])

    def append_chat_message(self, session_id: str, message: ChatMessage) -> ChatMessage:
        return self._write("append_chat_message", lambda s: s.append_chat_message(session_id, message), message)


def default_store_path() -> Path:
    return Path(settings.DATA_DIR) / settings.DB_FILENAME


def build_client_store(base_url: Optional[str] = None, local_path: Optional[Path] = None) -> FallbackStore:
    """Chaîne côté client : API distante puis copie locale JSON."""
    return FallbackStore(HttpStore(base_url), JsonFileStore(local_path or default_store_path()))
