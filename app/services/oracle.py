"""
Service: oracle.py
- L'« Oracle » : assistant de règles / d'ambiance pour le MJ et les joueurs (commande `/oracle` du chat).
- Appel unique de complétion (Ollama /api/chat par défaut), base de connaissance OD2 en prompt système.

Fonctions principales:
- query_oracle(question, context): renvoie TOUJOURS un texte affichable. Un échec de transport
  devient une réplique « en jeu » (jamais d'exception vers l'appelant).
- build_context(session, character, is_gm): contexte de table transmis au modèle.
"""
import json
import logging
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config.settings import settings
from app.models.character import Character
from app.models.game import GameSession
from app.services.rules_catalog import OD2_KNOWLEDGE_BASE

logger = logging.getLogger(__name__)

DEFAULT_CHAT_TIMEOUT: Tuple[float, float] = (5.0, 45.0)  # connect, read

ORACLE_COMMAND = "/oracle"
APOLOGY_UNREACHABLE = "The Oracle could not reach the higher planes right now."
APOLOGY_SILENT = "The Oracle remains silent."
APOLOGY_NOT_CONFIGURED = "The Oracle has not been summoned to this table (AI provider not configured)."


class OracleServiceError(RuntimeError):
    """Erreur encapsulant un échec de communication avec le LLM."""


class LLMClient:
    """
    Client HTTP centralisé pour communiquer avec le LLM.
    - Configure retries avec backoff exponentiel.
    - Journalise chaque requête avec un identifiant de corrélation.
    """

    def __init__(
        self,
        chat_endpoint: str,
        *,
        session: Optional[requests.Session] = None,
        chat_timeout: Tuple[float, float] = DEFAULT_CHAT_TIMEOUT,
    ) -> None:
        self.chat_endpoint = chat_endpoint
        self.session = session or self._build_session()
        self.chat_timeout = chat_timeout

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def chat(self, payload: Dict[str, Any], *, request_id: str) -> Dict[str, Any]:
        try:
            logger.debug(
                "LLM request start",
                extra={"llm_url": self.chat_endpoint, "llm_request_id": request_id},
            )
            response = self.session.post(self.chat_endpoint, json=payload, timeout=self.chat_timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            logger.warning(
                "LLM request timeout",
                extra={"llm_url": self.chat_endpoint, "llm_request_id": request_id},
            )
            raise OracleServiceError("LLM request timed out") from exc
        except requests.RequestException as exc:
            logger.error(
                "LLM request failed",
                exc_info=True,
                extra={"llm_url": self.chat_endpoint, "llm_request_id": request_id},
            )
            raise OracleServiceError("LLM request failed") from exc

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            logger.error(
                "Invalid JSON payload from LLM chat",
                exc_info=True,
                extra={"llm_request_id": request_id},
            )
            raise OracleServiceError("Invalid JSON payload from LLM chat") from exc


CLIENT = LLMClient(settings.LLM_ENDPOINT)


def system_prompt(context: str) -> str:
    return (
        'You are "the Oracle", an experienced and helpful Game Master assistant for Old Dragon 2e. '
        "Use the following knowledge base to answer rules questions:\n"
        f"{OD2_KNOWLEDGE_BASE}\n"
        f"Current table context: {context}\n"
        "If the question is about rules, be direct and cite the rule. "
        "If it is a creative request (a name, a room description), be evocative and old school "
        "(exploration and danger). Keep answers short enough for a chat."
    )


def build_context(
    session: Optional[GameSession],
    character: Optional[Character] = None,
    is_gm: bool = False,
) -> str:
    """Contexte de table : MJ courant + rôle de l'auteur de la question."""
    parts = []
    if session is not None:
        parts.append(f"Game master: {session.gm_name}.")
    if is_gm:
        parts.append("The user is the Game Master.")
    elif character is not None:
        parts.append(
            f"Player character: {character.name}, {character.race} {character.character_class}."
        )
    return " ".join(parts)


def strip_command(text: str) -> str:
    """Retire le préfixe `/oracle` d'un message de chat."""
    stripped = (text or "").strip()
    if stripped.lower().startswith(ORACLE_COMMAND):
        stripped = stripped[len(ORACLE_COMMAND):]
    return stripped.strip()


def query_oracle(question: str, context: str = "") -> str:
    """
    Interroge l'Oracle. Ne lève jamais :
    - provider inconnu → message "non configuré",
    - erreur de transport → excuse en jeu,
    - réponse vide → silence de l'Oracle.
    """
    if settings.LLM_PROVIDER != "ollama":
        return APOLOGY_NOT_CONFIGURED

    request_id = f"oracle-{uuid4().hex}"
    try:
        data = CLIENT.chat(
            {
                "model": settings.LLM_MODEL,
                "messages": [
                    {"role": "system", "content": system_prompt(context)},
                    {"role": "user", "content": question},
                ],
                "options": {"temperature": settings.LLM_TEMPERATURE},
                "stream": False,
            },
            request_id=request_id,
        )
    except OracleServiceError:
        logger.warning("Oracle unavailable", extra={"llm_request_id": request_id})
        return APOLOGY_UNREACHABLE
    except Exception:
        logger.exception("Unexpected error while querying the Oracle", extra={"llm_request_id": request_id})
        return APOLOGY_UNREACHABLE

    # Ollama /api/chat peut renvoyer {"message":{"content":...}} ou {"response":...}
    text = ""
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, dict):
            text = message.get("content") or ""
        if not text:
            text = data.get("response") or ""
    if not isinstance(text, str) or not text.strip():
        logger.warning("Oracle returned no usable text", extra={"llm_request_id": request_id})
        return APOLOGY_SILENT
    logger.info("Oracle answered", extra={"llm_request_id": request_id})
    return text.strip()
