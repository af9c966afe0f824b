"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres de l'app (nom, host/port, jeton MJ, chemins, LLM, polling…).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from app.config.settings import settings`.

Bonnes pratiques
----------------
- *Ne commitez pas* une valeur réelle de `GM_TOKEN`. Utilisez `.env`.
- `LLM_ENDPOINT` pointe par défaut vers Ollama local (http://localhost:11434).
- `DATA_DIR` calcule un chemin relatif au repo : `<repo>/app/data`.
- `REMOTE_API_URL` n'est utilisé que par les clients (chaîne de stores avec repli local).

Exemples de `.env`
------------------
APP_NAME="Dungeon & Chat (Staging)"
PORT=3001
GM_TOKEN="mettre-une-valeur-secrète-en-prod"
LLM_MODEL="llama3"
DATA_DIR="/var/opt/dungeon-chat/data"
POLL_INTERVAL_SECONDS=3
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "Dungeon & Chat Backend"
    # Bind réseau (FastAPI / Uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Jeton MJ (Bearer) accepté en plus de l'identité `gm_id` de la session
    # ⚠️ Remplacez en production via .env
    GM_TOKEN: str = "changeme-gm-secret"

    # Oracle (LLM) : Ollama local par défaut
    LLM_PROVIDER: str = "ollama"
    LLM_MODEL: str = "llama3"
    LLM_ENDPOINT: str = "http://localhost:11434/api/chat"
    LLM_TEMPERATURE: float = 0.7

    # Répertoire des fichiers persistés (base JSON unique)
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
    DB_FILENAME: str = "database.json"

    # Chat : nombre de messages conservés par session (FIFO)
    CHAT_HISTORY_LIMIT: int = 100
    # Longueur des codes d'invitation générés
    INVITE_CODE_LENGTH: int = 6
    # Intervalle de rafraîchissement (boucle de synchro côté client)
    POLL_INTERVAL_SECONDS: float = 3.0

    # Store distant (clients) : API HTTP de ce même backend
    REMOTE_API_URL: str = "http://localhost:3001"
    REMOTE_TIMEOUT_SECONDS: float = 5.0

    # Frontends autorisés (CORS)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Paramétrage pydantic-settings :
    # - lit le fichier .env (UTF-8) si présent
    # - ignore les clés supplémentaires pour éviter les erreurs
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
