"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "kyzmat-marketplace"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    CORS_ORIGINS: list[AnyHttpUrl] | list[str] = []
    # Persistance relationnelle (sqlite mémoire si absent) et clé/valeur
    DATABASE_URL: str | None = None
    DB_CREATE_ALL: bool = True
    REDIS_URL: str | None = None
    REQUIRE_REDIS: bool = False

    # JWT/Auth
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MIN: int = 60
    RECOVERY_EXPIRES_MIN: int = 15
    PASSWORD_MIN_LENGTH: int = 6
    AUTH_MAX_FAILED_ATTEMPTS: int = 5
    PASSWORD_RESET_REDIRECT: str = "/auth?mode=reset"

    # Langues: "ky" par défaut, "ru" en alternative
    DEFAULT_LANGUAGE: str = "ky"

    # Stockage objets (images des services)
    STORAGE_DIR: str = "./storage"
    STORAGE_PUBLIC_BASE_URL: str = "/storage/v1/object/public"
    STORAGE_BUCKET: str = "service-images"
    IMAGE_MAX_BYTES: int = 5 * 1024 * 1024


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
