"""
Module de hachage des mots de passe et de gestion des jetons.

Ce module fournit les fonctions pour le hachage des mots de passe, la création et validation des
jetons JWT d'accès et de récupération de mot de passe.
"""

from datetime import UTC, datetime, timedelta
from typing import Any, Literal

import jwt
from jwt import InvalidTokenError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TokenPurpose = Literal["access", "recovery"]


class TokenData(BaseModel):
    """Données contenues dans un jeton JWT."""

    sub: str
    email: str
    purpose: TokenPurpose = "access"


def hash_password(p: str) -> str:
    """Hache un mot de passe en utilisant PBKDF2."""
    return pwd_context.hash(p)


def verify_password(p: str, h: str) -> bool:
    """Vérifie un mot de passe contre son hash."""
    if not h:
        return False
    return pwd_context.verify(p, h)


def create_token(
    secret: str,
    alg: str,
    expires_min: int,
    payload: dict[str, Any],
    purpose: TokenPurpose = "access",
) -> str:
    """Crée un jeton JWT signé avec expiration."""
    to_encode = payload.copy()
    expire = datetime.now(UTC) + timedelta(minutes=expires_min)
    to_encode.update({"exp": expire, "purpose": purpose})
    return jwt.encode(to_encode, secret, algorithm=alg)


def decode_token(
    token: str, secret: str, alg: str, purpose: TokenPurpose = "access"
) -> TokenData | None:
    """Décode et valide un jeton JWT; None si invalide, expiré ou d'un autre usage."""
    try:
        data = TokenData(**jwt.decode(token, secret, algorithms=[alg]))
    except (InvalidTokenError, ValidationError):
        return None
    if data.purpose != purpose:
        return None
    return data
