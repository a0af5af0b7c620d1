"""
Résolution des champs localisés et traduction par clé.

Ce module fournit:
- la résolution d'un champ bilingue (miroir de la langue courante, sinon champ de base),
- le nom de colonne à écrire pour une saisie dans une langue donnée,
- un traducteur par clé pointée (`nav.home`) sur des catalogues JSON,
- la mémorisation de la langue d'interface dans le stockage clé/valeur local.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from kyzmat.core.http_constants import LANGUAGE_STORAGE_KEY

log = structlog.get_logger(__name__)

I18N_DIR = Path(__file__).resolve().parent.parent / "i18n"


class Language(str, Enum):
    """Langues de l'interface."""

    KY = "ky"
    RU = "ru"


DEFAULT_LANGUAGE = Language.KY

# Code de langue d'interface -> suffixe des colonnes miroirs en base
_STORAGE_SUFFIX = {Language.KY: "kg", Language.RU: "ru"}


def suffix_for(language: Language) -> str:
    """Retourne le suffixe de stockage des champs miroirs pour une langue."""
    return _STORAGE_SUFFIX[Language(language)]


def parse_language(value: str | None, default: Language = DEFAULT_LANGUAGE) -> Language:
    """Convertit une valeur libre (`ru`, `ru-RU`, `ky`, `kg`) en `Language`."""
    if not value:
        return default
    code = value.strip().lower()[:2]
    if code == "kg":
        code = Language.KY.value
    try:
        return Language(code)
    except ValueError:
        return default


def _read(record: Any, field: str) -> Any:
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _supplied(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def resolve_localized_field(record: Any, field_name: str, language: Language) -> str:
    """Retourne la meilleure valeur disponible d'un champ pour la langue demandée.

    Ordre: champ miroir (`name_ru`), puis champ de base (`name`), puis chaîne vide.
    Les valeurs `None`, absentes ou vides sont considérées comme non fournies.
    """
    shadow = _read(record, f"{field_name}_{suffix_for(language)}")
    if _supplied(shadow):
        return shadow
    base = _read(record, field_name)
    if _supplied(base):
        return base
    return ""


def resolve_writable_field_name(
    field_name: str, language: Language, default: Language = DEFAULT_LANGUAGE
) -> str:
    """Nom de la clé de schéma liée à une saisie dans `language`.

    La langue par défaut écrit le champ de base; l'autre langue écrit `field_<langue>`.
    """
    language = Language(language)
    if language == default:
        return field_name
    return f"{field_name}_{language.value}"


def localize_record(
    record: Mapping[str, Any], fields: Iterable[str], language: Language
) -> dict[str, Any]:
    """Projette une fiche en remplaçant chaque champ localisable par sa valeur résolue.

    Les colonnes miroirs sont retirées; les champs non localisables sont conservés tels quels.
    """
    fields = tuple(fields)
    shadows = {f"{f}_{s}" for f in fields for s in _STORAGE_SUFFIX.values()}
    out = {k: v for k, v in record.items() if k not in shadows}
    for field in fields:
        out[field] = resolve_localized_field(record, field, language)
    return out


class Translator:
    """Traduction par clé pointée sur des catalogues JSON imbriqués."""

    def __init__(self, catalogs: dict[Language, dict[str, Any]] | None = None):
        self.catalogs = catalogs if catalogs is not None else load_catalogs()

    def t(self, key: str, language: Language = DEFAULT_LANGUAGE) -> str:
        """Retourne la traduction de `key`, ou la clé elle-même si introuvable."""
        node: Any = self.catalogs.get(Language(language), {})
        for part in key.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                log.warning("translation_key_missing", key=key, language=str(language))
                return key
        return node if isinstance(node, str) else key


def load_catalogs(directory: Path = I18N_DIR) -> dict[Language, dict[str, Any]]:
    """Charge `ky.json` et `ru.json` depuis le répertoire i18n."""
    catalogs: dict[Language, dict[str, Any]] = {}
    for lang in Language:
        path = directory / f"{lang.value}.json"
        with path.open(encoding="utf-8") as fh:
            catalogs[lang] = json.load(fh)
    return catalogs


class LanguagePreference:
    """Langue d'interface mémorisée dans le stockage clé/valeur local."""

    def __init__(self, store, default: Language = DEFAULT_LANGUAGE):
        self.store = store
        self.default = default

    def get(self) -> Language:
        """Lit la langue mémorisée; toute valeur inconnue ou illisible donne la langue par défaut."""
        try:
            saved = self.store.get(LANGUAGE_STORAGE_KEY)
        except Exception as err:
            log.error("language_preference_read_failed", error=str(err))
            return self.default
        if saved in (Language.KY.value, Language.RU.value):
            return Language(saved)
        return self.default

    def set(self, language: Language) -> Language:
        """Mémorise la langue choisie."""
        language = Language(language)
        self.store.set(LANGUAGE_STORAGE_KEY, language.value)
        return language
