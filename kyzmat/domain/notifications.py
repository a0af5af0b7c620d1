"""
Notifications destinées à l'utilisateur (équivalent des "toasts" de l'interface).

Les flux métier ne propagent pas leurs échecs vers la couche de présentation: ils publient une
notification traduite et reviennent à un état sûr. Le `Notifier` conserve l'historique des
notifications émises, ce qui permet à l'API de les renvoyer et aux tests de les inspecter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import structlog

from kyzmat.domain.localization import DEFAULT_LANGUAGE, Language, Translator

log = structlog.get_logger(__name__)

Variant = Literal["default", "destructive"]


@dataclass
class Notification:
    """Notification émise: clé de traduction, texte résolu et variante visuelle."""

    key: str
    description: str
    variant: Variant = "default"


@dataclass
class Notifier:
    """Collecte les notifications dans la langue courante."""

    translator: Translator | None = None
    language: Language = DEFAULT_LANGUAGE
    history: list[Notification] = field(default_factory=list)

    def _text(self, key: str, detail: str | None) -> str:
        text = self.translator.t(key, self.language) if self.translator else key
        return f"{text}: {detail}" if detail else text

    def info(self, key: str, detail: str | None = None) -> Notification:
        """Publie une notification informative."""
        note = Notification(key=key, description=self._text(key, detail))
        self.history.append(note)
        log.info("notification", key=key)
        return note

    def error(self, key: str, detail: str | None = None) -> Notification:
        """Publie une notification d'erreur (variante destructive)."""
        note = Notification(key=key, description=self._text(key, detail), variant="destructive")
        self.history.append(note)
        log.warning("notification_error", key=key, detail=detail)
        return note

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None

    def keys(self) -> list[str]:
        return [n.key for n in self.history]

    def drain(self) -> list[Notification]:
        """Retourne et vide l'historique."""
        out, self.history = self.history, []
        return out
