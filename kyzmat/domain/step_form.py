"""
Formulaire en plusieurs étapes (assistant).

Machine à états sur une liste ordonnée d'étapes. L'index courant démarre à 0; "suivant" exige
que l'étape courante soit valide; "précédent" est toujours permis; l'envoi n'est possible que
depuis la dernière étape et revalide toutes les étapes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import structlog

from kyzmat.domain.notifications import Notifier

log = structlog.get_logger(__name__)

REQUIRED_KEY = "forms.required"


@dataclass
class Step:
    """Étape: identifiant, titre, champs affichés et règle de validité."""

    id: str
    title: str
    fields: tuple[str, ...] = ()
    is_valid: bool | Callable[[], bool] = True

    def valid(self) -> bool:
        return bool(self.is_valid() if callable(self.is_valid) else self.is_valid)


@dataclass
class StepForm:
    """Assistant d'étapes avec brouillon optionnel à chaque passage à l'étape suivante."""

    steps: Sequence[Step]
    on_submit: Callable[[], object]
    notifier: Notifier
    save_draft: Callable[[], object] | None = None
    index: int = field(default=0)

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("a step form needs at least one step")

    @property
    def current(self) -> Step:
        return self.steps[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == len(self.steps) - 1

    @property
    def progress(self) -> float:
        """Avancement en pourcentage (étape courante incluse)."""
        return (self.index + 1) / len(self.steps) * 100

    def next(self) -> bool:
        """Passe à l'étape suivante si l'étape courante est valide."""
        if not self.current.valid():
            self.notifier.error(REQUIRED_KEY)
            return False
        if self.is_last:
            return False
        self.index += 1
        if self.save_draft is not None:
            self.save_draft()
        return True

    def previous(self) -> bool:
        """Revient à l'étape précédente, sans condition de validité."""
        if self.index == 0:
            return False
        self.index -= 1
        return True

    def go_to(self, target: int) -> bool:
        """Saut direct: toute étape antérieure, ou l'étape immédiatement suivante si valide."""
        if target < 0 or target >= len(self.steps):
            return False
        if target <= self.index:
            self.index = target
            return True
        if target == self.index + 1 and self.current.valid():
            self.index = target
            return True
        return False

    def invalid_steps(self) -> list[str]:
        return [s.id for s in self.steps if not s.valid()]

    def submit(self) -> bool:
        """Envoie le formulaire si toutes les étapes sont valides; l'index reste inchangé."""
        if not self.is_last:
            return False
        invalid = self.invalid_steps()
        if invalid:
            log.info("step_form_submit_blocked", invalid_steps=invalid)
            self.notifier.error(REQUIRED_KEY)
            return False
        self.on_submit()
        return True
