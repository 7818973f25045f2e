"""Configuration and check hooks for the analysis pass."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable

from .error import PassResult, Severity, SourceDiag, Stage

#: Result type of the analysis pass.
AnalysisResult = PassResult


class DefineMode(enum.Enum):
    """How components in steps are interpreted."""

    ALL = "all"
    COMPONENTS = "components"
    STEPS = "steps"
    TEXT = "text"


class DuplicateMode(enum.Enum):
    """How components with a repeated name are interpreted."""

    NEW = "new"
    REFERENCE = "reference"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a user check.

    ``severity`` is ``None`` when the check passed. ``hints`` explain why it
    failed or how to fix it, most important first.
    """

    severity: Severity | None = None
    hints: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> CheckResult:
        return cls()

    @classmethod
    def warning(cls, *args: str) -> CheckResult:
        return cls(Severity.WARNING, tuple(args))

    @classmethod
    def error(cls, *args: str) -> CheckResult:
        return cls(Severity.ERROR, tuple(args))

    def into_source_diag(self, message: str | Callable[[], str]) -> SourceDiag | None:
        """Build an analysis diagnostic, or ``None`` if the check passed.

        ``message`` may be a string or a callable producing it; the callable
        is only called when a diagnostic is built.
        """
        if self.severity is None:
            return None
        text = message() if callable(message) else message
        diag = SourceDiag.unlabeled(text, self.severity, Stage.ANALYSIS)
        for hint in self.hints:
            diag.add_hint(hint)
        return diag


@dataclass
class CheckOptions:
    """How a metadata entry is treated.

    ``include`` keeps the entry in the recipe; ``run_std_checks`` runs the
    checks for standard keys. Both default to true.
    """

    include: bool = True
    run_std_checks: bool = True


RecipeRefCheck = Callable[[str], CheckResult]
MetadataValidator = Callable[[Any, Any, CheckOptions], CheckResult]


@dataclass
class ParseOptions:
    """Extra configuration for the analysis of events."""

    recipe_ref_check: RecipeRefCheck | None = None
    metadata_validator: MetadataValidator | None = None