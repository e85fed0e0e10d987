from __future__ import annotations

from dataclasses import dataclass, field

from typing_extensions import List

from . import logger
from .exceptions import TypematicError


@dataclass
class GenerationReport:
    """
    Warnings and per-type failures of a generation run. Local problems never stop the run,
    they are collected here and summarized once every type has been processed.
    """

    warnings: List[TypematicError] = field(default_factory=list)
    """
    Recovered problems, e.g. ambiguous ranges and unresolvable references.
    """
    failures: List[TypematicError] = field(default_factory=list)
    """
    Types that were skipped or could not be rendered.
    """
    built: List[str] = field(default_factory=list)
    """
    Names of the classes that were built, in build order.
    """
    rendered: List[str] = field(default_factory=list)
    """
    Names of the classes the render sink accepted.
    """

    def warn(self, warning: TypematicError):
        logger.warning(f"[report] {warning}")
        self.warnings.append(warning)

    def fail(self, failure: TypematicError):
        logger.error(f"[report] {failure}")
        self.failures.append(failure)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def warnings_of_type(self, kind: type) -> List[TypematicError]:
        return [w for w in self.warnings if isinstance(w, kind)]

    def failures_of_type(self, kind: type) -> List[TypematicError]:
        return [f for f in self.failures if isinstance(f, kind)]

    def summary(self) -> str:
        lines = [
            f"Built {len(self.built)} classes, rendered {len(self.rendered)}, "
            f"{len(self.warnings)} warnings, {len(self.failures)} failures."
        ]
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {type(w).__name__}: {w}" for w in self.warnings)
        if self.failures:
            lines.append("Failures:")
            lines.extend(f"  - {type(f).__name__}: {f}" for f in self.failures)
        return "\n".join(lines)
