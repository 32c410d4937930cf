"""Collection of non-fatal generation warnings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationWarning:
    """A non-fatal condition found while building operation models."""

    record: str
    message: str

    def __str__(self) -> str:
        return f"{self.record}: {self.message}"


class Diagnostics:
    """Accumulates warnings for one generation run."""

    def __init__(self) -> None:
        self._warnings: list[GenerationWarning] = []

    @property
    def warnings(self) -> tuple[GenerationWarning, ...]:
        return tuple(self._warnings)

    def warn(self, record: str, message: str) -> None:
        warning = GenerationWarning(record=record, message=message)
        if warning in self._warnings:
            return
        logger.warning("%s", warning)
        self._warnings.append(warning)
