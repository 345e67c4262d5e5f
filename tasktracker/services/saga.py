"""Ordered multi-step mutations spanning several documents.

A ``Saga`` is a list of forward steps, each with an optional compensating
action. Steps run strictly in order; a failing step stops the sequence and its
exception is re-raised. Completed steps stay applied unless the saga was built
with ``compensate=True``, in which case their compensations run in reverse
order first.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Step:
    description: str
    action: Callable[[], Any]
    compensation: Optional[Callable[[], Any]] = None


class Saga:
    def __init__(self, name: str, *, compensate: bool = False) -> None:
        self.name = name
        self.compensate = compensate
        self.steps: List[Step] = []
        self.completed: List[Step] = []

    def step(
        self,
        description: str,
        action: Callable[[], Any],
        compensation: Optional[Callable[[], Any]] = None,
    ) -> "Saga":
        self.steps.append(Step(description, action, compensation))
        return self

    def run(self) -> Any:
        """Run every step; returns the result of the last one."""
        result = None
        for step in self.steps:
            logger.debug("Saga %s: %s", self.name, step.description)
            try:
                result = step.action()
            except Exception:
                logger.error(
                    "Saga %s failed at %r after %d of %d steps",
                    self.name,
                    step.description,
                    len(self.completed),
                    len(self.steps),
                )
                if self.compensate:
                    self._roll_back()
                raise
            self.completed.append(step)
        return result

    def _roll_back(self) -> None:
        for step in reversed(self.completed):
            if step.compensation is None:
                continue
            logger.info("Saga %s: compensating %r", self.name, step.description)
            try:
                step.compensation()
            except Exception:
                # Keep unwinding; the original failure is what the caller sees.
                logger.exception("Saga %s: compensation for %r failed", self.name, step.description)
        self.completed.clear()
