"""Compensating unit of work for multi-step ledger writes.

Each step pairs an action with the compensation that undoes it. When a step
fails, the compensations of every completed step run in reverse order. If a
compensation itself fails the ledger may be inconsistent, which is reported
as a ``CompensationError`` and logged at CRITICAL.
"""

import logging
from typing import Any, Callable, Optional

from fintrack.domain.errors import CompensationError, DomainError, IntegrityError

logger = logging.getLogger(__name__)


class Saga:
    """Run a sequence of (action, compensation) steps."""

    def __init__(self, name: str):
        self.name = name
        self._completed: list[tuple[str, Callable[[Any], Any], Any]] = []

    def step(
        self,
        description: str,
        action: Callable[[], Any],
        compensation: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Run one step and remember how to undo it.

        Args:
            description: Human-readable step name, used in logs and errors
            action: Callable performing the write; its result is returned
            compensation: Callable receiving the action result that undoes it

        Returns:
            The action's result

        Raises:
            DomainError: The step's own domain error, after a clean rollback
            IntegrityError: The step failed with a non-domain error
            CompensationError: Rollback of earlier steps failed
        """
        try:
            result = action()
        except Exception as exc:
            logger.warning("%s: step '%s' failed: %s", self.name, description, exc)
            self._rollback()
            if isinstance(exc, DomainError):
                raise
            raise IntegrityError(
                f"{self.name} failed at step '{description}': {exc}"
            ) from exc

        if compensation is not None:
            self._completed.append((description, compensation, result))
        logger.debug("%s: step '%s' done", self.name, description)
        return result

    def _rollback(self) -> None:
        failed = []
        for description, compensation, result in reversed(self._completed):
            try:
                compensation(result)
                logger.warning("%s: compensated step '%s'", self.name, description)
            except Exception as exc:
                failed.append(f"{description} ({result!r}): {exc}")
        self._completed.clear()

        if failed:
            logger.critical(
                "%s: rollback incomplete, manual cleanup needed: %s",
                self.name,
                "; ".join(failed),
            )
            raise CompensationError(
                f"{self.name} failed and rollback did not complete; "
                "manual cleanup needed",
                failed_steps=failed,
            )
