"""Consume-once completion handle for pending attribute commits."""

from __future__ import annotations

from collections.abc import Callable

from huebridge.core.errors import CompletionError
from huebridge.core.model import Attribute, Status

CompletionListener = Callable[[Status, int], None]


class Completion:
    """Handle passed to ``Device.set_attribute``.

    A device that returns ``Status.pending`` must call the handle exactly once
    with the final status and an optional application-specific error code.
    The call may happen synchronously, from inside ``set_attribute``, or later
    from the same execution context. The outcome is held until the owner binds
    a listener, so a re-entrant call is never lost.
    """

    def __init__(self, attr: Attribute) -> None:
        self.attr = attr
        self._result: tuple[Status, int] | None = None
        self._listener: CompletionListener | None = None
        self._cancelled = False

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> tuple[Status, int] | None:
        return self._result

    def __call__(self, status: Status, error_code: int = 0) -> None:
        if self._cancelled:
            raise CompletionError(
                f"Completion for '{self.attr.value}' invoked after the commit was settled synchronously"
            )
        if self._result is not None:
            raise CompletionError(f"Completion for '{self.attr.value}' invoked more than once")
        self._result = (status, error_code)
        listener, self._listener = self._listener, None
        if listener is not None:
            listener(status, error_code)

    def bind(self, listener: CompletionListener) -> None:
        """Deliver the outcome to ``listener`` now if already fired, otherwise on firing."""
        if self._result is not None:
            listener(*self._result)
            return
        self._listener = listener

    def cancel(self) -> None:
        """Forbid any later invocation; used when the device did not pend."""
        self._cancelled = True
        self._listener = None
