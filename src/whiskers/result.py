"""Render result — either rendered output or the failure that prevented it.

A tagged union instead of an error-first callback convention: exactly one
of output and error exists, enforced by the types rather than by callers.
"""

from dataclasses import dataclass
from typing import Literal, TypeAlias


@dataclass(frozen=True, slots=True)
class Rendered:
    """A successful render.

    Truthy, so callers can write::

        result = engine.render("home", data)
        if result:
            send(result.output)
    """

    output: str

    @property
    def ok(self) -> Literal[True]:
        return True

    def __bool__(self) -> bool:
        return True

    def unwrap(self) -> str:
        """Return the rendered output."""
        return self.output

    def as_callback_args(self) -> tuple[None, str]:
        """The ``(error, output)`` pair for an error-first callback."""
        return None, self.output


@dataclass(frozen=True, slots=True)
class Failed:
    """A failed render. Falsy; ``error`` holds the captured exception."""

    error: BaseException

    @property
    def ok(self) -> Literal[False]:
        return False

    def __bool__(self) -> bool:
        return False

    def unwrap(self) -> str:
        """Re-raise the captured error."""
        raise self.error

    def as_callback_args(self) -> tuple[BaseException, None]:
        """The ``(error, output)`` pair for an error-first callback."""
        return self.error, None


RenderResult: TypeAlias = Rendered | Failed
