# comments in English; reST docstrings
"""
Explicit success/failure values returned by application services.

Services never raise for expected business outcomes (bad credentials,
duplicate email, revoked token...). They return ``Ok(value)`` or
``Err(Failure)`` and the HTTP boundary is the single place that unwraps.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar, Union

from skillpath.services._shared.errors import ErrorCode

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Failure:
    """
    Typed business failure.

    :param code: Entry of the error catalogue.
    :param details: Optional structured context, safe for clients.
    """

    code: ErrorCode
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome wrapping ``value``."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Err:
    """Failed outcome wrapping a :class:`Failure`."""

    failure: Failure
    ok: ClassVar[bool] = False

    @classmethod
    def of(cls, code: ErrorCode, **details: Any) -> Err:
        """Shorthand for ``Err(Failure(code, details))``."""
        return cls(Failure(code=code, details=details))

    @property
    def code(self) -> ErrorCode:
        return self.failure.code

    @property
    def details(self) -> Mapping[str, Any]:
        return self.failure.details


Result = Union[Ok[T], Err]
