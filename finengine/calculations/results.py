"""
Tagged Calculation Results

Numeric routines that can hit a degenerate case (a loan that never amortizes,
an IRR that does not converge) return one of these instead of a bare number.
Both variants expose ``value`` so callers that only want the legacy numeric
fallback can keep reading it.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Ok:
    """A normally computed result."""

    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Degenerate:
    """A result produced by a fallback path.

    ``reason`` is a short machine-readable tag (e.g. ``"negative_amortization"``)
    and ``value`` is the fallback number reported in its place.
    """

    reason: str
    value: Any

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok, Degenerate]
