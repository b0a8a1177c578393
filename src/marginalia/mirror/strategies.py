"""Ordered fallback chains.

A chain is a list of named strategies tried in sequence until one succeeds.
Each strategy returns ``(ok, value)``; anything it raises is caught and
recorded as a failed attempt, so callers only ever see an :class:`Attempt`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

StrategyFn = Callable[[], tuple[bool, Any]]


@dataclass(frozen=True)
class Strategy:
    name: str
    fn: StrategyFn


@dataclass
class Attempt:
    """Outcome of a chain: which strategy won (if any) and what it returned."""

    ok: bool
    strategy: str | None = None
    value: Any = None
    failures: list[str] = field(default_factory=list)


def first_success(strategies: Sequence[Strategy], *, label: str = "") -> Attempt:
    failures: list[str] = []
    for strategy in strategies:
        try:
            ok, value = strategy.fn()
        except (OSError, ValueError) as exc:
            logger.debug("%s %s raised: %s", label, strategy.name, exc)
            ok, value = False, None
        if ok:
            if failures:
                logger.debug("%s succeeded via %s after %s", label, strategy.name, failures)
            return Attempt(ok=True, strategy=strategy.name, value=value, failures=failures)
        failures.append(strategy.name)
    return Attempt(ok=False, failures=failures)
