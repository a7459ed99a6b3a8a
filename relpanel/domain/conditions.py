"""Boolean configuration that is either fixed or computed from an item count."""

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class Fixed:
    """A condition with a constant outcome."""

    value: bool

    def evaluate(self, count: int = 0) -> bool:
        return self.value


@dataclass(frozen=True)
class Computed:
    """A condition decided by a predicate over the current item count."""

    predicate: Callable[[int], bool]

    def evaluate(self, count: int = 0) -> bool:
        return bool(self.predicate(count))


Condition = Fixed | Computed


def to_condition(
    value: bool | Callable[[int], bool] | Condition | None, default: bool = True
) -> Condition:
    """Normalize a flag-or-predicate argument into a Condition.

    Args:
        value: A bool, a predicate taking the item count, a Condition, or None
        default: Outcome used when value is None

    Returns:
        Fixed or Computed condition
    """
    if value is None:
        return Fixed(default)
    if isinstance(value, Fixed | Computed):
        return value
    if callable(value):
        return Computed(value)
    return Fixed(bool(value))


def boolean(value: bool | Callable[[], bool] | None, default: bool) -> bool:
    """Resolve a bool or a zero-argument callable, falling back to default on None."""
    if value is None:
        return default
    if callable(value):
        return bool(value())
    return bool(value)
