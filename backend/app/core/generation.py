"""Generation Counter - detects superseded reconciliation attempts.

Invariants:
    - advance() is strictly increasing; values are never reused
    - An attempt may commit only while is_current(its generation) holds
"""

from app.core.domain_types import Generation


class GenerationCounter:
    """Monotonic counter stamped on every session-changing notification."""

    def __init__(self) -> None:
        self._value = Generation(0)

    @property
    def latest(self) -> Generation:
        return self._value

    def advance(self) -> Generation:
        self._value = Generation(self._value + 1)
        return self._value

    def is_current(self, generation: Generation) -> bool:
        return generation == self._value
