"""Exception types raised by the simulation engine."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from goldfish.models.simulation_models import ConfigIssue


class GoldfishError(Exception):
    """Base class for all simulator errors."""


class IllegalAction(GoldfishError):
    """A strategy asked for an action the game state rejects.

    Fatal to the owning trial. The experiment records it as a failed trial
    and keeps going.
    """

    def __init__(self, message: str, card: Any = None):
        super().__init__(message)
        self.card = card


class LibraryEmpty(GoldfishError):
    """A draw asked for more cards than the library holds.

    The cards that could be drawn were still moved to the hand and are
    available on ``drawn``.
    """

    def __init__(self, requested: int, drawn: list[Any]):
        super().__init__(f"Tried to draw {requested} card(s), library only had {len(drawn)}")
        self.requested = requested
        self.drawn = drawn


class ConfigurationInvalid(GoldfishError, ValueError):
    """Experiment or scenario configuration cannot be simulated."""

    def __init__(self, issues: list[ConfigIssue]):
        self.issues = issues
        details = "; ".join(f"{issue.code}: {issue.message}" for issue in issues)
        super().__init__(f"Invalid configuration ({details})")


class ManaParseError(GoldfishError, ValueError):
    """A mana cost string is not valid ``{2}{R}`` notation."""


class SimulationCancelled(GoldfishError):
    """A running experiment or scenario was cancelled between trials."""

    def __init__(self, message: str = "Simulation cancelled", completed: Any = None):
        super().__init__(message)
        self.completed = completed
