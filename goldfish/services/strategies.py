"""Decision-making strategies for gold-fish trials.

A strategy looks at a read-only ``GameStateView`` and returns a decision;
the trial executor applies it. Strategies never touch the game state
directly, and any randomness comes from the trial-scoped ``random.Random``
they are handed, so a decision is reproducible from the view and the RNG
state alone.

Strategies are selected by name through a registry when an experiment is
configured:

    register_strategy("my_strategy", MyStrategy)
    config = ExperimentConfig(strategy="my_strategy")
"""

from __future__ import annotations

import itertools
import random
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from goldfish.core.logging_config import get_logger
from goldfish.models.card_models import Card, ManaType, Zone
from goldfish.services.game_state import GameStateView
from goldfish.services.payment_solver import ManaUnit, solve_payment

logger = get_logger(__name__)

# =============================================================================
# Decisions
# =============================================================================


@dataclass(frozen=True)
class MulliganDecision:
    """Keep the current hand or ship it."""

    keep: bool


@dataclass(frozen=True)
class LandDropDecision:
    """Land to play this turn, or None to skip the land drop."""

    card: Card | None = None


@dataclass(frozen=True)
class Play:
    """A single card to cast and the zone it is cast from."""

    card: Card
    zone: Zone = Zone.HAND


@dataclass(frozen=True)
class CardPlayDecision:
    """Cards to cast this turn, in order."""

    plays: tuple[Play, ...] = ()


# =============================================================================
# Strategy interface
# =============================================================================


class Strategy(ABC):
    """Interface every decision-maker implements."""

    name: str = "strategy"

    @abstractmethod
    def decide_mulligan(self, view: GameStateView, rng: random.Random) -> MulliganDecision:
        """Decide whether to keep the hand in ``view``."""

    @abstractmethod
    def decide_land_drop(self, view: GameStateView, rng: random.Random) -> LandDropDecision:
        """Pick a land from hand to play, if any."""

    @abstractmethod
    def decide_card_plays(self, view: GameStateView, rng: random.Random) -> CardPlayDecision:
        """Pick the spells to cast with the mana in ``view``."""

    def choose_cards_to_bottom(
        self, view: GameStateView, count: int, rng: random.Random
    ) -> tuple[Card, ...]:
        """Pick ``count`` cards to put on the bottom after a London mulligan.

        Excess lands go first when the hand is land-heavy, otherwise the
        most expensive spells.
        """
        hand = list(view.hand)
        chosen: list[Card] = []
        for _ in range(min(count, len(hand))):
            lands = [card for card in hand if card.is_land]
            spells = [card for card in hand if not card.is_land]
            if not spells or len(lands) > max(2, (len(hand) + 1) // 2):
                pick = lands[-1]
            else:
                pick = max(spells, key=lambda card: card.mana_value)
            hand.remove(pick)
            chosen.append(pick)
        return tuple(chosen)


def _castable_candidates(view: GameStateView) -> list[Play]:
    plays = [Play(card, Zone.HAND) for card in view.spells_in_hand() if card.cost is not None]
    plays.extend(Play(card, Zone.COMMAND) for card in view.command if card.cost is not None)
    return plays


def _pay_in_order(units: list[ManaUnit], plays: list[Play]) -> tuple[list[Play], int]:
    """Greedily pay for ``plays`` in order, skipping what cannot be paid.

    Returns:
        The plays that were paid for and the total mana spent.
    """
    paid: list[Play] = []
    spent = 0
    for play in plays:
        payment = solve_payment(units, play.card.cost)
        if payment is None:
            continue
        used = set(payment)
        units = [unit for index, unit in enumerate(units) if index not in used]
        paid.append(play)
        spent += len(payment)
    return paid, spent


# =============================================================================
# Built-in strategies
# =============================================================================


class BaselineStrategy(Strategy):
    """A simple, reasonable pilot.

    - Mulligan: keep hands with between ``min_lands`` and ``max_lands`` lands.
    - Land drop: play the land that fixes the most colored pips needed by
      the spells in hand, first in hand order on ties.
    - Card plays: commanders first, then the most expensive spells, casting
      each one that can still be paid for.
    """

    name = "baseline"

    def __init__(self, min_lands: int = 2, max_lands: int = 5):
        self.min_lands = min_lands
        self.max_lands = max_lands

    def decide_mulligan(self, view: GameStateView, rng: random.Random) -> MulliganDecision:
        land_count = len(view.lands_in_hand())
        hand_size = len(view.hand)
        upper = min(self.max_lands, hand_size - 1) if hand_size > 1 else self.max_lands
        keep = self.min_lands <= land_count <= upper
        logger.debug(
            f"Saw hand with {hand_size} cards and {land_count} lands "
            f"on mulligan #{view.mulligans_taken}, keep={keep}"
        )
        return MulliganDecision(keep=keep)

    def decide_land_drop(self, view: GameStateView, rng: random.Random) -> LandDropDecision:
        lands = view.lands_in_hand()
        if not lands or view.land_drops_remaining == 0:
            return LandDropDecision(None)

        needed = self._uncovered_pips(view)
        best = max(lands, key=lambda land: self._land_score(land, needed))
        return LandDropDecision(best)

    def decide_card_plays(self, view: GameStateView, rng: random.Random) -> CardPlayDecision:
        candidates = sorted(_castable_candidates(view), key=self._priority)
        paid, _ = _pay_in_order(list(view.mana_units), candidates)
        return CardPlayDecision(tuple(paid))

    @staticmethod
    def _priority(play: Play) -> tuple[int, int]:
        return (0 if play.card.is_commander else 1, -play.card.mana_value)

    @staticmethod
    def _uncovered_pips(view: GameStateView) -> Counter:
        """Colored pips in hand and command zone no permanent can produce yet."""
        producible: set[ManaType] = set()
        for card in view.battlefield:
            if card.produces:
                producible |= card.produces.colors

        needed: Counter = Counter()
        for card in view.spells_in_hand() + list(view.command):
            if card.cost:
                needed.update(pip for pip in card.cost.pips if pip not in producible)
        return needed

    @staticmethod
    def _land_score(land: Card, needed: Counter) -> int:
        if land.produces is None:
            return -1
        return sum(count for color, count in needed.items() if color in land.produces.colors)


class KeepSevenStrategy(BaselineStrategy):
    """Baseline play that never mulligans."""

    name = "keep_seven"

    def decide_mulligan(self, view: GameStateView, rng: random.Random) -> MulliganDecision:
        return MulliganDecision(keep=True)


class CurveStrategy(BaselineStrategy):
    """Baseline mulligans and lands, but spends as much mana as possible.

    Searches subsets of the castable spells for the one that uses the most
    mana this turn, preferring more cards, then commanders, on ties.
    """

    name = "curve"

    # Bounds the subset search to 2**MAX_CANDIDATES combinations
    MAX_CANDIDATES = 10

    def decide_card_plays(self, view: GameStateView, rng: random.Random) -> CardPlayDecision:
        available = view.mana_available
        candidates = [
            play
            for play in sorted(_castable_candidates(view), key=self._priority)
            if play.card.mana_value <= available
        ][: self.MAX_CANDIDATES]

        best: list[Play] = []
        best_key = (0, 0, 0)
        for size in range(len(candidates), 0, -1):
            for combo in itertools.combinations(candidates, size):
                total = sum(play.card.mana_value for play in combo)
                if total > available or total < best_key[0]:
                    continue
                paid, spent = _pay_in_order(list(view.mana_units), list(combo))
                if len(paid) != size:
                    continue
                commanders = sum(1 for play in paid if play.card.is_commander)
                key = (spent, size, commanders)
                if key > best_key:
                    best, best_key = paid, key
        return CardPlayDecision(tuple(best))


class SloppyStrategy(Strategy):
    """Wraps another strategy and occasionally makes a human mistake.

    With probability ``mistake_rate`` the land drop is missed, and each
    planned spell is independently forgotten with the same probability.
    """

    name = "sloppy"

    def __init__(self, inner: Strategy | None = None, mistake_rate: float = 0.1):
        self.inner = inner or BaselineStrategy()
        self.mistake_rate = mistake_rate

    def decide_mulligan(self, view: GameStateView, rng: random.Random) -> MulliganDecision:
        return self.inner.decide_mulligan(view, rng)

    def decide_land_drop(self, view: GameStateView, rng: random.Random) -> LandDropDecision:
        decision = self.inner.decide_land_drop(view, rng)
        if decision.card is not None and rng.random() < self.mistake_rate:
            logger.debug(f"Turn {view.turn}: forgot to play {decision.card.name}")
            return LandDropDecision(None)
        return decision

    def decide_card_plays(self, view: GameStateView, rng: random.Random) -> CardPlayDecision:
        decision = self.inner.decide_card_plays(view, rng)
        kept = tuple(play for play in decision.plays if rng.random() >= self.mistake_rate)
        return CardPlayDecision(kept)

    def choose_cards_to_bottom(
        self, view: GameStateView, count: int, rng: random.Random
    ) -> tuple[Card, ...]:
        return self.inner.choose_cards_to_bottom(view, count, rng)


# =============================================================================
# Registry
# =============================================================================

StrategyFactory = Callable[[], Strategy]

_REGISTRY: dict[str, StrategyFactory] = {
    BaselineStrategy.name: BaselineStrategy,
    KeepSevenStrategy.name: KeepSevenStrategy,
    CurveStrategy.name: CurveStrategy,
    SloppyStrategy.name: SloppyStrategy,
}


def register_strategy(name: str, factory: StrategyFactory, replace: bool = False) -> None:
    """Make a strategy selectable by name in experiment configs.

    Args:
        name: Name used in ``ExperimentConfig.strategy``.
        factory: Zero-argument callable returning a fresh strategy.
        replace: Allow overwriting an existing registration.

    Raises:
        ValueError: If the name is taken and ``replace`` is False.
    """
    if name in _REGISTRY and not replace:
        raise ValueError(f"Strategy '{name}' is already registered")
    _REGISTRY[name] = factory


def unregister_strategy(name: str) -> None:
    _REGISTRY.pop(name, None)


def get_strategy(name: str) -> Strategy:
    """Create a new instance of the strategy registered under ``name``.

    Raises:
        KeyError: If no strategy has that name.
    """
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown strategy '{name}'") from None
    return factory()


def available_strategies() -> list[str]:
    return sorted(_REGISTRY)
