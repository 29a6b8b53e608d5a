"""Runs a single gold-fish game from shuffle to finish.

A trial moves through ``NOT_STARTED -> MULLIGAN -> TURN_LOOP -> FINISHED``.
It asks its strategy for every decision, applies the decisions to its own
``GameState`` and records what happened each turn in a ``TrialTrace``.

Running out of library is a normal way for a trial to end. An
``IllegalAction`` is not: it means the strategy proposed something the
state rejected, so the trial moves to ``ABORTED`` and the error propagates.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum

from goldfish.core.exceptions import IllegalAction, LibraryEmpty
from goldfish.core.logging_config import get_logger
from goldfish.models.card_models import Card, Deck
from goldfish.models.simulation_models import (
    ExperimentConfig,
    FinishReason,
    FirstTurnDraw,
    MulliganRule,
    StopCondition,
    StopConditionKind,
)
from goldfish.services.game_state import GameState
from goldfish.services.seeding import derive_seed
from goldfish.services.strategies import Play, Strategy

logger = get_logger(__name__)


class TrialPhase(str, Enum):
    """Lifecycle of a trial."""

    NOT_STARTED = "not_started"
    MULLIGAN = "mulligan"
    TURN_LOOP = "turn_loop"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass(frozen=True)
class OpeningHand:
    """How the kept hand came about.

    Attributes:
        kept_hand: Hand after mulligans (and London bottoming).
        mulligans: Mulligans taken.
        decisions: Mulligan decisions the strategy was asked for.
        forced_keep: Whether the hand was kept because no mulligans remained.
        on_the_draw: Whether the player draws on turn 1.
    """

    kept_hand: tuple[Card, ...]
    mulligans: int
    decisions: int
    forced_keep: bool
    on_the_draw: bool

    @property
    def land_count(self) -> int:
        return sum(1 for card in self.kept_hand if card.is_land)


@dataclass(frozen=True)
class TurnEvent:
    """Everything that happened on one turn.

    Attributes:
        turn: Turn number, starting at 1.
        drawn: Cards drawn, by the turn draw and by spells.
        land_played: Land dropped this turn, if any.
        cast: Plays that resolved, in order.
        mana_available: Untapped mana after the land drop, before casting.
        mana_spent: Mana paid for the spells cast.
        lands_in_play: Lands on the battlefield at end of turn.
        mana_sources: Mana the battlefield can produce per turn at end of turn.
        hand_size: Cards in hand at end of turn.
    """

    turn: int
    drawn: tuple[Card, ...]
    land_played: Card | None
    cast: tuple[Play, ...]
    mana_available: int
    mana_spent: int
    lands_in_play: int
    mana_sources: int
    hand_size: int


@dataclass
class TrialTrace:
    """Ordered record of one trial, consumed by the metrics collector."""

    seed: int
    opening: OpeningHand
    turns: list[TurnEvent] = field(default_factory=list)
    finish_reason: FinishReason | None = None
    stop_condition: StopConditionKind | None = None

    @property
    def turns_played(self) -> int:
        return len(self.turns)


class TrialExecutor:
    """Plays one game with one strategy.

    Args:
        deck: Deck to gold-fish.
        config: Experiment configuration (turn limit, mulligan rules, ...).
        strategy: Decision maker for this trial.
        seed: Trial seed. The shuffle, the strategy's randomness and the
            first-turn coin flip each get their own stream derived from it.
        verify_conservation: Check the card conservation invariant after
            every turn. Meant for tests.
    """

    def __init__(
        self,
        deck: Deck,
        config: ExperimentConfig,
        strategy: Strategy,
        seed: int,
        verify_conservation: bool = False,
    ):
        self.config = config
        self.strategy = strategy
        self.seed = seed
        self.verify_conservation = verify_conservation

        self.state = GameState(
            deck,
            random.Random(derive_seed(seed, "shuffle")),
            max_land_drops=config.max_land_drops,
        )
        self.rng = random.Random(derive_seed(seed, "strategy"))
        self.phase = TrialPhase.NOT_STARTED

        if config.first_turn_draw == FirstTurnDraw.COIN_FLIP:
            self.on_the_draw = random.Random(derive_seed(seed, "coin")).random() < 0.5
        else:
            self.on_the_draw = config.first_turn_draw == FirstTurnDraw.DRAW

    def run(self) -> TrialTrace:
        """Play the trial to completion.

        Returns:
            The finished trace.

        Raises:
            IllegalAction: If the strategy proposed an action the game state
                rejected. The trial is left ABORTED.
            RuntimeError: If the trial was already run.
        """
        if self.phase != TrialPhase.NOT_STARTED:
            raise RuntimeError(f"Trial already {self.phase.value}")

        try:
            trace = self._mulligan()
            if trace.finish_reason is None:
                self._turn_loop(trace)
        except IllegalAction as e:
            self.phase = TrialPhase.ABORTED
            logger.debug(f"Trial {self.seed} aborted on turn {self.state.turn}: {e}")
            raise

        self.phase = TrialPhase.FINISHED
        return trace

    # -------------------------------------------------------------------------
    # Mulligan
    # -------------------------------------------------------------------------

    def _penalty(self, mulligans: int) -> int:
        if self.config.free_first_mulligan:
            return max(0, mulligans - 1)
        return mulligans

    def _mulligan(self) -> TrialTrace:
        self.phase = TrialPhase.MULLIGAN
        config = self.config
        state = self.state
        decisions = 0
        forced = False

        while True:
            penalty = self._penalty(state.mulligans_taken)
            if config.mulligan_rule == MulliganRule.LONDON:
                draw_size = config.hand_size
            else:
                draw_size = max(0, config.hand_size - penalty)

            try:
                state.draw_hand(draw_size)
            except LibraryEmpty:
                return self._finish_in_mulligan(decisions)

            if state.mulligans_taken >= config.mulligan_max:
                forced = True
                break

            decision = self.strategy.decide_mulligan(state.view(), self.rng)
            decisions += 1
            if decision.keep:
                break

            state.shuffle_hand_into_library()
            state.mulligans_taken += 1

        penalty = min(self._penalty(state.mulligans_taken), len(state.hand))
        if config.mulligan_rule == MulliganRule.LONDON and penalty:
            to_bottom = self.strategy.choose_cards_to_bottom(state.view(), penalty, self.rng)
            if len(to_bottom) != penalty:
                raise IllegalAction(
                    f"Strategy bottomed {len(to_bottom)} card(s), {penalty} required"
                )
            state.put_on_bottom(list(to_bottom))

        opening = OpeningHand(
            kept_hand=state.hand,
            mulligans=state.mulligans_taken,
            decisions=decisions,
            forced_keep=forced,
            on_the_draw=self.on_the_draw,
        )
        logger.debug(
            f"Keeping {len(opening.kept_hand)} cards with {opening.land_count} lands "
            f"after {opening.mulligans} mulligan(s)"
        )
        return TrialTrace(seed=self.seed, opening=opening)

    def _finish_in_mulligan(self, decisions: int) -> TrialTrace:
        opening = OpeningHand(
            kept_hand=self.state.hand,
            mulligans=self.state.mulligans_taken,
            decisions=decisions,
            forced_keep=True,
            on_the_draw=self.on_the_draw,
        )
        return TrialTrace(
            seed=self.seed,
            opening=opening,
            finish_reason=FinishReason.LIBRARY_EMPTIED,
        )

    # -------------------------------------------------------------------------
    # Turns
    # -------------------------------------------------------------------------

    def _turn_loop(self, trace: TrialTrace) -> None:
        self.phase = TrialPhase.TURN_LOOP
        state = self.state

        while state.turn < self.config.turn_limit:
            event, library_emptied = self._play_turn()
            trace.turns.append(event)

            if self.verify_conservation and not state.check_conservation():
                raise RuntimeError(f"Card conservation violated on turn {state.turn}")

            if library_emptied:
                trace.finish_reason = FinishReason.LIBRARY_EMPTIED
                return

            met = self._stop_condition_met(trace)
            if met is not None:
                trace.finish_reason = FinishReason.STOP_CONDITION_MET
                trace.stop_condition = met.kind
                return

        trace.finish_reason = FinishReason.TURN_LIMIT_REACHED

    def _play_turn(self) -> tuple[TurnEvent, bool]:
        state = self.state
        turn = state.start_turn()
        drawn: list[Card] = []
        library_emptied = False

        if turn > 1 or self.on_the_draw:
            try:
                drawn.extend(state.draw(1))
            except LibraryEmpty as e:
                drawn.extend(e.drawn)
                library_emptied = True

        land: Card | None = None
        cast: list[Play] = []
        mana_available = 0
        mana_spent = 0

        if not library_emptied:
            land = self.strategy.decide_land_drop(state.view(), self.rng).card
            if land is not None:
                state.play_land(land)

            view = state.view()
            mana_available = view.mana_available
            for play in self.strategy.decide_card_plays(view, self.rng).plays:
                library_before = state.library_size
                try:
                    state.cast(play.card, play.zone)
                except LibraryEmpty as e:
                    library_emptied = True
                    drawn.extend(e.drawn)
                else:
                    count = library_before - state.library_size
                    if count:
                        drawn.extend(state.hand[-count:])
                cast.append(play)
                mana_spent += play.card.mana_value
                if library_emptied:
                    break

        event = TurnEvent(
            turn=turn,
            drawn=tuple(drawn),
            land_played=land,
            cast=tuple(cast),
            mana_available=mana_available,
            mana_spent=mana_spent,
            lands_in_play=state.lands_in_play(),
            mana_sources=sum(
                card.produces.amount for card in state.battlefield if card.produces
            ),
            hand_size=len(state.hand),
        )
        return event, library_emptied

    def _stop_condition_met(self, trace: TrialTrace) -> StopCondition | None:
        last = trace.turns[-1]
        cast_cards = [play.card for event in trace.turns for play in event.cast]

        for condition in self.config.stop_conditions:
            kind = condition.kind
            if kind == StopConditionKind.COMMANDER_CAST:
                met = any(card.is_commander for card in cast_cards)
            elif kind == StopConditionKind.CARD_CAST:
                met = any(card.name == condition.card_name for card in cast_cards)
            elif kind == StopConditionKind.LANDS_IN_PLAY:
                met = last.lands_in_play >= (condition.threshold or 0)
            elif kind == StopConditionKind.MANA_AVAILABLE:
                met = last.mana_sources >= (condition.threshold or 0)
            else:
                met = len(cast_cards) >= (condition.threshold or 0)
            if met:
                return condition
        return None
