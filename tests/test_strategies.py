"""Tests for the built-in strategies and the strategy registry."""

import random

import pytest

from conftest import (
    BREEDING_POOL,
    CENTAUR_COURSER,
    CRAW_WURM,
    FOREST,
    GRIZZLY_BEARS,
    ISLAND,
    LLANOWAR_ELVES,
    OPT,
    TATYOVA,
)
from goldfish.models.card_models import Card, ManaType, Zone
from goldfish.services.game_state import GameStateView
from goldfish.services.payment_solver import ManaUnit
from goldfish.services.strategies import (
    BaselineStrategy,
    CurveStrategy,
    KeepSevenStrategy,
    LandDropDecision,
    MulliganDecision,
    Play,
    SloppyStrategy,
    Strategy,
    available_strategies,
    get_strategy,
    register_strategy,
    unregister_strategy,
)


def make_view(
    hand: list[Card] = (),
    battlefield: list[Card] = (),
    command: list[Card] = (),
    mana: str = "",
    land_drops_remaining: int = 1,
    turn: int = 1,
) -> GameStateView:
    """Build a view; ``mana`` holds one color symbol per untapped unit."""
    return GameStateView(
        turn=turn,
        hand=tuple(hand),
        battlefield=tuple(battlefield),
        graveyard=(),
        command=tuple(command),
        library_size=30,
        land_drops_remaining=land_drops_remaining,
        mulligans_taken=0,
        mana_units=tuple(
            ManaUnit(index, frozenset({ManaType(symbol)})) for index, symbol in enumerate(mana)
        ),
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(0)


# =============================================================================
# Baseline Strategy
# =============================================================================


class TestBaselineMulligan:
    """Tests for BaselineStrategy.decide_mulligan."""

    @pytest.mark.parametrize(
        "lands,keep",
        [(0, False), (1, False), (2, True), (3, True), (5, True), (6, False), (7, False)],
    )
    def test_seven_card_hands(self, rng, lands, keep):
        hand = [FOREST] * lands + [GRIZZLY_BEARS] * (7 - lands)

        decision = BaselineStrategy().decide_mulligan(make_view(hand), rng)

        assert decision == MulliganDecision(keep=keep)

    def test_all_land_small_hand_is_shipped(self, rng):
        """A five card hand of five lands has no spells."""
        decision = BaselineStrategy().decide_mulligan(make_view([FOREST] * 5), rng)

        assert not decision.keep

    def test_custom_bounds(self, rng):
        strategy = BaselineStrategy(min_lands=3, max_lands=4)
        hand = [FOREST] * 2 + [GRIZZLY_BEARS] * 5

        assert not strategy.decide_mulligan(make_view(hand), rng).keep


class TestBaselineLandDrop:
    """Tests for BaselineStrategy.decide_land_drop."""

    def test_prefers_needed_color(self, rng):
        view = make_view(hand=[FOREST, ISLAND, OPT], battlefield=[FOREST])

        decision = BaselineStrategy().decide_land_drop(view, rng)

        assert decision == LandDropDecision(ISLAND)

    def test_dual_land_covers_both_colors(self, rng):
        view = make_view(hand=[FOREST, ISLAND, BREEDING_POOL, OPT, GRIZZLY_BEARS])

        assert BaselineStrategy().decide_land_drop(view, rng).card == BREEDING_POOL

    def test_first_land_on_ties(self, rng):
        view = make_view(hand=[ISLAND, FOREST, CRAW_WURM], battlefield=[FOREST])

        assert BaselineStrategy().decide_land_drop(view, rng).card == ISLAND

    def test_no_land_in_hand(self, rng):
        view = make_view(hand=[GRIZZLY_BEARS])

        assert BaselineStrategy().decide_land_drop(view, rng).card is None

    def test_no_land_drop_left(self, rng):
        view = make_view(hand=[FOREST], land_drops_remaining=0)

        assert BaselineStrategy().decide_land_drop(view, rng).card is None


class TestBaselineCardPlays:
    """Tests for BaselineStrategy.decide_card_plays."""

    def test_most_expensive_first(self, rng):
        view = make_view(hand=[LLANOWAR_ELVES, GRIZZLY_BEARS, CRAW_WURM], mana="GGG")

        plays = BaselineStrategy().decide_card_plays(view, rng).plays

        assert [play.card for play in plays] == [GRIZZLY_BEARS, LLANOWAR_ELVES]

    def test_commander_first(self, rng):
        view = make_view(hand=[CENTAUR_COURSER], command=[TATYOVA], mana="GGGGU")

        plays = BaselineStrategy().decide_card_plays(view, rng).plays

        assert plays == (Play(TATYOVA, Zone.COMMAND),)

    def test_nothing_castable(self, rng):
        view = make_view(hand=[CRAW_WURM, FOREST], mana="G")

        assert BaselineStrategy().decide_card_plays(view, rng).plays == ()

    def test_respects_colors(self, rng):
        view = make_view(hand=[OPT, GRIZZLY_BEARS], mana="GG")

        plays = BaselineStrategy().decide_card_plays(view, rng).plays

        assert [play.card for play in plays] == [GRIZZLY_BEARS]


class TestChooseCardsToBottom:
    """Tests for the default London mulligan bottoming."""

    def test_bottoms_excess_land(self, rng):
        view = make_view(hand=[FOREST] * 5 + [GRIZZLY_BEARS, CRAW_WURM])

        assert BaselineStrategy().choose_cards_to_bottom(view, 1, rng) == (FOREST,)

    def test_bottoms_most_expensive_spell(self, rng):
        view = make_view(hand=[FOREST] * 3 + [LLANOWAR_ELVES, GRIZZLY_BEARS, CRAW_WURM, OPT])

        assert BaselineStrategy().choose_cards_to_bottom(view, 1, rng) == (CRAW_WURM,)

    def test_returns_requested_count(self, rng):
        view = make_view(hand=[FOREST] * 3 + [GRIZZLY_BEARS] * 4)

        assert len(BaselineStrategy().choose_cards_to_bottom(view, 3, rng)) == 3


# =============================================================================
# Other Built-in Strategies
# =============================================================================


class TestOtherStrategies:
    """Tests for KeepSeven, Curve and Sloppy strategies."""

    def test_keep_seven_always_keeps(self, rng):
        view = make_view([FOREST] * 7)

        assert KeepSevenStrategy().decide_mulligan(view, rng).keep

    def test_curve_uses_all_mana_with_more_cards(self, rng):
        """Two spells for three mana beat one three-drop."""
        view = make_view(hand=[CENTAUR_COURSER, GRIZZLY_BEARS, LLANOWAR_ELVES], mana="GGG")

        baseline = BaselineStrategy().decide_card_plays(view, rng).plays
        curve = CurveStrategy().decide_card_plays(view, rng).plays

        assert [play.card for play in baseline] == [CENTAUR_COURSER]
        assert [play.card for play in curve] == [GRIZZLY_BEARS, LLANOWAR_ELVES]

    def test_curve_nothing_castable(self, rng):
        view = make_view(hand=[CRAW_WURM], mana="GG")

        assert CurveStrategy().decide_card_plays(view, rng).plays == ()

    def test_sloppy_always_wrong(self, rng):
        strategy = SloppyStrategy(mistake_rate=1.0)
        view = make_view(hand=[FOREST, GRIZZLY_BEARS], mana="GG")

        assert strategy.decide_land_drop(view, rng).card is None
        assert strategy.decide_card_plays(view, rng).plays == ()

    def test_sloppy_never_wrong_matches_inner(self, rng):
        strategy = SloppyStrategy(inner=CurveStrategy(), mistake_rate=0.0)
        view = make_view(hand=[FOREST, CENTAUR_COURSER, GRIZZLY_BEARS, LLANOWAR_ELVES], mana="GGG")

        assert strategy.decide_land_drop(view, rng).card == FOREST
        assert strategy.decide_card_plays(view, rng) == CurveStrategy().decide_card_plays(view, rng)

    def test_sloppy_mistakes_come_from_rng(self):
        strategy = SloppyStrategy(mistake_rate=0.5)
        view = make_view(hand=[FOREST, GRIZZLY_BEARS], mana="GG")

        first = [strategy.decide_land_drop(view, random.Random(seed)).card for seed in range(20)]
        second = [strategy.decide_land_drop(view, random.Random(seed)).card for seed in range(20)]

        assert first == second
        assert None in first
        assert FOREST in first


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    """Tests for strategy registration and lookup."""

    def test_builtins_available(self):
        names = available_strategies()

        assert names == sorted(names)
        assert {"baseline", "keep_seven", "curve", "sloppy"} <= set(names)

    def test_get_returns_new_instance(self):
        first = get_strategy("baseline")

        assert isinstance(first, BaselineStrategy)
        assert first is not get_strategy("baseline")

    def test_unknown_strategy(self):
        with pytest.raises(KeyError, match="Unknown strategy"):
            get_strategy("does_not_exist")

    def test_register_and_unregister(self):
        class Passive(KeepSevenStrategy):
            name = "passive"

        register_strategy("passive", Passive)
        try:
            assert isinstance(get_strategy("passive"), Passive)
            with pytest.raises(ValueError, match="already registered"):
                register_strategy("passive", Passive)
            register_strategy("passive", KeepSevenStrategy, replace=True)
            assert type(get_strategy("passive")) is KeepSevenStrategy
        finally:
            unregister_strategy("passive")

        assert "passive" not in available_strategies()

    def test_strategy_is_abstract(self):
        with pytest.raises(TypeError):
            Strategy()
