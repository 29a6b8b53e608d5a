"""Tests for the game state: zones, drawing, land drops and casting."""

import random

import pytest

from conftest import (
    FOREST,
    GIANT_GROWTH,
    GRIZZLY_BEARS,
    ISLAND,
    LLANOWAR_ELVES,
    OPT,
    SOL_RING,
    TATYOVA,
)
from goldfish.core.exceptions import IllegalAction, LibraryEmpty
from goldfish.models.card_models import Deck, Zone
from goldfish.services.game_state import GameState


def all_in_hand(deck: Deck, seed: int = 0) -> GameState:
    """A state with the whole library drawn, so tests choose what to play."""
    state = GameState(deck, seed)
    state.draw(state.library_size)
    return state


def zones(state: GameState) -> tuple:
    return (state.library, state.hand, state.battlefield, state.graveyard, state.command)


# =============================================================================
# Shuffling and Zones
# =============================================================================


class TestSetup:
    """Tests for the initial shuffle and zones."""

    def test_same_seed_same_shuffle(self, forty_card_deck):
        assert GameState(forty_card_deck, 5).library == GameState(forty_card_deck, 5).library

    def test_different_seed_different_shuffle(self, forty_card_deck):
        assert GameState(forty_card_deck, 5).library != GameState(forty_card_deck, 6).library

    def test_accepts_random_instance(self, forty_card_deck):
        """An existing Random is used as is."""
        seeded = GameState(forty_card_deck, random.Random(5))

        assert seeded.library == GameState(forty_card_deck, 5).library

    def test_commanders_start_in_command_zone(self, commander_deck):
        state = GameState(commander_deck, 1)

        assert state.command == (TATYOVA,)
        assert state.library_size == 99
        assert TATYOVA not in state.library

    def test_library_is_a_permutation_of_the_deck(self, forty_card_deck):
        state = GameState(forty_card_deck, 3)

        assert sorted(card.name for card in state.library) == sorted(
            card.name for card in forty_card_deck.cards
        )
        assert state.check_conservation()


# =============================================================================
# Drawing
# =============================================================================


class TestDraw:
    """Tests for drawing and mulligan support."""

    def test_draws_from_the_top(self, forty_card_deck):
        state = GameState(forty_card_deck, 2)
        top = state.library[:3]

        drawn = state.draw(3)

        assert tuple(drawn) == top
        assert state.hand == top
        assert state.library_size == 37

    def test_draw_past_the_end(self, small_deck):
        """The remaining cards are still drawn before LibraryEmpty is raised."""
        state = GameState(small_deck, 1)
        state.draw(7)

        with pytest.raises(LibraryEmpty) as exc_info:
            state.draw(5)

        assert len(exc_info.value.drawn) == 3
        assert exc_info.value.requested == 5
        assert state.library_size == 0
        assert len(state.hand) == 10
        assert state.check_conservation()

    def test_draw_hand_requires_empty_hand(self, forty_card_deck):
        state = GameState(forty_card_deck, 1)
        state.draw_hand(7)

        with pytest.raises(IllegalAction):
            state.draw_hand(7)

    def test_shuffle_hand_into_library(self, forty_card_deck):
        state = GameState(forty_card_deck, 1)
        state.draw_hand(7)

        state.shuffle_hand_into_library()

        assert state.hand == ()
        assert state.library_size == 40
        assert state.check_conservation()

    def test_put_on_bottom(self, forty_card_deck):
        state = GameState(forty_card_deck, 1)
        hand = state.draw_hand(7)

        state.put_on_bottom(hand[:2])

        assert len(state.hand) == 5
        assert state.library[-2:] == tuple(hand[:2])
        assert state.check_conservation()

    def test_put_on_bottom_rejects_cards_not_in_hand(self, small_deck):
        """Nothing moves when any card is missing from the hand."""
        state = GameState(small_deck, 1)
        state.draw_hand(3)
        before = zones(state)

        with pytest.raises(IllegalAction):
            state.put_on_bottom([state.hand[0], OPT])

        assert zones(state) == before


# =============================================================================
# Land Drops
# =============================================================================


class TestPlayLand:
    """Tests for land drops."""

    def test_one_land_per_turn(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 2), (GRIZZLY_BEARS, 1)]))
        state.start_turn()

        state.play_land(FOREST)

        assert state.lands_in_play() == 1
        assert state.land_drops_remaining == 0
        with pytest.raises(IllegalAction, match="No land drop"):
            state.play_land(FOREST)

    def test_land_drop_resets_each_turn(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 2)]))
        state.start_turn()
        state.play_land(FOREST)
        state.start_turn()

        state.play_land(FOREST)

        assert state.lands_in_play() == 2

    def test_extra_land_drops(self):
        state = GameState(Deck.from_counts([(FOREST, 3)]), 0, max_land_drops=2)
        state.draw(3)
        state.start_turn()

        state.play_land(FOREST)
        state.play_land(FOREST)

        assert state.lands_in_play() == 2

    def test_rejects_non_land(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (GRIZZLY_BEARS, 1)]))
        state.start_turn()

        with pytest.raises(IllegalAction, match="not a land"):
            state.play_land(GRIZZLY_BEARS)

    def test_rejects_land_not_in_hand(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1)]))
        state.start_turn()
        before = zones(state)

        with pytest.raises(IllegalAction, match="not in hand"):
            state.play_land(ISLAND)

        assert zones(state) == before


# =============================================================================
# Casting
# =============================================================================


class TestCast:
    """Tests for casting spells and paying mana."""

    def test_unpayable_cast_changes_nothing(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 2), (GRIZZLY_BEARS, 1)]))
        state.start_turn()
        state.play_land(FOREST)
        before = zones(state)

        with pytest.raises(IllegalAction, match="Cannot pay"):
            state.cast(GRIZZLY_BEARS)

        assert zones(state) == before
        assert len(state.available_mana()) == 1

    def test_cast_creature(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 2), (GRIZZLY_BEARS, 1)]))
        state.start_turn()
        state.play_land(FOREST)
        state.start_turn()
        state.play_land(FOREST)

        spent = state.cast(GRIZZLY_BEARS)

        assert spent == 2
        assert GRIZZLY_BEARS in state.battlefield
        assert GRIZZLY_BEARS not in state.hand
        assert state.available_mana() == []
        assert state.check_conservation()

    def test_mana_untaps_on_new_turn(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (GIANT_GROWTH, 1)]))
        state.start_turn()
        state.play_land(FOREST)
        state.cast(GIANT_GROWTH)
        assert state.available_mana() == []

        state.start_turn()

        assert len(state.available_mana()) == 1

    def test_instant_goes_to_graveyard(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (GIANT_GROWTH, 1)]))
        state.start_turn()
        state.play_land(FOREST)

        state.cast(GIANT_GROWTH)

        assert state.graveyard == (GIANT_GROWTH,)
        assert GIANT_GROWTH not in state.battlefield

    def test_mana_creature_has_summoning_sickness(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (LLANOWAR_ELVES, 1)]))
        state.start_turn()
        state.play_land(FOREST)
        state.cast(LLANOWAR_ELVES)

        assert state.available_mana() == []

        state.start_turn()

        assert len(state.available_mana()) == 2

    def test_mana_rock_taps_immediately(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (SOL_RING, 1)]))
        state.start_turn()
        state.play_land(FOREST)

        state.cast(SOL_RING)

        assert len(state.available_mana()) == 2

    def test_cast_commander_from_command_zone(self):
        deck = Deck.from_counts([(FOREST, 3), (ISLAND, 2)], commanders=[TATYOVA])
        state = all_in_hand(deck)
        for land in (FOREST, FOREST, FOREST, ISLAND, ISLAND):
            state.start_turn()
            state.play_land(land)

        with pytest.raises(IllegalAction):
            state.cast(TATYOVA)

        state.cast(TATYOVA, Zone.COMMAND)

        assert state.command == ()
        assert TATYOVA in state.battlefield
        assert state.check_conservation()

    def test_cannot_cast_from_library(self, forty_card_deck):
        state = GameState(forty_card_deck, 0)

        with pytest.raises(IllegalAction):
            state.cast(state.library[0], Zone.LIBRARY)

    def test_cannot_cast_land(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1)]))
        state.start_turn()

        with pytest.raises(IllegalAction, match="is a land"):
            state.cast(FOREST)

    def test_cantrip_draws_after_resolving(self):
        state = all_in_hand(Deck.from_counts([(ISLAND, 1), (OPT, 1), (GRIZZLY_BEARS, 1)]))
        state.put_on_bottom([GRIZZLY_BEARS])
        state.start_turn()
        state.play_land(ISLAND)

        state.cast(OPT)

        assert GRIZZLY_BEARS in state.hand
        assert state.graveyard == (OPT,)
        assert state.library_size == 0

    def test_cantrip_on_empty_library(self):
        """The cast completes before the draw runs out of cards."""
        state = all_in_hand(Deck.from_counts([(ISLAND, 1), (OPT, 1)]))
        state.start_turn()
        state.play_land(ISLAND)

        with pytest.raises(LibraryEmpty):
            state.cast(OPT)

        assert state.graveyard == (OPT,)
        assert state.available_mana() == []
        assert state.check_conservation()


# =============================================================================
# Views
# =============================================================================


class TestView:
    """Tests for read-only snapshots."""

    def test_view_is_a_snapshot(self, forty_card_deck):
        state = GameState(forty_card_deck, 0)
        state.draw_hand(7)
        view = state.view()

        state.draw(1)

        assert len(view.hand) == 7
        assert view.library_size == 33

    def test_view_castable(self):
        state = all_in_hand(Deck.from_counts([(FOREST, 1), (GRIZZLY_BEARS, 1), (GIANT_GROWTH, 1)]))
        state.start_turn()
        state.play_land(FOREST)
        view = state.view()

        assert view.mana_available == 1
        assert view.castable(GIANT_GROWTH)
        assert not view.castable(GRIZZLY_BEARS)
        assert not view.castable(FOREST)
        assert view.lands_in_hand() == []
        assert len(view.spells_in_hand()) == 2
