"""Mutable game state for one gold-fish trial.

The state owns every zone. Cards move between zones but are never created
or destroyed, so the multiset of all zones always equals the deck's
multiset. Actions validate before they mutate: a rejected action raises
``IllegalAction`` and leaves every zone untouched.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass

from goldfish.core.exceptions import IllegalAction, LibraryEmpty
from goldfish.core.logging_config import get_logger
from goldfish.models.card_models import Card, CardType, Deck, Zone
from goldfish.services.payment_solver import ManaUnit, solve_payment

logger = get_logger(__name__)


@dataclass(frozen=True)
class GameStateView:
    """Read-only snapshot of a game state handed to strategies.

    Attributes:
        turn: Current turn number (0 before the first turn).
        hand: Cards in hand.
        battlefield: Permanents in play, in the order they entered.
        graveyard: Cards in the graveyard.
        command: Cards in the command zone.
        library_size: Number of cards left in the library.
        land_drops_remaining: Land plays still allowed this turn.
        mulligans_taken: Mulligans taken before the kept hand.
        mana_units: Untapped mana available right now.
    """

    turn: int
    hand: tuple[Card, ...]
    battlefield: tuple[Card, ...]
    graveyard: tuple[Card, ...]
    command: tuple[Card, ...]
    library_size: int
    land_drops_remaining: int
    mulligans_taken: int
    mana_units: tuple[ManaUnit, ...]

    @property
    def mana_available(self) -> int:
        return len(self.mana_units)

    def lands_in_hand(self) -> list[Card]:
        return [card for card in self.hand if card.is_land]

    def spells_in_hand(self) -> list[Card]:
        return [card for card in self.hand if not card.is_land]

    def lands_in_play(self) -> int:
        return sum(1 for card in self.battlefield if card.is_land)

    def castable(self, card: Card) -> bool:
        """Whether ``card`` could be paid for with the mana available now."""
        if card.is_land or card.cost is None:
            return False
        return solve_payment(self.mana_units, card.cost) is not None


class GameState:
    """All zones, the turn counter and the randomness of one trial.

    Args:
        deck: Deck to play. Its cards are shuffled into the library and its
            commanders placed in the command zone.
        seed: Integer seed or an existing ``random.Random`` owned by the trial.
        max_land_drops: Land plays allowed per turn.
    """

    def __init__(self, deck: Deck, seed: int | random.Random, max_land_drops: int = 1):
        self.deck = deck
        self.rng = seed if isinstance(seed, random.Random) else random.Random(seed)
        self.max_land_drops = max_land_drops

        # Index 0 is the top of the library
        self._library: list[Card] = list(deck.cards)
        self.rng.shuffle(self._library)
        self._hand: list[Card] = []
        self._battlefield: list[Card] = []
        self._graveyard: list[Card] = []
        self._command: list[Card] = list(deck.commanders)

        # Parallel to _battlefield
        self._entered_turn: list[int] = []
        # Battlefield index -> mana already spent from that permanent this turn
        self._spent: Counter = Counter()

        self.turn = 0
        self.land_drops_made = 0
        self.mulligans_taken = 0

    # -------------------------------------------------------------------------
    # Zones
    # -------------------------------------------------------------------------

    @property
    def library(self) -> tuple[Card, ...]:
        return tuple(self._library)

    @property
    def library_size(self) -> int:
        return len(self._library)

    @property
    def hand(self) -> tuple[Card, ...]:
        return tuple(self._hand)

    @property
    def battlefield(self) -> tuple[Card, ...]:
        return tuple(self._battlefield)

    @property
    def graveyard(self) -> tuple[Card, ...]:
        return tuple(self._graveyard)

    @property
    def command(self) -> tuple[Card, ...]:
        return tuple(self._command)

    def zone_cards(self, zone: Zone) -> tuple[Card, ...]:
        return tuple(self._zone_list(zone))

    def _zone_list(self, zone: Zone) -> list[Card]:
        return {
            Zone.LIBRARY: self._library,
            Zone.HAND: self._hand,
            Zone.BATTLEFIELD: self._battlefield,
            Zone.GRAVEYARD: self._graveyard,
            Zone.COMMAND: self._command,
        }[zone]

    def all_cards(self) -> Counter:
        """Multiset of the cards across every zone."""
        counts: Counter = Counter()
        for zone in Zone:
            counts.update(self._zone_list(zone))
        return counts

    def check_conservation(self) -> bool:
        """Whether the zones still hold exactly the deck's cards."""
        return self.all_cards() == self.deck.counts()

    # -------------------------------------------------------------------------
    # Drawing and mulligans
    # -------------------------------------------------------------------------

    def draw(self, n: int = 1) -> list[Card]:
        """Move up to ``n`` cards from the top of the library to the hand.

        Returns:
            The cards drawn, top card first.

        Raises:
            LibraryEmpty: If fewer than ``n`` cards remained. Whatever was
                left has still been moved to the hand.
        """
        drawn = self._library[:n]
        del self._library[:n]
        self._hand.extend(drawn)
        if len(drawn) < n:
            raise LibraryEmpty(n, drawn)
        return drawn

    def draw_hand(self, size: int) -> list[Card]:
        """Draw an opening hand of ``size`` cards into an empty hand."""
        if self._hand:
            raise IllegalAction("Cannot draw an opening hand while holding cards")
        return self.draw(size)

    def shuffle_hand_into_library(self) -> None:
        """Return the hand to the library and shuffle it."""
        self._library.extend(self._hand)
        self._hand.clear()
        self.rng.shuffle(self._library)

    def put_on_bottom(self, cards: list[Card]) -> None:
        """Move ``cards`` from the hand to the bottom of the library, in order."""
        if Counter(cards) - Counter(self._hand):
            raise IllegalAction(f"Cannot bottom {cards}: not all of them are in hand")
        for card in cards:
            self._hand.remove(card)
        self._library.extend(cards)

    # -------------------------------------------------------------------------
    # Turn structure and actions
    # -------------------------------------------------------------------------

    def start_turn(self) -> int:
        """Advance the turn counter, untap mana and reset land drops."""
        self.turn += 1
        self.land_drops_made = 0
        self._spent.clear()
        return self.turn

    @property
    def land_drops_remaining(self) -> int:
        return max(0, self.max_land_drops - self.land_drops_made)

    def available_mana(self) -> list[ManaUnit]:
        """Untapped mana units, in battlefield order.

        Creatures cannot tap for mana the turn they enter.
        """
        units: list[ManaUnit] = []
        for index, card in enumerate(self._battlefield):
            if card.produces is None:
                continue
            if card.card_type == CardType.CREATURE and self._entered_turn[index] == self.turn:
                continue
            remaining = card.produces.amount - self._spent[index]
            units.extend(ManaUnit(index, card.produces.colors) for _ in range(remaining))
        return units

    def lands_in_play(self) -> int:
        return sum(1 for card in self._battlefield if card.is_land)

    def play_land(self, card: Card) -> None:
        """Play ``card`` from hand as this turn's land drop.

        Raises:
            IllegalAction: If the card is not a land in hand or no land drop
                remains this turn.
        """
        if not card.is_land:
            raise IllegalAction(f"{card.name} is not a land", card)
        if card not in self._hand:
            raise IllegalAction(f"{card.name} is not in hand", card)
        if self.land_drops_remaining == 0:
            raise IllegalAction(f"No land drop left on turn {self.turn} for {card.name}", card)

        self._hand.remove(card)
        self._put_onto_battlefield(card)
        self.land_drops_made += 1
        logger.debug(f"Turn {self.turn}: played land {card.name}")

    def cast(self, card: Card, zone: Zone = Zone.HAND) -> int:
        """Cast ``card`` from ``zone``, paying its cost from untapped mana.

        Permanents enter the battlefield; instants and sorceries go to the
        graveyard. Cards that draw on resolution draw afterwards.

        Returns:
            Amount of mana spent.

        Raises:
            IllegalAction: If the card is not castable from that zone or the
                cost cannot be paid. Nothing has moved in that case.
            LibraryEmpty: If the card's draw ran out of library. The cast
                itself has completed.
        """
        if zone not in (Zone.HAND, Zone.COMMAND):
            raise IllegalAction(f"Cannot cast {card.name} from {zone.value}", card)
        source = self._zone_list(zone)
        if card not in source:
            raise IllegalAction(f"{card.name} is not in {zone.value}", card)
        if card.is_land:
            raise IllegalAction(f"{card.name} is a land and cannot be cast", card)
        if card.cost is None:
            raise IllegalAction(f"{card.name} has no mana cost", card)

        units = self.available_mana()
        payment = solve_payment(units, card.cost)
        if payment is None:
            raise IllegalAction(
                f"Cannot pay {card.cost} for {card.name} with {len(units)} mana available",
                card,
            )

        for index in payment:
            self._spent[units[index].source] += 1
        source.remove(card)
        if card.is_permanent:
            self._put_onto_battlefield(card)
        else:
            self._graveyard.append(card)
        logger.debug(f"Turn {self.turn}: cast {card.name} for {card.cost}")

        if card.draws:
            self.draw(card.draws)
        return len(payment)

    def _put_onto_battlefield(self, card: Card) -> None:
        self._battlefield.append(card)
        self._entered_turn.append(self.turn)

    def view(self) -> GameStateView:
        """Snapshot the state for a strategy decision."""
        return GameStateView(
            turn=self.turn,
            hand=tuple(self._hand),
            battlefield=tuple(self._battlefield),
            graveyard=tuple(self._graveyard),
            command=tuple(self._command),
            library_size=len(self._library),
            land_drops_remaining=self.land_drops_remaining,
            mulligans_taken=self.mulligans_taken,
            mana_units=tuple(self.available_mana()),
        )
