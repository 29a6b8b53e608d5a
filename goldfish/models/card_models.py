"""Card, mana and deck data structures used inside the engine.

Cards are frozen dataclasses. A deck holds references to them, so two
copies of Mountain are the same ``Card`` value and comparing them is cheap.
Zones track where references sit; card objects are never copied or mutated.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from goldfish.core.exceptions import ManaParseError


class ManaType(str, Enum):
    """Colors of mana, plus colorless."""

    WHITE = "W"
    BLUE = "U"
    BLACK = "B"
    RED = "R"
    GREEN = "G"
    COLORLESS = "C"


# Canonical WUBRG(C) ordering used for parsing and rendering
MANA_ORDER: tuple[ManaType, ...] = tuple(ManaType)

_COST_PATTERN = re.compile(r"^(\{[WUBRGC0-9]+\})*$")
_SYMBOL_PATTERN = re.compile(r"\{([WUBRGC0-9]+)\}")


class CardType(str, Enum):
    """Primary card types the simulator distinguishes."""

    LAND = "land"
    CREATURE = "creature"
    ARTIFACT = "artifact"
    ENCHANTMENT = "enchantment"
    PLANESWALKER = "planeswalker"
    INSTANT = "instant"
    SORCERY = "sorcery"


class Zone(str, Enum):
    """Game zones a card reference can occupy."""

    LIBRARY = "library"
    HAND = "hand"
    BATTLEFIELD = "battlefield"
    GRAVEYARD = "graveyard"
    COMMAND = "command"


@dataclass(frozen=True)
class ManaCost:
    """Generic mana plus colored pips, e.g. ``{2}{R}{R}``.

    Attributes:
        generic: Amount payable with any mana.
        pips: Colored (or colorless-only) symbols, in WUBRGC order.
    """

    generic: int = 0
    pips: tuple[ManaType, ...] = ()

    @classmethod
    def parse(cls, source: str) -> ManaCost:
        """Parse ``{2}{G}`` style notation.

        The empty string and ``{0}`` are both the zero cost.

        Raises:
            ManaParseError: If the string contains anything but mana symbols.
        """
        source = source.strip()
        if not _COST_PATTERN.match(source):
            raise ManaParseError(f"'{source}' is not a valid mana cost")

        generic = 0
        pips: list[ManaType] = []
        for symbol in _SYMBOL_PATTERN.findall(source):
            if symbol.isdigit():
                generic += int(symbol)
            elif len(symbol) == 1:
                pips.append(ManaType(symbol))
            else:
                raise ManaParseError(f"'{{{symbol}}}' is not a mana symbol")

        pips.sort(key=MANA_ORDER.index)
        return cls(generic=generic, pips=tuple(pips))

    @property
    def mana_value(self) -> int:
        return self.generic + len(self.pips)

    def pip_counts(self) -> Counter:
        return Counter(self.pips)

    def __str__(self) -> str:
        parts = []
        if self.generic:
            parts.append(f"{{{self.generic}}}")
        parts.extend(f"{{{pip.value}}}" for pip in self.pips)
        return "".join(parts) or "{0}"


@dataclass(frozen=True)
class ManaProduction:
    """Mana a permanent provides once per turn.

    A basic land produces one mana of a single color, a dual land one mana
    of either color, a mana rock such as Sol Ring two colorless.
    """

    colors: frozenset[ManaType]
    amount: int = 1

    @classmethod
    def of(cls, colors: str | Iterable[ManaType], amount: int = 1) -> ManaProduction:
        """Build from a color string such as ``"WU"`` or an iterable of ManaType."""
        if isinstance(colors, str):
            colors = [ManaType(symbol) for symbol in colors]
        return cls(colors=frozenset(colors), amount=amount)


@dataclass(frozen=True)
class Card:
    """Immutable card identity.

    Attributes:
        name: Card name; equal names are expected to describe equal cards.
        card_type: Primary type, decides where the card goes when played.
        cost: Mana cost, or None for lands and uncastable cards.
        produces: Mana this permanent provides each turn, if any.
        draws: Cards drawn when the card resolves (cantrips, card draw).
        tags: Free-form labels such as "commander".
    """

    name: str
    card_type: CardType
    cost: ManaCost | None = None
    produces: ManaProduction | None = None
    draws: int = 0
    tags: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def land(cls, name: str, colors: str = "C", tags: Iterable[str] = ()) -> Card:
        """Create a land producing one mana of any of ``colors``."""
        return cls(
            name=name,
            card_type=CardType.LAND,
            produces=ManaProduction.of(colors),
            tags=frozenset(tags),
        )

    @classmethod
    def spell(
        cls,
        name: str,
        cost: str,
        card_type: CardType = CardType.CREATURE,
        produces: ManaProduction | None = None,
        draws: int = 0,
        tags: Iterable[str] = (),
    ) -> Card:
        """Create a non-land card from cost notation."""
        return cls(
            name=name,
            card_type=card_type,
            cost=ManaCost.parse(cost),
            produces=produces,
            draws=draws,
            tags=frozenset(tags),
        )

    @property
    def is_land(self) -> bool:
        return self.card_type == CardType.LAND

    @property
    def is_commander(self) -> bool:
        return "commander" in self.tags

    @property
    def is_permanent(self) -> bool:
        return self.card_type not in (CardType.INSTANT, CardType.SORCERY)

    @property
    def mana_value(self) -> int:
        return self.cost.mana_value if self.cost else 0

    def __repr__(self) -> str:
        return f"Card({self.name!r})"


@dataclass(frozen=True)
class Deck:
    """An ordered list of card references plus commanders.

    Commanders start in the command zone and are not shuffled into the
    library, but they count towards the card multiset the game conserves.
    """

    cards: tuple[Card, ...]
    commanders: tuple[Card, ...] = ()

    @classmethod
    def from_counts(
        cls,
        entries: Iterable[tuple[Card, int]],
        commanders: Iterable[Card] = (),
    ) -> Deck:
        """Build a deck from ``(card, quantity)`` pairs, preserving order."""
        cards: list[Card] = []
        for card, quantity in entries:
            cards.extend([card] * quantity)
        return cls(cards=tuple(cards), commanders=tuple(commanders))

    @property
    def size(self) -> int:
        return len(self.cards)

    @property
    def land_count(self) -> int:
        return sum(1 for card in self.cards if card.is_land)

    def all_cards(self) -> tuple[Card, ...]:
        return self.cards + self.commanders

    def counts(self) -> Counter:
        """Multiset of every card the game must conserve."""
        return Counter(self.all_cards())

    def contains(self, name: str) -> bool:
        return any(card.name == name for card in self.all_cards())

    def with_land_count(self, land_count: int) -> Deck:
        """Return a deck of the same size holding exactly ``land_count`` lands.

        Lands and non-lands are each taken by cycling through this deck's own
        cards of that kind in order, so 17 lands from a 16 land deck adds a
        copy of the first land, and 15 drops the last one. The result lists
        lands first, then non-lands.

        Raises:
            ValueError: If the count is out of range or the deck lacks the
                land or non-land cards needed to fill it.
        """
        if not 0 <= land_count <= self.size:
            raise ValueError(f"land_count {land_count} outside 0..{self.size}")

        lands = [card for card in self.cards if card.is_land]
        spells = [card for card in self.cards if not card.is_land]
        spell_count = self.size - land_count
        if land_count and not lands:
            raise ValueError("Deck has no lands to add copies of")
        if spell_count and not spells:
            raise ValueError("Deck has no non-land cards to keep")

        new_lands = [lands[i % len(lands)] for i in range(land_count)]
        new_spells = [spells[i % len(spells)] for i in range(spell_count)]
        return Deck(cards=tuple(new_lands + new_spells), commanders=self.commanders)
