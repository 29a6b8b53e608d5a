"""Pydantic models describing decklists at the API boundary.

A ``DeckList`` is what callers send; ``to_deck()`` turns it into the
immutable ``Deck`` the engine plays.
"""

from pydantic import BaseModel, Field

from goldfish.models.card_models import Card, CardType, Deck, ManaCost, ManaProduction


class CardSpec(BaseModel):
    """One decklist entry.

    Attributes:
        name: Card name
        type: Primary card type
        cost: Mana cost in ``{2}{G}`` notation, omitted for lands
        produces: Colors of mana the permanent taps for, e.g. "G" or "WU"
        produces_amount: Mana produced per tap
        draws: Cards drawn when the card resolves
        tags: Free-form labels; "commander" marks a commander
        quantity: Copies in the deck
    """

    name: str = Field(min_length=1, description="Card name")
    type: CardType = Field(default=CardType.CREATURE, description="Primary card type")
    cost: str | None = Field(default=None, description="Mana cost, e.g. '{2}{G}'")
    produces: str | None = Field(default=None, description="Mana colors produced, e.g. 'WU'")
    produces_amount: int = Field(default=1, ge=1, description="Mana produced per tap")
    draws: int = Field(default=0, ge=0, description="Cards drawn on resolution")
    tags: list[str] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1, description="Copies in the deck")

    def to_card(self) -> Card:
        """Build the engine card.

        Raises:
            ManaParseError: If ``cost`` is not valid mana notation.
        """
        produces = None
        if self.produces:
            produces = ManaProduction.of(self.produces.upper(), self.produces_amount)
        elif self.type == CardType.LAND:
            produces = ManaProduction.of("C", self.produces_amount)

        return Card(
            name=self.name,
            card_type=self.type,
            cost=None if self.type == CardType.LAND else ManaCost.parse(self.cost or "{0}"),
            produces=produces,
            draws=self.draws,
            tags=frozenset(self.tags),
        )


class DeckList(BaseModel):
    """A deck as sent by a client."""

    cards: list[CardSpec] = Field(default_factory=list, description="Main deck entries")
    commanders: list[CardSpec] = Field(
        default_factory=list,
        description="Commanders, placed in the command zone",
    )

    def to_deck(self) -> Deck:
        """Build the engine deck.

        Commanders get the "commander" tag whether or not it was sent.
        """
        commanders = []
        for spec in self.commanders:
            card = spec.to_card()
            if not card.is_commander:
                card = Card(
                    name=card.name,
                    card_type=card.card_type,
                    cost=card.cost,
                    produces=card.produces,
                    draws=card.draws,
                    tags=card.tags | {"commander"},
                )
            commanders.extend([card] * spec.quantity)
        return Deck.from_counts(
            ((spec.to_card(), spec.quantity) for spec in self.cards),
            commanders=commanders,
        )
