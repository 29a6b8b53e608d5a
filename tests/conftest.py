"""Shared pytest fixtures."""

import pytest

from goldfish.core.settings import SimulationSettings
from goldfish.models.card_models import Card, CardType, Deck, ManaProduction

FOREST = Card.land("Forest", "G")
ISLAND = Card.land("Island", "U")
BREEDING_POOL = Card.land("Breeding Pool", "GU")

LLANOWAR_ELVES = Card.spell("Llanowar Elves", "{G}", produces=ManaProduction.of("G"))
GRIZZLY_BEARS = Card.spell("Grizzly Bears", "{1}{G}")
CENTAUR_COURSER = Card.spell("Centaur Courser", "{2}{G}")
CRAW_WURM = Card.spell("Craw Wurm", "{4}{G}{G}")
GIANT_GROWTH = Card.spell("Giant Growth", "{G}", card_type=CardType.INSTANT)
OPT = Card.spell("Opt", "{U}", card_type=CardType.INSTANT, draws=1)
SOL_RING = Card.spell(
    "Sol Ring",
    "{1}",
    card_type=CardType.ARTIFACT,
    produces=ManaProduction.of("C", amount=2),
)
TATYOVA = Card.spell("Tatyova, Benthic Druid", "{3}{G}{U}", tags=["commander"])


@pytest.fixture
def forty_card_deck() -> Deck:
    """40 cards, 17 Forests and 23 green creatures."""
    return Deck.from_counts(
        [
            (FOREST, 17),
            (LLANOWAR_ELVES, 4),
            (GRIZZLY_BEARS, 8),
            (CENTAUR_COURSER, 7),
            (CRAW_WURM, 4),
        ]
    )


@pytest.fixture
def commander_deck() -> Deck:
    """99 cards plus a two-color commander."""
    return Deck.from_counts(
        [
            (FOREST, 18),
            (ISLAND, 16),
            (BREEDING_POOL, 3),
            (SOL_RING, 1),
            (LLANOWAR_ELVES, 6),
            (OPT, 10),
            (GRIZZLY_BEARS, 20),
            (CENTAUR_COURSER, 15),
            (CRAW_WURM, 10),
        ],
        commanders=[TATYOVA],
    )


@pytest.fixture
def small_deck() -> Deck:
    """10 cards without card draw, runs out of library on turn 5."""
    return Deck.from_counts([(FOREST, 5), (GRIZZLY_BEARS, 5)])


@pytest.fixture
def settings() -> SimulationSettings:
    """Settings that allow concurrency regardless of the environment."""
    return SimulationSettings(max_workers=4, max_recorded_failures=5, max_trials=100_000)
