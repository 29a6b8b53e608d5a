"""Find a way to pay a mana cost from the mana a player has available.

Available mana is a list of ``ManaUnit``s, one per mana a permanent can
produce this turn. Colored pips are matched first, scarcest color first,
using the least flexible unit that fits and backtracking when a later pip
cannot be paid. Generic mana is then paid from whatever is left, again
least flexible first, so dual lands are saved for later spells.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from goldfish.models.card_models import MANA_ORDER, ManaCost, ManaType


@dataclass(frozen=True)
class ManaUnit:
    """One mana a permanent can produce this turn.

    Attributes:
        source: Battlefield index of the producing permanent.
        colors: Colors this mana may be produced as.
    """

    source: int
    colors: frozenset[ManaType]


def _flexibility(units: Sequence[ManaUnit], index: int) -> tuple[int, int]:
    return (len(units[index].colors), index)


def _assign_pips(
    units: Sequence[ManaUnit],
    pips: list[ManaType],
    free: list[int],
    chosen: list[int],
) -> list[int] | None:
    if len(chosen) == len(pips):
        return chosen

    pip = pips[len(chosen)]
    tried: set[frozenset[ManaType]] = set()
    for index in free:
        colors = units[index].colors
        # Units with the same color set are interchangeable
        if pip not in colors or colors in tried:
            continue
        tried.add(colors)
        remaining = [i for i in free if i != index]
        result = _assign_pips(units, pips, remaining, chosen + [index])
        if result is not None:
            return result

    return None


def solve_payment(units: Sequence[ManaUnit], cost: ManaCost) -> tuple[int, ...] | None:
    """Choose which mana units pay ``cost``.

    Args:
        units: Untapped mana available to the player.
        cost: Cost to pay.

    Returns:
        Sorted indices into ``units`` that pay the cost exactly, or None if
        the cost cannot be paid.
    """
    if cost.mana_value > len(units):
        return None

    supply = {
        color: sum(1 for unit in units if color in unit.colors) for color in MANA_ORDER
    }
    pips = sorted(cost.pips, key=lambda pip: (supply[pip], MANA_ORDER.index(pip)))
    free = sorted(range(len(units)), key=lambda i: _flexibility(units, i))

    colored = _assign_pips(units, pips, free, [])
    if colored is None:
        return None

    leftover = [i for i in free if i not in colored]
    if len(leftover) < cost.generic:
        return None

    return tuple(sorted(colored + leftover[: cost.generic]))


def can_pay(units: Sequence[ManaUnit], cost: ManaCost) -> bool:
    """Whether ``cost`` is payable from ``units``."""
    return solve_payment(units, cost) is not None
