"""Reduce a finished trial trace to named observations.

``MetricsCollector.collect`` is a pure function of the trace. Every trace
produces the same set of keys; when the event behind an observation never
happened (no commander was cast, the trial ended before turn 4) the value
is ``None`` rather than zero, so aggregation can report it as absent.
"""

from __future__ import annotations

from collections.abc import Iterable

from goldfish.services.trial import TrialTrace

Observation = int | float | bool | str | None

# Kept hands with this many lands or more count as flooded
FLOOD_LANDS = 5
# Kept hands with this many lands or fewer count as screwed
SCREW_LANDS = 1
# Milestone from the original deck evaluator: turn the 7th spell resolved
PLAYS_MILESTONE = 7


class MetricsCollector:
    """Turns trial traces into observation sets with a fixed schema.

    Args:
        tracked_cards: Card names whose first cast turn is observed as
            ``first_cast_turn::<name>``.
        milestone_turns: Turns at which ``lands_on_turn_N`` and
            ``mana_on_turn_N`` are observed.

    Usage:
        collector = MetricsCollector(tracked_cards=["Sol Ring"])
        observations = collector.collect(trace)
        observations["first_commander_turn"]  # None if never cast
    """

    def __init__(
        self,
        tracked_cards: Iterable[str] = (),
        milestone_turns: Iterable[int] = (2, 3, 4),
    ):
        self.tracked_cards = tuple(tracked_cards)
        self.milestone_turns = tuple(sorted(set(milestone_turns)))

    def schema(self) -> list[str]:
        """Names of every observation ``collect`` returns, in order."""
        names = [
            "first_land_turn",
            "first_spell_turn",
            "first_commander_turn",
            "stop_condition_turn",
            "turn_to_seven_plays",
            "opening_hand_lands",
            "opening_hand_size",
            "mulligans",
            "forced_keep",
            "land_flood",
            "land_screw",
        ]
        for turn in self.milestone_turns:
            names.append(f"lands_on_turn_{turn}")
            names.append(f"mana_on_turn_{turn}")
        names.extend(
            [
                "missed_land_drops",
                "cards_cast",
                "mana_spent",
                "turns_played",
                "finish_reason",
            ]
        )
        names.extend(f"first_cast_turn::{name}" for name in self.tracked_cards)
        return names

    def collect(self, trace: TrialTrace) -> dict[str, Observation]:
        """Reduce ``trace`` to an observation set.

        Args:
            trace: A finished trial trace.

        Returns:
            Mapping of observation name to value, ``None`` meaning absent.
        """
        opening = trace.opening
        turns = trace.turns

        first_land = next((e.turn for e in turns if e.land_played is not None), None)
        first_spell = next((e.turn for e in turns if e.cast), None)
        first_commander = next(
            (e.turn for e in turns if any(play.card.is_commander for play in e.cast)),
            None,
        )

        seven_plays = None
        plays = 0
        for event in turns:
            plays += len(event.cast)
            if plays >= PLAYS_MILESTONE:
                seven_plays = event.turn
                break

        observations: dict[str, Observation] = {
            "first_land_turn": first_land,
            "first_spell_turn": first_spell,
            "first_commander_turn": first_commander,
            "stop_condition_turn": turns[-1].turn
            if trace.stop_condition is not None and turns
            else None,
            "turn_to_seven_plays": seven_plays,
            "opening_hand_lands": opening.land_count,
            "opening_hand_size": len(opening.kept_hand),
            "mulligans": opening.mulligans,
            "forced_keep": opening.forced_keep,
            "land_flood": opening.land_count >= FLOOD_LANDS,
            "land_screw": opening.land_count <= SCREW_LANDS,
        }

        by_turn = {event.turn: event for event in turns}
        for turn in self.milestone_turns:
            event = by_turn.get(turn)
            observations[f"lands_on_turn_{turn}"] = event.lands_in_play if event else None
            observations[f"mana_on_turn_{turn}"] = event.mana_sources if event else None

        observations["missed_land_drops"] = sum(1 for e in turns if e.land_played is None)
        observations["cards_cast"] = sum(len(e.cast) for e in turns)
        observations["mana_spent"] = sum(e.mana_spent for e in turns)
        observations["turns_played"] = trace.turns_played
        observations["finish_reason"] = (
            trace.finish_reason.value if trace.finish_reason is not None else None
        )

        for name in self.tracked_cards:
            observations[f"first_cast_turn::{name}"] = next(
                (e.turn for e in turns if any(play.card.name == name for play in e.cast)),
                None,
            )

        return observations
