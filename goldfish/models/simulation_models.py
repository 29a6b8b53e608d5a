"""Pydantic models for Monte Carlo gold-fish simulation.

This module defines the configuration and result schemas for experiments
(many trials of one configuration) and scenarios (a sweep of experiments).
These models are the boundary of the engine: configuration loaders build
them, reporting code consumes the summaries.
"""

from __future__ import annotations

import itertools
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MulliganRule(str, Enum):
    """How a shipped hand is replaced."""

    CLASSIC = "classic"  # Shuffle back, draw one fewer card
    LONDON = "london"  # Shuffle back, draw a full hand, bottom one card per mulligan


class FirstTurnDraw(str, Enum):
    """Whether the player draws on their first turn."""

    SKIP = "skip"  # On the play
    DRAW = "draw"  # On the draw
    COIN_FLIP = "coin_flip"  # Decided per trial by the trial's RNG


class StopConditionKind(str, Enum):
    """Events that end a trial early."""

    COMMANDER_CAST = "commander_cast"
    CARD_CAST = "card_cast"  # A named card was cast
    LANDS_IN_PLAY = "lands_in_play"  # At least `threshold` lands on the battlefield
    MANA_AVAILABLE = "mana_available"  # At least `threshold` mana at end of turn
    CARDS_CAST = "cards_cast"  # At least `threshold` spells cast in total


class FinishReason(str, Enum):
    """Why a trial stopped."""

    TURN_LIMIT_REACHED = "turn_limit_reached"
    LIBRARY_EMPTIED = "library_emptied"
    STOP_CONDITION_MET = "stop_condition_met"


class SweptParameter(str, Enum):
    """Experiment parameters a scenario can sweep."""

    LAND_COUNT = "land_count"
    MULLIGAN_MAX = "mulligan_max"
    MULLIGAN_RULE = "mulligan_rule"
    STRATEGY = "strategy"
    TURN_LIMIT = "turn_limit"
    HAND_SIZE = "hand_size"
    FIRST_TURN_DRAW = "first_turn_draw"


class SeedPolicy(str, Enum):
    """How grid points in a scenario are seeded."""

    COMMON = "common"  # Every grid point reuses the scenario seed
    INDEPENDENT = "independent"  # Each grid point derives its own seed


class MetricKind(str, Enum):
    """How a metric's observations are aggregated."""

    NUMERIC = "numeric"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"


# =============================================================================
# Configuration
# =============================================================================


class StopCondition(BaseModel):
    """A condition that ends a trial as soon as it holds at end of turn."""

    model_config = ConfigDict(frozen=True)

    kind: StopConditionKind = Field(description="Event that stops the trial")
    card_name: str | None = Field(
        default=None,
        description="Card to watch for CARD_CAST",
    )
    threshold: int | None = Field(
        default=None,
        description="Threshold for LANDS_IN_PLAY, MANA_AVAILABLE and CARDS_CAST",
    )


class ExperimentConfig(BaseModel):
    """Fixed parameters for one batch of trials.

    Range checks live in ConfigValidator so that every problem surfaces as a
    single ConfigurationInvalid before any trial runs.
    """

    model_config = ConfigDict(frozen=True)

    trial_count: int = Field(default=1000, description="Number of trials to run")
    turn_limit: int = Field(default=10, description="Last turn simulated")
    hand_size: int = Field(default=7, description="Opening hand size")
    mulligan_max: int = Field(default=3, description="Mulligans allowed before a forced keep")
    mulligan_rule: MulliganRule = Field(default=MulliganRule.CLASSIC)
    free_first_mulligan: bool = Field(
        default=False,
        description="First mulligan does not reduce hand size",
    )
    first_turn_draw: FirstTurnDraw = Field(default=FirstTurnDraw.SKIP)
    strategy: str = Field(default="baseline", description="Registered strategy name")
    seed: int = Field(default=0, description="Experiment seed; trial seeds derive from it")
    stop_conditions: list[StopCondition] = Field(default_factory=list)
    tracked_cards: list[str] = Field(
        default_factory=list,
        description="Card names whose first cast turn is observed",
    )
    milestone_turns: list[int] = Field(
        default_factory=lambda: [2, 3, 4],
        description="Turns at which lands and mana in play are observed",
    )
    land_count: int | None = Field(
        default=None,
        description="Rebuild the deck with exactly this many lands",
    )
    max_land_drops: int = Field(default=1, description="Land plays per turn")
    max_workers: int = Field(default=1, description="Worker threads for trials")


class ParameterSweep(BaseModel):
    """Values one parameter takes across a scenario."""

    parameter: SweptParameter
    values: list[int | str | bool] = Field(description="Ordered values to sweep")


class Scenario(BaseModel):
    """A grid of experiment configurations compared against each other.

    The grid is the Cartesian product of all sweeps, in sweep order.
    """

    name: str = Field(description="Scenario display name")
    base_config: ExperimentConfig = Field(default_factory=ExperimentConfig)
    sweeps: list[ParameterSweep] = Field(default_factory=list)
    seed: int = Field(default=0, description="Top-level seed for every grid point")
    seed_policy: SeedPolicy = Field(default=SeedPolicy.COMMON)
    max_workers: int = Field(default=1, description="Grid points evaluated concurrently")

    def grid(self) -> list[tuple[dict[str, Any], ExperimentConfig]]:
        """Expand the sweeps into one experiment config per grid point.

        Returns:
            (swept values by parameter name, config) pairs in grid order. A
            scenario without sweeps has a single grid point, the base config.

        Raises:
            pydantic.ValidationError: If a swept value does not fit its field.
        """
        points = []
        base = self.base_config.model_dump()
        for combo in itertools.product(*(sweep.values for sweep in self.sweeps)):
            parameters = {
                sweep.parameter.value: value for sweep, value in zip(self.sweeps, combo)
            }
            config = ExperimentConfig.model_validate({**base, **parameters})
            points.append((parameters, config))
        return points


class ConfigIssue(BaseModel):
    """A single configuration problem.

    Attributes:
        code: Machine-readable issue code
        message: Human-readable description
        field_name: Offending configuration field, if any
    """

    code: str = Field(description="Machine-readable issue code")
    message: str = Field(description="Human-readable description")
    field_name: str | None = Field(default=None, description="Offending configuration field")


# =============================================================================
# Results
# =============================================================================


class MetricSummary(BaseModel):
    """Aggregate of one observation across all completed trials."""

    name: str
    kind: MetricKind
    present: int = Field(ge=0, description="Trials where the value was observed")
    absent: int = Field(ge=0, description="Trials where the event never happened")
    absence_rate: float = Field(ge=0.0, le=1.0)
    mean: float | None = Field(default=None, description="Mean, or rate for booleans")
    variance: float | None = Field(default=None, description="Sample variance")
    std_dev: float | None = None
    minimum: float | None = None
    maximum: float | None = None
    percentiles: dict[str, float] = Field(default_factory=dict)
    frequencies: dict[str, float] = Field(
        default_factory=dict,
        description="Share of present values per category",
    )


class TrialFailure(BaseModel):
    """A trial aborted by an illegal action."""

    trial_index: int
    seed: int
    message: str


class ExperimentSummary(BaseModel):
    """Aggregated results of one experiment."""

    config: ExperimentConfig
    deck_size: int
    land_count: int
    trial_count: int = Field(description="Trials requested")
    completed_trials: int = Field(description="Trials that ran to a finish reason")
    failed_trials: int = Field(description="Trials aborted by an illegal action")
    failures: list[TrialFailure] = Field(
        default_factory=list,
        description="First failed trials, by trial index",
    )
    finish_reasons: dict[str, int] = Field(default_factory=dict)
    metrics: dict[str, MetricSummary] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)

    def metric(self, name: str) -> MetricSummary:
        return self.metrics[name]

    def mean(self, name: str) -> float | None:
        """Mean of a metric, None when it has no observations."""
        summary = self.metrics.get(name)
        return summary.mean if summary else None


class ScenarioRow(BaseModel):
    """One grid point of a scenario and its summary."""

    config_index: int
    parameters: dict[str, Any]
    seed: int
    summary: ExperimentSummary


class ScenarioResult(BaseModel):
    """Comparison table produced by a scenario run."""

    scenario_name: str
    swept_parameters: list[SweptParameter]
    rows: list[ScenarioRow] = Field(default_factory=list)

    def table(self) -> dict[tuple, ExperimentSummary]:
        """Map each tuple of swept values, in sweep order, to its summary."""
        return {
            tuple(row.parameters[p.value] for p in self.swept_parameters): row.summary
            for row in self.rows
        }

    def best_by(
        self,
        metric: str,
        statistic: str = "mean",
        minimize: bool = True,
    ) -> ScenarioRow | None:
        """Pick the row with the best value of ``metric``.

        Rows where the statistic is missing (e.g. the event never happened)
        are skipped. Ties keep the earliest row.

        Args:
            metric: Metric name, e.g. "first_commander_turn".
            statistic: MetricSummary attribute or "absence_rate".
            minimize: Whether smaller is better.
        """
        best: ScenarioRow | None = None
        best_value: float | None = None
        for row in self.rows:
            summary = row.summary.metrics.get(metric)
            if summary is None:
                continue
            value = getattr(summary, statistic)
            if value is None:
                continue
            better = best_value is None or (value < best_value if minimize else value > best_value)
            if better:
                best, best_value = row, value
        return best
