"""Card, deck and simulation models for the goldfish simulator."""

from goldfish.models.card_models import (
    Card,
    CardType,
    Deck,
    ManaCost,
    ManaProduction,
    ManaType,
    Zone,
)
from goldfish.models.deck_models import CardSpec, DeckList
from goldfish.models.simulation_models import (
    ConfigIssue,
    ExperimentConfig,
    ExperimentSummary,
    FinishReason,
    FirstTurnDraw,
    MetricKind,
    MetricSummary,
    MulliganRule,
    ParameterSweep,
    Scenario,
    ScenarioResult,
    ScenarioRow,
    SeedPolicy,
    StopCondition,
    StopConditionKind,
    SweptParameter,
    TrialFailure,
)

__all__ = [
    # Card models
    "Card",
    "CardType",
    "Deck",
    "ManaCost",
    "ManaProduction",
    "ManaType",
    "Zone",
    # Decklists
    "CardSpec",
    "DeckList",
    # Simulation models
    "ConfigIssue",
    "ExperimentConfig",
    "ExperimentSummary",
    "FinishReason",
    "FirstTurnDraw",
    "MetricKind",
    "MetricSummary",
    "MulliganRule",
    "ParameterSweep",
    "Scenario",
    "ScenarioResult",
    "ScenarioRow",
    "SeedPolicy",
    "StopCondition",
    "StopConditionKind",
    "SweptParameter",
    "TrialFailure",
]
