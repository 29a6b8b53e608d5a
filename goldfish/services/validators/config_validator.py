"""Pure Python validation of experiment and scenario configuration.

Every check runs before any trial does, so a bad configuration fails fast
with the full list of problems instead of producing partial results.

Typical usage:
    validator = ConfigValidator()
    issues = validator.validate(config, deck)
    validator.ensure_valid(config, deck)  # raises ConfigurationInvalid
"""

from __future__ import annotations

from collections import Counter

from pydantic import ValidationError

from goldfish.core.exceptions import ConfigurationInvalid
from goldfish.core.settings import SimulationSettings, get_settings
from goldfish.models.card_models import Deck
from goldfish.models.simulation_models import (
    ConfigIssue,
    ExperimentConfig,
    Scenario,
    StopConditionKind,
)
from goldfish.services.strategies import available_strategies

# Stop conditions that need a positive threshold
_THRESHOLD_KINDS = (
    StopConditionKind.LANDS_IN_PLAY,
    StopConditionKind.MANA_AVAILABLE,
    StopConditionKind.CARDS_CAST,
)


class ConfigValidator:
    """Checks configurations against a deck and the process settings."""

    def __init__(self, settings: SimulationSettings | None = None) -> None:
        self.settings = settings or get_settings()

    def validate(self, config: ExperimentConfig, deck: Deck) -> list[ConfigIssue]:
        """Validate one experiment configuration against ``deck``.

        Args:
            config: Experiment configuration.
            deck: Deck the experiment will play, before any land_count override.

        Returns:
            List of issues (empty if the configuration is valid).
        """
        issues: list[ConfigIssue] = []

        # 1. Ranges
        issues.extend(self._validate_ranges(config))

        # 2. Strategy
        if config.strategy not in available_strategies():
            issues.append(
                ConfigIssue(
                    code="UNKNOWN_STRATEGY",
                    message=(
                        f"Strategy '{config.strategy}' is not registered "
                        f"(available: {', '.join(available_strategies())})"
                    ),
                    field_name="strategy",
                )
            )

        # 3. Deck, after any land count override
        effective, deck_issues = self._effective_deck(config, deck)
        issues.extend(deck_issues)
        if effective is None:
            return issues

        if effective.size < config.hand_size:
            issues.append(
                ConfigIssue(
                    code="DECK_TOO_SMALL",
                    message=(
                        f"Deck has {effective.size} cards, fewer than the "
                        f"opening hand of {config.hand_size}"
                    ),
                    field_name="hand_size",
                )
            )

        # 4. Card references
        issues.extend(self._validate_card_references(config, effective))

        return issues

    def ensure_valid(self, config: ExperimentConfig, deck: Deck) -> None:
        """Raise ConfigurationInvalid if ``config`` has any issue."""
        issues = self.validate(config, deck)
        if issues:
            raise ConfigurationInvalid(issues)

    def validate_scenario(self, scenario: Scenario, deck: Deck) -> list[ConfigIssue]:
        """Validate the sweeps and every grid point of ``scenario``.

        Issues from grid points are prefixed with the swept values that
        produced them.
        """
        issues: list[ConfigIssue] = []

        if scenario.max_workers < 1:
            issues.append(
                ConfigIssue(
                    code="MAX_WORKERS",
                    message="max_workers must be at least 1",
                    field_name="max_workers",
                )
            )

        seen = Counter(sweep.parameter for sweep in scenario.sweeps)
        for parameter, count in seen.items():
            if count > 1:
                issues.append(
                    ConfigIssue(
                        code="SWEEP_DUPLICATE",
                        message=f"Parameter '{parameter.value}' is swept {count} times",
                        field_name=parameter.value,
                    )
                )
        for sweep in scenario.sweeps:
            if not sweep.values:
                issues.append(
                    ConfigIssue(
                        code="SWEEP_EMPTY",
                        message=f"Sweep over '{sweep.parameter.value}' has no values",
                        field_name=sweep.parameter.value,
                    )
                )
        if issues:
            return issues

        try:
            grid = scenario.grid()
        except ValidationError as e:
            return [
                ConfigIssue(
                    code="SWEEP_VALUE",
                    message=f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}",
                    field_name=str(error["loc"][0]) if error["loc"] else None,
                )
                for error in e.errors()
            ]

        for parameters, config in grid:
            label = ", ".join(f"{name}={value}" for name, value in parameters.items())
            for issue in self.validate(config, deck):
                if label:
                    issue = issue.model_copy(update={"message": f"[{label}] {issue.message}"})
                issues.append(issue)

        return issues

    def ensure_valid_scenario(self, scenario: Scenario, deck: Deck) -> None:
        """Raise ConfigurationInvalid if ``scenario`` has any issue."""
        issues = self.validate_scenario(scenario, deck)
        if issues:
            raise ConfigurationInvalid(issues)

    def _validate_ranges(self, config: ExperimentConfig) -> list[ConfigIssue]:
        """Check numeric parameters are within range.

        Args:
            config: Experiment configuration

        Returns:
            List of range issues
        """
        issues: list[ConfigIssue] = []

        def require(ok: bool, code: str, field_name: str, message: str) -> None:
            if not ok:
                issues.append(ConfigIssue(code=code, message=message, field_name=field_name))

        require(
            1 <= config.trial_count <= self.settings.max_trials,
            "TRIAL_COUNT",
            "trial_count",
            f"trial_count must be between 1 and {self.settings.max_trials}, "
            f"got {config.trial_count}",
        )
        require(
            config.turn_limit >= 1,
            "TURN_LIMIT",
            "turn_limit",
            f"turn_limit must be at least 1, got {config.turn_limit}",
        )
        require(
            config.hand_size >= 1,
            "HAND_SIZE",
            "hand_size",
            f"hand_size must be at least 1, got {config.hand_size}",
        )
        require(
            0 <= config.mulligan_max <= max(config.hand_size, 0),
            "MULLIGAN_MAX",
            "mulligan_max",
            f"mulligan_max must be between 0 and the hand size ({config.hand_size}), "
            f"got {config.mulligan_max}",
        )
        require(
            config.max_land_drops >= 0,
            "MAX_LAND_DROPS",
            "max_land_drops",
            f"max_land_drops cannot be negative, got {config.max_land_drops}",
        )
        require(
            config.max_workers >= 1,
            "MAX_WORKERS",
            "max_workers",
            f"max_workers must be at least 1, got {config.max_workers}",
        )
        require(
            all(turn >= 1 for turn in config.milestone_turns),
            "MILESTONE_TURNS",
            "milestone_turns",
            "milestone_turns must all be at least 1",
        )

        return issues

    def _effective_deck(
        self, config: ExperimentConfig, deck: Deck
    ) -> tuple[Deck | None, list[ConfigIssue]]:
        """Apply the land count override, reporting why it cannot be applied."""
        if deck.size == 0:
            return None, [
                ConfigIssue(code="DECK_EMPTY", message="Deck has no cards", field_name="deck")
            ]
        if config.land_count is None:
            return deck, []
        try:
            return deck.with_land_count(config.land_count), []
        except ValueError as e:
            return None, [
                ConfigIssue(
                    code="LAND_COUNT",
                    message=f"Cannot build a deck with {config.land_count} lands: {e}",
                    field_name="land_count",
                )
            ]

    def _validate_card_references(
        self, config: ExperimentConfig, deck: Deck
    ) -> list[ConfigIssue]:
        """Check tracked cards and stop conditions refer to cards in the deck.

        Args:
            config: Experiment configuration
            deck: Effective deck

        Returns:
            List of reference issues
        """
        issues: list[ConfigIssue] = []

        for name in config.tracked_cards:
            if not deck.contains(name):
                issues.append(
                    ConfigIssue(
                        code="TRACKED_CARD",
                        message=f"Tracked card '{name}' is not in the deck",
                        field_name="tracked_cards",
                    )
                )

        for condition in config.stop_conditions:
            kind = condition.kind
            if kind == StopConditionKind.CARD_CAST:
                if not condition.card_name:
                    issues.append(
                        ConfigIssue(
                            code="STOP_CONDITION",
                            message="card_cast stop condition needs a card_name",
                            field_name="stop_conditions",
                        )
                    )
                elif not deck.contains(condition.card_name):
                    issues.append(
                        ConfigIssue(
                            code="STOP_CONDITION",
                            message=f"Stop condition card '{condition.card_name}' is not in the deck",
                            field_name="stop_conditions",
                        )
                    )
            elif kind == StopConditionKind.COMMANDER_CAST:
                if not any(card.is_commander for card in deck.all_cards()):
                    issues.append(
                        ConfigIssue(
                            code="STOP_CONDITION",
                            message="commander_cast stop condition but the deck has no commander",
                            field_name="stop_conditions",
                        )
                    )
            elif kind in _THRESHOLD_KINDS and (condition.threshold is None or condition.threshold < 1):
                issues.append(
                    ConfigIssue(
                        code="STOP_CONDITION",
                        message=f"{kind.value} stop condition needs a threshold of at least 1",
                        field_name="stop_conditions",
                    )
                )

        return issues
