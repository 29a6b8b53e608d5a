"""Monte Carlo experiment runner.

Runs many independent trials of one configuration against one deck and
aggregates their observations. Trial ``i`` is seeded with
``derive_seed(config.seed, i)`` and owns every random stream it uses, so
the summary depends only on the deck and the configuration, never on the
number of worker threads or the order in which trials finish.
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from goldfish.core.exceptions import IllegalAction, SimulationCancelled
from goldfish.core.logging_config import get_logger
from goldfish.core.settings import SimulationSettings, get_settings
from goldfish.models.card_models import Deck
from goldfish.models.simulation_models import (
    ExperimentConfig,
    ExperimentSummary,
    FinishReason,
    MetricKind,
    MetricSummary,
    TrialFailure,
)
from goldfish.services.metrics import MetricsCollector, Observation
from goldfish.services.seeding import CancellationToken, derive_seed
from goldfish.services.strategies import get_strategy
from goldfish.services.trial import TrialExecutor
from goldfish.services.validators import ConfigValidator

logger = get_logger(__name__)

PERCENTILES = (10, 25, 50, 75, 90)

# Warning thresholds
FLOOD_WARNING_RATE = 0.25
SCREW_WARNING_RATE = 0.25
SLOW_COMMANDER_TURN = 6.0


class ExperimentRunner:
    """Runs experiments against a single deck.

    Args:
        deck: Deck to gold-fish. ``ExperimentConfig.land_count`` rebuilds it
            per experiment.
        settings: Process settings, defaults to ``get_settings()``.
        cancellation: Token checked before every trial.

    Usage:
        runner = ExperimentRunner(deck)
        summary = runner.run(ExperimentConfig(trial_count=1000, seed=42))
        summary.mean("first_commander_turn")
    """

    def __init__(
        self,
        deck: Deck,
        settings: SimulationSettings | None = None,
        cancellation: CancellationToken | None = None,
    ):
        self.deck = deck
        self.settings = settings or get_settings()
        self.cancellation = cancellation or CancellationToken()
        self.validator = ConfigValidator(self.settings)

    def run(self, config: ExperimentConfig) -> ExperimentSummary:
        """Run ``config.trial_count`` trials and aggregate them.

        Raises:
            ConfigurationInvalid: Before any trial runs, if the configuration
                does not fit the deck or the settings.
            SimulationCancelled: If the cancellation token fired. ``completed``
                holds the number of trials that finished.
        """
        self.validator.ensure_valid(config, self.deck)
        deck = self.deck if config.land_count is None else self.deck.with_land_count(config.land_count)
        collector = MetricsCollector(config.tracked_cards, config.milestone_turns)

        workers = min(config.max_workers, self.settings.max_workers, config.trial_count)
        logger.info(
            f"Running {config.trial_count} trials with strategy '{config.strategy}'",
            extra={
                "extra_data": {
                    "seed": config.seed,
                    "deck_size": deck.size,
                    "land_count": deck.land_count,
                    "workers": workers,
                }
            },
        )

        results: dict[int, dict[str, Observation] | TrialFailure] = {}
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {
                    executor.submit(self._run_trial, deck, config, collector, index): index
                    for index in range(config.trial_count)
                }
                try:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                except SimulationCancelled:
                    for future in futures:
                        future.cancel()
                    raise SimulationCancelled(completed=len(results)) from None
        else:
            for index in range(config.trial_count):
                try:
                    results[index] = self._run_trial(deck, config, collector, index)
                except SimulationCancelled:
                    raise SimulationCancelled(completed=len(results)) from None

        summary = self._summarize(config, deck, collector, results)
        logger.info(
            f"Experiment finished: {summary.completed_trials} completed, "
            f"{summary.failed_trials} failed",
            extra={"extra_data": {"seed": config.seed, "finish_reasons": summary.finish_reasons}},
        )
        return summary

    def _run_trial(
        self,
        deck: Deck,
        config: ExperimentConfig,
        collector: MetricsCollector,
        index: int,
    ) -> dict[str, Observation] | TrialFailure:
        self.cancellation.raise_if_cancelled()
        seed = derive_seed(config.seed, index)
        executor = TrialExecutor(deck, config, get_strategy(config.strategy), seed)
        try:
            trace = executor.run()
        except IllegalAction as e:
            logger.error(
                f"Trial {index} aborted: {e}",
                extra={"extra_data": {"trial_index": index, "seed": seed}},
            )
            return TrialFailure(trial_index=index, seed=seed, message=str(e))
        return collector.collect(trace)

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    def _summarize(
        self,
        config: ExperimentConfig,
        deck: Deck,
        collector: MetricsCollector,
        results: dict[int, dict[str, Observation] | TrialFailure],
    ) -> ExperimentSummary:
        observations: list[dict[str, Observation]] = []
        failures: list[TrialFailure] = []
        for index in sorted(results):
            result = results[index]
            if isinstance(result, TrialFailure):
                failures.append(result)
            else:
                observations.append(result)

        metrics = {
            name: summarize_metric(name, [obs[name] for obs in observations])
            for name in collector.schema()
        }
        finish_reasons = Counter(
            obs["finish_reason"] for obs in observations if obs["finish_reason"] is not None
        )

        summary = ExperimentSummary(
            config=config,
            deck_size=deck.size,
            land_count=deck.land_count,
            trial_count=config.trial_count,
            completed_trials=len(observations),
            failed_trials=len(failures),
            failures=failures[: self.settings.max_recorded_failures],
            finish_reasons={reason: finish_reasons[reason] for reason in sorted(finish_reasons)},
            metrics=metrics,
        )
        summary.warnings.extend(_generate_warnings(summary, deck))
        return summary


def _metric_kind(values: list[Observation]) -> MetricKind:
    present = [value for value in values if value is not None]
    if present and all(isinstance(value, bool) for value in present):
        return MetricKind.BOOLEAN
    if any(isinstance(value, str) for value in present):
        return MetricKind.CATEGORICAL
    return MetricKind.NUMERIC


def summarize_metric(name: str, values: list[Observation]) -> MetricSummary:
    """Aggregate the observations of one metric across trials.

    ``None`` values count as absent and are excluded from every statistic.
    Present values are sorted before aggregation so the result does not
    depend on the order trials finished in.

    Args:
        name: Metric name.
        values: One observation per completed trial.

    Returns:
        MetricSummary. Statistics are None when nothing was observed.
    """
    kind = _metric_kind(values)
    present = [value for value in values if value is not None]
    total = len(values)
    absent = total - len(present)
    absence_rate = absent / total if total else 0.0

    summary = MetricSummary(
        name=name,
        kind=kind,
        present=len(present),
        absent=absent,
        absence_rate=absence_rate,
    )
    if not present:
        return summary

    if kind == MetricKind.CATEGORICAL:
        counts = Counter(str(value) for value in present)
        summary.frequencies = {
            category: counts[category] / len(present) for category in sorted(counts)
        }
        return summary

    data = np.array(sorted(float(value) for value in present), dtype=float)
    variance = float(np.var(data, ddof=1)) if data.size > 1 else 0.0
    summary.mean = float(np.mean(data))
    summary.variance = variance
    summary.std_dev = float(np.sqrt(variance))
    summary.minimum = float(data[0])
    summary.maximum = float(data[-1])
    if kind == MetricKind.NUMERIC:
        summary.percentiles = {
            f"p{q}": float(value) for q, value in zip(PERCENTILES, np.percentile(data, PERCENTILES))
        }
    return summary


def _generate_warnings(summary: ExperimentSummary, deck: Deck) -> list[str]:
    """Flag results that usually point at a deck construction problem.

    Args:
        summary: Aggregated experiment results.
        deck: Deck that was simulated.

    Returns:
        List of human-readable warnings.
    """
    warnings = []

    flood = summary.metrics.get("land_flood")
    if flood and flood.mean is not None and flood.mean > FLOOD_WARNING_RATE:
        warnings.append(
            f"{flood.mean:.0%} of kept hands are flooded; consider cutting lands "
            f"({deck.land_count} of {deck.size})"
        )

    screw = summary.metrics.get("land_screw")
    if screw and screw.mean is not None and screw.mean > SCREW_WARNING_RATE:
        warnings.append(
            f"{screw.mean:.0%} of kept hands have one land or fewer; consider adding lands "
            f"({deck.land_count} of {deck.size})"
        )

    emptied = summary.finish_reasons.get(FinishReason.LIBRARY_EMPTIED.value, 0)
    if emptied:
        warnings.append(f"{emptied} trial(s) ran out of library before the turn limit")

    if summary.failed_trials:
        warnings.append(
            f"{summary.failed_trials} trial(s) aborted on an illegal action by strategy "
            f"'{summary.config.strategy}'"
        )

    if deck.commanders:
        commander = summary.metrics.get("first_commander_turn")
        if commander and commander.mean is not None and commander.mean > SLOW_COMMANDER_TURN:
            warnings.append(f"Commander is cast on turn {commander.mean:.1f} on average")
        elif commander and commander.present == 0 and summary.completed_trials:
            warnings.append("Commander was never cast")

    return warnings
