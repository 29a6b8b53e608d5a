"""Scenario runner: one experiment per point of a parameter grid.

Every grid point is validated before the first trial runs. Grid points are
seeded according to the scenario's seed policy:

- COMMON: every point uses the scenario seed, so trial ``i`` sees the same
  shuffle stream at every point and differences between rows come from the
  swept parameter rather than sampling noise.
- INDEPENDENT: point ``k`` uses ``derive_seed(scenario.seed, k)``.

Rows come back in grid order whatever the concurrency.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed

from goldfish.core.exceptions import SimulationCancelled
from goldfish.core.logging_config import get_logger
from goldfish.core.settings import SimulationSettings, get_settings
from goldfish.models.card_models import Deck
from goldfish.models.simulation_models import (
    ExperimentConfig,
    Scenario,
    ScenarioResult,
    ScenarioRow,
    SeedPolicy,
)
from goldfish.services.experiment import ExperimentRunner
from goldfish.services.seeding import CancellationToken, derive_seed
from goldfish.services.validators import ConfigValidator

logger = get_logger(__name__)


def grid_point_seed(scenario: Scenario, config_index: int) -> int:
    """Seed used by grid point ``config_index`` under the scenario's policy."""
    if scenario.seed_policy == SeedPolicy.INDEPENDENT:
        return derive_seed(scenario.seed, config_index)
    return scenario.seed


class ScenarioRunner:
    """Runs every grid point of a scenario against one deck.

    Args:
        deck: Base deck. Grid points sweeping ``land_count`` rebuild it.
        settings: Process settings, defaults to ``get_settings()``.
        cancellation: Token shared with every experiment of the scenario.

    Usage:
        runner = ScenarioRunner(deck)
        result = runner.run(scenario)
        result.table()[(16,)].mean("lands_on_turn_4")
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
        self.experiments = ExperimentRunner(deck, self.settings, self.cancellation)

    def run(self, scenario: Scenario) -> ScenarioResult:
        """Run the whole grid.

        Raises:
            ConfigurationInvalid: If any grid point is invalid. Nothing has
                run in that case.
            SimulationCancelled: If the token fired. ``completed`` holds the
                rows finished so far, in grid order.
        """
        self.validator.ensure_valid_scenario(scenario, self.deck)
        grid = scenario.grid()
        workers = min(scenario.max_workers, self.settings.max_workers, len(grid))
        logger.info(
            f"Running scenario '{scenario.name}' over {len(grid)} grid point(s)",
            extra={
                "extra_data": {
                    "seed": scenario.seed,
                    "seed_policy": scenario.seed_policy.value,
                    "swept": [sweep.parameter.value for sweep in scenario.sweeps],
                }
            },
        )

        rows: dict[int, ScenarioRow] = {}
        try:
            if workers > 1:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = {
                        executor.submit(
                            self._run_point, scenario, index, parameters, config
                        ): index
                        for index, (parameters, config) in enumerate(grid)
                    }
                    try:
                        for future in as_completed(futures):
                            rows[futures[future]] = future.result()
                    except SimulationCancelled:
                        for future in futures:
                            future.cancel()
                        raise
            else:
                for index, (parameters, config) in enumerate(grid):
                    rows[index] = self._run_point(scenario, index, parameters, config)
        except SimulationCancelled:
            completed = [rows[index] for index in sorted(rows)]
            logger.warning(
                f"Scenario '{scenario.name}' cancelled after {len(completed)} grid point(s)"
            )
            raise SimulationCancelled(
                f"Scenario '{scenario.name}' cancelled", completed=completed
            ) from None

        return ScenarioResult(
            scenario_name=scenario.name,
            swept_parameters=[sweep.parameter for sweep in scenario.sweeps],
            rows=[rows[index] for index in sorted(rows)],
        )

    def _run_point(
        self,
        scenario: Scenario,
        index: int,
        parameters: dict,
        config: ExperimentConfig,
    ) -> ScenarioRow:
        self.cancellation.raise_if_cancelled()
        seed = grid_point_seed(scenario, index)
        summary = self.experiments.run(config.model_copy(update={"seed": seed}))
        logger.debug(f"Grid point {index} {parameters} done")
        return ScenarioRow(config_index=index, parameters=parameters, seed=seed, summary=summary)
