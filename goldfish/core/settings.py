"""Environment-based settings for the simulator.

Values are read once from the environment (and a ``.env`` file when
present) and cached. Experiment-level knobs live on ``ExperimentConfig``;
these settings only bound what a process is willing to run.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_WORKERS = 4
DEFAULT_MAX_RECORDED_FAILURES = 20
DEFAULT_MAX_TRIALS = 1_000_000


@dataclass(frozen=True)
class SimulationSettings:
    """Process-wide simulation settings.

    Attributes:
        log_level: Root logging level.
        log_to_file: Whether rotating JSON log files are written.
        max_workers: Upper bound on worker threads for trials and grid points.
        max_recorded_failures: How many failed trials are kept on a summary.
        max_trials: Largest trial_count accepted for one experiment.
    """

    log_level: str = DEFAULT_LOG_LEVEL
    log_to_file: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS
    max_recorded_failures: int = DEFAULT_MAX_RECORDED_FAILURES
    max_trials: int = DEFAULT_MAX_TRIALS


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@lru_cache(maxsize=1)
def get_settings() -> SimulationSettings:
    """Load simulation settings from environment variables.

    Environment variables:
        GOLDFISH_LOG_LEVEL: Logging level (default: INFO)
        GOLDFISH_LOG_TO_FILE: "true" or "false" (default: "false")
        GOLDFISH_MAX_WORKERS: Worker thread cap (default: 4)
        GOLDFISH_MAX_RECORDED_FAILURES: Failed trials kept per summary (default: 20)
        GOLDFISH_MAX_TRIALS: Largest accepted trial_count (default: 1000000)

    Returns:
        SimulationSettings from environment.
    """
    return SimulationSettings(
        log_level=os.getenv("GOLDFISH_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        log_to_file=_env_flag("GOLDFISH_LOG_TO_FILE", "false"),
        max_workers=max(1, int(os.getenv("GOLDFISH_MAX_WORKERS", str(DEFAULT_MAX_WORKERS)))),
        max_recorded_failures=int(
            os.getenv("GOLDFISH_MAX_RECORDED_FAILURES", str(DEFAULT_MAX_RECORDED_FAILURES))
        ),
        max_trials=int(os.getenv("GOLDFISH_MAX_TRIALS", str(DEFAULT_MAX_TRIALS))),
    )


def clear_settings_cache() -> None:
    """Clear the cached settings.

    Useful for testing when environment variables change.
    """
    get_settings.cache_clear()
