"""Simulation API endpoints."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from goldfish.core.exceptions import ConfigurationInvalid
from goldfish.core.logging_config import get_logger
from goldfish.models.card_models import Deck
from goldfish.models.deck_models import DeckList
from goldfish.models.simulation_models import (
    ExperimentConfig,
    ExperimentSummary,
    Scenario,
    ScenarioResult,
)
from goldfish.services.experiment import ExperimentRunner
from goldfish.services.scenario import ScenarioRunner
from goldfish.services.strategies import available_strategies

router = APIRouter()
logger = get_logger(__name__)


class ExperimentRequest(BaseModel):
    """Request model for a single experiment."""

    deck: DeckList = Field(description="Deck to gold-fish")
    config: ExperimentConfig = Field(default_factory=ExperimentConfig)


class ScenarioRequest(BaseModel):
    """Request model for a parameter sweep."""

    deck: DeckList = Field(description="Base deck for every grid point")
    scenario: Scenario


def _build_deck(deck_list: DeckList) -> Deck:
    try:
        return deck_list.to_deck()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid deck: {e}")


def _invalid(e: ConfigurationInvalid) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "message": "Invalid configuration",
            "issues": [issue.model_dump() for issue in e.issues],
        },
    )


# Plain ``def`` so FastAPI runs the CPU-bound simulation in its threadpool
@router.post("/experiment", response_model=ExperimentSummary)
def run_experiment(request: ExperimentRequest) -> ExperimentSummary:
    """Run one experiment and return its aggregated summary."""
    deck = _build_deck(request.deck)
    try:
        return ExperimentRunner(deck).run(request.config)
    except ConfigurationInvalid as e:
        logger.warning(f"Rejected experiment: {e}")
        raise _invalid(e)


@router.post("/scenario", response_model=ScenarioResult)
def run_scenario(request: ScenarioRequest) -> ScenarioResult:
    """Run every grid point of a scenario and return the comparison table."""
    deck = _build_deck(request.deck)
    try:
        return ScenarioRunner(deck).run(request.scenario)
    except ConfigurationInvalid as e:
        logger.warning(f"Rejected scenario '{request.scenario.name}': {e}")
        raise _invalid(e)


@router.get("/strategies")
async def list_strategies() -> dict:
    """List registered strategy names."""
    return {"strategies": available_strategies()}
