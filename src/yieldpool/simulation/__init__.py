"""Scenario simulation for yield pools."""

from .runner import (
    ScenarioAction,
    ScenarioRunner,
    SimulationResult,
    generate_random_scenario,
    load_scenario,
)

__all__ = [
    "ScenarioAction",
    "ScenarioRunner",
    "SimulationResult",
    "generate_random_scenario",
    "load_scenario",
]
