"""Service layer for the simulation pipeline."""

from .simulation_service import SimulationService, build_simulation_service

__all__ = ["SimulationService", "build_simulation_service"]
