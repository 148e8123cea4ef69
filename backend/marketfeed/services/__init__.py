"""Application services."""

from marketfeed.services.orchestrator import StrategyOrchestrator

__all__ = ["StrategyOrchestrator"]
