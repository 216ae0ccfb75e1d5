"""Solver engine module."""

from .strategy import InfoSet, StrategyProfile, regret_matching
from .mccfr import MCCFRConfig, MCCFRSolver, NodeStrategy
from .kuhn import KuhnCard, KuhnTrainer

__all__ = [
    "InfoSet",
    "StrategyProfile",
    "regret_matching",
    "MCCFRConfig",
    "MCCFRSolver",
    "NodeStrategy",
    "KuhnCard",
    "KuhnTrainer",
]
