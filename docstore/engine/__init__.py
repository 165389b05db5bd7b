"""
Vector engine (Chroma server) process management.
"""

from docstore.engine.manager import EngineProcessManager, EngineState, EngineStatus
from docstore.engine.strategies import (
    ContainerStrategy,
    ExternallyManaged,
    LocalInterpreterStrategy,
    Spawned,
    default_strategies,
)

__all__ = [
    "EngineProcessManager",
    "EngineState",
    "EngineStatus",
    "ContainerStrategy",
    "LocalInterpreterStrategy",
    "Spawned",
    "ExternallyManaged",
    "default_strategies",
]
