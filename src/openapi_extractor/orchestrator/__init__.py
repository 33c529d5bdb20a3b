"""Extraction run orchestration.

Key Components:
    - Orchestrator: Sequences the phases of a run and guarantees teardown
    - RunContext: Per-run state, including the teardown stack
    - RunOutcome: The terminal result of a run
"""

from ._context import Finalizer, RunContext, RunOutcome, remove_directory
from ._orchestrator import (
    ApiServerFactory,
    ClientFactory,
    ControlPlaneFactory,
    Orchestrator,
    RegistrarFactory,
    default_apiserver,
    default_control_plane,
    default_registrar,
)

__all__ = [
    "ApiServerFactory",
    "ClientFactory",
    "ControlPlaneFactory",
    "Finalizer",
    "Orchestrator",
    "RegistrarFactory",
    "RunContext",
    "RunOutcome",
    "default_apiserver",
    "default_control_plane",
    "default_registrar",
    "remove_directory",
]
