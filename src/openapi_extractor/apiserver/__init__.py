"""Aggregated API server under test."""

from ._build import GoBuilder
from ._server import AggregatedServerOptions, AggregatedServerSupervisor

__all__ = [
    "AggregatedServerOptions",
    "AggregatedServerSupervisor",
    "GoBuilder",
]
