"""Supervision of the subprocesses an extraction run depends on.

Key Components:
    - ProcessConfig: Configuration for a supervised process
    - ProcessState: Lifecycle state enumeration
    - ProcessStatus: Runtime status tracking
    - ProcessEvent: Lifecycle event records
    - OutputSink: Protocol for output consumption
    - ConcatenatedOutputSink: Console output implementation
    - ProcessManager: Single process lifecycle manager
    - Stoppable: Protocol for resources torn down at the end of a run
    - Service: Protocol for resources started and stopped by a run

Example:
    >>> from openapi_extractor.exceptions import Phase
    >>> from openapi_extractor.supervisor import ProcessConfig, ProcessManager
    >>> config = ProcessConfig(name="etcd", command=("etcd",), port=2379)
    >>> process = ProcessManager(config, phase=Phase.CONTROL_PLANE)
    >>> await process.start()  # Returns once port 2379 accepts connections
    >>> await process.stop()
"""

from ._models import (
    ProcessConfig,
    ProcessEvent,
    ProcessEventType,
    ProcessState,
    ProcessStatus,
)
from ._output import ConcatenatedOutputSink
from ._process import ProcessManager, ReadyCheck
from ._protocol import OutputSink, Service, Stoppable

__all__ = [
    "ConcatenatedOutputSink",
    "OutputSink",
    "ProcessConfig",
    "ProcessEvent",
    "ProcessEventType",
    "ProcessManager",
    "ProcessState",
    "ProcessStatus",
    "ReadyCheck",
    "Service",
    "Stoppable",
]
