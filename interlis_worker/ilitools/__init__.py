"""ilitools invocation.

This package wraps the external INTERLIS tools run on the Java runtime:
- commands: Deterministic command line builders
- process: ProcessRunner executing a command with cancellation support
- executor: IlitoolsExecutor exposing validate / import / export
"""

from interlis_worker.ilitools.environment import IlitoolsEnvironment
from interlis_worker.ilitools.executor import IlitoolsExecutor
from interlis_worker.ilitools.process import SENTINEL_EXIT_CODE, ProcessRunner

__all__ = [
    "IlitoolsEnvironment",
    "IlitoolsExecutor",
    "ProcessRunner",
    "SENTINEL_EXIT_CODE",
]
