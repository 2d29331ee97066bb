"""Redis Cluster connectivity probe"""

from cluster_probe.config import ClusterEndpointConfig, SeedAddress, parse_address
from cluster_probe.errors import (
    CommandError,
    ConfigurationError,
    ConnectivityError,
    ProbeError,
    ProbeTimeoutError,
)
from cluster_probe.models import Report, StepResult, StepStatus, STEP_ORDER
from cluster_probe.runner import ProbeRunner

__version__ = "0.1.0"

__all__ = [
    "ClusterEndpointConfig",
    "CommandError",
    "ConfigurationError",
    "ConnectivityError",
    "ProbeError",
    "ProbeRunner",
    "ProbeTimeoutError",
    "Report",
    "SeedAddress",
    "StepResult",
    "StepStatus",
    "STEP_ORDER",
    "parse_address",
]
