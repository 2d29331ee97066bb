"""
Error taxonomy for the cluster probe.

Every failure a probe step can hit is reported as one of these. The ``kind``
attribute is the short name shown in step details and JSON output.
"""


class ProbeError(Exception):
    """Base class for probe failures"""
    kind = "ProbeError"


class ConfigurationError(ProbeError):
    """Endpoint configuration is invalid; raised before any network I/O"""
    kind = "ConfigurationError"


class ConnectivityError(ProbeError):
    """No seed node could be reached or the handshake failed"""
    kind = "ConnectivityError"


class CommandError(ProbeError):
    """The cluster rejected or failed a command"""
    kind = "CommandError"


class ProbeTimeoutError(ProbeError, TimeoutError):
    """A step ran past its time budget"""
    kind = "TimeoutError"
