"""
Probe configuration

Module-level defaults for the probe, plus the immutable endpoint description
that the runner consumes. Endpoints can be built from CLI flags or from the
REDIS_CLUSTER_* environment variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from cluster_probe.errors import ConfigurationError

# Configuration
DEFAULT_STARTUP_NODES = ("localhost:6379",)

# Operation settings
CONNECTION_TIMEOUT = 5.0    # default per-step budget in seconds
KEY_EXPIRATION = 300        # seconds (5 minutes) for the test key
TEST_KEY = "test:hello"
TEST_VALUE = "Redis Cluster Works!"

# Environment variables
ENV_NODES = "REDIS_CLUSTER_NODES"
ENV_TLS = "REDIS_CLUSTER_TLS"
ENV_USERNAME = "REDIS_USERNAME"
ENV_PASSWORD = "REDIS_PASSWORD"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SeedAddress:
    """A single startup node"""
    host: str
    port: int

    @property
    def address(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_address(value: str) -> SeedAddress:
    """Parse ``host:port`` (or ``[v6-host]:port``) into a SeedAddress"""
    text = value.strip()
    if text.startswith("["):
        host, sep, rest = text[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ConfigurationError(f"Invalid node address: {value!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep:
            raise ConfigurationError(f"Node address must be host:port, got {value!r}")

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"Invalid port in node address: {value!r}") from None

    address = SeedAddress(host=host, port=port)
    _validate_address(address)
    return address


def _validate_address(address: SeedAddress):
    if not address.host:
        raise ConfigurationError(f"Missing host in node address: {address.address!r}")
    if not 1 <= address.port <= 65535:
        raise ConfigurationError(f"Port out of range in node address: {address.address!r}")


@dataclass(frozen=True)
class ClusterEndpointConfig:
    """Seed nodes and connection options for one cluster"""
    seed_addresses: Tuple[SeedAddress, ...]
    tls: bool = False
    tls_insecure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None

    def validate(self):
        """Raise ConfigurationError if the config cannot be used"""
        if not self.seed_addresses:
            raise ConfigurationError("At least one seed address is required")
        for address in self.seed_addresses:
            if not isinstance(address, SeedAddress):
                raise ConfigurationError(f"Seed address must be a SeedAddress, got {address!r}")
            _validate_address(address)
        if self.tls_insecure and not self.tls:
            raise ConfigurationError("tls_insecure requires tls")

    def describe(self) -> str:
        """Human-readable summary, safe to log (no password)"""
        nodes = ", ".join(a.address for a in self.seed_addresses) or "<none>"
        parts = [nodes]
        if self.tls:
            parts.append("tls" + (" (unverified)" if self.tls_insecure else ""))
        if self.username:
            parts.append(f"user={self.username}")
        elif self.password:
            parts.append("auth=password")
        return " | ".join(parts)

    @classmethod
    def from_strings(cls, nodes, tls: bool = False, tls_insecure: bool = False,
                     username: Optional[str] = None,
                     password: Optional[str] = None) -> "ClusterEndpointConfig":
        """Build and validate a config from ``host:port`` strings"""
        config = cls(
            seed_addresses=tuple(parse_address(n) for n in nodes if n.strip()),
            tls=tls,
            tls_insecure=tls_insecure,
            username=username or None,
            password=password or None,
        )
        config.validate()
        return config

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "ClusterEndpointConfig":
        """Build a config from REDIS_CLUSTER_* / REDIS_* environment variables"""
        if environ is None:
            environ = os.environ
        nodes = environ.get(ENV_NODES, ",".join(DEFAULT_STARTUP_NODES)).split(",")
        return cls.from_strings(
            nodes,
            tls=env_flag(environ.get(ENV_TLS)),
            username=environ.get(ENV_USERNAME),
            password=environ.get(ENV_PASSWORD),
        )


def env_flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY
