"""
Cluster connection

Thin wrapper around redis-py's RedisCluster. Topology discovery, slot routing
and MOVED/ASK redirection stay inside the client; this module only builds it
from a ClusterEndpointConfig and maps redis-py errors onto the probe's own
error types.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Optional

from redis.backoff import NoBackoff
from redis.cluster import RedisCluster, ClusterNode
from redis.exceptions import RedisError, RedisClusterException, TimeoutError as RedisTimeoutError
from redis.retry import Retry

from cluster_probe.config import ClusterEndpointConfig, KEY_EXPIRATION
from cluster_probe.errors import CommandError, ConnectivityError, ProbeTimeoutError

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


def build_client_kwargs(config: ClusterEndpointConfig, timeout: Optional[float] = None) -> Dict[str, Any]:
    """Keyword arguments for RedisCluster matching the endpoint config"""
    kwargs = {
        "startup_nodes": [ClusterNode(a.host, a.port) for a in config.seed_addresses],
        "decode_responses": True,
        # report partial slot coverage through CLUSTER INFO instead of refusing to connect
        "require_full_coverage": False,
        # one attempt per command; a failure is reported, not retried
        "retry": Retry(NoBackoff(), 0),
    }
    if timeout is not None:
        kwargs["socket_timeout"] = timeout
        kwargs["socket_connect_timeout"] = timeout
    if config.username:
        kwargs["username"] = config.username
    if config.password:
        kwargs["password"] = config.password
    if config.tls:
        kwargs["ssl"] = True
        if config.tls_insecure:
            kwargs["ssl_cert_reqs"] = "none"
            kwargs["ssl_check_hostname"] = False
    return kwargs


@contextmanager
def _command_errors(command: str):
    try:
        yield
    except RedisTimeoutError as e:
        raise ProbeTimeoutError(f"{command} timed out: {e}") from e
    except (RedisError, RedisClusterException) as e:
        raise CommandError(f"{command}: {e}") from e


class ClusterConnection:
    """A connected cluster client speaking the probe's error types"""

    def __init__(self, client, endpoint: str = ""):
        self.client = client
        self.endpoint = endpoint
        self.closed = False

    def ping(self) -> str:
        with _command_errors("PING"):
            reply = self.client.ping()
        if not reply:
            raise CommandError(f"PING returned {reply!r}")
        # redis-py turns +PONG into True
        return "PONG" if reply is True else str(reply)

    def cluster_info(self) -> Dict[str, Any]:
        with _command_errors("CLUSTER INFO"):
            info = self.client.cluster_info()
        if not isinstance(info, dict) or not info:
            raise CommandError(f"CLUSTER INFO returned {info!r}")
        # Replies fanned out to several nodes come back keyed by node name
        if "cluster_state" not in info:
            per_node = [v for v in info.values() if isinstance(v, dict)]
            if per_node:
                info = per_node[0]
        return info

    def set(self, key: str, value: str, ex: Optional[int] = KEY_EXPIRATION) -> bool:
        with _command_errors("SET"):
            written = self.client.set(key, value, ex=ex)
        if not written:
            raise CommandError(f"SET {key} was not acknowledged")
        return True

    def get(self, key: str) -> Optional[str]:
        with _command_errors("GET"):
            return self.client.get(key)

    def delete(self, key: str) -> int:
        with _command_errors("DEL"):
            return self.client.delete(key)

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.client.close()
        except (RedisError, RedisClusterException, OSError) as e:
            logger.warning("Error while closing connection to %s: %s", self.endpoint, e)
        logger.debug("Disconnected from %s", self.endpoint)


def connect(config: ClusterEndpointConfig, timeout: Optional[float] = None,
            factory: ClientFactory = RedisCluster) -> ClusterConnection:
    """Open a cluster connection; the client discovers topology from the seeds"""
    endpoint = config.describe()
    logger.debug("Connecting to Redis cluster: %s", endpoint)
    try:
        client = factory(**build_client_kwargs(config, timeout))
    except RedisTimeoutError as e:
        raise ProbeTimeoutError(f"Connecting to {endpoint} timed out: {e}") from e
    except (RedisError, RedisClusterException, OSError) as e:
        raise ConnectivityError(f"Cannot connect to {endpoint}: {e}") from e
    logger.debug("Connected to Redis cluster: %s", endpoint)
    return ClusterConnection(client, endpoint)
