import threading

import pytest

from cluster_probe.config import ClusterEndpointConfig
from cluster_probe.connection import connect


class FakeCluster:
    """Dict-backed stand-in for redis.cluster.RedisCluster"""

    def __init__(self):
        self.kwargs = {}
        self.store = {}
        self.expiry = {}
        self.calls = []
        self.failures = {}
        self.stalls = {}
        self.close_calls = 0
        self.release = threading.Event()
        self.info = {
            "cluster_state": "ok",
            "cluster_known_nodes": 6,
            "cluster_slots_assigned": 16384,
        }
        self.ping_reply = True
        self.read_override = None

    def __call__(self, **kwargs):
        # used as the RedisCluster factory
        self.kwargs = kwargs
        self._command("connect")
        return self

    def _command(self, name):
        self.calls.append(name)
        if name in self.stalls:
            self.release.wait(self.stalls[name])
        if name in self.failures:
            raise self.failures[name]

    def ping(self):
        self._command("ping")
        return self.ping_reply

    def cluster_info(self):
        self._command("cluster_info")
        return dict(self.info)

    def set(self, key, value, ex=None):
        self._command("set")
        self.store[key] = value
        self.expiry[key] = ex
        return True

    def get(self, key):
        self._command("get")
        if self.read_override is not None:
            return self.read_override
        return self.store.get(key)

    def delete(self, *keys):
        self._command("delete")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_cluster():
    cluster = FakeCluster()
    yield cluster
    cluster.release.set()


@pytest.fixture
def connector(fake_cluster):
    def _connect(config, timeout):
        return connect(config, timeout, factory=fake_cluster)
    return _connect


@pytest.fixture
def endpoint():
    return ClusterEndpointConfig.from_strings(["10.0.0.11:7001", "10.0.0.12:7002", "10.0.0.13:7003"])
