"""
Redis Cluster connectivity probe

Runs a fixed health-check sequence against a cluster endpoint:

    connect -> ping -> cluster_info -> write_read -> cleanup

and returns a Report describing every step.

FAILURE HANDLING:
- The first failing step stops the sequence; later steps are marked skipped
- cleanup always runs once connect succeeded, so no test key is left behind
- Store errors never escape run(); they are recorded in the step detail
- Only an invalid configuration raises, before any network I/O

TIME BUDGET:
- Each step (connect included) gets at most step_timeout seconds
- A step over budget fails with TimeoutError; cleanup is still attempted
- A write that lands after its budget deletes the test key itself; the
  connection stays open until it does
"""

import logging
import threading
import time
import uuid
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from cluster_probe.config import ClusterEndpointConfig, CONNECTION_TIMEOUT, TEST_KEY, TEST_VALUE
from cluster_probe.connection import ClusterConnection, connect
from cluster_probe.errors import CommandError, ProbeError, ProbeTimeoutError
from cluster_probe.models import (
    Report,
    StepResult,
    StepStatus,
    STEP_CLEANUP,
    STEP_CLUSTER_INFO,
    STEP_CONNECT,
    STEP_PING,
    STEP_WRITE_READ,
)

logger = logging.getLogger(__name__)

Connector = Callable[[ClusterEndpointConfig, Optional[float]], ClusterConnection]


class _BudgetedCall:
    """Runs a callable on a worker thread and waits at most ``budget`` seconds for it

    If the budget runs out, ``on_abandon`` is called from the worker thread once
    the callable finally returns, with its value (None if it raised).
    """

    def __init__(self, fn: Callable[[], Any], name: str,
                 on_abandon: Optional[Callable[[Any], None]] = None):
        self.fn = fn
        self.on_abandon = on_abandon
        self.thread = threading.Thread(target=self._target, name=f"probe-{name}", daemon=True)
        self._lock = threading.Lock()
        self._done = False
        self._abandoned = False
        self._value = None
        self._error: Optional[BaseException] = None

    def _target(self):
        try:
            value = self.fn()
            error = None
        except Exception as e:
            value, error = None, e
        with self._lock:
            abandoned = self._abandoned
            self._done = True
            self._value, self._error = value, error
        if abandoned and self.on_abandon is not None:
            self.on_abandon(value)

    def result(self, budget: float):
        self.thread.start()
        self.thread.join(budget)
        with self._lock:
            if not self._done:
                self._abandoned = True
                raise ProbeTimeoutError(f"step exceeded its {budget:g}s budget")
        if self._error is not None:
            raise self._error
        return self._value


@dataclass
class _RunState:
    key: str
    connection: Optional[ClusterConnection] = None
    write_attempted: bool = False
    # set while a write_read call may still be in flight; guarded by lock
    write_pending: bool = False
    write_abandoned: bool = False
    close_deferred: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)


class ProbeRunner:
    """Executes the probe sequence against one cluster endpoint per run()"""

    def __init__(self, step_timeout: Optional[float] = CONNECTION_TIMEOUT,
                 test_key: str = TEST_KEY, test_value: str = TEST_VALUE,
                 unique_key: bool = False, require_cluster_ok: bool = True,
                 connector: Connector = connect):
        if step_timeout is not None and step_timeout <= 0:
            raise ValueError("step_timeout must be positive")
        self.step_timeout = step_timeout
        self.test_key = test_key
        self.test_value = test_value
        self.unique_key = unique_key
        self.require_cluster_ok = require_cluster_ok
        self.connector = connector

    def run(self, config: ClusterEndpointConfig) -> Report:
        """Probe the endpoint; raises only ConfigurationError"""
        config.validate()
        endpoint = config.describe()
        started_at = datetime.now()
        state = _RunState(key=self._make_key())
        results: List[StepResult] = []

        logger.info("Probing Redis cluster %s", endpoint)
        with ExitStack() as stack:
            result, connection = self._execute(
                STEP_CONNECT, lambda: self._connect(config),
                on_abandon=self._close_late_connection,
            )
            results.append(result)
            if result.ok:
                state.connection = connection
                stack.callback(self._release, state)

            failed = not result.ok
            for name, step in ((STEP_PING, self._ping),
                               (STEP_CLUSTER_INFO, self._cluster_info),
                               (STEP_WRITE_READ, self._write_read)):
                if failed:
                    results.append(StepResult(name, StepStatus.SKIPPED, "skipped after earlier failure"))
                    continue
                if name == STEP_WRITE_READ:
                    state.write_pending = True
                result, _ = self._execute(name, lambda step=step: step(state))
                results.append(result)
                failed = not result.ok
                if name == STEP_WRITE_READ and result.error == ProbeTimeoutError.kind:
                    with state.lock:
                        state.write_abandoned = state.write_pending

            if state.connection is None:
                results.append(StepResult(STEP_CLEANUP, StepStatus.SKIPPED, "no connection to clean up through"))
            else:
                result, _ = self._execute(STEP_CLEANUP, lambda: self._cleanup(state))
                results.append(result)

        report = Report(endpoint=endpoint, steps=tuple(results), started_at=started_at)
        logger.info("Probe of %s finished: %s (%.1f ms)",
                    endpoint, report.status.value, report.duration * 1000)
        return report

    def _make_key(self) -> str:
        if self.unique_key:
            return f"{self.test_key}:{uuid.uuid4().hex}"
        return self.test_key

    def _release(self, state: _RunState):
        """Close the run's connection, or hand it to a write that is still in flight"""
        with state.lock:
            if state.write_pending:
                state.close_deferred = True
                return
        state.connection.close()

    @staticmethod
    def _close_late_connection(late):
        if late is not None:
            late[1].close()

    def _execute(self, name: str, fn: Callable[[], Tuple[str, Any]],
                 on_abandon: Optional[Callable[[Any], None]] = None) -> Tuple[StepResult, Any]:
        start = time.perf_counter()
        try:
            if self.step_timeout is None:
                detail, value = fn()
            else:
                detail, value = _BudgetedCall(fn, name, on_abandon).result(self.step_timeout)
        except ProbeError as e:
            duration = time.perf_counter() - start
            logger.warning("Step %s failed after %.1f ms: %s: %s", name, duration * 1000, e.kind, e)
            return StepResult(name, StepStatus.FAILED, f"{e.kind}: {e}", duration, e.kind), None
        except Exception as e:
            duration = time.perf_counter() - start
            logger.exception("Step %s raised an unexpected error", name)
            kind = type(e).__name__
            return StepResult(name, StepStatus.FAILED, f"{kind}: {e}", duration, kind), None

        duration = time.perf_counter() - start
        logger.info("Step %s ok in %.1f ms: %s", name, duration * 1000, detail)
        return StepResult(name, StepStatus.OK, detail, duration), value

    # Steps. Each returns (detail, value).

    def _connect(self, config: ClusterEndpointConfig):
        connection = self.connector(config, self.step_timeout)
        count = len(config.seed_addresses)
        return f"connected via {count} seed node{'s' if count != 1 else ''}", connection

    def _ping(self, state: _RunState):
        reply = state.connection.ping()
        return reply, reply

    def _cluster_info(self, state: _RunState):
        info = state.connection.cluster_info()
        cluster_state = info.get("cluster_state", "unknown")
        if self.require_cluster_ok and cluster_state != "ok":
            raise CommandError(f"Cluster state is not OK: {cluster_state}")
        detail = (f"cluster_state={cluster_state} "
                  f"known_nodes={info.get('cluster_known_nodes', 'unknown')} "
                  f"slots_assigned={info.get('cluster_slots_assigned', 'unknown')}")
        return detail, info

    def _write_read(self, state: _RunState):
        try:
            state.write_attempted = True
            state.connection.set(state.key, self.test_value)
            value = state.connection.get(state.key)
            if value != self.test_value:
                raise CommandError(f"Read back {value!r} from {state.key}, expected {self.test_value!r}")
            return value, value
        finally:
            self._settle_write(state)

    def _settle_write(self, state: _RunState):
        """Finish a write_read call; clean up after it if the step already timed out"""
        with state.lock:
            state.write_pending = False
            if not state.write_abandoned:
                return
            # cleanup may already have run, so a late SET would otherwise survive
            try:
                deleted = state.connection.delete(state.key)
                logger.info("Deleted %s after late write (%d key(s))", state.key, deleted)
            except ProbeError as e:
                logger.warning("Could not delete %s after late write: %s", state.key, e)
            if state.close_deferred:
                state.connection.close()

    def _cleanup(self, state: _RunState):
        if not state.write_attempted:
            return "no test key written", 0
        deleted = state.connection.delete(state.key)
        return f"deleted {state.key} ({deleted} key{'s' if deleted != 1 else ''})", deleted
