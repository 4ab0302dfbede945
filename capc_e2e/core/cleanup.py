"""Guaranteed teardown of scenario resources."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from capc_e2e.core.diagnostics import DiagnosticsCollector
from capc_e2e.core.models import Found, NotFound, PollBudget, PollResult, ScenarioResources
from capc_e2e.core.poller import poll_until
from capc_e2e.exceptions import CleanupError, E2EError
from capc_e2e.kube.interfaces import ClusterProxy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterDeletedProbe:
    """Probe reporting Found once a workload cluster is gone.

    Lookup failures count as not deleted yet, so a transient API error does
    not end the wait early.
    """

    proxy: ClusterProxy
    name: str
    namespace: str

    def poll(self) -> PollResult:
        try:
            if not self.proxy.cluster_exists(self.name, self.namespace):
                return Found(f"{self.namespace}/{self.name}")
        except E2EError as e:
            logger.debug("Cluster %s/%s lookup failed: %s", self.namespace, self.name, e)
        return NotFound()


class CleanupGuarantor:
    """Releases a scenario's namespace, log streams and cluster exactly once.

    Teardown order: cancel the event watch and the controller log stream,
    dump namespace resources (best-effort), delete the cluster and wait for
    it to disappear, delete the namespace. Deletion is skipped when
    ``skip_cleanup`` is set; the streams are cancelled regardless. Step
    failures are logged and collected as ``CleanupError`` and never raised.

    Parameters
    ----------
    proxy : ClusterProxy
        Management cluster owning the resources
    dump_folder : Path
        Directory receiving per-namespace resource dumps
    skip_cleanup : bool
        Keep namespace and cluster for post-mortem debugging
    diagnostics : DiagnosticsCollector | None
        Optional collector receiving one event per teardown step
    delete_budget : PollBudget | None
        Wait budget for cluster deletion; None only requests the deletion
    """

    def __init__(
        self,
        proxy: ClusterProxy,
        dump_folder: Path,
        skip_cleanup: bool = False,
        diagnostics: DiagnosticsCollector | None = None,
        delete_budget: PollBudget | None = None,
    ) -> None:
        self.proxy = proxy
        self.dump_folder = Path(dump_folder)
        self.skip_cleanup = skip_cleanup
        self.diagnostics = diagnostics
        self.delete_budget = delete_budget
        self.errors: list[CleanupError] = []
        self.release_count = 0
        self._lock = threading.Lock()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def _step(self, name: str, action: Callable[[], None]) -> None:
        try:
            action()
        except Exception as e:
            error = CleanupError(name, e)
            self.errors.append(error)
            logger.warning(str(error))
            if self.diagnostics is not None:
                self.diagnostics.record("cleanup", name, {"status": "failed", "error": str(e)})
            return

        logger.debug("Cleanup step '%s' completed", name)
        if self.diagnostics is not None:
            self.diagnostics.record("cleanup", name, {"status": "completed"})

    def _delete_cluster(self, name: str, namespace: str) -> None:
        self.proxy.delete_cluster(name, namespace)

        if self.delete_budget is None:
            return

        budget = self.delete_budget
        logger.info(
            "Waiting up to %.0fs for cluster %s/%s to be deleted", budget.deadline, namespace, name
        )
        result = poll_until(
            ClusterDeletedProbe(self.proxy, name, namespace),
            interval=budget.interval,
            deadline=budget.deadline,
        )
        if not isinstance(result, Found):
            raise E2EError(
                f"Cluster {namespace}/{name} still present after {budget.deadline:.0f}s"
            )

    def release(self, resources: ScenarioResources) -> list[CleanupError]:
        """Tear down resources; later calls are no-ops.

        Takes ownership of the handles: each handle is cleared from
        ``resources`` once its step ran.

        Parameters
        ----------
        resources : ScenarioResources
            Handles created by the scenario

        Returns
        -------
        list[CleanupError]
            Errors collected during teardown
        """
        with self._lock:
            if self._released:
                logger.debug("Cleanup already performed, skipping")
                return self.errors
            self._released = True

        self.release_count += 1

        watch, resources.watch = resources.watch, None
        log_stream, resources.log_stream = resources.log_stream, None
        namespace = resources.namespace
        cluster, resources.cluster = resources.cluster, None

        if watch is not None:
            self._step("cancel-watch", watch.cancel)

        if log_stream is not None:
            self._step("cancel-log-stream", log_stream.cancel)

        if namespace is not None:
            self._step(
                "dump-resources",
                lambda: self.proxy.dump_resources(namespace, self.dump_folder / namespace),
            )

        if self.skip_cleanup:
            logger.info("Skipping deletion of namespace %s (skip cleanup set)", namespace)
            return self.errors

        if cluster is not None and namespace is not None:
            cluster_name = cluster.get("metadata", {}).get("name")
            if cluster_name:
                self._step(
                    "delete-cluster",
                    lambda: self._delete_cluster(cluster_name, namespace),
                )

        if namespace is not None:
            self._step("delete-namespace", lambda: self.proxy.delete_namespace(namespace))
            resources.namespace = None

        if self.errors:
            logger.warning(
                f"Cleanup completed with {len(self.errors)} errors: "
                f"{'; '.join(str(e) for e in self.errors)}"
            )

        return self.errors

    @contextmanager
    def guard(self, resources: ScenarioResources) -> Iterator[ScenarioResources]:
        """Yield resources and release them on every exit path."""
        try:
            yield resources
        finally:
            self.release(resources)
