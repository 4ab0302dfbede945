"""Management cluster access through the kubectl binary."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import IO, Any

from capc_e2e.constants import (
    CONTROLLER_COMPONENT_MARKER,
    CONTROLLER_CONTAINER_NAME,
    CONTROLLER_LOGS_DIR,
    DUMP_RESOURCE_KINDS,
    KUBECTL_TIMEOUT_SECONDS,
    MANAGER_LOG_MARKER,
    WATCH_TERMINATE_TIMEOUT_SECONDS,
)
from capc_e2e.exceptions import SetupError, SubmissionError

logger = logging.getLogger(__name__)


def run_kubectl(
    kubectl: str,
    kubeconfig_path: str,
    args: list[str],
    input_data: str | None = None,
    timeout: float = KUBECTL_TIMEOUT_SECONDS,
) -> subprocess.CompletedProcess:
    """Run kubectl against a kubeconfig and capture its output."""
    cmd = [kubectl, "--kubeconfig", kubeconfig_path] + args
    logger.debug("Running %s", " ".join(cmd))
    return subprocess.run(
        cmd,
        input=input_data,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )


class EventWatch:
    """Background kubectl stream (``get --watch`` or ``logs -f``) writing into a file.

    Parameters
    ----------
    process : subprocess.Popen
        Running kubectl process
    log_file : IO[str]
        File receiving the process output
    """

    def __init__(self, process: subprocess.Popen, log_file: IO[str]) -> None:
        self.process = process
        self.log_file = log_file
        self.cancelled = False

    def cancel(self) -> None:
        """Stop the process and close its log file."""
        if self.cancelled:
            return
        self.cancelled = True

        try:
            if self.process.poll() is None:
                self.process.terminate()
                try:
                    self.process.wait(timeout=WATCH_TERMINATE_TIMEOUT_SECONDS)
                except subprocess.TimeoutExpired:
                    logger.warning("kubectl stream did not exit, killing it")
                    self.process.kill()
                    self.process.wait()
        finally:
            self.log_file.close()


class WatchGroup:
    """Cancels several streams as one handle."""

    def __init__(self, watches: list[EventWatch]) -> None:
        self.watches = watches

    def cancel(self) -> None:
        errors = []
        for watch in self.watches:
            try:
                watch.cancel()
            except Exception as e:
                errors.append(e)
        if errors:
            raise errors[0]


class KubectlClusterProxy:
    """ClusterProxy implementation backed by kubectl.

    Parameters
    ----------
    name : str
        Name of the management cluster; used for the log folder layout
    kubeconfig_path : str
        Kubeconfig granting access to the management cluster
    kubectl : str
        kubectl binary to invoke
    """

    def __init__(self, name: str, kubeconfig_path: str, kubectl: str = "kubectl") -> None:
        if not Path(kubeconfig_path).is_file():
            raise SetupError(f"Kubeconfig not found: {kubeconfig_path}")

        if shutil.which(kubectl) is None:
            raise SetupError(f"kubectl binary not found: {kubectl}")

        self._name = name
        self._kubeconfig_path = kubeconfig_path
        self.kubectl = kubectl

    @property
    def name(self) -> str:
        return self._name

    @property
    def kubeconfig_path(self) -> str:
        return self._kubeconfig_path

    def _run(self, args: list[str], input_data: str | None = None) -> subprocess.CompletedProcess:
        try:
            return run_kubectl(self.kubectl, self._kubeconfig_path, args, input_data=input_data)
        except subprocess.TimeoutExpired as e:
            raise SubmissionError(
                f"kubectl {' '.join(args)} timed out after {e.timeout}s", command=list(e.cmd)
            ) from e
        except OSError as e:
            raise SubmissionError(
                f"Failed to run kubectl {' '.join(args)}: {e}", command=[self.kubectl] + args
            ) from e

    def _check(self, proc: subprocess.CompletedProcess, action: str) -> subprocess.CompletedProcess:
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise SubmissionError(f"Failed to {action}: {stderr}", command=proc.args, stderr=stderr)
        return proc

    def _stream(self, args: list[str], log_path: Path) -> EventWatch:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_file = open(log_path, "a", encoding="utf-8")
        cmd = [self.kubectl, "--kubeconfig", self._kubeconfig_path] + args
        try:
            process = subprocess.Popen(
                cmd, stdout=log_file, stderr=subprocess.STDOUT, text=True
            )
        except OSError:
            log_file.close()
            raise
        return EventWatch(process, log_file)

    def apply(self, template: str) -> None:
        """Apply a rendered multi-document template."""
        proc = self._run(["apply", "-f", "-"], input_data=template)
        self._check(proc, "apply cluster template")
        logger.debug("Applied template: %s", (proc.stdout or "").strip())

    def get_cluster_by_name(self, name: str, namespace: str) -> dict[str, Any]:
        proc = self._run(
            ["get", "clusters.cluster.x-k8s.io", name, "-n", namespace, "-o", "json"]
        )
        self._check(proc, f"get cluster {namespace}/{name}")
        try:
            return json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise SubmissionError(f"Invalid cluster object for {namespace}/{name}: {e}") from e

    def cluster_exists(self, name: str, namespace: str) -> bool:
        proc = self._run(
            [
                "get",
                "clusters.cluster.x-k8s.io",
                name,
                "-n",
                namespace,
                "--ignore-not-found",
                "-o",
                "name",
            ]
        )
        self._check(proc, f"get cluster {namespace}/{name}")
        return bool((proc.stdout or "").strip())

    def create_namespace(self, namespace: str) -> None:
        proc = self._run(["create", "namespace", namespace])
        self._check(proc, f"create namespace {namespace}")
        logger.info("Created namespace %s", namespace)

    def delete_namespace(self, namespace: str) -> None:
        proc = self._run(["delete", "namespace", namespace, "--wait=true", "--ignore-not-found"])
        self._check(proc, f"delete namespace {namespace}")
        logger.info("Deleted namespace %s", namespace)

    def delete_cluster(self, name: str, namespace: str) -> None:
        """Request cluster deletion; callers wait with cluster_exists()."""
        proc = self._run(
            [
                "delete",
                "clusters.cluster.x-k8s.io",
                name,
                "-n",
                namespace,
                "--wait=false",
                "--ignore-not-found",
            ]
        )
        self._check(proc, f"delete cluster {namespace}/{name}")
        logger.info("Requested deletion of cluster %s/%s", namespace, name)

    def watch_namespace_events(self, namespace: str, log_path: Path) -> EventWatch:
        """Start streaming namespace events into log_path."""
        watch = self._stream(["get", "events", "-n", namespace, "--watch"], log_path)
        logger.debug("Watching events of namespace %s into %s", namespace, log_path)
        return watch

    def list_controller_pods(self) -> list[tuple[str, str]]:
        """List (namespace, name) of running infrastructure controller pods."""
        proc = self._run(["get", "pods", "--all-namespaces", "-o", "json"])
        self._check(proc, "list controller pods")
        try:
            items = json.loads(proc.stdout).get("items", [])
        except json.JSONDecodeError as e:
            raise SubmissionError(f"Invalid pod list: {e}") from e

        pods = []
        for item in items:
            metadata = item.get("metadata", {})
            pod_name = metadata.get("name", "")
            if CONTROLLER_COMPONENT_MARKER in pod_name:
                pods.append((metadata.get("namespace", ""), pod_name))
        return pods

    def watch_controller_logs(self, log_folder: Path) -> WatchGroup:
        """Follow the manager container of every capc-controller-manager pod.

        Raises
        ------
        SetupError
            If no controller pod runs on the management cluster
        """
        pods = self.list_controller_pods()
        if not pods:
            raise SetupError(
                f"No {CONTROLLER_COMPONENT_MARKER} pods found on management cluster {self._name}"
            )

        watches: list[EventWatch] = []
        try:
            for pod_namespace, pod_name in pods:
                log_path = (
                    Path(log_folder)
                    / CONTROLLER_LOGS_DIR
                    / CONTROLLER_COMPONENT_MARKER
                    / pod_name
                    / MANAGER_LOG_MARKER
                )
                watches.append(
                    self._stream(
                        [
                            "logs",
                            "-f",
                            "-n",
                            pod_namespace,
                            pod_name,
                            "-c",
                            CONTROLLER_CONTAINER_NAME,
                        ],
                        log_path,
                    )
                )
                logger.debug("Streaming logs of %s/%s into %s", pod_namespace, pod_name, log_path)
        except OSError:
            WatchGroup(watches).cancel()
            raise

        logger.info("Streaming logs of %d controller pod(s)", len(watches))
        return WatchGroup(watches)

    def dump_resources(self, namespace: str, target_dir: Path) -> None:
        """Write YAML dumps of the scenario's resource kinds into target_dir.

        Kinds that cannot be listed are logged and skipped; a dump is a
        diagnostic snapshot.
        """
        target_dir.mkdir(parents=True, exist_ok=True)
        for kind in DUMP_RESOURCE_KINDS:
            proc = self._run(["get", kind, "-n", namespace, "-o", "yaml"])
            if proc.returncode != 0:
                logger.debug(
                    "Skipping dump of %s in %s: %s", kind, namespace, (proc.stderr or "").strip()
                )
                continue
            (target_dir / f"{kind}.yaml").write_text(proc.stdout, encoding="utf-8")
        logger.info("Dumped resources of namespace %s to %s", namespace, target_dir)
