"""Collaborator protocols consumed by the scenario controller."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol


class WatchHandle(Protocol):
    """Cancellable background stream of namespace events or controller logs."""

    def cancel(self) -> None:
        ...


class ClusterProxy(Protocol):
    """Management cluster hosting the scenario."""

    @property
    def name(self) -> str:
        ...

    @property
    def kubeconfig_path(self) -> str:
        ...

    def apply(self, template: str) -> None:
        ...

    def get_cluster_by_name(self, name: str, namespace: str) -> dict[str, Any]:
        ...

    def create_namespace(self, namespace: str) -> None:
        ...

    def delete_namespace(self, namespace: str) -> None:
        ...

    def delete_cluster(self, name: str, namespace: str) -> None:
        """Request deletion of a workload cluster without waiting for it."""
        ...

    def cluster_exists(self, name: str, namespace: str) -> bool:
        ...

    def watch_namespace_events(self, namespace: str, log_path: Path) -> WatchHandle:
        ...

    def watch_controller_logs(self, log_folder: Path) -> WatchHandle:
        """Stream infrastructure controller-manager logs below log_folder.

        Each controller pod is written to
        ``<log_folder>/controllers/capc-controller-manager/<pod>/manager.log``.
        """
        ...

    def dump_resources(self, namespace: str, target_dir: Path) -> None:
        ...


@dataclass(frozen=True)
class ConfigClusterInput:
    """Variables used to render a workload cluster template.

    Attributes
    ----------
    kubeconfig_path : str
        Kubeconfig of the management cluster
    clusterctl_config_path : str
        clusterctl configuration pointing at the provider repository
    flavor : str
        Template flavor selecting the scenario's cluster template
    namespace : str
        Target namespace
    cluster_name : str
        Workload cluster name
    kubernetes_version : str
        Kubernetes version of the workload cluster
    control_plane_machine_count : int
        Control-plane replicas
    worker_machine_count : int
        Worker replicas
    infrastructure_provider : str
        Infrastructure provider name
    log_folder : Path
        Folder receiving clusterctl output and the rendered template
    """

    kubeconfig_path: str
    clusterctl_config_path: str
    flavor: str
    namespace: str
    cluster_name: str
    kubernetes_version: str
    control_plane_machine_count: int
    worker_machine_count: int
    infrastructure_provider: str
    log_folder: Path


class TemplateRenderer(Protocol):
    """Renders a cluster template for a flavor and variable set."""

    def render(self, config: ConfigClusterInput) -> str:
        ...
