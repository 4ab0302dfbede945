"""Management cluster collaborators."""

from capc_e2e.kube.clusterctl import ClusterctlTemplateRenderer
from capc_e2e.kube.interfaces import (
    ClusterProxy,
    ConfigClusterInput,
    TemplateRenderer,
    WatchHandle,
)
from capc_e2e.kube.kubectl import EventWatch, KubectlClusterProxy, WatchGroup

__all__ = [
    "ClusterProxy",
    "ClusterctlTemplateRenderer",
    "ConfigClusterInput",
    "EventWatch",
    "KubectlClusterProxy",
    "TemplateRenderer",
    "WatchGroup",
    "WatchHandle",
]
