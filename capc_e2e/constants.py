"""Global constants for the capc-e2e harness.

This module contains constants shared by the scenario controller, the log
signature matcher and the collaborator implementations.
"""

from enum import Enum

KUBERNETES_VERSION = "KUBERNETES_VERSION"
"""E2E config variable holding the Kubernetes version for workload clusters."""

INVALID_WORKER_OFFERING_NAME = "InvalidWorkerOfferingName"
"""E2E config variable naming a worker offering that does not exist."""

INVALID_CP_OFFERING_NAME = "InvalidCPOfferingName"
"""E2E config variable naming a control-plane offering that does not exist."""

INVALID_TEMPLATE_NAME = "InvalidTemplateName"
"""E2E config variable naming a machine template that does not exist."""

INVALID_DISK_OFFERING_NAME = "InvalidDiskOfferingName"
"""E2E config variable naming a disk offering that does not exist."""

NO_MATCH_FOUND_PREFIX = "No match found for "
"""Prefix the infrastructure controller logs when a named resource is missing."""

WAIT_ERRORS_KEY = "wait-errors"
"""Interval table key used by negative scenarios waiting for a log signature."""

WAIT_DELETE_CLUSTER_KEY = "wait-delete-cluster"
"""Interval table key bounding the wait for a workload cluster to be deleted."""

DEFAULT_INTERVALS_SCOPE = "default"
"""Interval table scope consulted when no spec-specific entry exists."""

CONTROLLER_COMPONENT_MARKER = "capc-controller-manager"
"""Path component identifying logs of the infrastructure controller."""

MANAGER_LOG_MARKER = "manager.log"
"""File name marker of the controller-manager log."""

CONTROLLER_LOGS_DIR = "controllers"
"""Folder below the management cluster log folder receiving streamed controller logs."""

CONTROLLER_CONTAINER_NAME = "manager"
"""Container of the controller-manager pod whose output is streamed."""

SCAN_CHUNK_BYTES = 1024 * 1024
"""Bytes read per chunk when searching a log file for a signature.

Cancellation is checked between chunks, so a large log cannot hold up a
cancelled scan for longer than one chunk read.
"""

DEFAULT_INFRASTRUCTURE_PROVIDER = "cloudstack"
"""Infrastructure provider passed to the template renderer."""

CONTROL_PLANE_MACHINE_COUNT = 1
"""Control-plane replicas requested by negative scenarios."""

WORKER_MACHINE_COUNT = 1
"""Worker replicas requested by negative scenarios."""

RANDOM_SUFFIX_LENGTH = 6
"""Length of the random suffix appended to namespace and cluster names.

Six lowercase alphanumerics keep names unique across parallel scenario runs
sharing one management cluster.
"""

ARTIFACT_DIR_MODE = 0o750
"""Permission bits used when creating the artifact folder."""

KUBECTL_TIMEOUT_SECONDS = 120
"""Timeout in seconds for a single kubectl invocation."""

CLUSTERCTL_TIMEOUT_SECONDS = 300
"""Timeout in seconds for rendering a cluster template with clusterctl."""

WATCH_TERMINATE_TIMEOUT_SECONDS = 10
"""Grace period in seconds for an event watch process to exit."""

DUMP_RESOURCE_KINDS = (
    "clusters.cluster.x-k8s.io",
    "machines.cluster.x-k8s.io",
    "machinedeployments.cluster.x-k8s.io",
    "kubeadmcontrolplanes.controlplane.cluster.x-k8s.io",
    "cloudstackclusters.infrastructure.cluster.x-k8s.io",
    "cloudstackmachines.infrastructure.cluster.x-k8s.io",
    "events",
)
"""Resource kinds dumped from the scenario namespace before teardown."""

EXIT_SUCCESS = 0
"""Exit code indicating the scenario observed its expected signature."""

EXIT_ERROR = 1
"""Exit code indicating a scenario failure or a submission error."""

EXIT_CONFIG_ERROR = 2
"""Exit code indicating a setup or configuration error.

The scenario never started; nothing was submitted to the management cluster.
"""

EXIT_CANCELLED = 130
"""Exit code used when the run was cancelled by SIGINT."""


class ScenarioState(str, Enum):
    """Scenario controller states."""

    INIT = "init"
    CONFIGURED = "configured"
    ACTION_SUBMITTED = "action_submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLEANED_UP = "cleaned_up"
