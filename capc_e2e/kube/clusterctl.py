"""Cluster template rendering through the clusterctl binary."""

import logging
import shutil
import subprocess

from capc_e2e.constants import CLUSTERCTL_TIMEOUT_SECONDS
from capc_e2e.exceptions import SetupError, SubmissionError
from capc_e2e.kube.interfaces import ConfigClusterInput

logger = logging.getLogger(__name__)


def build_generate_command(clusterctl: str, config: ConfigClusterInput) -> list[str]:
    """Build the ``clusterctl generate cluster`` command line for config."""
    return [
        clusterctl,
        "generate",
        "cluster",
        config.cluster_name,
        "--kubeconfig",
        config.kubeconfig_path,
        "--config",
        config.clusterctl_config_path,
        "--infrastructure",
        config.infrastructure_provider,
        "--flavor",
        config.flavor,
        "--target-namespace",
        config.namespace,
        "--kubernetes-version",
        config.kubernetes_version,
        "--control-plane-machine-count",
        str(config.control_plane_machine_count),
        "--worker-machine-count",
        str(config.worker_machine_count),
    ]


class ClusterctlTemplateRenderer:
    """TemplateRenderer backed by ``clusterctl generate cluster``.

    The rendered template and the clusterctl output are written to the
    config's log folder.

    Parameters
    ----------
    clusterctl : str
        clusterctl binary to invoke
    """

    def __init__(self, clusterctl: str = "clusterctl") -> None:
        if shutil.which(clusterctl) is None:
            raise SetupError(f"clusterctl binary not found: {clusterctl}")
        self.clusterctl = clusterctl

    def render(self, config: ConfigClusterInput) -> str:
        cmd = build_generate_command(self.clusterctl, config)
        logger.info(
            "Rendering cluster template flavor=%s cluster=%s namespace=%s",
            config.flavor,
            config.cluster_name,
            config.namespace,
        )

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=CLUSTERCTL_TIMEOUT_SECONDS,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise SubmissionError(
                f"clusterctl generate cluster timed out after {e.timeout}s", command=cmd
            ) from e
        except OSError as e:
            raise SubmissionError(f"Failed to run clusterctl: {e}", command=cmd) from e

        config.log_folder.mkdir(parents=True, exist_ok=True)
        (config.log_folder / "clusterctl-config-cluster.log").write_text(
            proc.stderr or "", encoding="utf-8"
        )

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            raise SubmissionError(
                f"Failed to render cluster template: {stderr}", command=cmd, stderr=stderr
            )

        if not proc.stdout.strip():
            raise SubmissionError(
                f"clusterctl returned an empty template for flavor {config.flavor}",
                command=cmd,
            )

        template_path = config.log_folder / f"{config.cluster_name}.yaml"
        template_path.write_text(proc.stdout, encoding="utf-8")
        logger.debug("Rendered template written to %s", template_path)
        return proc.stdout
