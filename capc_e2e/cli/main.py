"""CLI entry point for capc-e2e."""

from __future__ import annotations

import logging
import os
import signal
import sys
import types
from collections.abc import Callable
from pathlib import Path
from typing import Any

import fire

from capc_e2e.constants import (
    EXIT_CANCELLED,
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    KUBERNETES_VERSION,
)
from capc_e2e.core.catalogue import CATALOGUE, get_scenario_spec
from capc_e2e.core.config import E2EConfigLoader
from capc_e2e.core.models import ScenarioInput
from capc_e2e.core.scenario import NegativeScenario
from capc_e2e.exceptions import (
    E2EError,
    PollCancelledError,
    ScenarioFailedError,
    SetupError,
    SubmissionError,
)
from capc_e2e.kube.clusterctl import ClusterctlTemplateRenderer
from capc_e2e.kube.interfaces import ClusterProxy, TemplateRenderer
from capc_e2e.kube.kubectl import KubectlClusterProxy
from capc_e2e.logging import StreamFormatter, StreamRoutingFilter
from capc_e2e.utils import log_and_print_error

logger = logging.getLogger(__name__)


class CapcE2ECLI:
    """Run negative-outcome scenarios against a management cluster.

    Parameters
    ----------
    proxy_factory : Callable[[str, str], ClusterProxy] | None
        Builds the management cluster proxy from (name, kubeconfig path)
    renderer_factory : Callable[[], TemplateRenderer] | None
        Builds the cluster template renderer
    config_loader : E2EConfigLoader | None
        Loader for the E2E configuration
    """

    def __init__(
        self,
        proxy_factory: Callable[[str, str], ClusterProxy] | None = None,
        renderer_factory: Callable[[], TemplateRenderer] | None = None,
        config_loader: E2EConfigLoader | None = None,
    ) -> None:
        self._proxy_factory = proxy_factory or KubectlClusterProxy
        self._renderer_factory = renderer_factory or ClusterctlTemplateRenderer
        self._config_loader = config_loader or E2EConfigLoader()

    def list(self) -> list[str]:
        """List catalogued scenarios."""
        return [f"{name}: {spec.description}" for name, spec in sorted(CATALOGUE.items())]

    def check_config(self, spec_name: str, config: str | None = None) -> dict[str, Any]:
        """Validate that the E2E config supports a scenario.

        Parameters
        ----------
        spec_name : str
            Catalogued scenario name
        config : str | None
            E2E config path (default: CAPC_E2E_CONFIG)

        Returns
        -------
        dict[str, Any]
            Resolved signature and wait budget
        """
        spec = get_scenario_spec(spec_name)
        e2e_config = self._config_loader.load(config)
        budget = e2e_config.get_intervals(spec.spec_name, spec.wait_key)

        return {
            "scenario": spec.spec_name,
            "kubernetes_version": e2e_config.get_variable(KUBERNETES_VERSION),
            "signature": spec.signature_prefix + e2e_config.get_variable(spec.signature_variable),
            "deadline_seconds": budget.deadline,
            "interval_seconds": budget.interval,
        }

    def run(
        self,
        spec_name: str,
        config: str | None = None,
        clusterctl_config: str | None = None,
        kubeconfig: str | None = None,
        artifacts: str | None = None,
        proxy_name: str = "bootstrap",
        skip_cleanup: bool = False,
        flavor: str | None = None,
    ) -> dict[str, Any]:
        """Run one scenario with guaranteed cleanup.

        Parameters
        ----------
        spec_name : str
            Catalogued scenario name
        config : str | None
            E2E config path (default: CAPC_E2E_CONFIG)
        clusterctl_config : str | None
            clusterctl config path (default: CAPC_E2E_CLUSTERCTL_CONFIG)
        kubeconfig : str | None
            Management cluster kubeconfig (default: KUBECONFIG)
        artifacts : str | None
            Artifact folder (default: CAPC_E2E_ARTIFACTS or ./_artifacts)
        proxy_name : str
            Name of the management cluster, used in the log folder layout
        skip_cleanup : bool
            Keep namespace and cluster after the run
        flavor : str | None
            Template flavor override

        Returns
        -------
        dict[str, Any]
            Scenario outcome summary
        """
        spec = get_scenario_spec(spec_name)
        e2e_config = self._config_loader.load(config)

        clusterctl_config = clusterctl_config or os.environ.get("CAPC_E2E_CLUSTERCTL_CONFIG")
        kubeconfig = kubeconfig or os.environ.get("KUBECONFIG")
        if not kubeconfig:
            raise SetupError("No kubeconfig given and KUBECONFIG is not set")

        artifact_folder = Path(
            artifacts or os.environ.get("CAPC_E2E_ARTIFACTS", "_artifacts")
        )
        skip_cleanup = skip_cleanup or os.environ.get("CAPC_E2E_SKIP_CLEANUP") == "1"

        scenario = NegativeScenario(
            spec=spec,
            scenario_input=ScenarioInput(
                e2e_config=e2e_config,
                clusterctl_config_path=Path(clusterctl_config) if clusterctl_config else None,
                bootstrap_cluster_proxy=self._proxy_factory(proxy_name, kubeconfig),
                artifact_folder=artifact_folder,
                skip_cleanup=skip_cleanup,
                flavor=flavor,
            ),
            renderer=self._renderer_factory(),
        )

        def cancel_handler(signum: int, frame: types.FrameType | None) -> None:
            scenario.cancel()

        previous = {
            sig: signal.signal(sig, cancel_handler) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            outcome = scenario.run()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return {
            "scenario": outcome.scenario_name,
            "state": outcome.state.value,
            "signature": outcome.signature,
            "evidence": outcome.last_result.describe() if outcome.last_result else None,
            "elapsed_seconds": round(outcome.elapsed_seconds, 2),
            "cleanup_errors": [str(e) for e in outcome.cleanup_errors],
        }


def handle_scenario_failure(error: ScenarioFailedError, debug_mode: bool) -> None:
    """Report a scenario that never observed its signature.

    Parameters
    ----------
    error : ScenarioFailedError
        The scenario failure
    debug_mode : bool
        Whether debug mode is enabled

    Raises
    ------
    ScenarioFailedError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Scenario failed: {error.scenario_name}\n", file=sys.stderr)
    print(f"  Expected signature: {error.signature!r}", file=sys.stderr)
    print(f"  Last poll state:    {error.last_result.describe()}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def handle_setup_error(error: SetupError, debug_mode: bool) -> None:
    """Report an invalid setup; nothing was submitted.

    Raises
    ------
    SetupError
        Re-raised if debug mode is enabled
    """
    if debug_mode:
        raise

    print(f"Configuration error: {error}", file=sys.stderr)
    sys.exit(EXIT_CONFIG_ERROR)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Fire maps CapcE2ECLI methods to commands (``run``, ``list``,
    ``check_config``). Failures are mapped to exit codes: 1 for scenario
    and submission failures, 2 for setup errors, 130 for cancellation.
    """
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(StreamFormatter("%(asctime)s %(message)s"))
    stdout_handler.addFilter(StreamRoutingFilter("stdout"))

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(StreamFormatter("%(asctime)s %(levelname)s %(message)s"))
    stderr_handler.addFilter(StreamRoutingFilter("stderr"))

    debug_mode = os.environ.get("CAPC_E2E_DEBUG") == "1"

    logging.basicConfig(
        level=logging.DEBUG if debug_mode else logging.INFO,
        handlers=[stdout_handler, stderr_handler],
    )

    try:
        fire.Fire(CapcE2ECLI())
    except ScenarioFailedError as e:
        handle_scenario_failure(e, debug_mode)
    except SetupError as e:
        handle_setup_error(e, debug_mode)
    except SubmissionError as e:
        if debug_mode:
            raise
        log_and_print_error("Submission rejected: %s", e)
        sys.exit(EXIT_ERROR)
    except PollCancelledError as e:
        if debug_mode:
            raise
        log_and_print_error("%s", e)
        sys.exit(EXIT_CANCELLED)
    except E2EError as e:
        if debug_mode:
            raise
        log_and_print_error("Scenario error: %s", e)
        sys.exit(EXIT_ERROR)
