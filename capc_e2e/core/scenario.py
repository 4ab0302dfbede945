"""Negative-outcome scenario controller.

A scenario submits a cluster template that the infrastructure provider must
reject, then waits for the rejection to show up in the controller-manager
logs. Observing the signature is success; the deadline passing without it
is failure. Teardown runs exactly once on every path.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from capc_e2e.constants import (
    ARTIFACT_DIR_MODE,
    CONTROL_PLANE_MACHINE_COUNT,
    DEFAULT_INFRASTRUCTURE_PROVIDER,
    KUBERNETES_VERSION,
    WAIT_DELETE_CLUSTER_KEY,
    WORKER_MACHINE_COUNT,
    ScenarioState,
)
from capc_e2e.core.catalogue import NegativeScenarioSpec
from capc_e2e.core.cleanup import CleanupGuarantor
from capc_e2e.core.diagnostics import DiagnosticsCollector
from capc_e2e.core.matcher import LogSignatureProbe
from capc_e2e.core.models import (
    Cancelled,
    Error,
    ExpectedSignature,
    Found,
    PollBudget,
    PollResult,
    ScenarioInput,
    ScenarioOutcome,
    ScenarioResources,
)
from capc_e2e.core.poller import DeadlinePoller
from capc_e2e.exceptions import (
    E2EError,
    PollCancelledError,
    PollTimeoutError,
    ScanError,
    SetupError,
    SubmissionError,
)
from capc_e2e.kube.interfaces import ConfigClusterInput, TemplateRenderer
from capc_e2e.utils import unique_name

logger = logging.getLogger(__name__)


@dataclass
class ScenarioContext:
    """Everything one scenario run owns, built at Init and dropped at CleanedUp.

    Attributes
    ----------
    namespace : str
        Namespace hosting the scenario's objects
    cluster_name : str
        Name of the submitted workload cluster
    log_folder : Path
        Root of the management cluster's log tree
    signature : ExpectedSignature | None
        Expected log signature, computed during configuration
    budget : PollBudget | None
        Wait budget, resolved during configuration
    resources : ScenarioResources
        Handles released by the cleanup guarantor
    cancel_event : threading.Event
        Cancellation shared with the poller and the matcher
    """

    namespace: str
    cluster_name: str
    log_folder: Path
    signature: ExpectedSignature | None = None
    budget: PollBudget | None = None
    resources: ScenarioResources = field(default_factory=ScenarioResources)
    cancel_event: threading.Event = field(default_factory=threading.Event)


class NegativeScenario:
    """Runs one negative-outcome scenario through its state machine.

    ``Init -> Configured -> ActionSubmitted -> Polling ->
    {Succeeded | Failed} -> CleanedUp``

    Parameters
    ----------
    spec : NegativeScenarioSpec
        Catalogued scenario to run
    scenario_input : ScenarioInput
        Run configuration
    renderer : TemplateRenderer
        Renders the scenario's cluster template
    name_factory : Callable[[str], str]
        Builds collision-resistant names from a prefix
    """

    def __init__(
        self,
        spec: NegativeScenarioSpec,
        scenario_input: ScenarioInput,
        renderer: TemplateRenderer,
        name_factory: Callable[[str], str] = unique_name,
    ) -> None:
        self.spec = spec
        self.input = scenario_input
        self.renderer = renderer
        self.state = ScenarioState.INIT
        self.poller: DeadlinePoller | None = None
        self.guarantor: CleanupGuarantor | None = None

        proxy_name = (
            scenario_input.bootstrap_cluster_proxy.name
            if scenario_input.bootstrap_cluster_proxy is not None
            else "unknown"
        )
        artifact_folder = Path(scenario_input.artifact_folder)

        self.context = ScenarioContext(
            namespace=name_factory(spec.spec_name),
            cluster_name=name_factory(spec.spec_name),
            log_folder=artifact_folder / "clusters" / proxy_name,
        )
        self.diagnostics = DiagnosticsCollector()
        self.outcome = ScenarioOutcome(scenario_name=spec.spec_name, state=self.state)

    @property
    def name(self) -> str:
        return self.spec.spec_name

    def _transition(self, state: ScenarioState) -> None:
        logger.debug("Scenario '%s': %s -> %s", self.name, self.state.value, state.value)
        self.diagnostics.record("state", state.value, {"from": self.state.value})
        self.state = state
        if state == ScenarioState.CLEANED_UP:
            self.outcome.cleaned_up = True
        else:
            self.outcome.state = state

    def _step(self, description: str) -> None:
        logger.info(description, extra={"scenario": self.name})

    def _validate_input(self) -> None:
        scenario_input = self.input

        if scenario_input.e2e_config is None:
            raise SetupError(
                f"Invalid argument. e2e_config can't be None when calling {self.name} spec"
            )

        config_path = scenario_input.clusterctl_config_path
        if config_path is None or not Path(config_path).is_file():
            raise SetupError(
                "Invalid argument. clusterctl_config_path must be an existing file "
                f"when calling {self.name} spec"
            )

        if scenario_input.bootstrap_cluster_proxy is None:
            raise SetupError(
                "Invalid argument. bootstrap_cluster_proxy can't be None "
                f"when calling {self.name} spec"
            )

        try:
            Path(scenario_input.artifact_folder).mkdir(
                mode=ARTIFACT_DIR_MODE, parents=True, exist_ok=True
            )
        except OSError as e:
            raise SetupError(
                f"Invalid argument. artifact_folder can't be created for {self.name} spec: {e}"
            ) from e

    def configure(self) -> None:
        """Validate input and set up the scenario namespace (Init -> Configured).

        Raises
        ------
        SetupError
            If the input, configuration or namespace setup is invalid
        """
        self._validate_input()

        config = self.input.e2e_config
        proxy = self.input.bootstrap_cluster_proxy
        artifact_folder = Path(self.input.artifact_folder)

        if not config.has_variable(KUBERNETES_VERSION):
            raise SetupError(f"E2E config must define variable {KUBERNETES_VERSION}")

        self.context.signature = ExpectedSignature(
            prefix=self.spec.signature_prefix,
            value=config.get_variable(self.spec.signature_variable),
        )
        self.context.budget = config.get_intervals(self.name, self.spec.wait_key)
        delete_budget = None
        if config.has_intervals(self.name, WAIT_DELETE_CLUSTER_KEY):
            delete_budget = config.get_intervals(self.name, WAIT_DELETE_CLUSTER_KEY)
        else:
            logger.warning(
                "No '%s' intervals configured; cluster deletion will not be awaited",
                WAIT_DELETE_CLUSTER_KEY,
            )
        self.outcome.signature = self.context.signature.text

        self.diagnostics.set_log_path(
            artifact_folder / "diagnostics" / f"{self.context.namespace}.log"
        )
        self.guarantor = CleanupGuarantor(
            proxy=proxy,
            dump_folder=self.context.log_folder / "resources",
            skip_cleanup=self.input.skip_cleanup,
            diagnostics=self.diagnostics,
            delete_budget=delete_budget,
        )

        namespace = self.context.namespace
        self._step(f"Creating namespace {namespace}")
        try:
            proxy.create_namespace(namespace)
        except (E2EError, OSError) as e:
            raise SetupError(f"Failed to create namespace {namespace}: {e}") from e
        self.context.resources.namespace = namespace

        self._step("Collecting namespace events and controller logs")
        try:
            self.context.resources.watch = proxy.watch_namespace_events(
                namespace, self.context.log_folder / namespace / "events.log"
            )
            self.context.resources.log_stream = proxy.watch_controller_logs(
                self.context.log_folder
            )
        except SetupError:
            raise
        except (E2EError, OSError) as e:
            raise SetupError(f"Failed to start log collection for {namespace}: {e}") from e

        self._transition(ScenarioState.CONFIGURED)

    def submit(self) -> None:
        """Render and apply the invalid cluster (Configured -> ActionSubmitted).

        The template flavor is the catalogued one unless ScenarioInput.flavor
        is given. Any failure moves the scenario to Failed.

        Raises
        ------
        SubmissionError
            If rendering, applying or fetching the cluster fails, including
            I/O errors while writing submission artifacts
        """
        if self.state != ScenarioState.CONFIGURED:
            raise RuntimeError(f"Cannot submit scenario in state {self.state.value}")

        config = self.input.e2e_config
        proxy = self.input.bootstrap_cluster_proxy

        self._step("Configuring a cluster")
        cluster_input = ConfigClusterInput(
            kubeconfig_path=proxy.kubeconfig_path,
            clusterctl_config_path=str(self.input.clusterctl_config_path),
            flavor=self.input.flavor or self.spec.flavor,
            namespace=self.context.namespace,
            cluster_name=self.context.cluster_name,
            kubernetes_version=config.get_variable(KUBERNETES_VERSION),
            control_plane_machine_count=CONTROL_PLANE_MACHINE_COUNT,
            worker_machine_count=WORKER_MACHINE_COUNT,
            infrastructure_provider=DEFAULT_INFRASTRUCTURE_PROVIDER,
            log_folder=self.context.log_folder,
        )

        try:
            template = self.renderer.render(cluster_input)

            self._step("Applying...")
            proxy.apply(template)

            self.context.resources.cluster = proxy.get_cluster_by_name(
                self.context.cluster_name, self.context.namespace
            )
        except SubmissionError:
            self._transition(ScenarioState.FAILED)
            raise
        except OSError as e:
            self._transition(ScenarioState.FAILED)
            raise SubmissionError(
                f"Failed to submit cluster {self.context.cluster_name}: {e}"
            ) from e
        except Exception:
            self._transition(ScenarioState.FAILED)
            raise

        self._transition(ScenarioState.ACTION_SUBMITTED)

    def wait_for_signature(self) -> PollResult:
        """Poll the logs for the expected signature (-> Succeeded | Failed).

        Returns
        -------
        PollResult
            The ``Found`` result

        Raises
        ------
        PollTimeoutError
            If the deadline elapsed without the signature
        ScanError
            If the log folder could not be walked
        PollCancelledError
            If the run was cancelled while polling
        """
        if self.state != ScenarioState.ACTION_SUBMITTED:
            raise RuntimeError(f"Cannot poll scenario in state {self.state.value}")

        signature = self.context.signature.text
        probe = LogSignatureProbe(
            log_folder=self.context.log_folder,
            signature=signature,
            cancel_event=self.context.cancel_event,
        )
        self.poller = DeadlinePoller(self.context.budget, cancel_event=self.context.cancel_event)

        self._transition(ScenarioState.POLLING)
        self._step(f"Waiting for {signature!r} to occur")

        result = self.poller.run(probe)
        self.outcome.last_result = result
        self.outcome.elapsed_seconds = self.poller.elapsed_seconds
        self.diagnostics.record(
            "poll-result",
            result.describe(),
            {"ticks": self.poller.ticks, "elapsed": self.poller.elapsed_seconds},
        )

        if isinstance(result, Found):
            self._step(f"Found {signature!r} in {result.evidence}")
            self._transition(ScenarioState.SUCCEEDED)
            return result

        self._transition(ScenarioState.FAILED)

        if isinstance(result, Cancelled):
            raise PollCancelledError(self.name, result.reason)
        if isinstance(result, Error):
            raise ScanError(self.name, signature, result)
        raise PollTimeoutError(self.name, signature, result)

    def cancel(self) -> None:
        """Cancel a running scenario; polling stops within one tick."""
        logger.info("Cancelling scenario '%s'", self.name)
        self.context.cancel_event.set()

    def cleanup(self) -> None:
        """Release scenario resources (-> CleanedUp). Runs at most once."""
        if self.state == ScenarioState.CLEANED_UP:
            return

        if self.guarantor is not None:
            self._step("Dumping resources and cleaning up")
            self.outcome.cleanup_errors = list(self.guarantor.release(self.context.resources))

        self._transition(ScenarioState.CLEANED_UP)

    def run(self) -> ScenarioOutcome:
        """Run the full scenario with guaranteed cleanup.

        Returns
        -------
        ScenarioOutcome
            Outcome of a successful run

        Raises
        ------
        SetupError, SubmissionError, ScenarioFailedError, PollCancelledError
            The scenario's primary failure, raised after cleanup
        """
        start = time.monotonic()
        logger.info("Running scenario '%s': %s", self.name, self.spec.description)
        try:
            self.configure()
            self.submit()
            self.wait_for_signature()
        finally:
            self.cleanup()
            logger.info(
                "Scenario '%s' finished in %.2fs (last poll state: %s)",
                self.name,
                time.monotonic() - start,
                self.outcome.last_result.describe() if self.outcome.last_result else "none",
            )

        self._step("PASSED!")
        return self.outcome
