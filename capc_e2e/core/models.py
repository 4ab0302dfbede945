"""Data model for negative-outcome scenarios."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from capc_e2e.constants import ScenarioState

if TYPE_CHECKING:
    from capc_e2e.core.config import E2EConfig
    from capc_e2e.exceptions import CleanupError
    from capc_e2e.kube.interfaces import ClusterProxy, WatchHandle


@dataclass(frozen=True)
class Found:
    """The signature was observed.

    Attributes
    ----------
    evidence : str
        Path of the file that contained the signature
    """

    evidence: str

    @property
    def terminal(self) -> bool:
        return True

    def describe(self) -> str:
        return f"Found({self.evidence})"


@dataclass(frozen=True)
class NotFound:
    """The signature has not been observed (yet)."""

    @property
    def terminal(self) -> bool:
        return False

    def describe(self) -> str:
        return "NotFound"


@dataclass(frozen=True)
class Error:
    """The probe itself failed.

    Attributes
    ----------
    cause : str
        Description of the failure
    """

    cause: str

    @property
    def terminal(self) -> bool:
        return True

    def describe(self) -> str:
        return f"Error({self.cause})"


@dataclass(frozen=True)
class Cancelled:
    """Polling was cancelled from outside before reaching a result."""

    reason: str = "cancelled"

    @property
    def terminal(self) -> bool:
        return True

    def describe(self) -> str:
        return f"Cancelled({self.reason})"


PollResult = Union[Found, NotFound, Error, Cancelled]


@dataclass(frozen=True)
class ExpectedSignature:
    """Log substring expected when the invalid request is rejected.

    Attributes
    ----------
    prefix : str
        Fixed message prefix emitted by the controller
    value : str
        Value looked up from the E2E config variables
    """

    prefix: str
    value: str

    @property
    def text(self) -> str:
        return self.prefix + self.value

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class PollBudget:
    """Deadline budget for one named scenario.

    Attributes
    ----------
    scenario_name : str
        Scenario whose entry was selected from the interval table
    deadline : float
        Total wait budget in seconds
    interval : float
        Tick spacing in seconds
    """

    scenario_name: str
    deadline: float
    interval: float


@dataclass(frozen=True)
class ScenarioInput:
    """Immutable configuration for one scenario run.

    Attributes
    ----------
    e2e_config : E2EConfig
        Loaded E2E configuration (variables and interval table)
    clusterctl_config_path : Path
        clusterctl configuration file; must exist
    bootstrap_cluster_proxy : ClusterProxy
        Management cluster hosting the test
    artifact_folder : Path
        Directory for logs and dumps; created if absent
    skip_cleanup : bool
        Keep namespace and cluster for post-mortem debugging
    flavor : str | None
        Optional template flavor. Catalogued scenarios pin their flavor
        (``invalid-worker-offering`` for the worker offering check); a value
        here replaces it, e.g. to run a check against a variant template
    """

    e2e_config: E2EConfig | None
    clusterctl_config_path: Path | None
    bootstrap_cluster_proxy: ClusterProxy | None
    artifact_folder: Path
    skip_cleanup: bool = False
    flavor: str | None = None


@dataclass
class ScenarioResources:
    """Handles created by one scenario and released at teardown."""

    namespace: str | None = None
    watch: WatchHandle | None = None
    log_stream: WatchHandle | None = None
    cluster: dict[str, Any] | None = None


@dataclass
class ScenarioOutcome:
    """Final report of a scenario run.

    Attributes
    ----------
    scenario_name : str
        Name of the scenario
    state : ScenarioState
        Terminal state reached
    signature : str
        Expected signature text
    last_result : PollResult | None
        Last poll result, None if polling never started
    elapsed_seconds : float
        Wall time spent polling
    cleanup_errors : list[CleanupError]
        Errors collected during best-effort teardown
    cleaned_up : bool
        Whether teardown has run
    """

    scenario_name: str
    state: ScenarioState
    signature: str = ""
    last_result: PollResult | None = None
    elapsed_seconds: float = 0.0
    cleanup_errors: list[CleanupError] = field(default_factory=list)
    cleaned_up: bool = False

    @property
    def succeeded(self) -> bool:
        return isinstance(self.last_result, Found)
