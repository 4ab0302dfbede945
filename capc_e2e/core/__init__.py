"""Core harness components: matcher, poller, scenario controller and cleanup."""

from capc_e2e.core.catalogue import CATALOGUE, NegativeScenarioSpec, get_scenario_spec
from capc_e2e.core.cleanup import CleanupGuarantor
from capc_e2e.core.config import E2EConfig, E2EConfigLoader, parse_duration
from capc_e2e.core.matcher import LogSignatureProbe, path_contains, scan
from capc_e2e.core.models import (
    Cancelled,
    Error,
    ExpectedSignature,
    Found,
    NotFound,
    PollBudget,
    PollResult,
    ScenarioInput,
    ScenarioOutcome,
    ScenarioResources,
)
from capc_e2e.core.poller import DeadlinePoller, poll_until
from capc_e2e.core.scenario import NegativeScenario, ScenarioContext

__all__ = [
    "CATALOGUE",
    "Cancelled",
    "CleanupGuarantor",
    "DeadlinePoller",
    "E2EConfig",
    "E2EConfigLoader",
    "Error",
    "ExpectedSignature",
    "Found",
    "LogSignatureProbe",
    "NegativeScenario",
    "NegativeScenarioSpec",
    "NotFound",
    "PollBudget",
    "PollResult",
    "ScenarioContext",
    "ScenarioInput",
    "ScenarioOutcome",
    "ScenarioResources",
    "get_scenario_spec",
    "parse_duration",
    "path_contains",
    "poll_until",
    "scan",
]
