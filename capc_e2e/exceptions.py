"""Exceptions raised by the capc-e2e harness."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from capc_e2e.core.models import PollResult


class E2EError(Exception):
    """Base exception for harness failures."""

    pass


class SetupError(E2EError):
    """Raised when scenario input is invalid; the scenario never starts."""

    pass


class ConfigurationError(SetupError):
    """Raised when the E2E configuration is unreadable or incomplete."""

    pass


class SubmissionError(E2EError):
    """Raised when the management cluster rejects a submitted action.

    Parameters
    ----------
    message : str
        Human-readable error description
    command : list[str] | None
        Command line that failed, when the endpoint is a CLI tool
    stderr : str
        Error output reported by the endpoint
    """

    def __init__(
        self, message: str, command: list[str] | None = None, stderr: str = ""
    ) -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class ScenarioFailedError(E2EError, AssertionError):
    """Raised when a scenario did not observe its expected signature.

    Subclasses ``AssertionError`` so test runners report it as a failed
    assertion rather than an error.

    Parameters
    ----------
    scenario_name : str
        Name of the failed scenario
    signature : str
        Expected log signature
    last_result : PollResult
        Last result returned by the poller
    """

    def __init__(self, scenario_name: str, signature: str, last_result: PollResult) -> None:
        self.scenario_name = scenario_name
        self.signature = signature
        self.last_result = last_result
        super().__init__(
            f"Scenario '{scenario_name}' failed: expected signature "
            f"{signature!r} not observed (last poll state: {last_result.describe()})"
        )


class PollTimeoutError(ScenarioFailedError):
    """Raised when the deadline elapsed without the signature appearing."""

    pass


class ScanError(ScenarioFailedError):
    """Raised when the log directory walk failed during polling."""

    pass


class PollCancelledError(E2EError):
    """Raised when polling was cancelled before reaching a result.

    Parameters
    ----------
    scenario_name : str
        Name of the cancelled scenario
    reason : str
        Reason given by the canceller
    """

    def __init__(self, scenario_name: str, reason: str) -> None:
        super().__init__(f"Scenario '{scenario_name}' cancelled: {reason}")
        self.scenario_name = scenario_name
        self.reason = reason


class CleanupError(E2EError):
    """Recorded when a teardown step fails.

    Cleanup errors are logged and collected but never raised over the
    scenario's primary result.

    Parameters
    ----------
    step : str
        Name of the teardown step that failed
    cause : Exception
        Underlying exception
    """

    def __init__(self, step: str, cause: Exception) -> None:
        super().__init__(f"Cleanup step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
