import signal
import sys
from pathlib import Path

import pytest

from capc_e2e.cli import main as cli_main
from capc_e2e.cli.main import CapcE2ECLI
from capc_e2e.constants import EXIT_CANCELLED, EXIT_CONFIG_ERROR, EXIT_ERROR
from capc_e2e.core.models import NotFound
from capc_e2e.exceptions import (
    ConfigurationError,
    E2EError,
    PollCancelledError,
    PollTimeoutError,
    SetupError,
    SubmissionError,
)
from tests.fakes import FakeClusterProxy, FakeTemplateRenderer

SIGNATURE = "No match found for bad-offering"


@pytest.fixture
def cli(proxy: FakeClusterProxy, renderer: FakeTemplateRenderer) -> CapcE2ECLI:
    return CapcE2ECLI(
        proxy_factory=lambda name, kubeconfig: proxy,
        renderer_factory=lambda: renderer,
    )


@pytest.fixture
def config_path(write_e2e_config, e2e_config_data) -> Path:
    return write_e2e_config(e2e_config_data)


def test_list_names_every_scenario(cli: CapcE2ECLI) -> None:
    entries = cli.list()

    names = [entry.split(":")[0] for entry in entries]
    assert names == sorted(
        [
            "invalid-cp-offering",
            "invalid-disk-offering",
            "invalid-template",
            "invalid-worker-offering",
        ]
    )


def test_check_config_resolves_signature_and_budget(cli: CapcE2ECLI, config_path: Path) -> None:
    result = cli.check_config("invalid-worker-offering", config=str(config_path))

    assert result == {
        "scenario": "invalid-worker-offering",
        "kubernetes_version": "v1.23.3",
        "signature": SIGNATURE,
        "deadline_seconds": 0.6,
        "interval_seconds": 0.1,
    }


def test_check_config_unknown_scenario(cli: CapcE2ECLI, config_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="invalid-worker-offering"):
        cli.check_config("does-not-exist", config=str(config_path))


def test_run_reports_outcome(
    cli: CapcE2ECLI,
    proxy: FakeClusterProxy,
    config_path: Path,
    clusterctl_config: Path,
    artifact_folder: Path,
) -> None:
    proxy.controller_log = SIGNATURE

    result = cli.run(
        "invalid-worker-offering",
        config=str(config_path),
        clusterctl_config=str(clusterctl_config),
        kubeconfig="/tmp/kubeconfig",
        artifacts=str(artifact_folder),
    )

    assert result["scenario"] == "invalid-worker-offering"
    assert result["state"] == "succeeded"
    assert result["signature"] == SIGNATURE
    assert result["evidence"].startswith("Found(")
    assert result["cleanup_errors"] == []
    assert proxy.namespaces == set()


def test_run_restores_signal_handlers(
    cli: CapcE2ECLI,
    proxy: FakeClusterProxy,
    config_path: Path,
    clusterctl_config: Path,
    artifact_folder: Path,
) -> None:
    proxy.controller_log = SIGNATURE
    before = signal.getsignal(signal.SIGINT)

    cli.run(
        "invalid-worker-offering",
        config=str(config_path),
        clusterctl_config=str(clusterctl_config),
        kubeconfig="/tmp/kubeconfig",
        artifacts=str(artifact_folder),
    )

    assert signal.getsignal(signal.SIGINT) is before


def test_run_uses_environment_defaults(
    cli: CapcE2ECLI,
    proxy: FakeClusterProxy,
    config_path: Path,
    clusterctl_config: Path,
    artifact_folder: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    proxy.controller_log = SIGNATURE
    monkeypatch.setenv("CAPC_E2E_CONFIG", str(config_path))
    monkeypatch.setenv("CAPC_E2E_CLUSTERCTL_CONFIG", str(clusterctl_config))
    monkeypatch.setenv("CAPC_E2E_ARTIFACTS", str(artifact_folder))
    monkeypatch.setenv("CAPC_E2E_SKIP_CLEANUP", "1")
    monkeypatch.setenv("KUBECONFIG", "/tmp/kubeconfig")

    result = cli.run("invalid-worker-offering")

    assert result["state"] == "succeeded"
    assert len(proxy.namespaces) == 1


def test_run_without_kubeconfig_is_setup_error(
    cli: CapcE2ECLI, config_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("KUBECONFIG", raising=False)

    with pytest.raises(SetupError, match="KUBECONFIG"):
        cli.run("invalid-worker-offering", config=str(config_path))


def test_run_missing_signature_fails(
    cli: CapcE2ECLI,
    config_path: Path,
    clusterctl_config: Path,
    artifact_folder: Path,
) -> None:
    with pytest.raises(PollTimeoutError):
        cli.run(
            "invalid-worker-offering",
            config=str(config_path),
            clusterctl_config=str(clusterctl_config),
            kubeconfig="/tmp/kubeconfig",
            artifacts=str(artifact_folder),
        )


class RaisingCLI:
    def __init__(self, error: Exception) -> None:
        self.error = error

    def run(self, spec_name: str) -> None:
        raise self.error


@pytest.mark.parametrize(
    ("error", "expected_code"),
    [
        (PollTimeoutError("invalid-template", SIGNATURE, NotFound()), EXIT_ERROR),
        (ConfigurationError("missing variable"), EXIT_CONFIG_ERROR),
        (SubmissionError("admission webhook denied"), EXIT_ERROR),
        (PollCancelledError("invalid-template", "SIGINT"), EXIT_CANCELLED),
        (E2EError("unexpected harness failure"), EXIT_ERROR),
    ],
)
def test_main_maps_errors_to_exit_codes(
    error: Exception, expected_code: int, monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    monkeypatch.setattr(cli_main, "CapcE2ECLI", lambda: RaisingCLI(error))
    monkeypatch.setattr(sys, "argv", ["capc-e2e", "run", "invalid-template"])

    with pytest.raises(SystemExit) as exc_info:
        cli_main.main()

    assert exc_info.value.code == expected_code


def test_main_scenario_failure_reports_signature(
    monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    error = PollTimeoutError("invalid-template", SIGNATURE, NotFound())
    monkeypatch.setattr(cli_main, "CapcE2ECLI", lambda: RaisingCLI(error))
    monkeypatch.setattr(sys, "argv", ["capc-e2e", "run", "invalid-template"])

    with pytest.raises(SystemExit):
        cli_main.main()

    stderr = capsys.readouterr().err
    assert "invalid-template" in stderr
    assert SIGNATURE in stderr
    assert "NotFound" in stderr


def test_main_debug_mode_reraises(monkeypatch: pytest.MonkeyPatch) -> None:
    error = ConfigurationError("missing variable")
    monkeypatch.setenv("CAPC_E2E_DEBUG", "1")
    monkeypatch.setattr(cli_main, "CapcE2ECLI", lambda: RaisingCLI(error))
    monkeypatch.setattr(sys, "argv", ["capc-e2e", "run", "invalid-template"])

    with pytest.raises(ConfigurationError):
        cli_main.main()
