"""Pytest configuration and fixtures for capc-e2e tests."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml

from capc_e2e.core.catalogue import get_scenario_spec
from capc_e2e.core.config import E2EConfig, E2EConfigLoader
from capc_e2e.core.models import ScenarioInput
from capc_e2e.core.scenario import NegativeScenario
from tests.fakes import FakeClusterProxy, FakeTemplateRenderer

_ENV_VARS = (
    "CAPC_E2E_CONFIG",
    "CAPC_E2E_ARTIFACTS",
    "CAPC_E2E_SKIP_CLEANUP",
    "CAPC_E2E_DEBUG",
    "CAPC_E2E_CLUSTERCTL_CONFIG",
    "KUBERNETES_VERSION",
    "InvalidWorkerOfferingName",
)


@pytest.fixture(autouse=True)
def clean_environment() -> Generator[None, None, None]:
    """Ensure harness environment variables do not leak into tests.

    Yields
    ------
    None
        Control back to test after clearing the variables

    Notes
    -----
    E2E config variables can be overridden from the environment, so a
    developer shell exporting them would otherwise change test results.
    """
    saved = {name: os.environ.pop(name) for name in _ENV_VARS if name in os.environ}

    yield

    for name in _ENV_VARS:
        os.environ.pop(name, None)
    os.environ.update(saved)


@pytest.fixture
def e2e_config_data() -> dict[str, Any]:
    """E2E config with short wait budgets suitable for unit tests."""
    return {
        "variables": {
            "KUBERNETES_VERSION": "v1.23.3",
            "InvalidWorkerOfferingName": "bad-offering",
            "InvalidCPOfferingName": "bad-cp-offering",
        },
        "intervals": {
            "default/wait-errors": ["1s", "100ms"],
            "invalid-worker-offering/wait-errors": ["600ms", "100ms"],
            "default/wait-delete-cluster": ["1s", "50ms"],
        },
    }


@pytest.fixture
def write_e2e_config(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Helper fixture writing config data to an E2E config file.

    Returns
    -------
    callable
        Function that takes config data and returns the written path
    """

    def _write(config_data: dict[str, Any]) -> Path:
        config_file = tmp_path / "e2e.yaml"
        config_file.write_text(yaml.dump(config_data))
        return config_file

    return _write


@pytest.fixture
def e2e_config(
    e2e_config_data: dict[str, Any], write_e2e_config: Callable[[dict[str, Any]], Path]
) -> E2EConfig:
    return E2EConfigLoader().load(write_e2e_config(e2e_config_data))


@pytest.fixture
def clusterctl_config(tmp_path: Path) -> Path:
    config_file = tmp_path / "clusterctl.yaml"
    config_file.write_text("providers: []\n")
    return config_file


@pytest.fixture
def artifact_folder(tmp_path: Path) -> Path:
    return tmp_path / "artifacts"


@pytest.fixture
def proxy(artifact_folder: Path) -> FakeClusterProxy:
    """Fake management cluster whose controller logs land in the artifact tree."""
    fake = FakeClusterProxy(name="bootstrap")
    fake.log_root = artifact_folder / "clusters" / "bootstrap"
    return fake


@pytest.fixture
def renderer() -> FakeTemplateRenderer:
    return FakeTemplateRenderer()


@pytest.fixture
def scenario_input(
    e2e_config: E2EConfig,
    clusterctl_config: Path,
    proxy: FakeClusterProxy,
    artifact_folder: Path,
) -> ScenarioInput:
    return ScenarioInput(
        e2e_config=e2e_config,
        clusterctl_config_path=clusterctl_config,
        bootstrap_cluster_proxy=proxy,
        artifact_folder=artifact_folder,
    )


@pytest.fixture
def make_scenario(
    scenario_input: ScenarioInput, renderer: FakeTemplateRenderer
) -> Callable[..., NegativeScenario]:
    """Build a scenario from the catalogue with fake collaborators.

    Returns
    -------
    callable
        Function taking an optional spec name and ScenarioInput overrides
    """

    def _make(spec_name: str = "invalid-worker-offering", **overrides: Any) -> NegativeScenario:
        values = {
            "e2e_config": scenario_input.e2e_config,
            "clusterctl_config_path": scenario_input.clusterctl_config_path,
            "bootstrap_cluster_proxy": scenario_input.bootstrap_cluster_proxy,
            "artifact_folder": scenario_input.artifact_folder,
            "skip_cleanup": scenario_input.skip_cleanup,
            "flavor": scenario_input.flavor,
        }
        values.update(overrides)
        return NegativeScenario(
            spec=get_scenario_spec(spec_name),
            scenario_input=ScenarioInput(**values),
            renderer=renderer,
        )

    return _make
