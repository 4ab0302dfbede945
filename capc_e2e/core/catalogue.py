"""Catalogue of negative-outcome scenarios."""

from dataclasses import dataclass

from capc_e2e.constants import (
    INVALID_CP_OFFERING_NAME,
    INVALID_DISK_OFFERING_NAME,
    INVALID_TEMPLATE_NAME,
    INVALID_WORKER_OFFERING_NAME,
    NO_MATCH_FOUND_PREFIX,
    WAIT_ERRORS_KEY,
)
from capc_e2e.exceptions import ConfigurationError


@dataclass(frozen=True)
class NegativeScenarioSpec:
    """A scenario submitting an invalid cluster and awaiting its rejection.

    Attributes
    ----------
    spec_name : str
        Scenario name; also selects its interval table entry
    flavor : str
        Cluster template flavor carrying the invalid setting
    signature_variable : str
        E2E config variable whose value completes the expected signature
    description : str
        Human-readable expectation
    signature_prefix : str
        Fixed prefix of the expected signature
    wait_key : str
        Interval table key for the wait budget
    """

    spec_name: str
    flavor: str
    signature_variable: str
    description: str
    signature_prefix: str = NO_MATCH_FOUND_PREFIX
    wait_key: str = WAIT_ERRORS_KEY


CATALOGUE: dict[str, NegativeScenarioSpec] = {
    spec.spec_name: spec
    for spec in (
        NegativeScenarioSpec(
            spec_name="invalid-worker-offering",
            flavor="invalid-worker-offering",
            signature_variable=INVALID_WORKER_OFFERING_NAME,
            description="Should fail due to the specified worker offering is not found",
        ),
        NegativeScenarioSpec(
            spec_name="invalid-cp-offering",
            flavor="invalid-cp-offering",
            signature_variable=INVALID_CP_OFFERING_NAME,
            description="Should fail due to the specified control plane offering is not found",
        ),
        NegativeScenarioSpec(
            spec_name="invalid-template",
            flavor="invalid-template",
            signature_variable=INVALID_TEMPLATE_NAME,
            description="Should fail due to the specified template is not found",
        ),
        NegativeScenarioSpec(
            spec_name="invalid-disk-offering",
            flavor="invalid-disk-offering",
            signature_variable=INVALID_DISK_OFFERING_NAME,
            description="Should fail due to the specified disk offering is not found",
        ),
    )
}


def get_scenario_spec(spec_name: str) -> NegativeScenarioSpec:
    """Look up a catalogued scenario.

    Raises
    ------
    ConfigurationError
        If no scenario with that name exists
    """
    if spec_name not in CATALOGUE:
        raise ConfigurationError(
            f"Scenario '{spec_name}' not found. Available scenarios: {sorted(CATALOGUE)}"
        )
    return CATALOGUE[spec_name]
