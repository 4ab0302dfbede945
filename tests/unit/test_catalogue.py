"""Unit tests for the scenario catalogue."""

import pytest

from capc_e2e.constants import NO_MATCH_FOUND_PREFIX, WAIT_ERRORS_KEY
from capc_e2e.core.catalogue import CATALOGUE, get_scenario_spec
from capc_e2e.exceptions import ConfigurationError


class TestCatalogue:
    """Test catalogued scenarios."""

    def test_invalid_worker_offering_entry(self) -> None:
        """Test the worker offering scenario matches its log signature."""
        spec = get_scenario_spec("invalid-worker-offering")

        assert spec.flavor == "invalid-worker-offering"
        assert spec.signature_variable == "InvalidWorkerOfferingName"
        assert spec.signature_prefix == NO_MATCH_FOUND_PREFIX
        assert spec.wait_key == WAIT_ERRORS_KEY

    def test_names_are_keys(self) -> None:
        """Test every entry is keyed by its own spec name."""
        for name, spec in CATALOGUE.items():
            assert spec.spec_name == name

    def test_unknown_scenario_lists_available(self) -> None:
        """Test unknown names raise with the available scenarios."""
        with pytest.raises(ConfigurationError, match="invalid-worker-offering"):
            get_scenario_spec("invalid-zone-typo")
