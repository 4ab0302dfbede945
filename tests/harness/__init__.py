"""Harness infrastructure for Behave BDD tests."""

from tests.harness.base import ScenarioHarness
from tests.harness.fake import FakeClusterHarness
from tests.harness.live import LiveClusterHarness

__all__ = ["ScenarioHarness", "FakeClusterHarness", "LiveClusterHarness"]
