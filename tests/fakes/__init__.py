"""Test fakes for dependency injection."""

from tests.fakes.fake_cluster_proxy import FakeClusterProxy, FakeTemplateRenderer, FakeWatch

__all__ = ["FakeClusterProxy", "FakeTemplateRenderer", "FakeWatch"]
