"""Behave environment configuration for capc-e2e scenarios."""

import logging
import os
import sys
from pathlib import Path

from behave.model import Scenario
from behave.runner import Context

logger = logging.getLogger(__name__)


def before_all(context: Context) -> None:
    """Setup executed before all scenarios."""
    project_root = Path(__file__).parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    context.project_root = project_root
    context.config.setup_logging(
        level=logging.DEBUG if os.environ.get("CAPC_E2E_DEBUG") == "1" else logging.INFO
    )


def before_scenario(context: Context, scenario: Scenario) -> None:
    """Create the scenario harness selected by the scenario's tags."""
    if "live" in scenario.tags:
        if not os.environ.get("CAPC_E2E_CONFIG"):
            scenario.skip("CAPC_E2E_CONFIG is not set; live scenarios need a management cluster")
            return

        from tests.harness.live import LiveClusterHarness

        context.harness = LiveClusterHarness(context, scenario)
    else:
        from tests.harness.fake import FakeClusterHarness

        context.harness = FakeClusterHarness(context, scenario)

    context.harness.setup()
    context.outcome = None
    context.error = None
    logger.info("Initialized %s for scenario: %s", type(context.harness).__name__, scenario.name)


def after_scenario(context: Context, scenario: Scenario) -> None:
    """Cleanup executed after each scenario."""
    harness = getattr(context, "harness", None)
    if harness is None:
        return

    try:
        harness.cleanup()
        logger.info("Cleaned up harness for scenario: %s", scenario.name)
    except Exception as e:
        logger.error("Harness cleanup failed for %s: %s", scenario.name, e, exc_info=True)
    finally:
        context.harness = None
