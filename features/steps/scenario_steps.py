"""Step definitions for negative-outcome scenarios."""

import logging

from behave import given, then, when
from behave.runner import Context

from capc_e2e.constants import ScenarioState
from capc_e2e.core.catalogue import get_scenario_spec
from capc_e2e.exceptions import E2EError

logger = logging.getLogger(__name__)


@given('the controller logs the rejection for "{spec_name}"')
def step_controller_logs_rejection(context: Context, spec_name: str) -> None:
    spec = get_scenario_spec(spec_name)
    harness = context.harness
    value = harness.e2e_config.get_variable(spec.signature_variable)
    harness.proxy.controller_log = f"E1018 failed to reconcile: {spec.signature_prefix}{value}\n"


@given("the controller never logs a rejection")
def step_controller_never_rejects(context: Context) -> None:
    context.harness.proxy.controller_log = "I1018 reconciling cluster\n"


@given("the management cluster rejects every template")
def step_cluster_rejects_templates(context: Context) -> None:
    context.harness.proxy.fail_apply = True


@given("namespace deletion fails")
def step_namespace_deletion_fails(context: Context) -> None:
    context.harness.proxy.fail_delete_namespace = True


@given("the workload cluster never finishes deleting")
def step_cluster_stuck_deleting(context: Context) -> None:
    context.harness.proxy.stuck_clusters = True


@when('I run the "{spec_name}" scenario')
def step_run_scenario(context: Context, spec_name: str) -> None:
    context.negative_scenario = context.harness.build_scenario(spec_name)
    try:
        context.outcome = context.negative_scenario.run()
    except (E2EError, AssertionError) as e:
        logger.info("Scenario %s raised %s: %s", spec_name, type(e).__name__, e)
        context.error = e


@then("the scenario succeeds")
def step_scenario_succeeds(context: Context) -> None:
    assert context.error is None, f"Scenario raised: {context.error}"
    assert context.outcome.state == ScenarioState.SUCCEEDED
    assert context.outcome.cleaned_up


@then('the scenario fails with "{error_type}"')
def step_scenario_fails_with(context: Context, error_type: str) -> None:
    assert context.error is not None, "Scenario succeeded unexpectedly"
    assert type(context.error).__name__ == error_type, (
        f"Expected {error_type}, got {type(context.error).__name__}: {context.error}"
    )
    assert context.negative_scenario.outcome.state == ScenarioState.FAILED


@then("the failure names the expected signature")
def step_failure_names_signature(context: Context) -> None:
    signature = context.negative_scenario.outcome.signature
    assert signature
    assert signature in str(context.error)


@then("the scenario namespace is deleted")
def step_namespace_deleted(context: Context) -> None:
    namespace = context.negative_scenario.context.namespace
    assert namespace not in context.harness.proxy.namespaces
    assert context.negative_scenario.state == ScenarioState.CLEANED_UP


@then('the cleanup reported a failed "{step}" step')
def step_cleanup_reported_failure(context: Context, step: str) -> None:
    steps = [e.step for e in context.negative_scenario.outcome.cleanup_errors]
    assert step in steps, f"Cleanup errors: {steps}"
