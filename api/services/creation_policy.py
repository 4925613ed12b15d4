"""Policies deciding whether an activity may be created for a step yet.

A policy returns ``None`` to allow creation or a human readable reason to
refuse it. The auto-provisioner stops at the first refused step.
"""

from typing import Callable, Optional

from api.config.settings import settings
from api.models import Activity, ActivityStatus, Application, ProcessStep
from api.services.process_catalog import previous_step

CreationPolicy = Callable[
    [Application, ProcessStep, list[ProcessStep], dict[int, Activity]],
    Optional[str],
]


def allow_all(
    application: Application,
    step: ProcessStep,
    steps: list[ProcessStep],
    activities_by_step: dict[int, Activity],
) -> Optional[str]:
    return None


def require_previous_passed(
    application: Application,
    step: ProcessStep,
    steps: list[ProcessStep],
    activities_by_step: dict[int, Activity],
) -> Optional[str]:
    """Only the first step, or a step whose predecessor has Passed, may be created."""
    previous = previous_step(steps, step)
    if previous is None:
        return None
    previous_activity = activities_by_step.get(previous.id)
    if previous_activity is None or previous_activity.status != ActivityStatus.PASSED:
        return f"Step {previous.step_order}. {previous.step_name} has not been passed yet"
    return None


def default_policy() -> CreationPolicy:
    """Policy selected by ``ACTIVITY_CREATION_REQUIRES_PREVIOUS_PASSED``."""
    if settings.ACTIVITY_CREATION_REQUIRES_PREVIOUS_PASSED:
        return require_previous_passed
    return allow_all
