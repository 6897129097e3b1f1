# depcheck/checker.py
"""
Applies the Flutter support policy to the detected Gradle, Java, AGP and
Kotlin versions of an Android host project.
"""
import logging
from typing import Mapping, Optional

from .models import (
    CHECK_ORDER, Dependency, DetectionResult, PolicyOutcome, PolicyThresholds, Status, Version,
)
from .providers import VersionProvider

logger = logging.getLogger(__name__)

SKIP_VALIDATION_FLAG = "--android-skip-build-dependency-validation"


class PolicyViolation(Exception):
    """A detected version is below Flutter's minimum supported version."""

    def __init__(self, outcome: PolicyOutcome, outcomes: Optional[list] = None):
        super().__init__(outcome.message)
        self.outcome = outcome
        self.outcomes = outcomes if outcomes is not None else [outcome]
        self.dependency_name = outcome.dependency.display_name
        self.version = outcome.version
        self.floor = outcome.threshold


def get_error_message(dependency_name: str, version: Version, error_version: Version) -> str:
    return (f"Error: Your project's {dependency_name} version ({version}) is lower than Flutter's "
            f"minimum supported version of {error_version}. Please upgrade your {dependency_name} version. "
            f"Alternatively, use the flag \"{SKIP_VALIDATION_FLAG}\" to bypass this check.")


def get_warning_message(dependency_name: str, version: Version) -> str:
    return (f"Warning: Flutter support for your project's {dependency_name} version ({version}) will soon "
            f"be dropped. Please upgrade your {dependency_name} version soon. "
            f"Alternatively, use the flag \"{SKIP_VALIDATION_FLAG}\" to bypass this check.")


def evaluate(dependency: Dependency, version: Version, thresholds: PolicyThresholds) -> PolicyOutcome:
    """Three-tier policy for a single detected version."""
    limits = thresholds.for_dependency(dependency)
    name = dependency.display_name
    if version < limits.error_below:
        return PolicyOutcome(dependency, Status.FATAL, version, limits.error_below,
                             get_error_message(name, version, limits.error_below))
    if version < limits.warn_below:
        return PolicyOutcome(dependency, Status.WARN, version, limits.warn_below,
                             get_warning_message(name, version))
    return PolicyOutcome(dependency, Status.OK, version)


def _detect(dependency: Dependency, provider: Optional[VersionProvider]) -> DetectionResult:
    if provider is None:
        return DetectionResult.undetectable(dependency, "no version provider configured")
    try:
        return provider.detect()
    except Exception as e:
        # A misbehaving provider only skips its own slot
        logger.debug(f"{dependency.display_name} provider raised during detection", exc_info=True)
        return DetectionResult.undetectable(dependency, f"{type(e).__name__}: {e}")


def check_all(providers: Mapping[Dependency, VersionProvider], thresholds: PolicyThresholds) -> list[PolicyOutcome]:
    """
    Detects and evaluates every dependency slot in order.
    Undetectable slots become SKIPPED outcomes; nothing is raised here.
    """
    outcomes = []
    for dependency in CHECK_ORDER:
        detection = _detect(dependency, providers.get(dependency))
        if not detection.detected:
            message = (f"Warning: unable to detect project {dependency.display_name} version. "
                       f"Skipping version checking. ({detection.reason})")
            logger.info(message)
            outcomes.append(PolicyOutcome(dependency, Status.SKIPPED, message=message))
            continue
        logger.info(f"{dependency.display_name} version is: {detection.version}")
        outcomes.append(evaluate(dependency, detection.version, thresholds))
    return outcomes


def report_outcomes(outcomes: list[PolicyOutcome]) -> None:
    for outcome in outcomes:
        if outcome.status == Status.WARN:
            logger.warning(outcome.message)
        elif outcome.status == Status.FATAL:
            logger.error(outcome.message)


def first_fatal(outcomes: list[PolicyOutcome]) -> Optional[PolicyOutcome]:
    for outcome in outcomes:
        if outcome.status == Status.FATAL:
            return outcome
    return None


def check_dependency_versions(providers: Mapping[Dependency, VersionProvider],
                              thresholds: PolicyThresholds) -> list[PolicyOutcome]:
    """
    Runs all four checks, logs the warnings, then aborts with PolicyViolation
    on the first FATAL outcome.
    """
    outcomes = check_all(providers, thresholds)
    report_outcomes(outcomes)
    fatal = first_fatal(outcomes)
    if fatal is not None:
        raise PolicyViolation(fatal, outcomes)
    return outcomes
