# depcheck/plugin.py
"""
Entry point that mirrors what the Flutter Gradle plugin does when applied to
an Android project: validate dependency versions (unless the project opts
out) and work out the manifest placeholders for the application class.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from .checker import check_dependency_versions
from .models import DEFAULT_THRESHOLDS, Dependency, PluginResult, PolicyThresholds
from .providers import VersionProvider, default_providers

logger = logging.getLogger(__name__)

SKIP_DEPENDENCY_CHECKS_PROPERTY = "skipDependencyChecks"
MULTIDEX_PROPERTY = "multidex-enabled"
BASE_APPLICATION_NAME_PROPERTY = "base-application-name"

DEFAULT_APPLICATION_NAME = "android.app.Application"
MULTIDEX_APPLICATION_NAME = "io.flutter.app.FlutterMultiDexApplication"


def parse_properties(content: str) -> Dict[str, str]:
    """Minimal reader for gradle.properties style key=value files."""
    properties = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith(('#', '!')):
            continue
        positions = [line.index(separator) for separator in ('=', ':') if separator in line]
        if positions:
            split_at = min(positions)
            properties[line[:split_at].strip()] = line[split_at + 1:].strip()
        else:
            properties[line] = ""
    return properties


@dataclass
class GradleProject:
    project_dir: Path
    properties: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, project_dir, extra_properties: Optional[Mapping[str, str]] = None) -> "GradleProject":
        project_dir = Path(project_dir)
        properties: Dict[str, str] = {}
        for candidate in (project_dir / "gradle.properties", project_dir / "android" / "gradle.properties"):
            if candidate.is_file():
                properties.update(parse_properties(candidate.read_text(encoding='utf-8', errors='replace')))
                logger.debug(f"Loaded {len(properties)} properties from {candidate}")
                break
        properties.update(extra_properties or {})
        return cls(project_dir=project_dir, properties=properties)

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, name: str) -> Optional[str]:
        return self.properties.get(name)


def resolve_manifest_placeholders(project: GradleProject) -> tuple[bool, dict]:
    """Returns (multiDexEnabled, manifestPlaceholders)."""
    if project.has_property(MULTIDEX_PROPERTY) and str(project.get_property(MULTIDEX_PROPERTY)).strip().lower() == "true":
        return True, {"applicationName": MULTIDEX_APPLICATION_NAME}
    application_name = DEFAULT_APPLICATION_NAME
    if project.has_property(BASE_APPLICATION_NAME_PROPERTY):
        application_name = str(project.get_property(BASE_APPLICATION_NAME_PROPERTY))
    # android.app.Application is the same as omitting the attribute
    return False, {"applicationName": application_name}


def apply_plugin(project: GradleProject, thresholds: PolicyThresholds = DEFAULT_THRESHOLDS,
                 providers: Optional[Mapping[Dependency, VersionProvider]] = None) -> PluginResult:
    result = PluginResult()
    if project.has_property(SKIP_DEPENDENCY_CHECKS_PROPERTY):
        logger.info(f"'{SKIP_DEPENDENCY_CHECKS_PROPERTY}' is set, skipping dependency version checks.")
        result.checks_skipped = True
    else:
        if providers is None:
            providers = default_providers(project.project_dir)
        # Raises PolicyViolation on a FATAL outcome
        result.outcomes = check_dependency_versions(providers, thresholds)

    result.multidex_enabled, result.manifest_placeholders = resolve_manifest_placeholders(project)
    return result
