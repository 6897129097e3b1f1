#!/usr/bin/env python3
"""
Version providers for the four checked build dependencies.
Each provider knows how to ask one part of the host project (Gradle wrapper,
JDK, Android and Kotlin Gradle plugins) for its version. Detection never
raises: failures come back as an undetectable DetectionResult.
"""

import os
import re
import subprocess
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from packaging.version import parse as parse_version, InvalidVersion

from .models import Dependency, DetectionResult, ParseError, Version

logger = logging.getLogger(__name__)

# Timeout for `java -version` in seconds
JAVA_VERSION_TIMEOUT = 30

GRADLE_WRAPPER_PROPERTIES = Path("gradle") / "wrapper" / "gradle-wrapper.properties"
BUILD_FILE_NAMES = ("settings.gradle", "settings.gradle.kts", "build.gradle", "build.gradle.kts")

DISTRIBUTION_URL_PATTERN = re.compile(r'^\s*distributionUrl\s*=\s*\S*?gradle-([^/\s]+?)-(?:all|bin)\.zip\s*$', re.MULTILINE)
JAVA_VERSION_PATTERN = re.compile(r'version\s+"([^"]+)"')

AGP_PATTERNS = (
    # plugins { id "com.android.application" version "7.3.0" apply false }
    re.compile(r'id\s*\(?\s*["\']com\.android\.(?:application|library)["\']\s*\)?\s*version\s*\(?\s*["\']([^"\']+)["\']'),
    # classpath 'com.android.tools.build:gradle:7.3.0'
    re.compile(r'["\']com\.android\.tools\.build:gradle:([^"\'\s]+)["\']'),
)
KGP_PATTERNS = (
    re.compile(r'id\s*\(?\s*["\']org\.jetbrains\.kotlin\.android["\']\s*\)?\s*version\s*\(?\s*["\']([^"\']+)["\']'),
    re.compile(r'kotlin\s*\(\s*["\']android["\']\s*\)\s*version\s*["\']([^"\']+)["\']'),
    re.compile(r'["\']org\.jetbrains\.kotlin:kotlin-gradle-plugin:([^"\'\s]+)["\']'),
    re.compile(r'ext\.kotlin_version\s*=\s*["\']([^"\']+)["\']'),
)
VARIABLE_REFERENCE = re.compile(r'^\$\{?(\w+)\}?$')


class DetectionFailure(Exception):
    """The host project could not produce a version for a dependency."""


def coerce_release(raw: str) -> str:
    """
    Drops pre-release, dev and local qualifiers using PEP 440 parsing
    ('8.2.0-alpha01' -> '8.2.0'). Strings packaging rejects come back as-is
    so that Version.parse reports them.
    """
    text = raw.strip()
    try:
        parsed = parse_version(text)
    except InvalidVersion:
        return text
    return ".".join(str(part) for part in parsed.release)


class VersionProvider:
    """Base class: subclasses implement read_version() and may raise."""
    dependency: Dependency

    def read_version(self) -> str:
        raise NotImplementedError

    def detect(self) -> DetectionResult:
        try:
            raw = self.read_version()
            version = Version.parse(coerce_release(raw))
        except (DetectionFailure, ParseError, OSError) as e:
            logger.debug(f"{self.dependency.display_name} detection failed: {e}")
            return DetectionResult.undetectable(self.dependency, str(e))
        except Exception as e:
            # Anything unexpected from the host tool still only skips this slot
            logger.debug(f"Unexpected error detecting {self.dependency.display_name} version", exc_info=True)
            return DetectionResult.undetectable(self.dependency, f"{type(e).__name__}: {e}")
        return DetectionResult(self.dependency, version)


class StaticVersionProvider(VersionProvider):
    """A version handed over directly (command-line override, tests)."""

    def __init__(self, dependency: Dependency, text: Optional[str]):
        self.dependency = dependency
        self.text = text

    def read_version(self) -> str:
        if self.text is None or not str(self.text).strip():
            raise DetectionFailure(f"No {self.dependency.display_name} version supplied")
        return str(self.text)


class GradleFilesMixin:
    """Looks for files both in the project root and in its android/ folder."""
    project_dir: Path

    def _candidate_dirs(self) -> List[Path]:
        dirs = [self.project_dir]
        android_dir = self.project_dir / "android"
        if android_dir.is_dir():
            dirs.append(android_dir)
        return dirs

    def _read_build_files(self) -> List[Tuple[Path, str]]:
        found = []
        for directory in self._candidate_dirs():
            for name in BUILD_FILE_NAMES:
                path = directory / name
                if path.is_file():
                    found.append((path, path.read_text(encoding='utf-8', errors='replace')))
        if not found:
            raise DetectionFailure(f"No Gradle build files found under {self.project_dir}")
        return found

    @staticmethod
    def _resolve_variable(value: str, files: List[Tuple[Path, str]]) -> str:
        """Resolves '$kotlin_version' style references against ext assignments."""
        match = VARIABLE_REFERENCE.match(value)
        if not match:
            return value
        name = match.group(1)
        assignment = re.compile(r'(?:ext\.)?\b' + re.escape(name) + r'\s*=\s*["\']([^"\']+)["\']')
        for path, content in files:
            found = assignment.search(content)
            if found:
                logger.debug(f"Resolved ${name} to {found.group(1)} from {path}")
                return found.group(1)
        raise DetectionFailure(f"Could not resolve Gradle variable '{name}'")

    def _search(self, patterns) -> str:
        files = self._read_build_files()
        for pattern in patterns:
            for path, content in files:
                match = pattern.search(content)
                if match:
                    logger.debug(f"Found {self.dependency.display_name} declaration in {path}: {match.group(0)}")
                    return self._resolve_variable(match.group(1), files)
        raise DetectionFailure(f"No {self.dependency.display_name} declaration found in Gradle build files")


class GradleWrapperProvider(GradleFilesMixin, VersionProvider):
    dependency = Dependency.GRADLE

    def __init__(self, project_dir):
        self.project_dir = Path(project_dir)

    def read_version(self) -> str:
        without_url = []
        for directory in self._candidate_dirs():
            properties_path = directory / GRADLE_WRAPPER_PROPERTIES
            if not properties_path.is_file():
                continue
            content = properties_path.read_text(encoding='utf-8', errors='replace')
            match = DISTRIBUTION_URL_PATTERN.search(content)
            if match:
                return match.group(1)
            logger.debug(f"No Gradle distributionUrl in {properties_path}")
            without_url.append(str(properties_path))
        if without_url:
            raise DetectionFailure(f"No Gradle distributionUrl in {', '.join(without_url)}")
        raise DetectionFailure(f"Gradle wrapper properties not found under {self.project_dir}")


class AndroidPluginProvider(GradleFilesMixin, VersionProvider):
    dependency = Dependency.AGP

    def __init__(self, project_dir):
        self.project_dir = Path(project_dir)

    def read_version(self) -> str:
        return self._search(AGP_PATTERNS)


class KotlinPluginProvider(GradleFilesMixin, VersionProvider):
    dependency = Dependency.KGP

    def __init__(self, project_dir):
        self.project_dir = Path(project_dir)

    def read_version(self) -> str:
        return self._search(KGP_PATTERNS)


def java_feature_version(version_string: str) -> str:
    """
    Maps a `java -version` string to the JavaVersion naming Gradle uses:
    '1.8.0_292' -> '1.8', '17.0.8' -> '17', '21-ea' -> '21'.
    """
    legacy = re.match(r'^1\.(\d+)', version_string)
    if legacy:
        return f"1.{legacy.group(1)}"
    modern = re.match(r'^(\d+)', version_string)
    if modern:
        return modern.group(1)
    raise DetectionFailure(f"Unrecognised Java version string '{version_string}'")


class StaticJavaVersionProvider(StaticVersionProvider):
    """A supplied Java version, named the same way as a detected one."""

    def __init__(self, text: Optional[str]):
        super().__init__(Dependency.JAVA, text)

    def read_version(self) -> str:
        return java_feature_version(super().read_version().strip())


class JavaRuntimeProvider(VersionProvider):
    dependency = Dependency.JAVA

    def __init__(self, java_home: Optional[str] = None):
        self.java_home = java_home if java_home is not None else os.environ.get("JAVA_HOME")

    def _java_executable(self) -> str:
        if self.java_home:
            return str(Path(self.java_home) / "bin" / "java")
        return "java"

    def read_version(self) -> str:
        command = [self._java_executable(), "-version"]
        try:
            process = subprocess.run(command, capture_output=True, text=True, timeout=JAVA_VERSION_TIMEOUT)
        except FileNotFoundError:
            raise DetectionFailure(f"Java executable not found: {command[0]}")
        except subprocess.TimeoutExpired:
            raise DetectionFailure(f"'{' '.join(command)}' timed out after {JAVA_VERSION_TIMEOUT}s")
        # java prints its version banner on stderr
        output = (process.stderr or "") + (process.stdout or "")
        match = JAVA_VERSION_PATTERN.search(output)
        if process.returncode != 0 or not match:
            raise DetectionFailure(f"Could not read Java version from '{' '.join(command)}' (exit code {process.returncode})")
        return java_feature_version(match.group(1))


def default_providers(project_dir, overrides: Optional[Dict[Dependency, str]] = None,
                      java_home: Optional[str] = None) -> Dict[Dependency, VersionProvider]:
    """Builds the four providers for a project, letting overrides win per slot."""
    providers: Dict[Dependency, VersionProvider] = {
        Dependency.GRADLE: GradleWrapperProvider(project_dir),
        Dependency.JAVA: JavaRuntimeProvider(java_home),
        Dependency.AGP: AndroidPluginProvider(project_dir),
        Dependency.KGP: KotlinPluginProvider(project_dir),
    }
    for dependency, text in (overrides or {}).items():
        if text:
            if dependency == Dependency.JAVA:
                providers[dependency] = StaticJavaVersionProvider(text)
            else:
                providers[dependency] = StaticVersionProvider(dependency, text)
    return providers
