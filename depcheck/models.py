# depcheck/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ParseError(ValueError):
    """Raised when a version string has a missing or non-numeric segment."""


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0

    def __post_init__(self):
        for part in (self.major, self.minor, self.patch):
            if not isinstance(part, int) or part < 0:
                raise ValueError(f"Version components must be non-negative integers, got {part!r}")

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Lenient dotted parser: '7.0' -> 7.0.0, '1.2.3.4' -> 1.2.3.
        Only the first three segments are looked at.
        """
        if text is None:
            raise ParseError("Cannot parse version from None")
        segments = str(text).strip().split('.')[:3]
        numbers = []
        for segment in segments:
            # isdigit() alone accepts unicode digits like '²'
            if not segment.isascii() or not segment.isdigit():
                raise ParseError(f"Invalid version '{text}': segment '{segment}' is not a number")
            numbers.append(int(segment, 10))
        while len(numbers) < 3:
            numbers.append(0)
        return cls(*numbers)

    def compare(self, other: "Version") -> int:
        if self < other:
            return -1
        if self > other:
            return 1
        return 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class Dependency(Enum):
    # value, display name used in messages
    GRADLE = ("gradle", "Gradle")
    JAVA = ("java", "Java")
    AGP = ("agp", "AGP")
    KGP = ("kgp", "Kotlin")

    def __init__(self, key: str, display_name: str):
        self.key = key
        self.display_name = display_name

    @classmethod
    def from_key(cls, key: str) -> "Dependency":
        for dep in cls:
            if dep.key == key.strip().lower():
                return dep
        raise KeyError(key)


# Slot processing order
CHECK_ORDER = (Dependency.GRADLE, Dependency.JAVA, Dependency.AGP, Dependency.KGP)


@dataclass(frozen=True)
class DependencyThresholds:
    error_below: Version
    warn_below: Version

    def __post_init__(self):
        if self.warn_below < self.error_below:
            raise ValueError(f"warn_below ({self.warn_below}) must not be lower than error_below ({self.error_below})")


@dataclass(frozen=True)
class PolicyThresholds:
    gradle: DependencyThresholds
    java: DependencyThresholds
    agp: DependencyThresholds
    kgp: DependencyThresholds

    def for_dependency(self, dependency: Dependency) -> DependencyThresholds:
        return getattr(self, dependency.key)


# Support policy of the Flutter Gradle plugin. The "error" floors are
# placeholders until the "warn" floors have shipped for a full release.
DEFAULT_THRESHOLDS = PolicyThresholds(
    gradle=DependencyThresholds(error_below=Version(0, 0, 0), warn_below=Version(7, 0, 2)),
    java=DependencyThresholds(error_below=Version(1, 1, 0), warn_below=Version(11, 0, 0)),
    agp=DependencyThresholds(error_below=Version(0, 0, 0), warn_below=Version(7, 0, 0)),
    kgp=DependencyThresholds(error_below=Version(0, 0, 0), warn_below=Version(1, 5, 0)),
)


@dataclass(frozen=True)
class DetectionResult:
    dependency: Dependency
    version: Optional[Version] = None
    reason: Optional[str] = None # Why detection failed

    @property
    def detected(self) -> bool:
        return self.version is not None

    @classmethod
    def undetectable(cls, dependency: Dependency, reason: str) -> "DetectionResult":
        return cls(dependency=dependency, version=None, reason=reason)


class Status(str, Enum):
    OK = "OK"
    WARN = "WARN"
    FATAL = "FATAL"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class PolicyOutcome:
    dependency: Dependency
    status: Status
    version: Optional[Version] = None
    threshold: Optional[Version] = None # The floor that was crossed, if any
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "dependency": self.dependency.key,
            "name": self.dependency.display_name,
            "status": self.status.value,
            "version": str(self.version) if self.version is not None else None,
            "threshold": str(self.threshold) if self.threshold is not None else None,
            "message": self.message,
        }


@dataclass
class PluginResult:
    outcomes: list = field(default_factory=list)
    manifest_placeholders: dict = field(default_factory=dict)
    multidex_enabled: bool = False
    checks_skipped: bool = False
