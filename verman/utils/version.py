"""Version number utilities for definition names."""

import re
from dataclasses import dataclass


@dataclass
class SemVer:
    """Semantic version representation."""

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None

    _SEMVER_PATTERN = re.compile(
        r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
        r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
        r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
        r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
    )

    @classmethod
    def parse(cls, version_str: str) -> "SemVer":
        """Parse a semver string.

        Args:
            version_str: Version string (e.g., "3.12.4", "3.13.0-dev")

        Returns:
            SemVer instance

        Raises:
            ValueError: If the string is not valid semver
        """
        match = cls._SEMVER_PATTERN.match(version_str)
        if not match:
            raise ValueError(f"Invalid semver: {version_str}")

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    @property
    def is_stable(self) -> bool:
        return self.prerelease is None and self.build is None

    @property
    def release(self) -> tuple[int, int, int]:
        """Numeric release key; prerelease and build metadata are not part of it."""
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return (
            self.major == other.major
            and self.minor == other.minor
            and self.patch == other.patch
            and self.prerelease == other.prerelease
        )

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))


def parse_stable(name: str) -> SemVer | None:
    """Parse a definition name as a stable release, or None if it is not one."""
    try:
        version = SemVer.parse(name)
    except ValueError:
        return None
    return version if version.is_stable else None


def latest_per_series(definitions: list[str]) -> list[str]:
    """Get the newest stable release of every major.minor series.

    Args:
        definitions: Known definition names

    Returns:
        Definition names sorted by version
    """
    latest: dict[tuple[int, int], SemVer] = {}
    names: dict[SemVer, str] = {}
    for name in definitions:
        version = parse_stable(name)
        if version is None:
            continue
        series = (version.major, version.minor)
        if series not in latest or latest[series].release < version.release:
            latest[series] = version
            names[version] = name

    return [names[v] for v in sorted(latest.values(), key=lambda v: v.release)]
