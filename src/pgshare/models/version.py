"""PostgreSQL version models.

PostgreSQL switched numbering schemes at 10: before that a release is
``major.minor.patch`` where ``major.minor`` together name the major release
(9.6.17); from 10 on it is ``major.minor`` (14.6). See
https://www.postgresql.org/support/versioning/.

The ``PG_VERSION`` file in a data directory records only the major release,
e.g. ``9.6`` or ``14``, so it is parsed as a PartialVersion.
"""

import re
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import VersionError

VERSION_PATTERN = re.compile(r"\b(\d+)[.](\d+)(?:[.](\d+))?\b")
PARTIAL_VERSION_PATTERN = re.compile(r"\b(\d+)(?:[.](\d+)(?:[.](\d+))?)?\b")

# First major release using the two-component scheme
EPOCH_10 = 10


class Version(BaseModel):
    """A concrete PostgreSQL runtime version.

    Attributes:
        major: Major component (9 in 9.6.17, 14 in 14.6).
        minor: Second component.
        patch: Third component; only present before PostgreSQL 10.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_scheme(self) -> Self:
        """Ensure the components match the numbering scheme for the major."""
        if self.major < EPOCH_10 and self.patch is None:
            raise ValueError(f"versions before {EPOCH_10} need three components")
        if self.major >= EPOCH_10 and self.patch is not None:
            raise ValueError(f"versions from {EPOCH_10} on have two components")
        return self

    @classmethod
    def parse(cls, text: str) -> Self:
        """Find and parse a version anywhere in text.

        Leading garbage is fine, so ``pg_ctl (PostgreSQL) 12.2`` parses as 12.2.

        Raises:
            VersionError: If no version is found, or it does not fit the
                numbering scheme for its major component.
        """
        match = VERSION_PATTERN.search(text)
        if match is None:
            raise VersionError(VersionError.MISSING, text)
        major, minor = int(match.group(1)), int(match.group(2))
        if match.group(3) is not None:
            if major >= EPOCH_10:
                raise VersionError(VersionError.BADLY_FORMED, text)
            return cls(major=major, minor=minor, patch=int(match.group(3)))
        if major < EPOCH_10:
            raise VersionError(VersionError.BADLY_FORMED, text)
        return cls(major=major, minor=minor)

    @property
    def is_pre10(self) -> bool:
        return self.major < EPOCH_10

    def sort_key(self) -> tuple[int, int, int]:
        # Majors never overlap between schemes, so every pre-10 version
        # sorts below every post-10 version.
        return (self.major, self.minor, self.patch or 0)

    def __lt__(self, other: "Version") -> bool:
        return self.sort_key() < other.sort_key()

    def __le__(self, other: "Version") -> bool:
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: "Version") -> bool:
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: "Version") -> bool:
        return self.sort_key() >= other.sort_key()

    def __str__(self) -> str:
        if self.patch is None:
            return f"{self.major}.{self.minor}"
        return f"{self.major}.{self.minor}.{self.patch}"


class PartialVersion(BaseModel):
    """A version with optional trailing components, used as a constraint.

    Missing components act as wildcards when testing compatibility with a
    runtime Version.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int | None = Field(default=None, ge=0)
    patch: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_components(self) -> Self:
        """Ensure patch only appears alongside minor."""
        if self.patch is not None and self.minor is None:
            raise ValueError("patch component requires a minor component")
        return self

    @classmethod
    def parse(cls, text: str) -> Self:
        """Find and parse a partial version anywhere in text.

        Raises:
            VersionError: If no version is found.
        """
        match = PARTIAL_VERSION_PATTERN.search(text)
        if match is None:
            raise VersionError(VersionError.MISSING, text)
        major, minor, patch = (int(g) if g is not None else None for g in match.groups())
        return cls(major=major, minor=minor, patch=patch)

    @classmethod
    def from_version(cls, version: Version) -> Self:
        return cls(major=version.major, minor=version.minor, patch=version.patch)

    def compatible(self, version: Version) -> bool:
        """Check whether a runtime version can serve this constraint.

        Before 10, major and minor must match and the runtime patch must be at
        least the constraint's patch. From 10 on, major must match and the
        runtime minor must be at least the constraint's minor (a patch
        component is meaningless there and ignored).
        """
        if self.major != version.major:
            return False
        if self.minor is None:
            return True
        if version.is_pre10:
            if self.minor != version.minor:
                return False
            return self.patch is None or self.patch <= (version.patch or 0)
        return self.minor <= version.minor

    def widened(self) -> Self:
        """Return the form PostgreSQL writes to PG_VERSION.

        9.6.5 becomes 9.6 and 14.3 becomes 14.
        """
        if self.major < EPOCH_10:
            if self.minor is None:
                return self
            return type(self)(major=self.major, minor=self.minor)
        return type(self)(major=self.major)

    def sort_key(self) -> tuple[int, int, int]:
        """Total ordering key; a missing component sorts before a present one."""
        minor = -1 if self.minor is None else self.minor
        patch = -1 if self.patch is None else self.patch
        return (self.major, minor, patch)

    def _filled(self) -> tuple[int, int, int]:
        return (self.major, self.minor or 0, self.patch or 0)

    def __eq__(self, other: object) -> bool:
        """Compare with missing components read as zero, so 9.6 == 9.6.0."""
        if not isinstance(other, PartialVersion):
            return NotImplemented
        return self._filled() == other._filled()

    def __hash__(self) -> int:
        return hash(self._filled())

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.patch]
        return ".".join(str(part) for part in parts if part is not None)
