"""Version handling and compatibility checks for save files."""

from dataclasses import dataclass

from saveforge.core.exceptions import UnsupportedVersionError


@dataclass(frozen=True, order=True)
class SaveVersion:
    """Semantic version of a save file schema.

    Ordering compares major, then minor, then patch numerically, so
    "10.0.0" sorts after "9.0.0".

    Example:
        >>> SaveVersion.parse("0.3.0") < SaveVersion.parse("2.0.0")
        True
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self):
        for part in (self.major, self.minor, self.patch):
            if isinstance(part, bool) or not isinstance(part, int) or part < 0:
                raise UnsupportedVersionError(
                    f"{self.major}.{self.minor}.{self.patch}",
                    message=f"Version components must be non-negative integers, got {part!r}",
                )

    @classmethod
    def parse(cls, version: str) -> "SaveVersion":
        """Parse a version string like "0.1.0".

        Args:
            version: Dotted decimal string with exactly three components

        Returns:
            The parsed version

        Raises:
            UnsupportedVersionError: On wrong arity, non-numeric or negative
                components, or a non-string value
        """
        if not isinstance(version, str):
            raise UnsupportedVersionError(version)

        parts = version.split(".")
        if len(parts) != 3:
            raise UnsupportedVersionError(version)

        # ASCII digits only: no signs, whitespace or unicode digits
        if not all(part.isdecimal() and part.isascii() for part in parts):
            raise UnsupportedVersionError(version)

        return cls(int(parts[0]), int(parts[1]), int(parts[2]))

    @classmethod
    def coerce(cls, value: "SaveVersion | str") -> "SaveVersion":
        """Accept either a SaveVersion or its string form."""
        if isinstance(value, cls):
            return value
        return cls.parse(value)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_string(self) -> str:
        return str(self)

    def is_compatible_with(self, other: "SaveVersion") -> bool:
        """Check if two versions share the same major version."""
        return self.major == other.major

    def needs_migration(self, target: "SaveVersion") -> bool:
        """Check if moving to `target` changes the document shape.

        Patch-only differences never require migration.
        """
        return self.major != target.major or self.minor != target.minor

    def is_newer_than(self, other: "SaveVersion") -> bool:
        return self > other

    def is_older_than(self, other: "SaveVersion") -> bool:
        return self < other
