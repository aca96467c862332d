"""Tests for save file versions."""

import pytest

from saveforge.core.exceptions import UnsupportedVersionError
from saveforge.core.version import SaveVersion


class TestParsing:
    """Tests for SaveVersion.parse."""

    def test_parse(self):
        """Test parsing a well-formed version."""
        v = SaveVersion.parse("1.2.3")

        assert v.major == 1
        assert v.minor == 2
        assert v.patch == 3

    @pytest.mark.parametrize(
        "value",
        ["1.2", "1.2.3.4", "a.b.c", "", "1..3", "-1.0.0", "1.-2.0", " 1.0.0", "1.0.0 ", "+1.0.0", "1.0.x"],
    )
    def test_parse_invalid(self, value):
        """Test malformed strings are rejected."""
        with pytest.raises(UnsupportedVersionError):
            SaveVersion.parse(value)

    @pytest.mark.parametrize("value", [None, 1, 1.0, ["1", "0", "0"]])
    def test_parse_non_string(self, value):
        """Test non-string values are rejected."""
        with pytest.raises(UnsupportedVersionError):
            SaveVersion.parse(value)

    def test_negative_component_rejected_on_construction(self):
        """Test a version cannot be built with negative parts."""
        with pytest.raises(UnsupportedVersionError):
            SaveVersion(1, -1, 0)

    def test_error_carries_value(self):
        """Test the error keeps the offending value."""
        with pytest.raises(UnsupportedVersionError) as exc_info:
            SaveVersion.parse("one.two.three")

        assert exc_info.value.version == "one.two.three"
        assert "MAJOR.MINOR.PATCH" in exc_info.value.message

    @pytest.mark.parametrize(
        "version",
        [SaveVersion(0, 0, 0), SaveVersion(0, 1, 0), SaveVersion(1, 2, 3), SaveVersion(10, 0, 99)],
    )
    def test_round_trip(self, version):
        """Test parse(str(v)) == v."""
        assert SaveVersion.parse(version.to_string()) == version
        assert SaveVersion.parse(str(version)) == version

    def test_display(self):
        """Test string form."""
        assert str(SaveVersion(1, 2, 3)) == "1.2.3"

    def test_coerce(self):
        """Test coerce accepts strings and versions."""
        v = SaveVersion(2, 0, 0)
        assert SaveVersion.coerce(v) is v
        assert SaveVersion.coerce("2.0.0") == v


class TestOrdering:
    """Tests for version comparison."""

    def test_comparison(self):
        """Test major, minor, patch ordering."""
        v1 = SaveVersion(1, 0, 0)
        v2 = SaveVersion(1, 1, 0)
        v3 = SaveVersion(2, 0, 0)

        assert v1 < v2 < v3
        assert v2.is_newer_than(v1)
        assert v1.is_older_than(v2)

    def test_numeric_not_lexicographic(self):
        """Test "10.0.0" sorts after "9.0.0"."""
        assert SaveVersion.parse("10.0.0") > SaveVersion.parse("9.0.0")
        assert SaveVersion.parse("1.10.0") > SaveVersion.parse("1.9.0")
        assert SaveVersion.parse("1.0.10") > SaveVersion.parse("1.0.9")

    def test_sorting(self):
        """Test a list of versions sorts numerically."""
        versions = [SaveVersion.parse(s) for s in ["2.0.0", "0.10.0", "0.2.0", "0.1.0"]]

        assert [str(v) for v in sorted(versions)] == ["0.1.0", "0.2.0", "0.10.0", "2.0.0"]

    def test_equality_and_hash(self):
        """Test equal versions are interchangeable as dict keys."""
        assert SaveVersion(1, 2, 3) == SaveVersion.parse("1.2.3")
        assert SaveVersion(1, 2, 3) != SaveVersion(1, 2, 4)
        assert {SaveVersion(1, 2, 3): "x"}[SaveVersion.parse("1.2.3")] == "x"


class TestPredicates:
    """Tests for compatibility and migration predicates."""

    def test_compatibility(self):
        """Test same major version is compatible."""
        v1_0_0 = SaveVersion(1, 0, 0)
        v1_2_5 = SaveVersion(1, 2, 5)
        v2_0_0 = SaveVersion(2, 0, 0)

        assert v1_0_0.is_compatible_with(v1_2_5)
        assert not v1_2_5.is_compatible_with(v2_0_0)

    @pytest.mark.parametrize("a", ["0.1.0", "1.0.0", "1.2.5", "2.0.0"])
    @pytest.mark.parametrize("b", ["0.1.0", "1.0.0", "1.2.5", "2.0.0"])
    def test_compatibility_is_symmetric_major_equality(self, a, b):
        """Test compatible_with is reflexive, symmetric and equals major equality."""
        va, vb = SaveVersion.parse(a), SaveVersion.parse(b)

        assert va.is_compatible_with(va)
        assert va.is_compatible_with(vb) == vb.is_compatible_with(va)
        assert va.is_compatible_with(vb) == (va.major == vb.major)

    def test_equal_versions_never_need_migration(self):
        """Test needs_migration(v, v) is false."""
        for s in ["0.0.0", "0.1.0", "2.0.0", "3.4.5"]:
            v = SaveVersion.parse(s)
            assert not v.needs_migration(v)

    def test_patch_difference_needs_no_migration(self):
        """Test patch-only differences keep the document shape."""
        assert not SaveVersion(1, 0, 0).needs_migration(SaveVersion(1, 0, 7))

    def test_minor_and_major_differences_need_migration(self):
        """Test minor or major differences require migration."""
        assert SaveVersion(1, 0, 0).needs_migration(SaveVersion(1, 1, 0))
        assert SaveVersion(1, 0, 0).needs_migration(SaveVersion(2, 0, 0))
