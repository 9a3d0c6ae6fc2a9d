"""Unit tests for version consistency."""

import importlib.metadata

import pytest

import chartlens


@pytest.mark.unit
class TestVersionConsistency:
    """Test that version is consistently reported across the package."""

    def test_version_matches_package_metadata(self):
        """Verify chartlens.__version__ matches installed package metadata."""
        try:
            pkg_version = importlib.metadata.version("chartlens")
        except importlib.metadata.PackageNotFoundError:
            pytest.skip("Package not installed, can't verify metadata version")

        assert chartlens.__version__ == pkg_version

    def test_version_format(self):
        version = chartlens.__version__
        assert isinstance(version, str)
        assert len(version) > 0

        if version.endswith(".dev"):
            assert version == "0.0.0.dev"
        else:
            parts = version.split(".")
            assert len(parts) >= 2, f"Version {version} should have at least major.minor"
