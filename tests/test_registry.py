# Grid Features - Extractor Registry Tests
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the feature kind registry.
"""

from unittest.mock import MagicMock

import pytest

from gridfeatures import registry
from gridfeatures.core import HorizontalPosition
from gridfeatures.dataset import GriddedDataset
from gridfeatures.params import RequestParameters


@pytest.fixture
def isolated(monkeypatch):
    """Registry copy that is discarded after the test"""
    monkeypatch.setattr(registry, "_EXTRACTORS", dict(registry._EXTRACTORS))


class TestRegistry:
    """Test extractor registration and dispatch"""

    def test_builtin_kinds(self):
        """Test built-ins are registered in a fixed order"""
        assert registry.available_kinds()[:3] == ["map", "profile", "timeseries"]
        assert registry.get_extractor("profile") is GriddedDataset.extract_profile_features

    def test_lookup_is_case_insensitive(self):
        """Test kind names ignore case"""
        assert registry.get_extractor("MAP") is GriddedDataset.extract_map_features

    def test_unknown_kind(self):
        """Test an unknown kind lists what is available"""
        with pytest.raises(ValueError, match="available: map, profile, timeseries"):
            registry.get_extractor("trajectory")

    def test_dispatch(self, dataset):
        """Test extraction through the registry"""
        request = RequestParameters.for_grid(
            1, 1, target_position=HorizontalPosition(0.0, 0.0), target_t=dataset.time_axis[0]
        )
        features = registry.extract("profile", dataset, ["vDepth"], request)
        assert len(features) == 1

    def test_no_silent_replacement(self, isolated):
        """Test an existing kind cannot be overwritten by accident"""
        with pytest.raises(ValueError, match="already registered"):
            registry.register_extractor("map", MagicMock())

    def test_register_custom(self, isolated, dataset):
        """Test adding and replacing extractors"""
        custom = MagicMock(return_value=[])
        registry.register_extractor("Vector", custom)
        assert "vector" in registry.available_kinds()

        request = RequestParameters.for_grid(4, 4)
        assert registry.extract("vector", dataset, None, request) == []
        custom.assert_called_once_with(dataset, None, request)

        replacement = MagicMock()
        registry.register_extractor("vector", replacement, replace=True)
        assert registry.get_extractor("vector") is replacement
