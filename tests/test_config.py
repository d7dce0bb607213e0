# Grid Features - Configuration Tests
# SPDX-License-Identifier: Apache-2.0

import pytest

from gridfeatures.config import Settings


class TestSettings:
    """Test environment-driven settings"""

    def test_defaults(self):
        """Test values used when nothing is set"""
        settings = Settings.from_env({})
        assert settings.log_level == "INFO"
        assert settings.request_size == 256
        assert settings.default_crs == "CRS:84"

    def test_from_env(self):
        """Test overriding every setting"""
        settings = Settings.from_env({
            "GF_LOG_LEVEL": "debug",
            "GF_REQUEST_SIZE": "64",
            "GF_DEFAULT_CRS": "EPSG:4326",
        })
        assert settings == Settings(log_level="DEBUG", request_size=64, default_crs="EPSG:4326")

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_invalid_request_size(self, value):
        """Test that the request size must be a positive integer"""
        with pytest.raises(ValueError, match="GF_REQUEST_SIZE"):
            Settings.from_env({"GF_REQUEST_SIZE": value})

    def test_reads_process_environment(self, monkeypatch):
        """Test os.environ is used by default"""
        monkeypatch.setenv("GF_REQUEST_SIZE", "32")
        assert Settings.from_env().request_size == 32
