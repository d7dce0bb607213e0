# Grid Features - Configuration
# SPDX-License-Identifier: Apache-2.0

"""
Environment-driven settings for entry points.

    GF_LOG_LEVEL      Logging level name (default: INFO)
    GF_REQUEST_SIZE   Default map output width and height (default: 256)
    GF_DEFAULT_CRS    CRS assumed for command-line coordinates (default: CRS:84)

Library code never configures logging itself; entry points call
configure_logging() once at startup.
"""

from dataclasses import dataclass
import logging
import os
import sys
from typing import Mapping, Optional

from gridfeatures.core import DEFAULT_CRS

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    request_size: int = 256
    default_crs: str = DEFAULT_CRS

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        try:
            request_size = int(env.get("GF_REQUEST_SIZE", "256"))
        except ValueError as e:
            raise ValueError(f"GF_REQUEST_SIZE must be an integer: {e}") from e
        if request_size < 1:
            raise ValueError(f"GF_REQUEST_SIZE must be positive, got {request_size}")
        return cls(
            log_level=env.get("GF_LOG_LEVEL", "INFO").upper(),
            request_size=request_size,
            default_crs=env.get("GF_DEFAULT_CRS", DEFAULT_CRS),
        )


def configure_logging(level: str = "INFO"):
    """Configure root logging for command-line use"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )
