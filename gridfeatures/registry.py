# Grid Features - Extractor Registry
# SPDX-License-Identifier: Apache-2.0

"""
Process-wide mapping from feature kind name to extraction function.

Built-in extractors ("map", "profile", "timeseries") are registered when
this module is imported, in that order. Each extractor is called as
extractor(dataset, variable_ids, params) and returns a list of features.
"""

import logging
from typing import Callable, Iterable, Optional

from gridfeatures.dataset import GriddedDataset
from gridfeatures.features import Feature
from gridfeatures.params import RequestParameters

logger = logging.getLogger(__name__)

Extractor = Callable[[GriddedDataset, Optional[Iterable[str]], RequestParameters], list[Feature]]

_EXTRACTORS: dict[str, Extractor] = {}


def register_extractor(kind: str, extractor: Extractor, replace: bool = False):
    """
    Register an extractor under a kind name.

    Raises:
        ValueError: If the name is taken and replace is False
    """
    key = kind.lower()
    if key in _EXTRACTORS and not replace:
        raise ValueError(f"Extractor already registered for {key!r}")
    _EXTRACTORS[key] = extractor
    logger.debug(f"Registered extractor {key!r}")


def get_extractor(kind: str) -> Extractor:
    try:
        return _EXTRACTORS[kind.lower()]
    except KeyError:
        raise ValueError(
            f"No extractor for {kind!r} (available: {', '.join(available_kinds())})"
        ) from None


def available_kinds() -> list[str]:
    """Registered kind names in registration order"""
    return list(_EXTRACTORS)


def extract(
    kind: str,
    dataset: GriddedDataset,
    variable_ids: Optional[Iterable[str]],
    params: RequestParameters,
) -> list[Feature]:
    return get_extractor(kind)(dataset, variable_ids, params)


register_extractor("map", GriddedDataset.extract_map_features)
register_extractor("profile", GriddedDataset.extract_profile_features)
register_extractor("timeseries", GriddedDataset.extract_timeseries_features)
