# Grid Features - Shared Test Fixtures
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime, timedelta, timezone

import pytest

from gridfeatures.bootstrap import generate_mock_dataset

T0 = datetime(2000, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def dataset():
    """Synthetic 36 x 19 global dataset, 11 depths (0..100), 10 daily steps"""
    return generate_mock_dataset()


@pytest.fixture(scope="session")
def times():
    return [T0 + timedelta(days=i) for i in range(10)]


@pytest.fixture(scope="session")
def depths():
    return [10.0 * i for i in range(11)]
