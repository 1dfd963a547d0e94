import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from pricefloor.core import config as core_config


@pytest.fixture(autouse=True)
def default_env(monkeypatch):
    env = {
        "DEFAULT_BUFFER_BPS": "300",
        "SELL_THROUGH_THRESHOLD_DAYS": "14",
        "DEFAULT_CURRENCY": "USD",
        "PRICE_PARAM_MAX_CENTS": "100000000",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    core_config.get_settings.cache_clear()
    yield
    core_config.get_settings.cache_clear()


@pytest.fixture
def override_env(monkeypatch):
    def _override(**values: str) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key, value)
        core_config.get_settings.cache_clear()

    return _override
