"""Fixtures for Sonoff DIY tests."""

from __future__ import annotations

import pytest

from custom_components.sonoff_diy.const import CONF_HOST, CONF_PORT, DOMAIN
from pytest_homeassistant_custom_component.common import MockConfigEntry

from .common import DEVICE_ID, HOST, PORT, FakeSonoffApi


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    yield


@pytest.fixture
def fake_api() -> FakeSonoffApi:
    return FakeSonoffApi()


@pytest.fixture
def config_entry() -> MockConfigEntry:
    return MockConfigEntry(
        domain=DOMAIN,
        title="Lamp",
        unique_id=DEVICE_ID,
        data={CONF_HOST: HOST, CONF_PORT: PORT},
    )
