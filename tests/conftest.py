"""Pytest fixtures: a recording email transport and app/client factories."""

import pytest
from fastapi.testclient import TestClient

from credify.config import AppConfig
from credify.email_service import EmailDeliveryError
from credify.main import create_app


class FakeTransport:
    """Records every send; raises EmailDeliveryError when ``fail`` is set."""

    name = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.attempts = 0
        self.sent = []

    async def send(self, notification):
        self.attempts += 1
        if self.fail:
            raise EmailDeliveryError("simulated provider outage")
        self.sent.append(notification)
        return {"id": f"fake-{self.attempts}", "success": True}


def make_config(**overrides) -> AppConfig:
    values = {
        "email_transport": "brevo",
        "email_user": "notifications@credify.test",
        "email_to": "team@credify.test",
        "static_dir": None,
        "rate_limit_max": 1000,
    }
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def make_client():
    """Build a TestClient around a fresh app; returns (client, transport)."""

    def _make(fail: bool = False, **config_overrides):
        fake = FakeTransport(fail=fail)
        app = create_app(make_config(**config_overrides), transport=fake)
        return TestClient(app), fake

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
