import pytest

from config import ApplicationConfig
from claim_service.adapter.services.dynsec_credential_store import DynsecCredentialStore
from claim_service.adapter.services.mosquitto_credential_store import MosquittoPasswordFileStore
from claim_service.depends import get_credential_store

build_store = get_credential_store.__wrapped__


def test_password_file_mode(monkeypatch):
    monkeypatch.setattr(ApplicationConfig, "MQTT_AUTH_MODE", "password_file")

    assert isinstance(build_store(), MosquittoPasswordFileStore)


def test_dynamic_security_mode(monkeypatch):
    monkeypatch.setattr(ApplicationConfig, "MQTT_AUTH_MODE", "dynamic_security")
    monkeypatch.setattr(ApplicationConfig, "MQTT_DYNSEC_BROKER_URL", "mqtt://broker.test:1885")
    monkeypatch.setattr(ApplicationConfig, "MQTT_DYNSEC_DEFAULT_ROLE", "trap")

    store = build_store()

    assert isinstance(store, DynsecCredentialStore)
    assert (store.hostname, store.port) == ("broker.test", 1885)
    assert store.default_role == "trap"


def test_unknown_mode_rejected(monkeypatch):
    monkeypatch.setattr(ApplicationConfig, "MQTT_AUTH_MODE", "htpasswd")

    with pytest.raises(ValueError):
        build_store()
