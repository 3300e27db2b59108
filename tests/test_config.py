import pytest

from booking_workflow.app import default_api_factory
from booking_workflow.api_client import HospitalApiClient
from booking_workflow.config import get_settings
from booking_workflow.mock_client import MockApiClient


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("HOSPITAL_API_BASE_URL", "HOSPITAL_API_TOKEN", "HOSPITAL_API_TIMEOUT", "USE_MOCK_API", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.api.base_url == "http://localhost:8080/api"
    assert settings.api.token is None
    assert settings.api.use_mock is True
    assert settings.server.port == 8000
    assert settings.log_level == "INFO"
    assert default_api_factory(settings) is MockApiClient


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HOSPITAL_API_BASE_URL", "https://his.example.org/api")
    monkeypatch.setenv("HOSPITAL_API_TOKEN", "secret")
    monkeypatch.setenv("HOSPITAL_API_TIMEOUT", "2.5")
    monkeypatch.setenv("USE_MOCK_API", "false")
    monkeypatch.setenv("PORT", "9000")

    settings = get_settings()
    api = default_api_factory(settings)()

    assert settings.server.port == 9000
    assert isinstance(api, HospitalApiClient)
    assert api.base_url == "https://his.example.org/api"
    assert api.token == "secret"
    assert api.timeout == 2.5
