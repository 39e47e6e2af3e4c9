from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from newrelic_bridge.main import INDEX_PAGE, create_app, get_app
from newrelic_bridge.settings import Settings
from newrelic_bridge.templating.extension import NewRelicExtension


@pytest.fixture
def mock_newrelic():
    with (
        patch("newrelic_bridge.apm.interactor.newrelic") as mock_interactor_module,
        patch("newrelic_bridge.apm.factory.newrelic") as mock_factory_module,
    ):
        mock_interactor_module.agent.get_browser_timing_header.return_value = "<script>nr-header</script>"
        mock_interactor_module.agent.get_browser_timing_footer.return_value = "<script>nr-footer</script>"
        yield mock_interactor_module, mock_factory_module


def test_health_check(mock_newrelic):
    with TestClient(create_app(Settings())) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_index_page_gets_browser_timing(mock_newrelic):
    with TestClient(create_app(Settings())) as client:
        response = client.get("/")

    assert "<head><script>nr-header</script><title>" in response.text
    assert "<script>nr-footer</script></body>" in response.text


def test_disabled_bridge_leaves_page_unchanged(mock_newrelic, monkeypatch):
    monkeypatch.setenv("NEWRELIC_ENABLED", "false")
    interactor_module, _ = mock_newrelic

    with TestClient(create_app(Settings())) as client:
        response = client.get("/")

    assert response.text == INDEX_PAGE
    interactor_module.agent.get_browser_timing_header.assert_not_called()


def test_lifespan_initializes_agent_from_config_file(mock_newrelic, monkeypatch):
    monkeypatch.setenv("NEWRELIC_CONFIG_FILE", "/etc/newrelic.ini")
    _, factory_module = mock_newrelic

    with TestClient(create_app(Settings())):
        pass

    factory_module.agent.initialize.assert_called_once_with("/etc/newrelic.ini", None)


def test_template_extension_is_exposed(mock_newrelic):
    app = create_app(Settings())

    assert isinstance(app.state.newrelic_extension, NewRelicExtension)


@patch("newrelic_bridge.main.setup_logging")
def test_get_app_sets_up_logging(mock_setup_logging, mock_newrelic):
    app = get_app()

    mock_setup_logging.assert_called_once_with()
    assert app.title == "newrelic_bridge"
