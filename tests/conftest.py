from unittest.mock import MagicMock

import pytest

from newrelic_bridge.apm.config import NewRelicConfig
from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.templating.extension import NewRelicTemplateState
from tests.helpers.factories import TIMING_FOOTER, TIMING_HEADER

NEWRELIC_ENV_VARS = [
    "NEWRELIC_ENABLED",
    "NEWRELIC_CONFIG_FILE",
    "NEWRELIC_ENVIRONMENT",
    "NEWRELIC_LOG_INTERACTIONS",
    "NEWRELIC_INSTRUMENT",
    "NEWRELIC_END_TRANSACTION_ON_CACHE_HIT",
    "NEWRELIC_CACHE_STATUS_HEADER",
    "NEWRELIC_IGNORED_PATHS",
    "NEWRELIC_TRANSACTION_NAMING",
    "LOG_LEVEL",
    "APP_HOST",
    "APP_PORT",
    "APP_RELOAD",
]


@pytest.fixture(autouse=True)
def clean_newrelic_env(monkeypatch):
    """AUTOUSE: Keeps a developer's .env or shell from leaking settings into tests."""
    for env_var in NEWRELIC_ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def mock_interactor() -> MagicMock:
    """Provides a mock interactor returning fixed browser timing snippets."""
    interactor = MagicMock(spec=NewRelicInteractorInterface)
    interactor.get_browser_timing_header.return_value = TIMING_HEADER
    interactor.get_browser_timing_footer.return_value = TIMING_FOOTER
    return interactor


@pytest.fixture
def config() -> NewRelicConfig:
    return NewRelicConfig()


@pytest.fixture
def template_state() -> NewRelicTemplateState:
    return NewRelicTemplateState()
