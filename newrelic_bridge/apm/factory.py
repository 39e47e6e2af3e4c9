import logging

import newrelic.agent

from newrelic_bridge.apm.interactor import (
    BlackholeInteractor,
    LoggingInteractor,
    NewRelicInteractor,
    NewRelicInteractorInterface,
)
from newrelic_bridge.settings import Settings

logger = logging.getLogger(__name__)


def create_interactor(settings: Settings) -> NewRelicInteractorInterface:
    """Builds the interactor the listeners talk to.

    Args:
        settings: Application settings.

    Returns:
        A no-op interactor when NEWRELIC_ENABLED is false, the agent-backed one
        otherwise; wrapped in a LoggingInteractor when NEWRELIC_LOG_INTERACTIONS is set.
    """
    interactor: NewRelicInteractorInterface
    if settings.get_enabled():
        interactor = NewRelicInteractor()
    else:
        logger.info("New Relic bridge disabled; agent calls will be dropped.")
        interactor = BlackholeInteractor()

    if settings.get_log_interactions():
        interactor = LoggingInteractor(interactor)
    return interactor


def initialize_agent(settings: Settings) -> bool:
    """Initializes the agent from NEWRELIC_CONFIG_FILE.

    Returns:
        True if the agent was initialized, False when the bridge is disabled or
        no config file is set (the agent then relies on NEW_RELIC_* env vars or
        on `newrelic-admin run-program`).
    """
    config_file = settings.get_config_file()
    if not settings.get_enabled() or config_file is None:
        return False

    newrelic.agent.initialize(config_file, settings.get_environment())
    logger.info(f"New Relic agent initialized from {config_file}.")
    return True
