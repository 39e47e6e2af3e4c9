# Interfaces and implementations for talking to the New Relic agent.

import abc
import logging
from typing import Any, Dict

import newrelic.agent

from newrelic_bridge.apm.config import Scalar


class NewRelicInteractorInterface(abc.ABC):
    """Abstract Base Class for every call the bridge makes into the agent.

    Keeping the agent behind this interface lets the listeners run against a
    no-op or logging implementation, and makes them easy to mock in tests.
    """

    @abc.abstractmethod
    def set_transaction_name(self, name: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def ignore_transaction(self) -> None:
        """Drops the current transaction from all reporting."""
        raise NotImplementedError

    @abc.abstractmethod
    def add_custom_metric(self, name: str, value: float) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def add_custom_parameter(self, name: str, value: Scalar) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def add_custom_event(self, name: str, attributes: Dict[str, Any]) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def get_browser_timing_header(self) -> str:
        """Returns the RUM snippet meant to sit right after `<head>`."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_browser_timing_footer(self) -> str:
        """Returns the RUM snippet meant to sit right before `</body>`."""
        raise NotImplementedError

    @abc.abstractmethod
    def disable_auto_rum(self) -> None:
        """Stops the agent from injecting browser timing on its own."""
        raise NotImplementedError

    @abc.abstractmethod
    def end_transaction(self) -> None:
        """Marks the current transaction as finished; later work is not timed."""
        raise NotImplementedError

    @abc.abstractmethod
    def notice_throwable(self, exc: BaseException) -> None:
        raise NotImplementedError


class NewRelicInteractor(NewRelicInteractorInterface):
    """Forwards every call to the `newrelic.agent` API."""

    def set_transaction_name(self, name: str) -> None:
        newrelic.agent.set_transaction_name(name)

    def ignore_transaction(self) -> None:
        newrelic.agent.ignore_transaction()

    def add_custom_metric(self, name: str, value: float) -> None:
        newrelic.agent.record_custom_metric(name, value)

    def add_custom_parameter(self, name: str, value: Scalar) -> None:
        newrelic.agent.add_custom_attribute(name, value)

    def add_custom_event(self, name: str, attributes: Dict[str, Any]) -> None:
        newrelic.agent.record_custom_event(name, attributes)

    def get_browser_timing_header(self) -> str:
        return newrelic.agent.get_browser_timing_header()

    def get_browser_timing_footer(self) -> str:
        # Recent agents fold the footer into the header snippet and no longer ship this helper.
        get_footer = getattr(newrelic.agent, "get_browser_timing_footer", None)
        if get_footer is None:
            return ""
        return get_footer()

    def disable_auto_rum(self) -> None:
        newrelic.agent.disable_browser_autorum()

    def end_transaction(self) -> None:
        newrelic.agent.end_of_transaction()

    def notice_throwable(self, exc: BaseException) -> None:
        newrelic.agent.notice_error(error=(type(exc), exc, exc.__traceback__))


class BlackholeInteractor(NewRelicInteractorInterface):
    """Accepts every call and does nothing. Used when the bridge is disabled."""

    def set_transaction_name(self, name: str) -> None:
        pass

    def ignore_transaction(self) -> None:
        pass

    def add_custom_metric(self, name: str, value: float) -> None:
        pass

    def add_custom_parameter(self, name: str, value: Scalar) -> None:
        pass

    def add_custom_event(self, name: str, attributes: Dict[str, Any]) -> None:
        pass

    def get_browser_timing_header(self) -> str:
        return ""

    def get_browser_timing_footer(self) -> str:
        return ""

    def disable_auto_rum(self) -> None:
        pass

    def end_transaction(self) -> None:
        pass

    def notice_throwable(self, exc: BaseException) -> None:
        pass


class LoggingInteractor(NewRelicInteractorInterface):
    """Logs every call at DEBUG, then forwards it to the wrapped interactor."""

    def __init__(self, interactor: NewRelicInteractorInterface, logger: logging.Logger | None = None):
        self.interactor = interactor
        self.logger = logger or logging.getLogger(__name__)

    def set_transaction_name(self, name: str) -> None:
        self.logger.debug(f"Setting New Relic transaction name to '{name}'")
        self.interactor.set_transaction_name(name)

    def ignore_transaction(self) -> None:
        self.logger.debug("Ignoring New Relic transaction")
        self.interactor.ignore_transaction()

    def add_custom_metric(self, name: str, value: float) -> None:
        self.logger.debug(f"Adding custom New Relic metric {name}: {value}")
        self.interactor.add_custom_metric(name, value)

    def add_custom_parameter(self, name: str, value: Scalar) -> None:
        self.logger.debug(f"Adding custom New Relic parameter {name}: {value!r}")
        self.interactor.add_custom_parameter(name, value)

    def add_custom_event(self, name: str, attributes: Dict[str, Any]) -> None:
        self.logger.debug(f"Adding custom New Relic event {name}", extra={"event_attributes": attributes})
        self.interactor.add_custom_event(name, attributes)

    def get_browser_timing_header(self) -> str:
        self.logger.debug("Getting New Relic RUM timing header")
        return self.interactor.get_browser_timing_header()

    def get_browser_timing_footer(self) -> str:
        self.logger.debug("Getting New Relic RUM timing footer")
        return self.interactor.get_browser_timing_footer()

    def disable_auto_rum(self) -> None:
        self.logger.debug("Disabling New Relic Auto-RUM")
        self.interactor.disable_auto_rum()

    def end_transaction(self) -> None:
        self.logger.debug("Ending New Relic transaction")
        self.interactor.end_transaction()

    def notice_throwable(self, exc: BaseException) -> None:
        self.logger.debug(f"Sending exception to New Relic: {type(exc).__name__}: {exc}")
        self.interactor.notice_throwable(exc)
