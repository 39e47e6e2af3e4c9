import logging
from typing import Iterable, Optional, Tuple, Type

from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.core.events import RequestEvent

logger = logging.getLogger(__name__)


class ExceptionListener:
    """Reports exceptions escaping the application to the agent.

    Args:
        interactor: The agent to report to.
        ignored_exceptions: Exception classes (and their subclasses) not reported.
    """

    def __init__(
        self,
        interactor: NewRelicInteractorInterface,
        ignored_exceptions: Optional[Iterable[Type[BaseException]]] = None,
    ):
        self.interactor = interactor
        self.ignored_exceptions: Tuple[Type[BaseException], ...] = tuple(ignored_exceptions or ())

    def on_exception(self, event: RequestEvent, exc: BaseException) -> None:
        """Reports `exc`. The caller stays responsible for re-raising it."""
        if not event.is_main_request:
            return
        if self.ignored_exceptions and isinstance(exc, self.ignored_exceptions):
            return

        logger.debug(f"Reporting {type(exc).__name__} on {event.request.url.path} to New Relic")
        self.interactor.notice_throwable(exc)
