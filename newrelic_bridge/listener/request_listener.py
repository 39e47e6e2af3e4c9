import logging
from typing import Iterable, List, Optional

from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.core.events import RequestEvent
from newrelic_bridge.naming import TransactionNamingStrategy, UriNamingStrategy

logger = logging.getLogger(__name__)


class RequestListener:
    """Ignores and names transactions for main requests.

    Args:
        interactor: The agent to report to.
        ignored_paths: Paths never reported. An entry ending in "/" also
            matches everything below it.
        naming_strategy: How transactions are named once routing is done.
    """

    def __init__(
        self,
        interactor: NewRelicInteractorInterface,
        ignored_paths: Optional[Iterable[str]] = None,
        naming_strategy: Optional[TransactionNamingStrategy] = None,
    ):
        self.interactor = interactor
        self.ignored_paths: List[str] = list(ignored_paths or [])
        self.naming_strategy = naming_strategy or UriNamingStrategy()

    def is_ignored(self, path: str) -> bool:
        for ignored in self.ignored_paths:
            if path == ignored or (ignored.endswith("/") and path.startswith(ignored)):
                return True
        return False

    def on_request(self, event: RequestEvent) -> None:
        if not event.is_main_request:
            return

        path = event.request.url.path
        if self.is_ignored(path):
            logger.debug(f"Ignoring New Relic transaction for {path}")
            self.interactor.ignore_transaction()

    def name_transaction(self, event: RequestEvent) -> None:
        """Names the transaction. Call after the router resolved the endpoint."""
        if not event.is_main_request:
            return

        self.interactor.set_transaction_name(self.naming_strategy.get_transaction_name(event.request))
