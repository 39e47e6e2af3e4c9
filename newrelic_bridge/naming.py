"""Strategies that turn a routed request into a New Relic transaction name."""

import abc
from typing import Dict, Type

from starlette.requests import Request

from newrelic_bridge.exceptions import ConfigurationError


class TransactionNamingStrategy(abc.ABC):
    @abc.abstractmethod
    def get_transaction_name(self, request: Request) -> str:
        raise NotImplementedError


class UriNamingStrategy(TransactionNamingStrategy):
    """Names transactions "<METHOD> <path>", e.g. "GET /books/42"."""

    def get_transaction_name(self, request: Request) -> str:
        return f"{request.method} {request.url.path}"


class EndpointNamingStrategy(TransactionNamingStrategy):
    """Names transactions after the endpoint the router resolved, e.g. "app.views:get_book".

    Falls back to the URI name when routing did not resolve an endpoint (404s, mounts).
    """

    def __init__(self) -> None:
        self.fallback = UriNamingStrategy()

    def get_transaction_name(self, request: Request) -> str:
        endpoint = request.scope.get("endpoint")
        if endpoint is None:
            return self.fallback.get_transaction_name(request)
        module = getattr(endpoint, "__module__", None) or "<unknown>"
        qualname = getattr(endpoint, "__qualname__", None) or type(endpoint).__qualname__
        return f"{module}:{qualname}"


NAMING_STRATEGIES: Dict[str, Type[TransactionNamingStrategy]] = {
    "uri": UriNamingStrategy,
    "endpoint": EndpointNamingStrategy,
}


def get_naming_strategy(name: str) -> TransactionNamingStrategy:
    """Instantiates the naming strategy registered under `name`.

    Raises:
        ConfigurationError: If no strategy is registered under `name`.
    """
    strategy_class = NAMING_STRATEGIES.get(name.lower())
    if strategy_class is None:
        raise ConfigurationError(
            f"Unknown transaction naming strategy '{name}'. Expected one of: {', '.join(NAMING_STRATEGIES)}"
        )
    return strategy_class()
