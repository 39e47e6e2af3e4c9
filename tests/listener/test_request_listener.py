from unittest.mock import MagicMock

import pytest

from newrelic_bridge.core.request_type import RequestType
from newrelic_bridge.listener.request_listener import RequestListener
from newrelic_bridge.naming import EndpointNamingStrategy, TransactionNamingStrategy, UriNamingStrategy
from tests.helpers.factories import make_request, make_request_event


def test_defaults_to_uri_naming(mock_interactor):
    listener = RequestListener(mock_interactor)

    assert isinstance(listener.naming_strategy, UriNamingStrategy)
    assert listener.ignored_paths == []


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/health", True),
        ("/healthz", False),
        ("/static/app.css", True),
        ("/static", False),
        ("/books", False),
    ],
)
def test_is_ignored(mock_interactor, path, expected):
    listener = RequestListener(mock_interactor, ignored_paths=["/health", "/static/"])

    assert listener.is_ignored(path) is expected


def test_ignored_path_ignores_transaction(mock_interactor):
    listener = RequestListener(mock_interactor, ignored_paths=["/health"])

    listener.on_request(make_request_event(make_request("/health")))

    mock_interactor.ignore_transaction.assert_called_once_with()


def test_other_paths_are_reported(mock_interactor):
    listener = RequestListener(mock_interactor, ignored_paths=["/health"])

    listener.on_request(make_request_event(make_request("/books")))

    mock_interactor.ignore_transaction.assert_not_called()


def test_sub_requests_are_skipped(mock_interactor):
    listener = RequestListener(mock_interactor, ignored_paths=["/health"])
    event = make_request_event(make_request("/health"), request_type=RequestType.SUB_REQUEST)

    listener.on_request(event)
    listener.name_transaction(event)

    assert mock_interactor.method_calls == []


def test_name_transaction_uses_strategy(mock_interactor):
    strategy = MagicMock(spec=TransactionNamingStrategy)
    strategy.get_transaction_name.return_value = "custom-name"
    listener = RequestListener(mock_interactor, naming_strategy=strategy)
    event = make_request_event(make_request("/books/1"))

    listener.name_transaction(event)

    strategy.get_transaction_name.assert_called_once_with(event.request)
    mock_interactor.set_transaction_name.assert_called_once_with("custom-name")


def test_name_transaction_with_endpoint_strategy(mock_interactor):
    def get_book():
        pass

    listener = RequestListener(mock_interactor, naming_strategy=EndpointNamingStrategy())

    listener.name_transaction(make_request_event(make_request("/books/1", endpoint=get_book)))

    mock_interactor.set_transaction_name.assert_called_once_with(f"{__name__}:{get_book.__qualname__}")
