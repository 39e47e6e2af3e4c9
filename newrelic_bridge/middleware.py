import logging
from typing import Any, Dict, Iterable, Optional, Type

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from newrelic_bridge.apm.config import NewRelicConfig
from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.core.events import RequestEvent, ResponseEvent
from newrelic_bridge.core.request_type import RequestType
from newrelic_bridge.core.response_adapter import ResponseAdapter
from newrelic_bridge.listener.exception_listener import ExceptionListener
from newrelic_bridge.listener.request_listener import RequestListener
from newrelic_bridge.listener.response_listener import DEFAULT_CACHE_STATUS_HEADER, ResponseListener
from newrelic_bridge.naming import TransactionNamingStrategy, get_naming_strategy
from newrelic_bridge.settings import Settings
from newrelic_bridge.templating.extension import CONFIG_STATE_KEY, TEMPLATE_STATE_KEY, NewRelicTemplateState

logger = logging.getLogger(__name__)

# Set on the ASGI scope by the outermost NewRelicMiddleware; nested dispatches see it and are sub-requests
DISPATCH_SCOPE_KEY = "newrelic_bridge.dispatching"


class NewRelicMiddleware(BaseHTTPMiddleware):
    """Runs the request, exception and response listeners around every HTTP request.

    For main requests a fresh NewRelicConfig is placed on `request.state.newrelic`
    so handlers can record custom metrics, parameters and events:

        request.state.newrelic.add_custom_metric("Custom/Books/Exported", 12)
    """

    def __init__(
        self,
        app: ASGIApp,
        interactor: NewRelicInteractorInterface,
        instrument: bool = True,
        end_transaction_on_cache_hit: bool = False,
        cache_status_header: str = DEFAULT_CACHE_STATUS_HEADER,
        ignored_paths: Optional[Iterable[str]] = None,
        naming_strategy: Optional[TransactionNamingStrategy] = None,
        ignored_exceptions: Optional[Iterable[Type[BaseException]]] = None,
    ):
        super().__init__(app)
        self.interactor = interactor
        self.instrument = instrument
        self.end_transaction_on_cache_hit = end_transaction_on_cache_hit
        self.cache_status_header = cache_status_header
        self.request_listener = RequestListener(interactor, ignored_paths=ignored_paths, naming_strategy=naming_strategy)
        self.exception_listener = ExceptionListener(interactor, ignored_exceptions=ignored_exceptions)

    @staticmethod
    def detect_request_type(request: Request) -> RequestType:
        if request.scope.get(DISPATCH_SCOPE_KEY):
            return RequestType.SUB_REQUEST
        return RequestType.MAIN_REQUEST

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_type = self.detect_request_type(request)
        if request_type is RequestType.MAIN_REQUEST:
            request.scope[DISPATCH_SCOPE_KEY] = True
            setattr(request.state, CONFIG_STATE_KEY, NewRelicConfig())
            setattr(request.state, TEMPLATE_STATE_KEY, NewRelicTemplateState())

        event = RequestEvent(request=request, request_type=request_type)
        self.request_listener.on_request(event)

        try:
            response = await call_next(request)
        except Exception as exc:
            self.exception_listener.on_exception(event, exc)
            raise

        if request_type is RequestType.SUB_REQUEST:
            return response

        self.request_listener.name_transaction(event)

        adapter = ResponseAdapter(response)
        response_listener = ResponseListener(
            config=getattr(request.state, CONFIG_STATE_KEY),
            interactor=self.interactor,
            instrument=self.instrument,
            end_transaction_on_cache_hit=self.end_transaction_on_cache_hit,
            template_state=getattr(request.state, TEMPLATE_STATE_KEY),
            cache_status_header=self.cache_status_header,
        )
        await response_listener.on_response(ResponseEvent(request=request, response=adapter, request_type=request_type))
        return adapter.to_response()


def middleware_options(settings: Settings, interactor: NewRelicInteractorInterface) -> Dict[str, Any]:
    """Keyword arguments for `app.add_middleware(NewRelicMiddleware, **options)` read from settings.

    Raises:
        ConfigurationError: If NEWRELIC_TRANSACTION_NAMING names an unknown strategy.
        ValueError: If a boolean setting is malformed.
    """
    return {
        "interactor": interactor,
        "instrument": settings.get_instrument(),
        "end_transaction_on_cache_hit": settings.get_end_transaction_on_cache_hit(),
        "cache_status_header": settings.get_cache_status_header(),
        "ignored_paths": settings.get_ignored_paths(),
        "naming_strategy": get_naming_strategy(settings.get_transaction_naming()),
    }
