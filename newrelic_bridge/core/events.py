"""Events handed to the listeners at each stage of a request/response cycle."""

from dataclasses import dataclass

from starlette.requests import Request

from newrelic_bridge.core.request_type import RequestType
from newrelic_bridge.core.response_adapter import ResponseAdapter


@dataclass
class RequestEvent:
    """An incoming request, before the downstream application runs.

    Attributes:
        request: The incoming Starlette request.
        request_type: Whether this is the main request or a nested dispatch.
    """

    request: Request
    request_type: RequestType = RequestType.MAIN_REQUEST

    @property
    def is_main_request(self) -> bool:
        return self.request_type is RequestType.MAIN_REQUEST


@dataclass
class ResponseEvent:
    """An outgoing response, after the downstream application produced it.

    Attributes:
        request: The request the response answers.
        response: Body and header access on the outgoing response.
        request_type: Whether this is the main request or a nested dispatch.
    """

    request: Request
    response: ResponseAdapter
    request_type: RequestType = RequestType.MAIN_REQUEST

    @property
    def is_main_request(self) -> bool:
        return self.request_type is RequestType.MAIN_REQUEST
