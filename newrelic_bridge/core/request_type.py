"""Request type enum for response events."""

from enum import Enum


class RequestType(str, Enum):
    """Whether a request is the top-level cycle or one dispatched inside it."""

    MAIN_REQUEST = "main_request"
    SUB_REQUEST = "sub_request"
