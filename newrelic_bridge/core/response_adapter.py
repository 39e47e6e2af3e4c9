import logging
from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.responses import Response

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"


class ResponseAdapter:
    """Reads and replaces the body of a Starlette response.

    Responses coming back through `BaseHTTPMiddleware.call_next` only expose a
    `body_iterator`, so the body is drained on the first `get_content()` call
    and kept here. Use `to_response()` to build what goes back to the client.
    """

    def __init__(self, response: Response):
        self.response = response
        self._body: Optional[bytes] = None
        self._content: Optional[str] = None
        self.modified = False

    @property
    def headers(self) -> MutableHeaders:
        return self.response.headers

    @property
    def was_read(self) -> bool:
        return self._body is not None

    @property
    def charset(self) -> str:
        """The charset declared in the Content-Type header, or UTF-8."""
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return DEFAULT_CHARSET

    @property
    def is_encoded(self) -> bool:
        encoding = self.headers.get("content-encoding")
        return encoding is not None and encoding.strip().lower() not in ("", "identity")

    async def read_body(self) -> bytes:
        """Drains the body iterator once and returns the raw body bytes."""
        if self._body is None:
            body_iterator = getattr(self.response, "body_iterator", None)
            if body_iterator is None:
                self._body = bytes(self.response.body)
            else:
                chunks = []
                async for chunk in body_iterator:
                    if isinstance(chunk, str):
                        chunk = chunk.encode(self.charset)
                    chunks.append(chunk)
                self._body = b"".join(chunks)
        return self._body

    async def get_content(self) -> Optional[str]:
        """Returns the decoded body, or None when there is no text to work with.

        None is returned for empty bodies, compressed bodies, and bodies that
        do not decode in the declared charset.
        """
        if self._content is not None:
            return self._content
        if self.is_encoded:
            logger.debug(f"Response body is {self.headers.get('content-encoding')}-encoded; not decoding it.")
            return None

        body = await self.read_body()
        if not body:
            return None
        try:
            self._content = body.decode(self.charset)
        except (UnicodeDecodeError, LookupError) as e:
            logger.warning(f"Could not decode response body as {self.charset}: {e}")
            return None
        return self._content

    def set_content(self, content: str) -> "ResponseAdapter":
        """Replaces the body with `content`, encoded in the response's charset."""
        self._content = content
        self._body = content.encode(self.charset, errors="xmlcharrefreplace")
        self.modified = True
        return self

    def body_bytes(self) -> Optional[bytes]:
        return self._body

    def to_response(self) -> Response:
        """Returns the response to send downstream.

        The original response is returned untouched when its body was never read.
        Otherwise a new response carries the buffered body, the original status,
        headers and background task, and a Content-Length matching the body.
        """
        if self._body is None:
            return self.response

        new_response = Response(
            content=self._body,
            status_code=self.response.status_code,
            background=getattr(self.response, "background", None),
        )
        new_response.raw_headers = [
            (key, value) for key, value in self.response.raw_headers if key.lower() != b"content-length"
        ]
        new_response.raw_headers.append((b"content-length", str(len(self._body)).encode("latin-1")))
        return new_response
