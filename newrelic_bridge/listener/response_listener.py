"""Flushes custom telemetry and injects browser timing into outgoing responses."""

import logging
import re
from typing import Optional

from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from newrelic_bridge.apm.config import NewRelicConfig
from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.core.events import ResponseEvent
from newrelic_bridge.core.response_adapter import ResponseAdapter
from newrelic_bridge.templating.extension import NewRelicTemplateState

logger = logging.getLogger(__name__)

# Handlers set request.state.newrelic_instrument = False to opt a single response out of injection
INSTRUMENT_STATE_KEY = "newrelic_instrument"

DEFAULT_CACHE_STATUS_HEADER = "X-Cache"
CACHE_HIT_TOKENS = frozenset({"hit", "fresh"})

HEAD_OPEN_TAG = re.compile(re.escape("<head>"), re.IGNORECASE)
BODY_CLOSE_TAG = re.compile(re.escape("</body>"), re.IGNORECASE)


def is_cache_hit(headers: MutableHeaders, header_name: str = DEFAULT_CACHE_STATUS_HEADER) -> bool:
    """Whether the cache status header reports the response as served from cache.

    Matches values like "HIT", "HIT from edge-1" and "GET /: fresh".
    """
    value = headers.get(header_name)
    if not value:
        return False
    tokens = re.split(r"[\s,;:]+", value.lower())
    return any(token in CACHE_HIT_TOKENS for token in tokens)


def is_html(headers: MutableHeaders) -> bool:
    content_type = headers.get("content-type")
    return content_type is not None and content_type.strip().lower().startswith("text/html")


def insert_after_head(content: str, snippet: str) -> str:
    """Inserts `snippet` right after the first `<head>` tag, if there is one."""
    match = HEAD_OPEN_TAG.search(content)
    if match is None:
        return content
    return content[: match.end()] + snippet + content[match.end() :]


def insert_before_body_close(content: str, snippet: str) -> str:
    """Inserts `snippet` right before the last `</body>` tag, if there is one."""
    last_match = None
    for last_match in BODY_CLOSE_TAG.finditer(content):
        pass
    if last_match is None:
        return content
    return content[: last_match.start()] + snippet + content[last_match.start() :]


class ResponseListener:
    """Runs once per main-request response.

    Args:
        config: Custom telemetry collected for this request.
        interactor: The agent to report to.
        instrument: Whether browser timing snippets are injected into HTML bodies.
        end_transaction_on_cache_hit: End the transaction and stop when the
            response was served from an HTTP cache.
        template_state: Which browser timing helpers the templates already rendered.
        cache_status_header: Header inspected for cache hits.
    """

    def __init__(
        self,
        config: NewRelicConfig,
        interactor: NewRelicInteractorInterface,
        instrument: bool = True,
        end_transaction_on_cache_hit: bool = False,
        template_state: Optional[NewRelicTemplateState] = None,
        cache_status_header: str = DEFAULT_CACHE_STATUS_HEADER,
    ):
        self.config = config
        self.interactor = interactor
        self.instrument = instrument
        self.end_transaction_on_cache_hit = end_transaction_on_cache_hit
        self.template_state = template_state
        self.cache_status_header = cache_status_header

    async def on_response(self, event: ResponseEvent) -> None:
        """Reports custom telemetry and instruments the response body.

        Never raises: agent errors are logged and the response is sent as is.
        """
        if not event.is_main_request:
            return

        try:
            await self._process(event)
        except Exception as e:
            logger.error(f"New Relic response instrumentation failed for {event.request.url.path}: {e}", exc_info=True)

    async def _process(self, event: ResponseEvent) -> None:
        self._flush_custom_data()

        response = event.response
        if self.end_transaction_on_cache_hit and is_cache_hit(response.headers, self.cache_status_header):
            self.interactor.end_transaction()
            return

        if not self._should_instrument(event.request):
            self.interactor.disable_auto_rum()
            return

        if not is_html(response.headers):
            return

        inject_header = True
        inject_footer = True
        if self.template_state is not None and self.template_state.is_used():
            inject_header = not self.template_state.is_header_called()
            inject_footer = not self.template_state.is_footer_called()

        await self._inject(response, inject_header, inject_footer)

    def _flush_custom_data(self) -> None:
        for name, events in self.config.get_custom_events().items():
            for attributes in events:
                self.interactor.add_custom_event(str(name), attributes)

        # The template helpers flush metrics and parameters while rendering the header
        if self.template_state is not None and self.template_state.is_used():
            return

        for name, value in self.config.get_custom_metrics().items():
            self.interactor.add_custom_metric(str(name), float(value))

        for name, value in self.config.get_custom_parameters().items():
            self.interactor.add_custom_parameter(str(name), value)

    def _should_instrument(self, request: Request) -> bool:
        if not self.instrument:
            return False
        return bool(getattr(request.state, INSTRUMENT_STATE_KEY, True))

    async def _inject(self, response: ResponseAdapter, inject_header: bool, inject_footer: bool) -> None:
        content = await response.get_content()
        if not content:
            return

        if inject_header:
            content = insert_after_head(content, self.interactor.get_browser_timing_header())
        if inject_footer:
            content = insert_before_body_close(content, self.interactor.get_browser_timing_footer())

        response.set_content(content)
