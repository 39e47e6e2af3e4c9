"""Jinja2 helpers that render the New Relic browser timing snippets in templates.

Templates that place the snippets themselves call:

    {{ newrelic_browser_timing_header() }}   right after <head>
    {{ newrelic_browser_timing_footer() }}   right before </body>

The middleware then sees through the per-request NewRelicTemplateState that
the snippets are already in the page and leaves the body alone.
"""

import logging
from typing import Any

from jinja2 import Environment, pass_context
from jinja2.runtime import Context
from markupsafe import Markup
from starlette.requests import Request

from newrelic_bridge.apm.config import NewRelicConfig
from newrelic_bridge.apm.interactor import NewRelicInteractorInterface
from newrelic_bridge.exceptions import TemplateHelperError

logger = logging.getLogger(__name__)

HEADER_HELPER = "newrelic_browser_timing_header"
FOOTER_HELPER = "newrelic_browser_timing_footer"

# Keys on request.state, set by NewRelicMiddleware
CONFIG_STATE_KEY = "newrelic"
TEMPLATE_STATE_KEY = "newrelic_template_state"


class NewRelicTemplateState:
    """Tracks which browser timing helpers ran while rendering one request."""

    def __init__(self) -> None:
        self._used = False
        self._header_called = False
        self._footer_called = False

    def is_used(self) -> bool:
        return self._used

    def is_header_called(self) -> bool:
        return self._header_called

    def is_footer_called(self) -> bool:
        return self._footer_called

    def mark_header_called(self) -> None:
        self._used = True
        self._header_called = True

    def mark_footer_called(self) -> None:
        self._used = True
        self._footer_called = True


def _request_from_context(context: Context, helper_name: str) -> Request:
    request = context.get("request")
    if request is None:
        raise TemplateHelperError(
            f"'{helper_name}' needs the current request in the template context.", helper_name=helper_name
        )
    return request


def _state_attr(request: Request, key: str, helper_name: str) -> Any:
    value = getattr(request.state, key, None)
    if value is None:
        raise TemplateHelperError(
            f"'{helper_name}' found no '{key}' on request.state; is NewRelicMiddleware installed?",
            helper_name=helper_name,
        )
    return value


class NewRelicExtension:
    """Registers the browser timing helpers on a Jinja2 environment.

    Args:
        interactor: Where snippets come from and custom data goes to.
        instrument: When True the header helper turns off the agent's own RUM
            injection, since the template now places the snippets.
    """

    def __init__(self, interactor: NewRelicInteractorInterface, instrument: bool = True):
        self.interactor = interactor
        self.instrument = instrument

    def install(self, env: Environment) -> None:
        """Adds the helpers to `env.globals` (e.g. `Jinja2Templates(...).env`)."""
        env.globals[HEADER_HELPER] = self._make_header_helper()
        env.globals[FOOTER_HELPER] = self._make_footer_helper()

    def _make_header_helper(self):
        @pass_context
        def newrelic_browser_timing_header(context: Context) -> Markup:
            request = _request_from_context(context, HEADER_HELPER)
            state: NewRelicTemplateState = _state_attr(request, TEMPLATE_STATE_KEY, HEADER_HELPER)
            if state.is_header_called():
                raise TemplateHelperError(f"'{HEADER_HELPER}' has already been called.", helper_name=HEADER_HELPER)

            config: NewRelicConfig = _state_attr(request, CONFIG_STATE_KEY, HEADER_HELPER)
            self._prepare_interactor(config)
            state.mark_header_called()
            return Markup(self.interactor.get_browser_timing_header())

        return newrelic_browser_timing_header

    def _make_footer_helper(self):
        @pass_context
        def newrelic_browser_timing_footer(context: Context) -> Markup:
            request = _request_from_context(context, FOOTER_HELPER)
            state: NewRelicTemplateState = _state_attr(request, TEMPLATE_STATE_KEY, FOOTER_HELPER)
            if state.is_footer_called():
                raise TemplateHelperError(f"'{FOOTER_HELPER}' has already been called.", helper_name=FOOTER_HELPER)
            if not state.is_header_called():
                raise TemplateHelperError(
                    f"'{HEADER_HELPER}' must be called before '{FOOTER_HELPER}'.", helper_name=FOOTER_HELPER
                )

            state.mark_footer_called()
            return Markup(self.interactor.get_browser_timing_footer())

        return newrelic_browser_timing_footer

    def _prepare_interactor(self, config: NewRelicConfig) -> None:
        # Metrics and parameters go out here; the response listener skips them once the helpers ran.
        if self.instrument:
            self.interactor.disable_auto_rum()

        for name, value in config.get_custom_metrics().items():
            self.interactor.add_custom_metric(str(name), float(value))

        for name, value in config.get_custom_parameters().items():
            self.interactor.add_custom_parameter(str(name), value)
