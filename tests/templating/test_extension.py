import pytest
from jinja2 import Environment

from newrelic_bridge.exceptions import TemplateHelperError
from newrelic_bridge.templating.extension import (
    FOOTER_HELPER,
    HEADER_HELPER,
    NewRelicExtension,
    NewRelicTemplateState,
)
from tests.helpers.factories import TIMING_FOOTER, TIMING_HEADER, make_request

PAGE = "<head>{{ newrelic_browser_timing_header() }}</head><body>{{ newrelic_browser_timing_footer() }}</body>"


@pytest.fixture
def env(mock_interactor) -> Environment:
    environment = Environment(autoescape=True)
    NewRelicExtension(mock_interactor).install(environment)
    return environment


@pytest.fixture
def request_with_state(config, template_state):
    return make_request(state={"newrelic": config, "newrelic_template_state": template_state})


def test_install_registers_helpers(env):
    assert HEADER_HELPER in env.globals
    assert FOOTER_HELPER in env.globals


def test_template_state_starts_unused():
    state = NewRelicTemplateState()

    assert state.is_used() is False
    assert state.is_header_called() is False
    assert state.is_footer_called() is False


def test_helpers_render_snippets_unescaped(env, mock_interactor, request_with_state, template_state):
    mock_interactor.get_browser_timing_header.return_value = "<script>h</script>"
    mock_interactor.get_browser_timing_footer.return_value = "<script>f</script>"

    html = env.from_string(PAGE).render(request=request_with_state)

    assert html == "<head><script>h</script></head><body><script>f</script></body>"
    assert template_state.is_used() is True
    assert template_state.is_header_called() is True
    assert template_state.is_footer_called() is True


def test_header_helper_flushes_metrics_and_parameters(env, mock_interactor, request_with_state, config):
    config.add_custom_metric("foo_a", 4.7)
    config.add_custom_parameter("foo_1", "bar_1")
    config.add_custom_event("WidgetSale", {"color": "red"})

    env.from_string("{{ newrelic_browser_timing_header() }}").render(request=request_with_state)

    mock_interactor.disable_auto_rum.assert_called_once_with()
    mock_interactor.add_custom_metric.assert_called_once_with("foo_a", 4.7)
    mock_interactor.add_custom_parameter.assert_called_once_with("foo_1", "bar_1")
    # events are left for the response listener
    mock_interactor.add_custom_event.assert_not_called()


def test_header_helper_keeps_auto_rum_when_not_instrumenting(mock_interactor, request_with_state):
    environment = Environment()
    NewRelicExtension(mock_interactor, instrument=False).install(environment)

    html = environment.from_string("{{ newrelic_browser_timing_header() }}").render(request=request_with_state)

    assert html == TIMING_HEADER
    mock_interactor.disable_auto_rum.assert_not_called()


def test_header_only_marks_header(env, request_with_state, template_state):
    env.from_string("{{ newrelic_browser_timing_header() }}").render(request=request_with_state)

    assert template_state.is_used() is True
    assert template_state.is_header_called() is True
    assert template_state.is_footer_called() is False


def test_header_helper_twice_raises(env, request_with_state):
    template = env.from_string("{{ newrelic_browser_timing_header() }}{{ newrelic_browser_timing_header() }}")

    with pytest.raises(TemplateHelperError, match="has already been called") as excinfo:
        template.render(request=request_with_state)
    assert excinfo.value.helper_name == HEADER_HELPER


def test_footer_helper_twice_raises(env, request_with_state):
    template = env.from_string(PAGE + "{{ newrelic_browser_timing_footer() }}")

    with pytest.raises(TemplateHelperError, match="has already been called"):
        template.render(request=request_with_state)


def test_footer_before_header_raises(env, request_with_state, mock_interactor):
    with pytest.raises(TemplateHelperError, match="must be called before"):
        env.from_string("{{ newrelic_browser_timing_footer() }}").render(request=request_with_state)
    mock_interactor.get_browser_timing_footer.assert_not_called()


def test_helper_without_request_in_context_raises(env):
    with pytest.raises(TemplateHelperError, match="needs the current request"):
        env.from_string("{{ newrelic_browser_timing_header() }}").render()


def test_helper_without_middleware_state_raises(env):
    with pytest.raises(TemplateHelperError, match="is NewRelicMiddleware installed"):
        env.from_string("{{ newrelic_browser_timing_header() }}").render(request=make_request())


def test_footer_snippet_comes_from_interactor(env, request_with_state):
    html = env.from_string(PAGE).render(request=request_with_state)

    assert html == f"<head>{TIMING_HEADER}</head><body>{TIMING_FOOTER}</body>"
