class NewRelicBridgeError(Exception):
    """Base exception for all newrelic_bridge errors."""

    pass


class ConfigurationError(NewRelicBridgeError, ValueError):
    """Exception raised when the bridge is configured with an unknown or invalid value."""

    pass


class TemplateHelperError(NewRelicBridgeError, RuntimeError):
    """Exception raised when a browser timing template helper is misused during rendering."""

    def __init__(self, *args, helper_name: str | None = None):
        super().__init__(*args)
        self.helper_name = helper_name
