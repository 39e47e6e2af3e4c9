from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field

Scalar = Union[str, int, float, bool, None]


class NewRelicConfig(BaseModel):
    """Custom telemetry collected while a request is handled.

    A fresh instance lives on `request.state.newrelic` for every main request.
    Handlers add metrics, parameters and events to it; the response listener
    forwards everything to the agent once the response is ready.
    """

    custom_events: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    custom_metrics: Dict[str, float] = Field(default_factory=dict)
    custom_parameters: Dict[str, Scalar] = Field(default_factory=dict)

    def add_custom_event(self, name: str, attributes: Dict[str, Any]) -> None:
        """Queues one occurrence of the custom event `name`."""
        self.custom_events.setdefault(name, []).append(dict(attributes))

    def add_custom_metric(self, name: str, value: float) -> None:
        self.custom_metrics[name] = float(value)

    def add_custom_parameter(self, name: str, value: Scalar) -> None:
        """Sets a custom parameter on the transaction.

        Raises:
            ValueError: If `value` is not a scalar.
        """
        if value is not None and not isinstance(value, (str, int, float, bool)):
            raise ValueError(f"Custom parameter '{name}' must be a scalar, got {type(value).__name__}.")
        self.custom_parameters[name] = value

    def get_custom_events(self) -> Dict[str, List[Dict[str, Any]]]:
        return self.custom_events

    def get_custom_metrics(self) -> Dict[str, float]:
        return self.custom_metrics

    def get_custom_parameters(self) -> Dict[str, Scalar]:
        return self.custom_parameters
