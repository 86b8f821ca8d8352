"""Base classes for pipeline sources, sinks and filters."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .pins import InputPin, OutputPin


class PipelineComponent(ABC):
    """Interface shared by every pipeline component."""

    @abstractmethod
    def process(self) -> None:
        """Process one step of data."""

    def close(self) -> None:
        """Release resources held by the component."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _check_count(count: int, kind: str) -> int:
    if count < 0:
        raise ValueError(f"{kind} pin count cannot be negative")
    return count


class PipelineSink(PipelineComponent):
    """A component that receives data through input pins."""

    def __init__(self, input_count: int = 1) -> None:
        self._input_pins = tuple(InputPin() for _ in range(_check_count(input_count, "Input")))

    @property
    def input_count(self) -> int:
        return len(self._input_pins)

    @property
    def input_pins(self) -> tuple[InputPin, ...]:
        return self._input_pins

    def input_pin(self, index: int) -> InputPin:
        if not 0 <= index < len(self._input_pins):
            raise IndexError("Input pin index out of bounds")
        return self._input_pins[index]

    def on_input_pins_connected(self) -> None:
        """Called once all input pins have been connected."""


class PipelineSource(PipelineComponent):
    """A component that produces data through output pins."""

    def __init__(self, output_count: int = 1) -> None:
        self._output_pins = tuple(
            OutputPin() for _ in range(_check_count(output_count, "Output"))
        )

    @property
    def output_count(self) -> int:
        return len(self._output_pins)

    @property
    def output_pins(self) -> tuple[OutputPin, ...]:
        return self._output_pins

    def output_pin(self, index: int) -> OutputPin:
        if not 0 <= index < len(self._output_pins):
            raise IndexError("Output pin index out of bounds")
        return self._output_pins[index]


class PipelineFilter(PipelineSink, PipelineSource):
    """A component with both input and output pins."""

    def __init__(self, input_count: int = 1, output_count: int = 1) -> None:
        PipelineSink.__init__(self, input_count)
        PipelineSource.__init__(self, output_count)