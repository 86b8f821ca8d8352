"""Input and output pins that carry data between pipeline components."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class PinError(RuntimeError):
    """Raised when a pin is misconfigured or connected to an incompatible pin."""


class OutputPin:
    """One output data stream of a pipeline component.

    Holds a reference to the component's current output buffer, its size in
    bytes and a format name. The format is fixed once the pin is connected.
    """

    def __init__(self) -> None:
        self.data: Any = None
        self.size: int = 0
        self._format = "error"
        self._connected = False

    @property
    def format(self) -> str:
        return self._format

    @format.setter
    def format(self, value: str) -> None:
        # Format changes cannot be propagated after the pipeline is built
        if self._connected:
            raise PinError("Format cannot be changed while the pin is connected")
        self._format = value

    @property
    def connected(self) -> bool:
        return self._connected

    def lock_connection(self) -> None:
        """Mark the pin as connected, freezing its format."""
        self._connected = True

    def __repr__(self) -> str:
        return f"OutputPin(format={self._format!r}, size={self.size})"


class InputPin:
    """One input data stream of a pipeline component.

    Must be connected to an :class:`OutputPin` whose format it accepts before
    it can deliver data.
    """

    def __init__(self) -> None:
        self._connected_pin: OutputPin | None = None
        self._accepted_formats: tuple[str, ...] = ()
        self._accept_any = False

    @property
    def is_connected(self) -> bool:
        return self._connected_pin is not None

    @property
    def connected_pin(self) -> OutputPin:
        if self._connected_pin is None:
            raise PinError("Input pin is not connected")
        return self._connected_pin

    @property
    def data(self) -> Any:
        return self.connected_pin.data

    @property
    def size(self) -> int:
        return self.connected_pin.size

    @property
    def format(self) -> str:
        return self.connected_pin.format

    @property
    def accepted_formats(self) -> tuple[str, ...]:
        return self._accepted_formats

    @property
    def accepts_any_format(self) -> bool:
        return self._accept_any

    def _ensure_unconnected(self) -> None:
        if self._connected_pin is not None:
            raise PinError("Accepted formats cannot be changed while the pin is connected")

    def set_accepted_formats(self, formats: str | Iterable[str]) -> None:
        """Set the formats this pin accepts; a single string names one format."""
        self._ensure_unconnected()
        if isinstance(formats, str):
            formats = (formats,)
        self._accepted_formats = tuple(formats)

    def accept_any_format(self) -> None:
        """Make the pin accept data of any format."""
        self._ensure_unconnected()
        self._accept_any = True

    def connect(self, output_pin: OutputPin) -> None:
        """Connect to an output pin, checking that its format is accepted."""
        output_format = output_pin.format
        if not (self._accept_any or output_format in self._accepted_formats):
            raise PinError(
                f"This pin does not accept {output_format} data. The pipeline components "
                "must be rearranged so that the data formats are compatible"
            )
        self._connected_pin = output_pin
        output_pin.lock_connection()

    def __repr__(self) -> str:
        accepted = "any" if self._accept_any else list(self._accepted_formats)
        return f"InputPin(accepted={accepted!r}, connected={self.is_connected})"