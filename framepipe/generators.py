"""Sources that generate images and a detector for latency blinks."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import IO

import numpy as np

from .components import PipelineFilter, PipelineSource

Clock = Callable[[], int]


def _open_log(log_path: str | None) -> IO[str] | None:
    return open(log_path, "w", encoding="utf-8") if log_path else None


class SolidColorImageGenerator(PipelineSource):
    """Produces one constant image; build it with :meth:`rgba` or :meth:`yuv`."""

    def __init__(self, data: bytes, format: str) -> None:
        super().__init__(1)
        pin = self.output_pin(0)
        pin.format = format
        pin.data = data
        pin.size = len(data)

    @classmethod
    def rgba(
        cls,
        width: int,
        height: int,
        red: int,
        green: int,
        blue: int,
        alpha: int,
        format: str = "rgba",
    ) -> SolidColorImageGenerator:
        """A solid color image in BGRA order if ``format`` is "bgra", otherwise RGBA."""
        if format == "bgra":
            pixel = bytes((blue, green, red, alpha))
        else:
            pixel, format = bytes((red, green, blue, alpha)), "rgba"
        return cls(pixel * (width * height), format)

    @classmethod
    def yuv(cls, width: int, height: int, y: int, u: int, v: int) -> SolidColorImageGenerator:
        """A solid color YUV 4:2:0 image."""
        area = width * height
        planes = bytes([y]) * area + bytes([u]) * (area // 4) + bytes([v]) * (area // 4)
        size = area * 3 // 2
        data = planes[:size].ljust(size, b"\0")
        return cls(data, "yuv420")

    def process(self) -> None:
        """The image is constant, so there is nothing to do."""


class BlinkerSource(PipelineSource):
    """Alternates between black and white frames at a fixed frequency.

    Each swap is logged as ``<nanoseconds> white|black`` when a log path is given.
    """

    BLACK = bytes((0, 0, 0, 255))
    WHITE = bytes((255, 255, 255, 255))

    def __init__(
        self,
        width: int,
        height: int,
        frequency: float,
        log_path: str | None = "",
        format: str = "rgba",
        clock: Clock = time.time_ns,
    ) -> None:
        if format not in ("bgra", "rgba"):
            raise ValueError("Unsupported format " + format)
        if frequency <= 0:
            raise ValueError("Frequency must be positive")
        ns_between_swaps = int(500_000_000.0 / frequency)
        if ns_between_swaps <= 0:
            raise ValueError("Frequency is too high")
        super().__init__(1)
        self.ns_between_swaps = ns_between_swaps
        self._clock = clock
        self._frames = (self.BLACK * (width * height), self.WHITE * (width * height))
        self._index = 1
        pin = self.output_pin(0)
        pin.format = format
        pin.size = width * height * 4
        pin.data = self._frames[0]
        self._log = _open_log(log_path)

    def process(self) -> None:
        now = self._clock()
        if (now // self.ns_between_swaps) % 2 == self._index:
            return
        if self._log is not None:
            self._log.write(f"{now} {'white' if self._index == 1 else 'black'}\n")
            self._log.flush()
        self.output_pin(0).data = self._frames[self._index]
        self._index = (self._index + 1) % 2

    def close(self) -> None:
        if self._log is not None:
            self._log.close()
            self._log = None


class BlinkDetector(PipelineFilter):
    """Detects black/white changes in the first byte of a frame and logs them.

    Frames are passed through unchanged.
    """

    def __init__(self, log_path: str | None = "", clock: Clock = time.time_ns) -> None:
        super().__init__()
        self._clock = clock
        self.is_white = False
        self.input_pin(0).set_accepted_formats(("bgra", "rgba", "yuv420"))
        self._log = _open_log(log_path)

    def process(self) -> None:
        source = self.input_pin(0)
        data, size = source.data, source.size
        if data is None or size == 0:
            return
        target = self.output_pin(0)
        target.data, target.size = data, size
        is_white = int(np.frombuffer(data, dtype=np.uint8, count=1)[0]) > 127
        if is_white != self.is_white:
            self.is_white = is_white
            now = self._clock()
            if self._log is not None:
                self._log.write(f"{now} {'white' if is_white else 'black'}\n")
                self._log.flush()

    def on_input_pins_connected(self) -> None:
        self.output_pin(0).format = self.input_pin(0).format

    def close(self) -> None:
        if self._log is not None:
            self._log.close()
            self._log = None