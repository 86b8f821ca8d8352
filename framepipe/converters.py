"""Filters that convert pixel data between formats."""

from __future__ import annotations

from typing import Any

import numpy as np

from .components import PipelineFilter


def _bytes_of(data: Any, size: int) -> np.ndarray:
    """View the first ``size`` bytes of a buffer as an array of uint8."""
    return np.frombuffer(data, dtype=np.uint8, count=size)


def _pixels_of(data: Any, size: int) -> np.ndarray:
    """View a buffer as an array of 4-byte pixels, dropping any trailing partial pixel."""
    return _bytes_of(data, size - size % 4).reshape(-1, 4)


def _floats_of(data: Any, size: int) -> np.ndarray:
    return np.frombuffer(data, dtype=np.float32, count=size // 4)


class BgraToRgbaConverter(PipelineFilter):
    """Swaps the red and blue channels of BGRA or RGBA data and makes alpha opaque."""

    def __init__(self) -> None:
        super().__init__()
        self.input_pin(0).set_accepted_formats(("rgba", "bgra"))

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None or size == 0:
            target.data, target.size = None, 0
            return
        pixels = _pixels_of(data, size)
        result = pixels[:, [2, 1, 0, 3]].copy()
        result[:, 3] = 255
        target.data = result.tobytes()
        target.size = len(target.data)

    def on_input_pins_connected(self) -> None:
        swapped = {"rgba": "bgra", "bgra": "rgba"}
        input_format = self.input_pin(0).format
        if input_format not in swapped:
            raise ValueError("Invalid format")
        self.output_pin(0).format = swapped[input_format]


class DepthSeparator(PipelineFilter):
    """Splits RGBA data into an opaque color image followed by a grayscale depth image.

    The depth is taken from the alpha channel; the output is twice the input size.
    """

    def __init__(self) -> None:
        super().__init__()
        self.input_pin(0).set_accepted_formats("rgba")
        self.output_pin(0).format = "rgba"

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None or size == 0:
            target.data, target.size = None, 0
            return
        pixels = _pixels_of(data, size)
        color = pixels.copy()
        color[:, 3] = 255
        depth = np.repeat(pixels[:, 3:4], 4, axis=1)
        depth[:, 3] = 255
        target.data = np.concatenate((color, depth)).tobytes()
        target.size = len(target.data)


class DepthToYuvConverter(PipelineFilter):
    """Turns the alpha channel of RGBA/BGRA data into the luma plane of a YUV 4:2:0 image.

    Chroma is filled with a constant gray.
    """

    CHROMA_FILL = 127

    def __init__(self) -> None:
        super().__init__()
        self.input_pin(0).set_accepted_formats(("rgba", "bgra"))
        self.output_pin(0).format = "yuv420"

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None:
            return
        luma = _pixels_of(data, size)[:, 3].tobytes()
        chroma = bytes([self.CHROMA_FILL]) * (size // 8)
        target.data = luma + chroma
        target.size = len(target.data)


class FloatToByteConverter(PipelineFilter):
    """Converts 32-bit float color data in [0, 1] to 8-bit unsigned integers."""

    _OUTPUT_FORMATS = {"rgba32f": "rgba", "bgra32f": "bgra"}

    def __init__(self) -> None:
        super().__init__()
        self.input_pin(0).set_accepted_formats(("rgba32f", "bgra32f"))

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None:
            return
        values = np.nan_to_num(_floats_of(data, size), nan=0.0)
        scaled = np.clip(values, 0.0, 1.0) * np.float32(255)
        target.data = scaled.astype(np.uint8).tobytes()
        target.size = len(target.data)

    def on_input_pins_connected(self) -> None:
        input_format = self.input_pin(0).format
        if input_format not in self._OUTPUT_FORMATS:
            raise ValueError("Unsupported format")
        self.output_pin(0).format = self._OUTPUT_FORMATS[input_format]


class GammaCompressor(PipelineFilter):
    """Raises 32-bit float color values to the power of ``1 / gamma``."""

    def __init__(self, gamma: float) -> None:
        if gamma == 0:
            raise ValueError("Gamma cannot be zero")
        super().__init__()
        self.gamma = float(gamma)
        self.input_pin(0).set_accepted_formats(("rgba32f", "bgra32f"))

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None:
            return
        values = _floats_of(data, size)
        with np.errstate(invalid="ignore", divide="ignore"):
            result = np.power(values, np.float32(1.0 / self.gamma), dtype=np.float32)
        target.data = result.tobytes()
        target.size = len(target.data)

    def on_input_pins_connected(self) -> None:
        self.output_pin(0).format = self.input_pin(0).format


class ImageConcatenator(PipelineFilter):
    """Stacks ``count`` YUV 4:2:0 images of equal resolution vertically.

    Inputs whose size does not match one frame are skipped, leaving that
    part of the output as it was.
    """

    def __init__(self, count: int, frame_width: int, frame_height: int) -> None:
        super().__init__(count, 1)
        self.frame_width = frame_width
        self.frame_height = frame_height
        self._buffer = np.zeros(frame_width * frame_height * count * 3 // 2, dtype=np.uint8)
        for pin in self.input_pins:
            pin.set_accepted_formats("yuv420")
        target = self.output_pin(0)
        target.format = "yuv420"
        target.data = self._buffer.tobytes()
        target.size = len(self._buffer)

    def process(self) -> None:
        frame = self.frame_width * self.frame_height
        quarter = frame // 4
        count = self.input_count
        u_base = frame * count
        v_base = frame * 5 // 4 * count
        buffer = self._buffer
        for index, pin in enumerate(self.input_pins):
            data, size = pin.data, pin.size
            if data is None or size != frame * 3 // 2:
                continue
            src = _bytes_of(data, size)
            buffer[frame * index:frame * (index + 1)] = src[:frame]
            u_at = u_base + quarter * index
            buffer[u_at:u_at + quarter] = src[frame:frame + quarter]
            v_at = v_base + quarter * index
            v_from = frame * 5 // 4
            buffer[v_at:v_at + quarter] = src[v_from:v_from + quarter]
        target = self.output_pin(0)
        target.data = buffer.tobytes()
        target.size = len(buffer)