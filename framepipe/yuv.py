"""Conversion between packed RGBA/BGRA images and planar YUV 4:2:0."""

from __future__ import annotations

from typing import Any

import numpy as np

from .components import PipelineFilter

# Positions of the red, green and blue channels within a 4-byte pixel
_CHANNELS = {"rgba": (0, 1, 2), "bgra": (2, 1, 0)}

_Y_WEIGHTS = (76, 150, 29)
_U_WEIGHTS = (-43, -84, 127)
_V_WEIGHTS = (127, -106, -21)
_CHROMA_OFFSET = 255 * 255

# Width in pixels of the blocks in which chroma is cached between row pairs
_CHROMA_BLOCK = 16


def _channel_order(fmt: str) -> tuple[int, int, int]:
    try:
        return _CHANNELS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported format: {fmt}") from None


def _check_rgba_dimensions(width: int, height: int) -> None:
    if width < 0 or height < 0:
        raise ValueError("Frame dimensions cannot be negative")
    if width % 4 or height % 2:
        raise ValueError(
            "RGBA to YUV conversion needs a width divisible by 4 and an even height"
        )


def _check_yuv_dimensions(width: int, height: int) -> None:
    if width < 0 or height < 0:
        raise ValueError("Frame dimensions cannot be negative")
    if width % _CHROMA_BLOCK or height % 2:
        raise ValueError(
            f"YUV to RGBA conversion needs a width divisible by {_CHROMA_BLOCK} "
            "and an even height"
        )


def _read(data: Any, size: int) -> np.ndarray:
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size < size:
        raise ValueError(f"Expected at least {size} bytes, got {buffer.size}")
    return buffer[:size]


def rgba_to_yuv420(data: Any, width: int, height: int, input_format: str = "rgba") -> bytes:
    """Convert a packed RGBA or BGRA image to planar YUV 4:2:0 bytes.

    Chroma is computed per 2x2 block: each column pair's vertical sums are
    converted and clamped separately, then averaged.
    """
    _check_rgba_dimensions(width, height)
    ri, gi, bi = _channel_order(input_format)
    area = width * height
    pixels = _read(data, area * 4).reshape(height, width, 4).astype(np.int32)
    r, g, b = pixels[..., ri], pixels[..., gi], pixels[..., bi]

    wr, wg, wb = _Y_WEIGHTS
    y = np.clip((r * wr + g * wg + b * wb) >> 8, 0, 255)

    r_sum = r[0::2] + r[1::2]
    g_sum = g[0::2] + g[1::2]
    b_sum = b[0::2] + b[1::2]

    def chroma(weights: tuple[int, int, int]) -> np.ndarray:
        cr, cg, cb = weights
        partial = np.clip(
            (r_sum * cr + g_sum * cg + b_sum * cb + _CHROMA_OFFSET) >> 9, 0, 255
        )
        return (partial[:, 0::2] + partial[:, 1::2]) >> 1

    planes = (y, chroma(_U_WEIGHTS), chroma(_V_WEIGHTS))
    return b"".join(plane.astype(np.uint8).tobytes() for plane in planes)


def yuv420_to_rgba(data: Any, width: int, height: int, output_format: str = "rgba") -> bytes:
    """Convert planar YUV 4:2:0 bytes to a packed RGBA or BGRA image with opaque alpha.

    Chroma terms are computed on each even row and reused on the following
    odd row. The reuse works on 16-pixel blocks whose cached values overlap:
    on odd rows, pixels 8 to 15 of every block but the last take the chroma
    of the first 8 pixels of the next block.
    """
    _check_yuv_dimensions(width, height)
    ri, gi, bi = _channel_order(output_format)
    area = width * height
    quarter = area // 4
    buffer = _read(data, area * 3 // 2)

    y = buffer[:area].reshape(height, width).astype(np.int32)
    cu = buffer[area:area + quarter].reshape(height // 2, width // 2).astype(np.int32) - 128
    cv = (
        buffer[area + quarter:area + 2 * quarter]
        .reshape(height // 2, width // 2)
        .astype(np.int32)
        - 128
    )

    r_term = cv + (cv >> 2) + (cv >> 3) + (cv >> 5)
    g_term = (
        (cu >> 2) + (cu >> 4) + (cu >> 5)
        + (cv >> 1) + (cv >> 3) + (cv >> 4) + (cv >> 5)
    )
    b_term = cu + (cu >> 1) + (cu >> 2) + (cu >> 6)

    columns = np.arange(width)
    block, offset = np.divmod(columns, _CHROMA_BLOCK)
    last_block = width // _CHROMA_BLOCK - 1
    half = _CHROMA_BLOCK // 2
    shifted = columns + np.where((offset >= half) & (block < last_block), half, 0)
    even_index = columns // 2
    odd_index = shifted // 2

    def expand(term: np.ndarray) -> np.ndarray:
        full = np.empty((height, width), dtype=np.int32)
        full[0::2] = term[:, even_index]
        full[1::2] = term[:, odd_index]
        return full

    out = np.empty((height, width, 4), dtype=np.uint8)
    out[..., ri] = np.clip(y + expand(r_term), 0, 255)
    out[..., gi] = np.clip(y - expand(g_term), 0, 255)
    out[..., bi] = np.clip(y + expand(b_term), 0, 255)
    out[..., 3] = 255
    return out.tobytes()


class RgbaToYuvConverter(PipelineFilter):
    """Converts RGBA or BGRA frames of a fixed size to YUV 4:2:0.

    Frames of any other size are ignored and the previous output is kept.
    """

    def __init__(self, frame_width: int, frame_height: int) -> None:
        _check_rgba_dimensions(frame_width, frame_height)
        super().__init__()
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.input_pin(0).set_accepted_formats(("rgba", "bgra"))
        size = frame_width * frame_height * 3 // 2
        target = self.output_pin(0)
        target.format = "yuv420"
        target.data = bytes(size)
        target.size = size

    def process(self) -> None:
        source = self.input_pin(0)
        data, size = source.data, source.size
        if data is None or size != self.frame_width * self.frame_height * 4:
            return
        self.output_pin(0).data = rgba_to_yuv420(
            data, self.frame_width, self.frame_height, source.format
        )


class YuvToRgbaConverter(PipelineFilter):
    """Converts YUV 4:2:0 frames of a fixed size to RGBA or BGRA.

    Frames of any other size are ignored and the previous output is kept.
    """

    def __init__(self, frame_width: int, frame_height: int, format: str = "rgba") -> None:
        if format not in _CHANNELS:
            raise ValueError("Unsupported output format: " + format)
        _check_yuv_dimensions(frame_width, frame_height)
        super().__init__()
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.input_pin(0).set_accepted_formats("yuv420")
        size = frame_width * frame_height * 4
        target = self.output_pin(0)
        target.format = format
        target.data = bytes(size)
        target.size = size

    def process(self) -> None:
        source = self.input_pin(0)
        data, size = source.data, source.size
        if data is None or size != self.frame_width * self.frame_height * 3 // 2:
            return
        target = self.output_pin(0)
        target.data = yuv420_to_rgba(data, self.frame_width, self.frame_height, target.format)