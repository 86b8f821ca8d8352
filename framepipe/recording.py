"""Sinks and filters that record pipeline data: CSV logs, raw files and PNG images."""

from __future__ import annotations

import os
import struct
import zlib
from dataclasses import dataclass
from typing import Any

from .components import PipelineFilter, PipelineSink


class FrameDroppedError(RuntimeError):
    """Raised when a logged frame number skips ahead of the expected one."""


# uint32 frame number, 3 float position, 3 float rotation, float fov,
# float depth range, padding to 8-byte alignment, uint64 timestamp
_LOG_LAYOUT = struct.Struct("<I3f3fff4xQ")

_CSV_HEADER = ",".join(
    (
        "frameNumber",
        "frameTimestampMs",
        "cameraPositionXMeters",
        "cameraPositionYMeters",
        "cameraPositionZMeters",
        "cameraRotationPitchDegrees",
        "cameraRotationYawDegrees",
        "cameraRotationRollDegrees",
        "cameraHorizontalFieldOfViewDegrees",
        "depthRangeMeters",
    )
)


def _as_bytes(data: Any, size: int) -> bytes:
    return bytes(data)[:size]


@dataclass(frozen=True)
class CsvLogData:
    """Camera parameters of one frame, in the binary layout the CSV logger reads."""

    frame_number: int = 0
    camera_pos: tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_rot: tuple[float, float, float] = (0.0, 0.0, 0.0)
    camera_vertical_fov: float = 0.0
    depth_range: float = 0.0
    frame_timestamp_ms: int = 0

    SIZE = _LOG_LAYOUT.size

    def pack(self) -> bytes:
        """Serialize to the packed binary layout."""
        try:
            return _LOG_LAYOUT.pack(
                self.frame_number,
                *self.camera_pos,
                *self.camera_rot,
                self.camera_vertical_fov,
                self.depth_range,
                self.frame_timestamp_ms,
            )
        except struct.error as exc:
            raise ValueError(f"Cannot pack log data: {exc}") from None

    @classmethod
    def unpack(cls, data: Any) -> CsvLogData:
        """Read log data from the start of a binary buffer."""
        try:
            values = _LOG_LAYOUT.unpack_from(data)
        except struct.error as exc:
            raise ValueError(f"Cannot unpack log data: {exc}") from None
        return cls(
            frame_number=values[0],
            camera_pos=tuple(values[1:4]),
            camera_rot=tuple(values[4:7]),
            camera_vertical_fov=values[7],
            depth_range=values[8],
            frame_timestamp_ms=values[9],
        )


def _number(value: float) -> str:
    return f"{value:g}"


class CsvLogger(PipelineFilter):
    """Converts binary :class:`CsvLogData` records into CSV lines.

    The header line is emitted with the first record. Frame numbers must
    start at zero and increase by one, otherwise :class:`FrameDroppedError`
    is raised.
    """

    def __init__(self) -> None:
        super().__init__()
        self.header_pushed = False
        self.expected_frame_number = 0
        target = self.output_pin(0)
        target.format = "csv"
        target.data, target.size = None, 0
        self.input_pin(0).set_accepted_formats("binary")

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None or size == 0:
            target.data, target.size = None, 0
            return

        record = CsvLogData.unpack(_as_bytes(data, size))
        if record.frame_number != self.expected_frame_number:
            raise FrameDroppedError("Frame dropped")
        self.expected_frame_number = record.frame_number + 1

        lines = []
        if not self.header_pushed:
            lines.append(_CSV_HEADER + "\n")
            self.header_pushed = True

        fields = [
            str(record.frame_number),
            str(record.frame_timestamp_ms),
            *(_number(v) for v in record.camera_pos),
            *(_number(v) for v in record.camera_rot),
            _number(record.camera_vertical_fov),
            _number(record.depth_range),
        ]
        lines.append(",".join(fields) + "\n")

        target.data = "".join(lines).encode("utf-8")
        target.size = len(target.data)


class FileSink(PipelineSink):
    """Appends incoming data of any format to a file, replacing any existing file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__(1)
        self.input_pin(0).accept_any_format()
        self.path = os.fspath(path)

        if os.path.exists(self.path):
            if not os.path.isfile(self.path):
                raise ValueError("Given path is not a file")
            try:
                os.remove(self.path)
            except OSError as exc:
                raise ValueError(f"Failed to remove existing file: {exc}") from None

        try:
            self._file = open(self.path, "ab")
        except OSError as exc:
            raise RuntimeError("Failed to open file") from exc

    def process(self) -> None:
        source = self.input_pin(0)
        data, size = source.data, source.size
        if data is None or size == 0:
            return
        self._file.write(_as_bytes(data, size))

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    body = kind + payload
    return struct.pack(">I", len(payload)) + body + struct.pack(">I", zlib.crc32(body))


def encode_png(data: Any, width: int, height: int) -> bytes:
    """Encode 8-bit RGBA pixel data as a PNG image."""
    if width <= 0 or height <= 0:
        raise ValueError("Image dimensions must be positive")
    stride = width * 4
    pixels = bytes(data)
    if len(pixels) < stride * height:
        raise ValueError(f"Expected at least {stride * height} bytes, got {len(pixels)}")

    raw = b"".join(
        b"\x00" + pixels[row * stride:(row + 1) * stride] for row in range(height)
    )
    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(raw))
        + _png_chunk(b"IEND", b"")
    )


class PngRecorder(PipelineSink):
    """Writes each RGBA frame of the expected size to ``<directory>/<index>.png``."""

    def __init__(self, directory: str | os.PathLike[str], width: int, height: int) -> None:
        super().__init__(1)
        self.input_pin(0).set_accepted_formats("rgba")
        self.directory = os.fspath(directory)
        self.width = width
        self.height = height
        self.frame_index = 0

        if not os.path.exists(self.directory):
            os.mkdir(self.directory)
        elif not os.path.isdir(self.directory):
            raise ValueError("Given path is a file, not a directory")

    def process(self) -> None:
        source = self.input_pin(0)
        data, size = source.data, source.size
        if data is None or size != self.width * self.height * 4:
            return
        separator = "" if self.directory.endswith("/") else "/"
        file_name = f"{self.directory}{separator}{self.frame_index}.png"
        with open(file_name, "wb") as handle:
            handle.write(encode_png(_as_bytes(data, size), self.width, self.height))
        self.frame_index += 1