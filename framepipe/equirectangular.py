"""Conversion of a 360 cubemap into an equirectangular panorama.

The cubemap is a single packed 4-byte-per-pixel image holding the six faces
side by side, in the order of :class:`CubeFace`. Each face is
``input_width`` by ``input_height`` pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

import numpy as np

from .components import PipelineFilter

FACES_IN_A_CUBE = 6

_F32 = np.float32
PI = _F32(3.1415926535897932)


class FilterDirection(IntEnum):
    """Direction in which a sample leaves or enters a cubemap face."""

    DOWN = 0
    RIGHT = 1
    UP = 2
    LEFT = 3


class CubeFace(IntEnum):
    """Cubemap faces, in the order they are stored in the input image."""

    TOP = 0
    LEFT = 1
    FRONT = 2
    RIGHT = 3
    BACK = 4
    BOTTOM = 5


_F = CubeFace
_D = FilterDirection

# Adjacent faces for each face, indexed by face and then by exit direction
_ADJACENT_FACES = (
    (_F.BACK, _F.RIGHT, _F.FRONT, _F.LEFT),
    (_F.TOP, _F.FRONT, _F.BOTTOM, _F.BACK),
    (_F.TOP, _F.RIGHT, _F.BOTTOM, _F.LEFT),
    (_F.TOP, _F.BACK, _F.BOTTOM, _F.FRONT),
    (_F.TOP, _F.LEFT, _F.BOTTOM, _F.RIGHT),
    (_F.FRONT, _F.RIGHT, _F.BACK, _F.LEFT),
)

# Direction from which the adjacent face is entered, same indexing as above
_ENTRY_DIRECTIONS = (
    (_D.DOWN, _D.DOWN, _D.DOWN, _D.DOWN),
    (_D.LEFT, _D.LEFT, _D.LEFT, _D.RIGHT),
    (_D.UP, _D.LEFT, _D.DOWN, _D.RIGHT),
    (_D.RIGHT, _D.LEFT, _D.RIGHT, _D.RIGHT),
    (_D.DOWN, _D.LEFT, _D.UP, _D.RIGHT),
    (_D.UP, _D.UP, _D.UP, _D.UP),
)

# Sample offsets for the bottom-left, bottom-right, top-left and top-right pixels
_CORNER_OFFSETS = ((0, 0), (1, 0), (0, 1), (1, 1))


@dataclass(frozen=True)
class CubeCoords:
    """Where one panorama pixel is sampled from on the cubemap."""

    face: CubeFace
    x: int
    y: int
    index_bl: int
    index_br: int
    index_tl: int
    index_tr: int
    weight_bl: float
    weight_br: float
    weight_tl: float
    weight_tr: float


class Equirectangular360Converter(PipelineFilter):
    """Converts a cubemap of six RGBA/BGRA faces into an equirectangular panorama.

    The mapping from panorama pixels to cubemap samples is computed once at
    construction. With bilinear filtering, samples that fall over a face edge
    are taken from the neighbouring face.
    """

    def __init__(
        self,
        input_width: int,
        input_height: int,
        output_width: int,
        output_height: int,
        bilinear_filtering: bool = True,
    ) -> None:
        if input_width <= 0 or input_height <= 0:
            raise ValueError("Input frame dimensions must be positive")
        if output_width < 0 or output_height < 0:
            raise ValueError("Output frame dimensions cannot be negative")
        super().__init__()
        self.input_width = input_width
        self.input_height = input_height
        self.output_width = output_width
        self.output_height = output_height
        self.bilinear_filtering = bool(bilinear_filtering)
        self.output_size = output_width * output_height * 4
        self.input_pin(0).set_accepted_formats(("rgba", "bgra"))
        self._build_map()

    @property
    def input_size(self) -> int:
        return self.input_width * self.input_height * FACES_IN_A_CUBE * 4

    def _build_map(self) -> None:
        w, h = self.input_width, self.input_height
        ow, oh = self.output_width, self.output_height

        half_pi = PI / _F32(2)
        quarter_pi = PI / _F32(4)
        three_quarters_pi = PI * _F32(3) / _F32(4)
        half_side = _F32(w) / _F32(2)

        jj, ii = np.meshgrid(
            np.arange(oh, dtype=np.float32), np.arange(ow, dtype=np.float32), indexing="ij"
        )
        ii, jj = ii.ravel(), jj.ravel()

        theta = ((_F32(2) * ii) / _F32(max(ow, 1)) - _F32(1)) * PI
        phi = ((_F32(2) * jj) / _F32(max(oh, 1)) - _F32(1)) * half_pi

        x = np.cos(phi) * np.cos(theta)
        y = np.sin(phi)
        z = np.cos(phi) * np.sin(theta)

        front = (theta >= -quarter_pi) & (theta <= quarter_pi)
        left = ~front & (theta >= -three_quarters_pi) & (theta <= -quarter_pi)
        right = ~front & ~left & (theta >= quarter_pi) & (theta <= three_quarters_pi)
        back = ~(front | left | right)

        face = np.select(
            [front, left, right], [int(_F.FRONT), int(_F.LEFT), int(_F.RIGHT)], int(_F.BACK)
        ).astype(np.int64)
        theta = np.where(left, theta + half_pi, theta)
        theta = np.where(right, theta - half_pi, theta)
        theta = np.where(back, np.where(theta > 0, theta - PI, theta + PI), theta).astype(
            np.float32
        )

        threshold = np.arctan2(_F32(1), _F32(1) / np.cos(theta))
        face = np.where(phi > threshold, int(_F.BOTTOM), face)
        face = np.where(phi < -threshold, int(_F.TOP), face)

        order = (_F.TOP, _F.BOTTOM, _F.LEFT, _F.RIGHT, _F.FRONT, _F.BACK)
        conds = [face == int(f) for f in order]
        axis = np.select(conds, [y, y, z, z, x, x]).astype(np.float32)
        cube_x = np.select(conds, [z, x, x, y, z, y]).astype(np.float32)
        cube_y = np.select(conds, [x, z, y, x, y, z]).astype(np.float32)
        angle = np.select(
            conds, [PI, -half_pi, PI, half_pi, _F32(0), -half_pi]
        ).astype(np.float32)

        with np.errstate(divide="ignore", invalid="ignore"):
            ratio = half_side / axis
        cube_x = cube_x * ratio
        cube_y = cube_y * ratio

        cos_a, sin_a = np.cos(angle), np.sin(angle)
        raw_x = (cube_x * cos_a - cube_y * sin_a + half_side).astype(np.float32)
        raw_y = (cube_x * sin_a + cube_y * cos_a + half_side).astype(np.float32)

        # The half-pixel shifts centre the sampling area on each pixel
        shifted_x = raw_x.astype(np.float64) - 0.5
        shifted_y = raw_y.astype(np.float64) - 0.5
        face_x = np.floor(shifted_x).astype(np.int64)
        face_y = np.floor(shifted_y).astype(np.int64)
        dx = (shifted_x - face_x).astype(np.float32)
        dy = (shifted_y - face_y).astype(np.float32)

        one = _F32(1)
        weights = np.stack(
            ((one - dx) * (one - dy), dx * (one - dy), (one - dx) * dy, dx * dy), axis=1
        ).astype(np.float32)

        stride = FACES_IN_A_CUBE * w
        indices = np.stack(
            [((face_y + oy) * stride + (face_x + ox) + face * w) * 4 for ox, oy in _CORNER_OFFSETS],
            axis=1,
        ).astype(np.int64)

        crossing = (face_x + 1 >= w) | (face_y + 1 >= h) | (face_x < 0) | (face_y < 0)
        for p in np.flatnonzero(crossing):
            indices[p] = self._sample_indices(int(face[p]), int(face_x[p]), int(face_y[p]))

        self._face = face
        self._x = np.clip(np.trunc(raw_x).astype(np.int64), 0, w - 1)
        self._y = np.clip(np.trunc(raw_y).astype(np.int64), 0, h - 1)
        self._indices = indices
        self._weights = weights
        self._nearest = (self._y * stride + self._x + face * w) * 4

    def _sample_indices(self, face: int, face_x: int, face_y: int) -> list[int]:
        """Byte indices of the four bilinear samples, following face edges where needed."""
        w, h = self.input_width, self.input_height
        faces = [face] * 4
        out_dirs: list[FilterDirection | None] = [None] * 4
        in_dirs: list[FilterDirection | None] = [None] * 4

        def cross(corners: tuple[int, int], direction: FilterDirection) -> None:
            for k in corners:
                out_dirs[k] = direction
                in_dirs[k] = _ENTRY_DIRECTIONS[faces[k]][direction]
                faces[k] = int(_ADJACENT_FACES[faces[k]][direction])

        if face_x + 1 >= w:
            cross((1, 3), FilterDirection.RIGHT)
        if face_y + 1 >= h:
            cross((2, 3), FilterDirection.UP)
        if face_x < 0:
            cross((0, 2), FilterDirection.LEFT)
        if face_y < 0:
            cross((0, 1), FilterDirection.DOWN)

        stride = FACES_IN_A_CUBE * w
        result = []
        for k, (ox, oy) in enumerate(_CORNER_OFFSETS):
            sx, sy = face_x + ox, face_y + oy
            if faces[k] == face:
                result.append((sy * stride + sx + faces[k] * w) * 4)
            else:
                result.append(self.edge_pixel_index(out_dirs[k], in_dirs[k], faces[k], sx, sy))
        return result

    def edge_pixel_index(
        self, out_dir: int, in_dir: int, face: int, face_x: int, face_y: int
    ) -> int:
        """Byte index of the edge pixel reached when a sample crosses onto ``face``.

        ``out_dir`` is the direction the sample left its face in and ``in_dir``
        the direction it enters ``face`` from.
        """
        w, h = self.input_width, self.input_height
        try:
            out_dir = FilterDirection(out_dir)
        except ValueError:
            raise ValueError("Invalid exit direction") from None
        try:
            in_dir = FilterDirection(in_dir)
        except ValueError:
            raise ValueError("Invalid entry direction") from None

        # A coordinate that always runs clockwise along the face edge
        if out_dir is FilterDirection.DOWN:
            side = (face_x + w) % w
        elif out_dir is FilterDirection.RIGHT:
            side = (face_y + h) % h
        elif out_dir is FilterDirection.UP:
            side = w - (face_x + w) % w - 1
        else:
            side = h - (face_y + h) % h - 1

        stride = FACES_IN_A_CUBE * w
        face = int(face)
        if in_dir is FilterDirection.DOWN:
            return ((w - side - 1) + face * w) * 4
        if in_dir is FilterDirection.RIGHT:
            return ((h - side - 1) * stride + (w - 1) + face * w) * 4
        if in_dir is FilterDirection.UP:
            return ((h - 1) * stride + side + face * w) * 4
        return (side * stride + face * w) * 4

    def coords_at(self, i: int, j: int) -> CubeCoords:
        """The cubemap sampling of panorama pixel column ``i``, row ``j``."""
        if not (0 <= i < self.output_width and 0 <= j < self.output_height):
            raise IndexError("Panorama pixel out of bounds")
        p = j * self.output_width + i
        bl, br, tl, tr = (int(v) for v in self._indices[p])
        wbl, wbr, wtl, wtr = (float(v) for v in self._weights[p])
        return CubeCoords(
            CubeFace(int(self._face[p])),
            int(self._x[p]),
            int(self._y[p]),
            bl, br, tl, tr,
            wbl, wbr, wtl, wtr,
        )

    def process(self) -> None:
        source, target = self.input_pin(0), self.output_pin(0)
        data, size = source.data, source.size
        if data is None or size != self.input_size:
            target.data, target.size = None, 0
            return

        flat = np.frombuffer(data, dtype=np.uint8, count=size)
        channels = np.arange(4)
        if not self.bilinear_filtering:
            result = flat[np.clip(self._nearest, 0, size - 4)[:, None] + channels]
        else:
            indices = np.clip(self._indices, 0, size - 4)
            acc = None
            for k in range(4):
                term = self._weights[:, k, None] * flat[indices[:, k, None] + channels].astype(
                    np.float32
                )
                acc = term if acc is None else acc + term
            if acc is None:
                acc = np.zeros((0, 4), dtype=np.float32)
            result = np.clip(acc, 0, 255).astype(np.uint8)

        target.data = result.tobytes()
        target.size = self.output_size

    def on_input_pins_connected(self) -> None:
        self.output_pin(0).format = self.input_pin(0).format