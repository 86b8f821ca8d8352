import numpy as np
import pytest

from framepipe.components import PipelineSource
from framepipe.converters import (
    BgraToRgbaConverter,
    DepthSeparator,
    DepthToYuvConverter,
    FloatToByteConverter,
    GammaCompressor,
    ImageConcatenator,
)
from framepipe.pins import PinError


class _Feed(PipelineSource):
    def __init__(self, fmt):
        super().__init__(1)
        self.output_pin(0).format = fmt

    def push(self, data):
        pin = self.output_pin(0)
        pin.data = data
        pin.size = 0 if data is None else len(data)

    def process(self):
        pass


def _wire(flt, *feeds):
    for index, feed in enumerate(feeds):
        flt.input_pin(index).connect(feed.output_pin(0))
    flt.on_input_pins_connected()
    return flt


def _floats(values):
    return np.array(values, dtype=np.float32).tobytes()


def test_bgra_to_rgba_swaps_channels_and_sets_alpha():
    feed = _Feed("bgra")
    conv = _wire(BgraToRgbaConverter(), feed)
    feed.push(bytes([1, 2, 3, 4, 5, 6, 7, 8]))
    conv.process()
    out = conv.output_pin(0)
    assert out.format == "rgba"
    assert out.data == bytes([3, 2, 1, 255, 7, 6, 5, 255])
    assert out.size == 8


def test_rgba_input_produces_bgra_and_round_trips():
    feed = _Feed("rgba")
    first = _wire(BgraToRgbaConverter(), feed)
    second = _wire(BgraToRgbaConverter(), first)
    assert first.output_pin(0).format == "bgra"
    assert second.output_pin(0).format == "rgba"
    original = bytes([10, 20, 30, 255, 40, 50, 60, 255])
    feed.push(original)
    first.process()
    second.process()
    assert second.output_pin(0).data == original


def test_bgra_converter_empty_input_clears_output():
    feed = _Feed("rgba")
    conv = _wire(BgraToRgbaConverter(), feed)
    feed.push(bytes([1, 2, 3, 4]))
    conv.process()
    feed.push(None)
    conv.process()
    assert conv.output_pin(0).data is None
    assert conv.output_pin(0).size == 0


def test_bgra_converter_rejects_other_formats():
    feed = _Feed("yuv420")
    with pytest.raises(PinError):
        _wire(BgraToRgbaConverter(), feed)


def test_depth_separator_splits_color_and_depth():
    feed = _Feed("rgba")
    sep = _wire(DepthSeparator(), feed)
    feed.push(bytes([1, 2, 3, 9, 4, 5, 6, 8]))
    sep.process()
    out = sep.output_pin(0)
    assert out.format == "rgba"
    assert out.size == 16
    assert out.data[:8] == bytes([1, 2, 3, 255, 4, 5, 6, 255])
    assert out.data[8:] == bytes([9, 9, 9, 255, 8, 8, 8, 255])


def test_depth_separator_only_accepts_rgba():
    with pytest.raises(PinError):
        _wire(DepthSeparator(), _Feed("bgra"))


def test_depth_to_yuv_uses_alpha_as_luma():
    feed = _Feed("bgra")
    conv = _wire(DepthToYuvConverter(), feed)
    alphas = list(range(100, 108))
    data = bytes(b for a in alphas for b in (0, 0, 0, a))
    feed.push(data)
    conv.process()
    out = conv.output_pin(0)
    assert out.format == "yuv420"
    assert out.size == len(data) * 3 // 8
    assert out.data[:8] == bytes(alphas)
    assert set(out.data[8:]) == {127}


def test_float_to_byte_clamps_and_scales():
    feed = _Feed("rgba32f")
    conv = _wire(FloatToByteConverter(), feed)
    feed.push(_floats([-1.0, 0.0, 0.5, 2.0]))
    conv.process()
    out = conv.output_pin(0)
    assert out.format == "rgba"
    assert out.data == bytes([0, 0, 127, 255])
    assert out.size == 4


def test_float_to_byte_maps_bgra_format():
    conv = _wire(FloatToByteConverter(), _Feed("bgra32f"))
    assert conv.output_pin(0).format == "bgra"


def test_float_to_byte_rejects_byte_formats():
    with pytest.raises(PinError):
        _wire(FloatToByteConverter(), _Feed("rgba"))


def test_gamma_one_is_identity():
    feed = _Feed("rgba32f")
    comp = _wire(GammaCompressor(1.0), feed)
    values = [0.0, 0.25, 0.75, 1.0]
    feed.push(_floats(values))
    comp.process()
    result = np.frombuffer(comp.output_pin(0).data, dtype=np.float32)
    assert result.tolist() == values
    assert comp.output_pin(0).format == "rgba32f"


def test_gamma_two_output_squared_returns_input():
    feed = _Feed("bgra32f")
    comp = _wire(GammaCompressor(2.0), feed)
    values = np.array([0.1, 0.25, 0.5, 0.9], dtype=np.float32)
    feed.push(values.tobytes())
    comp.process()
    result = np.frombuffer(comp.output_pin(0).data, dtype=np.float32)
    assert np.allclose(result * result, values, atol=1e-6)
    assert comp.output_pin(0).size == values.nbytes
    assert comp.output_pin(0).format == "bgra32f"


def test_gamma_zero_rejected():
    with pytest.raises(ValueError):
        GammaCompressor(0)


def _yuv_frame(y, u, v):
    return bytes(y) + bytes([u]) + bytes([v])


def test_image_concatenator_stacks_planes():
    feeds = [_Feed("yuv420"), _Feed("yuv420")]
    conc = _wire(ImageConcatenator(2, 2, 2), *feeds)
    a = _yuv_frame([1, 2, 3, 4], 5, 6)
    b = _yuv_frame([11, 12, 13, 14], 15, 16)
    feeds[0].push(a)
    feeds[1].push(b)
    conc.process()
    out = conc.output_pin(0)
    assert out.format == "yuv420"
    assert out.size == 2 * 2 * 2 * 3 // 2
    assert out.data == a[:4] + b[:4] + a[4:5] + b[4:5] + a[5:6] + b[5:6]


def test_image_concatenator_skips_wrong_size_inputs():
    feeds = [_Feed("yuv420"), _Feed("yuv420")]
    conc = _wire(ImageConcatenator(2, 2, 2), *feeds)
    a = _yuv_frame([1, 2, 3, 4], 5, 6)
    b = _yuv_frame([11, 12, 13, 14], 15, 16)
    feeds[0].push(a)
    feeds[1].push(b)
    conc.process()
    first = conc.output_pin(0).data
    feeds[0].push(bytes([99] * 3))
    conc.process()
    assert conc.output_pin(0).data == first


def test_image_concatenator_only_accepts_yuv():
    with pytest.raises(PinError):
        _wire(ImageConcatenator(1, 2, 2), _Feed("rgba"))