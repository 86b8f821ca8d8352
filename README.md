# framepipe

framepipe builds frame-processing pipelines out of small components. The
components pass byte buffers to one another through pins. Every pin carries
a format name. When a pipeline is built, each connection checks that the
format on its output end is one its input end accepts.

## Installing

```
pip install framepipe
```

The only runtime dependency is numpy.

## Building blocks

### Pins and components

- `framepipe.pins`
  - `OutputPin` holds `data`, `size` and `format`. Once the pin is connected,
    its format can no longer change.
  - `InputPin` accepts either a list of formats (`set_accepted_formats`) or any
    format (`accept_any_format`).
  - `InputPin.connect(output_pin)` raises `PinError` when the output pin's
    format is not accepted.
- `framepipe.components` has the base classes:
  - `PipelineComponent`, with `process()` and `close()`, usable as a context
    manager.
  - `PipelineSource`, which has output pins.
  - `PipelineSink`, which has input pins and `on_input_pins_connected()`.
  - `PipelineFilter`, which has both.

### Running pipelines

- `framepipe.pipeline.Pipeline` takes either `(source, sink)` or
  `(source, filter, sink)`. Building it connects the pins and checks the pin
  counts.
  - `run()` processes each component once, in order.
  - `close()` closes all the components.
- `framepipe.runner.AsyncPipelineRunner` calls `run()` over and over on a
  background thread until `stop()` is called or the `with` block exits.
  - If the pipeline raises, the exception is logged and kept in `error`.
  - The runner closes the pipeline when its thread ends.

### Composing components

The classes in `framepipe.scaffolding` own the components they are given.
They connect those components once their own inputs are connected:

- `Adapter(first, second)`: chains two filters into one.
- `Duplicator(count)`: copies one input to `count` outputs.
- `ParallelFilter`, `ParallelSink`, `ParallelSource`: rows of single-pin
  components, one per pin.
- `SequentialFilter(filters)`: chains single-pin filters. When the list is
  empty, data passes straight through.
- `SequentialSink(filters, sink)` and `SequentialSource(source, filters)`:
  chains of filters ending in a sink, or starting from a source.
- `SidechainSource(source, filter)`: feeds an independent source into the
  trailing input pins of a filter.

### Converters and generators

- `framepipe.converters`
  - `BgraToRgbaConverter` swaps the red and blue channels and makes alpha
    opaque.
  - `DepthSeparator` outputs the RGBA image with alpha set to opaque, followed
    by a grayscale image made from the alpha channel.
  - `DepthToYuvConverter` uses alpha as the luma plane and fills chroma with
    127.
  - `FloatToByteConverter` converts `rgba32f`/`bgra32f` to 8-bit.
  - `GammaCompressor(gamma)` raises each float to the power `1 / gamma`.
  - `ImageConcatenator(count, width, height)` stacks YUV 4:2:0 frames
    vertically.
- `framepipe.generators`
  - `SolidColorImageGenerator.rgba(...)` and `SolidColorImageGenerator.yuv(...)`
    produce constant images.
  - `BlinkerSource` alternates between black and white frames at a given
    frequency.
  - `BlinkDetector` watches the first byte of each frame for black/white
    changes.
  - Both take an optional log file and a nanosecond `clock` callable, which is
    useful for latency measurements.
- `framepipe.yuv`
  - `rgba_to_yuv420(data, width, height, input_format)` converts to YUV 4:2:0.
    The width must be divisible by 4 and the height must be even.
  - `yuv420_to_rgba(data, width, height, output_format)` converts back. The
    width must be divisible by 16 and the height must be even.
  - The `RgbaToYuvConverter` and `YuvToRgbaConverter` filters wrap these
    functions for a fixed frame size.
- `framepipe.equirectangular.Equirectangular360Converter` turns a cubemap
  strip into an equirectangular panorama.
  - The strip holds six RGBA/BGRA faces side by side, in `CubeFace` order:
    top, left, front, right, back, bottom.
  - Bilinear filtering is optional. When it is on, samples that cross a face
    edge are taken from the neighbouring face.

### Recording

- `framepipe.recording`
  - `CsvLogData` packs and unpacks a binary camera record.
  - `CsvLogger` turns these records into CSV lines and writes a header line
    first. It raises `FrameDroppedError` when frame numbers do not run 0, 1,
    2, and so on.
  - `FileSink(path)` replaces any existing file at `path`, then appends raw
    data to it.
  - `PngRecorder(directory, width, height)` writes each RGBA frame of the
    expected size as `<directory>/<index>.png`.
  - `encode_png` encodes RGBA bytes as a PNG.
- `framepipe.sei.SeiEmbedder(uuid)` takes a 16-byte UUID.
  - It queues binary data from its second input.
  - It appends each queued item to the next HEVC frame from its first input,
    as a "user data unregistered" SEI message.

## Example

```python
from framepipe.pipeline import Pipeline
from framepipe.generators import SolidColorImageGenerator
from framepipe.scaffolding import SequentialFilter
from framepipe.converters import BgraToRgbaConverter
from framepipe.recording import PngRecorder

source = SolidColorImageGenerator.rgba(64, 64, 255, 0, 0, 255, "bgra")
pipeline = Pipeline(
    source,
    SequentialFilter([BgraToRgbaConverter()]),
    PngRecorder("frames/", 64, 64),
)
pipeline.run()   # writes frames/0.png
pipeline.close()
```

To keep a pipeline running in the background, hand it to a runner. The runner
closes the pipeline when it stops:

```python
from framepipe.runner import AsyncPipelineRunner

pipeline = Pipeline(
    SolidColorImageGenerator.rgba(64, 64, 0, 0, 255, 255),
    PngRecorder("more-frames/", 64, 64),
)
with AsyncPipelineRunner(pipeline):
    ...  # the pipeline runs until the block exits
```

## What framepipe does not do

- It has no HEVC encoder or decoder. `SeiEmbedder` works on HEVC bytes that
  come from elsewhere.
- It has no network transport, such as RTP sending or receiving.
- It does not capture frames from a renderer or a camera.
- It has no command-line program. It is a library, and you assemble pipelines
  in your own code.