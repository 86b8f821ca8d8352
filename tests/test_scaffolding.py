import pytest

from framepipe.components import PipelineFilter, PipelineSink, PipelineSource
from framepipe.pins import PinError
from framepipe.pipeline import Pipeline
from framepipe.scaffolding import (
    Adapter,
    Duplicator,
    ParallelFilter,
    ParallelSink,
    ParallelSource,
    SequentialFilter,
    SequentialSink,
    SequentialSource,
    SidechainSource,
)


class BytesSource(PipelineSource):
    def __init__(self, data, fmt="raw"):
        super().__init__(1)
        self.payload = data
        self.output_pin(0).format = fmt
        self.processed = 0
        self.closed = False

    def process(self):
        self.processed += 1
        self.output_pin(0).data = self.payload
        self.output_pin(0).size = len(self.payload)

    def close(self):
        self.closed = True


class Increment(PipelineFilter):
    def __init__(self, accepted="raw", out_format="raw"):
        super().__init__(1, 1)
        self.input_pin(0).set_accepted_formats(accepted)
        self.output_pin(0).format = out_format
        self.closed = False

    def process(self):
        data = self.input_pin(0).data
        out = None if data is None else bytes((b + 1) % 256 for b in data)
        self.output_pin(0).data = out
        self.output_pin(0).size = 0 if out is None else len(out)

    def close(self):
        self.closed = True


class Concat(PipelineFilter):
    def __init__(self, count):
        super().__init__(count, 1)
        for pin in self.input_pins:
            pin.accept_any_format()
        self.output_pin(0).format = "joined"

    def process(self):
        out = b"".join(pin.data or b"" for pin in self.input_pins)
        self.output_pin(0).data = out
        self.output_pin(0).size = len(out)


class Recorder(PipelineSink):
    def __init__(self, count=1):
        super().__init__(count)
        for pin in self.input_pins:
            pin.accept_any_format()
        self.received = []
        self.formats = []
        self.closed = False

    def on_input_pins_connected(self):
        self.formats = [pin.format for pin in self.input_pins]

    def process(self):
        self.received.append([pin.data for pin in self.input_pins])

    def close(self):
        self.closed = True


def test_duplicator_copies_input_to_every_output():
    source = BytesSource(b"abc", "rgba")
    sink = Recorder(3)
    pipeline = Pipeline(source, Duplicator(3), sink)
    pipeline.run()
    assert sink.received == [[b"abc", b"abc", b"abc"]]
    assert sink.formats == ["rgba", "rgba", "rgba"]


def test_adapter_chains_two_filters():
    source = BytesSource(b"xy")
    sink = Recorder()
    adapter = Adapter(Duplicator(2), Concat(2))
    Pipeline(source, adapter, sink).run()
    assert sink.received == [[b"xy" + b"xy"]]
    assert sink.formats == ["joined"]
    assert adapter.input_count == 1
    assert adapter.output_count == 1


def test_adapter_rejects_mismatched_pin_counts():
    with pytest.raises(ValueError):
        Adapter(Duplicator(3), Concat(2))


def test_adapter_rejects_none():
    with pytest.raises(ValueError):
        Adapter(None, Concat(1))


def test_parallel_filter_runs_each_branch():
    source = BytesSource(bytes([1, 2]))
    sink = Recorder()
    inner = Adapter(
        Duplicator(2),
        Adapter(ParallelFilter([Increment(), SequentialFilter()]), Concat(2)),
    )
    Pipeline(source, inner, sink).run()
    assert sink.received == [[bytes([2, 3]) + bytes([1, 2])]]


def test_parallel_filter_rejects_none_and_multi_pin_filters():
    with pytest.raises(ValueError):
        ParallelFilter([Increment(), None])
    with pytest.raises(ValueError):
        ParallelFilter([Concat(2)])


def test_parallel_filter_propagates_formats():
    source = BytesSource(b"a")
    sink = Recorder(2)
    Pipeline(source, Adapter(Duplicator(2), ParallelFilter([Increment(out_format="yuv420"), SequentialFilter()])), sink)
    assert sink.formats == ["yuv420", "raw"]


def test_parallel_sink_feeds_each_sink():
    first, second = Recorder(), Recorder()
    source = BytesSource(b"q", "hevc")
    Pipeline(source, Duplicator(2), ParallelSink([first, second])).run()
    assert first.received == [[b"q"]]
    assert second.received == [[b"q"]]
    assert first.formats == ["hevc"]


def test_parallel_sink_rejects_none():
    with pytest.raises(ValueError):
        ParallelSink([Recorder(), None])


def test_parallel_source_combines_sources():
    first = BytesSource(b"1", "rgba")
    second = BytesSource(b"2", "binary")
    parallel = ParallelSource([first, second])
    assert [pin.format for pin in parallel.output_pins] == ["rgba", "binary"]
    sink = Recorder(2)
    Pipeline(parallel, sink).run()
    assert sink.received == [[b"1", b"2"]]
    assert first.processed == 1 and second.processed == 1


def test_empty_sequential_filter_passes_through():
    source = BytesSource(b"pass", "bgra")
    sink = Recorder()
    Pipeline(source, SequentialFilter(), sink).run()
    assert sink.received == [[b"pass"]]
    assert sink.formats == ["bgra"]


def test_sequential_filter_chains_filters():
    source = BytesSource(bytes([5]))
    sink = Recorder()
    chain = SequentialFilter([Increment(), Increment(), Increment(out_format="done")])
    Pipeline(source, chain, sink).run()
    assert sink.received == [[bytes([8])]]
    assert sink.formats == ["done"]


def test_sequential_filter_rejects_incompatible_formats():
    source = BytesSource(b"a", "rgba")
    with pytest.raises(PinError):
        Pipeline(source, SequentialFilter([Increment(accepted="yuv420")]), Recorder())


def test_sequential_sink_runs_filters_then_sink():
    recorder = Recorder()
    source = BytesSource(bytes([0, 9]))
    Pipeline(source, SequentialSink([Increment()], recorder)).run()
    assert recorder.received == [[bytes([1, 10])]]


def test_sequential_sink_requires_filters():
    with pytest.raises(ValueError):
        SequentialSink([], Recorder())
    with pytest.raises(ValueError):
        SequentialSink([Increment()], None)


def test_sequential_source_connects_at_construction():
    inner = BytesSource(bytes([3]))
    seq = SequentialSource(inner, [Increment(), Increment(out_format="final")])
    assert seq.output_pin(0).format == "final"
    seq.process()
    assert seq.output_pin(0).data == bytes([5])
    assert seq.output_pin(0).size == 1


def test_sequential_source_requires_filters():
    with pytest.raises(ValueError):
        SequentialSource(BytesSource(b"a"), [])


def test_sidechain_source_feeds_trailing_inputs():
    source = BytesSource(b"main")
    side = BytesSource(b"side")
    sidechain = SidechainSource(side, Concat(2))
    assert sidechain.input_count == 1
    sink = Recorder()
    Pipeline(source, sidechain, sink).run()
    assert sink.received == [[b"main" + b"side"]]
    assert sink.formats == ["joined"]
    assert side.processed == 1


def test_sidechain_source_rejects_too_many_source_outputs():
    sources = ParallelSource([BytesSource(b"a"), BytesSource(b"b")])
    with pytest.raises(ValueError):
        SidechainSource(sources, Increment())


def test_closing_scaffolding_closes_children():
    first, second = Increment(), Increment()
    sink = Recorder()
    source = BytesSource(b"a")
    pipeline = Pipeline(source, SequentialFilter([first, second]), SequentialSink([Increment()], sink))
    pipeline.close()
    assert first.closed and second.closed
    assert sink.closed
    assert source.closed