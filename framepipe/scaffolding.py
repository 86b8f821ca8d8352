"""Composite components that wire other components together.

Each scaffold owns the components handed to it. It connects them once its
own input pins have been connected, runs them in order when processed, and
closes them when closed.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .components import PipelineComponent, PipelineFilter, PipelineSink, PipelineSource
from .pins import OutputPin


def _require(component, kind: str, cls: type, name: str):
    if component is None:
        raise ValueError(f"{name} cannot be None")
    if not isinstance(component, cls):
        raise TypeError(f"{name} must be a {kind}")
    return component


def _require_single(flt: PipelineFilter) -> PipelineFilter:
    _require(flt, "PipelineFilter", PipelineFilter, "Filter")
    if flt.input_count != 1 or flt.output_count != 1:
        raise ValueError("Filter must have exactly one input and one output pin")
    return flt


def _copy_data(target: OutputPin, origin: OutputPin) -> None:
    target.data = origin.data
    target.size = origin.size


def _connect_chain(upstream: OutputPin, filters: Sequence[PipelineFilter]) -> OutputPin:
    """Connect single-pin filters one after another and return the last output."""
    for flt in filters:
        flt.input_pin(0).connect(upstream)
        flt.on_input_pins_connected()
        upstream = flt.output_pin(0)
    return upstream


class _Owner:
    """Mixin that closes owned components exactly once."""

    _owned: list[PipelineComponent]

    def close(self) -> None:
        owned, self._owned = self._owned, []
        for component in owned:
            component.close()


class Adapter(_Owner, PipelineFilter):
    """Chains two filters whose inner pin counts match into one filter."""

    def __init__(self, first: PipelineFilter, second: PipelineFilter) -> None:
        _require(first, "PipelineFilter", PipelineFilter, "Filter")
        _require(second, "PipelineFilter", PipelineFilter, "Filter")
        if first.output_count != second.input_count:
            raise ValueError("First filter's outputs must match second filter's inputs")
        PipelineFilter.__init__(self, first.input_count, second.output_count)
        for pin in self.input_pins:
            pin.accept_any_format()
        self._first = first
        self._second = second
        self._owned = [first, second]

    def process(self) -> None:
        self._first.process()
        self._second.process()
        for own, inner in zip(self.output_pins, self._second.output_pins):
            _copy_data(own, inner)

    def on_input_pins_connected(self) -> None:
        for own, inner in zip(self.input_pins, self._first.input_pins):
            inner.connect(own.connected_pin)
        self._first.on_input_pins_connected()
        for inner_in, inner_out in zip(self._second.input_pins, self._first.output_pins):
            inner_in.connect(inner_out)
        self._second.on_input_pins_connected()
        for own, inner in zip(self.output_pins, self._second.output_pins):
            own.format = inner.format


class Duplicator(PipelineFilter):
    """Passes the data of its single input to several outputs."""

    def __init__(self, count: int) -> None:
        PipelineFilter.__init__(self, 1, count)
        self.input_pin(0).accept_any_format()

    def process(self) -> None:
        origin = self.input_pin(0).connected_pin
        for pin in self.output_pins:
            _copy_data(pin, origin)

    def on_input_pins_connected(self) -> None:
        fmt = self.input_pin(0).connected_pin.format
        for pin in self.output_pins:
            pin.format = fmt


class ParallelFilter(_Owner, PipelineFilter):
    """A row of single-pin filters, one per input/output pin pair."""

    def __init__(self, filters: Iterable[PipelineFilter]) -> None:
        self._filters = [_require_single(flt) for flt in filters]
        PipelineFilter.__init__(self, len(self._filters), len(self._filters))
        for pin in self.input_pins:
            pin.accept_any_format()
        self._owned = list(self._filters)

    def process(self) -> None:
        for own, flt in zip(self.output_pins, self._filters):
            flt.process()
            _copy_data(own, flt.output_pin(0))

    def on_input_pins_connected(self) -> None:
        for own_in, own_out, flt in zip(self.input_pins, self.output_pins, self._filters):
            flt.input_pin(0).connect(own_in.connected_pin)
            flt.on_input_pins_connected()
            own_out.format = flt.output_pin(0).format


class ParallelSink(_Owner, PipelineSink):
    """A row of single-input sinks, one per input pin."""

    def __init__(self, sinks: Iterable[PipelineSink]) -> None:
        self._sinks = []
        for sink in sinks:
            _require(sink, "PipelineSink", PipelineSink, "Sink")
            if sink.input_count != 1:
                raise ValueError("Sink must have exactly one input pin")
            self._sinks.append(sink)
        PipelineSink.__init__(self, len(self._sinks))
        for pin in self.input_pins:
            pin.accept_any_format()
        self._owned = list(self._sinks)

    def process(self) -> None:
        for sink in self._sinks:
            sink.process()

    def on_input_pins_connected(self) -> None:
        for own, sink in zip(self.input_pins, self._sinks):
            sink.input_pin(0).connect(own.connected_pin)
            sink.on_input_pins_connected()


class ParallelSource(_Owner, PipelineSource):
    """A row of single-output sources, one per output pin."""

    def __init__(self, sources: Iterable[PipelineSource]) -> None:
        self._sources = []
        for source in sources:
            _require(source, "PipelineSource", PipelineSource, "Source")
            if source.output_count != 1:
                raise ValueError("Source must have exactly one output pin")
            self._sources.append(source)
        PipelineSource.__init__(self, len(self._sources))
        for own, source in zip(self.output_pins, self._sources):
            own.format = source.output_pin(0).format
        self._owned = list(self._sources)

    def process(self) -> None:
        for own, source in zip(self.output_pins, self._sources):
            source.process()
            _copy_data(own, source.output_pin(0))


class SequentialFilter(_Owner, PipelineFilter):
    """Single-pin filters connected one after another; empty passes data through."""

    def __init__(self, filters: Iterable[PipelineFilter] = ()) -> None:
        self._filters = [_require_single(flt) for flt in filters]
        PipelineFilter.__init__(self, 1, 1)
        self.input_pin(0).accept_any_format()
        self._owned = list(self._filters)

    def process(self) -> None:
        for flt in self._filters:
            flt.process()
        if self._filters:
            _copy_data(self.output_pin(0), self._filters[-1].output_pin(0))
        else:
            _copy_data(self.output_pin(0), self.input_pin(0).connected_pin)

    def on_input_pins_connected(self) -> None:
        last = _connect_chain(self.input_pin(0).connected_pin, self._filters)
        self.output_pin(0).format = last.format


class SequentialSink(_Owner, PipelineSink):
    """One or more single-pin filters followed by a single-input sink."""

    def __init__(self, filters: Iterable[PipelineFilter], sink: PipelineSink) -> None:
        self._filters = [_require_single(flt) for flt in filters]
        if not self._filters:
            raise ValueError("At least one filter is required")
        _require(sink, "PipelineSink", PipelineSink, "Sink")
        if sink.input_count != 1:
            raise ValueError("Sink must have exactly one input pin")
        PipelineSink.__init__(self, 1)
        self.input_pin(0).accept_any_format()
        self._sink = sink
        self._owned = [*self._filters, sink]

    def process(self) -> None:
        for flt in self._filters:
            flt.process()
        self._sink.process()

    def on_input_pins_connected(self) -> None:
        last = _connect_chain(self.input_pin(0).connected_pin, self._filters)
        self._sink.input_pin(0).connect(last)
        self._sink.on_input_pins_connected()


class SequentialSource(_Owner, PipelineSource):
    """A single-output source followed by one or more single-pin filters."""

    def __init__(self, source: PipelineSource, filters: Iterable[PipelineFilter]) -> None:
        _require(source, "PipelineSource", PipelineSource, "Source")
        if source.output_count != 1:
            raise ValueError("Source must have exactly one output pin")
        self._filters = [_require_single(flt) for flt in filters]
        if not self._filters:
            raise ValueError("At least one filter is required")
        PipelineSource.__init__(self, 1)
        self._source = source
        self._owned = [source, *self._filters]
        last = _connect_chain(source.output_pin(0), self._filters)
        self.output_pin(0).format = last.format

    def process(self) -> None:
        self._source.process()
        for flt in self._filters:
            flt.process()
        _copy_data(self.output_pin(0), self._filters[-1].output_pin(0))


class SidechainSource(_Owner, PipelineFilter):
    """Feeds an independent source into a filter's trailing input pins.

    The scaffold's own inputs go to the filter's leading input pins.
    """

    def __init__(self, source: PipelineSource, filter: PipelineFilter) -> None:
        _require(source, "PipelineSource", PipelineSource, "Source")
        _require(filter, "PipelineFilter", PipelineFilter, "Filter")
        own_inputs = filter.input_count - source.output_count
        if own_inputs < 0:
            raise ValueError("Source has more outputs than the filter has inputs")
        PipelineFilter.__init__(self, own_inputs, filter.output_count)
        for pin in self.input_pins:
            pin.accept_any_format()
        self._source = source
        self._filter = filter
        self._owned = [source, filter]

    def process(self) -> None:
        self._source.process()
        self._filter.process()
        for own, inner in zip(self.output_pins, self._filter.output_pins):
            _copy_data(own, inner)

    def on_input_pins_connected(self) -> None:
        inner_inputs = self._filter.input_pins
        own_count = self.input_count
        for own, inner in zip(self.input_pins, inner_inputs[:own_count]):
            inner.connect(own.connected_pin)
        for inner, side in zip(inner_inputs[own_count:], self._source.output_pins):
            inner.connect(side)
        self._filter.on_input_pins_connected()
        for own, inner in zip(self.output_pins, self._filter.output_pins):
            own.format = inner.format