"""A pipeline that runs a source, an optional filter and a sink in order."""

from __future__ import annotations

from .components import PipelineComponent, PipelineFilter, PipelineSink, PipelineSource


class Pipeline:
    """Connects a source to a sink, optionally through a filter, and runs them.

    ``Pipeline(source, sink)`` requires equal pin counts on both sides.
    ``Pipeline(source, filter, sink)`` requires the source to have at least as
    many outputs as the filter has inputs, and the sink as many inputs as the
    filter has outputs.
    """

    def __init__(self, source: PipelineSource, *args: PipelineComponent) -> None:
        if len(args) == 1:
            flt, sink = None, args[0]
        elif len(args) == 2:
            flt, sink = args
        else:
            raise TypeError("Pipeline takes a source, an optional filter and a sink")

        if source is None:
            raise ValueError("Source cannot be None")
        if len(args) == 2 and flt is None:
            raise ValueError("Filter cannot be None")
        if sink is None:
            raise ValueError("Sink cannot be None")

        if not isinstance(source, PipelineSource):
            raise TypeError("Source must be a PipelineSource")
        if flt is not None and not isinstance(flt, PipelineFilter):
            raise TypeError("Filter must be a PipelineFilter")
        if not isinstance(sink, PipelineSink):
            raise TypeError("Sink must be a PipelineSink")

        if flt is None:
            if source.output_count != sink.input_count:
                raise ValueError("Source outputs must match sink inputs")
            self._connect(source, sink, sink.input_count)
            self._components: list[PipelineComponent] = [source, sink]
        else:
            if source.output_count < flt.input_count:
                raise ValueError("Source has fewer outputs than the filter has inputs")
            if flt.output_count != sink.input_count:
                raise ValueError("Filter outputs must match sink inputs")
            self._connect(source, flt, flt.input_count)
            self._connect(flt, sink, sink.input_count)
            self._components = [source, flt, sink]

    @staticmethod
    def _connect(upstream: PipelineSource, downstream: PipelineSink, count: int) -> None:
        for index in range(count):
            downstream.input_pin(index).connect(upstream.output_pin(index))
        downstream.on_input_pins_connected()

    @property
    def components(self) -> tuple[PipelineComponent, ...]:
        return tuple(self._components)

    def run(self) -> None:
        """Process every component once, in order."""
        for component in self._components:
            component.process()

    def close(self) -> None:
        """Close every component, in order."""
        for component in self._components:
            component.close()
        self._components.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()