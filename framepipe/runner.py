"""Runs a pipeline repeatedly on a background thread."""

from __future__ import annotations

import logging
import threading

from .pipeline import Pipeline

logger = logging.getLogger(__name__)


class AsyncPipelineRunner:
    """Runs a pipeline on a background thread until stopped.

    The runner owns the pipeline and closes it when the thread ends, either
    after :meth:`stop` or because the pipeline raised an exception.
    """

    def __init__(self, pipeline: Pipeline) -> None:
        self._pipeline = pipeline
        self._stop_event = threading.Event()
        self.error: BaseException | None = None
        self._thread = threading.Thread(target=self._run, name="pipeline-runner", daemon=True)
        self._thread.start()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                self._pipeline.run()
        except Exception as exc:
            self.error = exc
            logger.error("Pipeline crashed: %s", exc)
        finally:
            self._pipeline.close()

    def stop(self) -> None:
        """Ask the pipeline to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self):
        return self

    def __exit__(self, *args) -> None:
        self.stop()