"""Embedding of arbitrary data in SEI messages of an HEVC bitstream."""

from __future__ import annotations

from collections import deque
from typing import Any

from .components import PipelineFilter


class SeiEmbedder(PipelineFilter):
    """Appends "user data unregistered" SEI messages to HEVC frames.

    Input 0 carries HEVC data, input 1 binary data to embed. Embedded data is
    queued because the encoder returns frames with a delay; each queued item is
    attached to the next HEVC frame that arrives.
    """

    # Start marker, NAL type (SEI message), payload type (user data unregistered)
    HEADER = bytes((0x00, 0x00, 0x00, 0x01, 0x06, 0x05))

    def __init__(self, uuid: bytes | str) -> None:
        if isinstance(uuid, str):
            uuid = uuid.encode("ascii")
        uuid = bytes(uuid)
        if len(uuid) != 16:
            raise ValueError("UUID must be exactly 16 bytes long")
        super().__init__(2, 1)
        self.uuid = uuid
        self._queue: deque[bytes] = deque()
        self.input_pin(0).set_accepted_formats("hevc")
        self.input_pin(1).set_accepted_formats("binary")
        self.output_pin(0).format = "hevc"

    @property
    def pending(self) -> int:
        """Number of SEI payloads waiting for an HEVC frame."""
        return len(self._queue)

    def _enqueue(self, data: Any, size: int) -> None:
        # The payload length is stored in a single byte
        size &= 0xFF
        if data is None or size == 0:
            return
        self._queue.append(bytes((size,)) + self.uuid + bytes(data)[:size])

    def process(self) -> None:
        sei_pin = self.input_pin(1)
        self._enqueue(sei_pin.data, sei_pin.size)

        hevc_pin, target = self.input_pin(0), self.output_pin(0)
        hevc_data, hevc_size = hevc_pin.data, hevc_pin.size
        if hevc_data is None or hevc_size == 0:
            return

        if not self._queue:
            target.data, target.size = hevc_data, hevc_size
            return

        embedded = self._queue.popleft()
        target.data = bytes(hevc_data)[:hevc_size] + self.HEADER + embedded
        target.size = len(target.data)

    def close(self) -> None:
        self._queue.clear()