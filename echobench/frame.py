"""Wire frame exchanged by the stop-and-wait ARQ client and server."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from echobench.common import MESSAGE_SIZE

MAX_SEQ = 1

_FORMAT = struct.Struct(f"=iiII{MESSAGE_SIZE}s")
FRAME_SIZE = _FORMAT.size

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_UINT32_MAX = 2**32 - 1


class FrameType(IntEnum):
    """Kind of a frame."""

    DATA = 0
    ACK = 1
    NACK = 2


def next_seq(seq: int) -> int:
    """Return the sequence number that follows ``seq``, wrapping after MAX_SEQ."""
    return seq + 1 if seq < MAX_SEQ else 0


@dataclass(frozen=True)
class Frame:
    """One frame: type, sender thread id, sequence and acknowledgement numbers, payload.

    The payload is always held padded with zero bytes to the message size.
    """

    type: FrameType = FrameType.DATA
    thread_id: int = 0
    seq: int = 0
    ack: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        try:
            kind = FrameType(self.type)
        except ValueError as exc:
            raise ValueError(f"unknown frame type: {self.type!r}") from exc
        object.__setattr__(self, "type", kind)
        if not _INT32_MIN <= self.thread_id <= _INT32_MAX:
            raise ValueError(f"thread id out of range: {self.thread_id}")
        for name in ("seq", "ack"):
            value = getattr(self, name)
            if not 0 <= value <= _UINT32_MAX:
                raise ValueError(f"{name} out of range: {value}")
        data = bytes(self.data)
        if len(data) > MESSAGE_SIZE:
            raise ValueError(f"payload longer than {MESSAGE_SIZE} bytes: {len(data)}")
        object.__setattr__(self, "data", data.ljust(MESSAGE_SIZE, b"\0"))

    def to_bytes(self) -> bytes:
        """Encode the frame in its fixed-size wire layout."""
        return _FORMAT.pack(int(self.type), self.thread_id, self.seq, self.ack, self.data)

    @classmethod
    def from_bytes(cls, data: bytes) -> Frame:
        """Decode a frame from exactly ``FRAME_SIZE`` bytes."""
        if len(data) != FRAME_SIZE:
            raise ValueError(f"frame must be {FRAME_SIZE} bytes, got {len(data)}")
        kind, thread_id, seq, ack, payload = _FORMAT.unpack(data)
        return cls(kind, thread_id, seq, ack, payload)