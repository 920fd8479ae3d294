"""Length-prefixed frame encoding for the StreamChat transport.

A frame is a 5-byte big-endian length followed by that many payload bytes.
The request side builds it textually: the length is written as 10 uppercase
hex digits, the payload is appended as hex, and the whole string is turned
back into bytes. The remote service expects exactly this transform, so it is
kept as-is rather than packed with ``struct``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

LENGTH_PREFIX_HEX_CHARS = 10
LENGTH_PREFIX_BYTES = LENGTH_PREFIX_HEX_CHARS // 2


def wrap_payload(payload: bytes) -> bytes:
    hex_string = (f"{len(payload):0{LENGTH_PREFIX_HEX_CHARS}x}" + bytes(payload).hex()).upper()
    return bytes.fromhex(hex_string)


@dataclass(slots=True)
class FrameSplit:
    frames: list[bytes] = field(default_factory=list)
    consumed: int = 0
    total: int = 0

    @property
    def dropped(self) -> int:
        return self.total - self.consumed


def split_frames(chunk: bytes) -> FrameSplit:
    """Cut one chunk into complete frame payloads.

    Parsing stops at the first length prefix that is incomplete or whose
    payload overruns the chunk; those trailing bytes are dropped, never
    carried over to the next chunk.
    """
    hex_data = bytes(chunk).hex()
    total = len(hex_data)
    split = FrameSplit(total=total // 2)
    offset = 0

    while offset < total:
        if offset + LENGTH_PREFIX_HEX_CHARS > total:
            break
        length = int(hex_data[offset : offset + LENGTH_PREFIX_HEX_CHARS], 16)
        payload_start = offset + LENGTH_PREFIX_HEX_CHARS
        payload_end = payload_start + length * 2
        if payload_end > total:
            break
        split.frames.append(bytes.fromhex(hex_data[payload_start:payload_end]))
        offset = payload_end

    split.consumed = offset // 2
    return split
