"""Per-chunk decoding of the upstream response body."""

from __future__ import annotations

from typing import AsyncGenerator, AsyncIterable

from cursorgate.codec.fallback import CompressionFallback
from cursorgate.codec.framing import split_frames
from cursorgate.codec.message_codec import MessageCodec
from cursorgate.core.errors import FrameDecodeError
from cursorgate.util.logger import logger


class StreamParser:
    """Turns raw body chunks into reply text.

    Every chunk is handled on its own: frames are decoded in order, and when
    none can be decoded the chunk goes through ``CompressionFallback``.
    """

    def __init__(self, codec: MessageCodec | None = None, fallback: CompressionFallback | None = None) -> None:
        self.codec = codec or MessageCodec()
        self.fallback = fallback or CompressionFallback()

    def parse(self, chunk: bytes) -> list[str]:
        split = split_frames(chunk)
        texts: list[str] = []
        for index, frame in enumerate(split.frames):
            try:
                texts.append(self.codec.decode(frame).text)
            except FrameDecodeError as exc:
                logger.debug(
                    "frame decode failed, chunk discarded frame_index=%d frames=%d error=%s",
                    index,
                    len(split.frames),
                    exc,
                )
                return []
        if texts and split.dropped:
            logger.debug("trailing partial frame dropped bytes=%d", split.dropped)
        return texts

    def decode_chunk(self, chunk: bytes) -> str:
        texts = self.parse(chunk)
        if not texts:
            return self.fallback.decompress(chunk)
        return "".join(texts)

    async def decode_stream(self, chunks: AsyncIterable[bytes]) -> AsyncGenerator[str, None]:
        async for chunk in chunks:
            text = self.decode_chunk(chunk)
            if text:
                yield text
