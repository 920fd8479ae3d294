"""Compressed-payload fallback for chunks that are not in frame format."""

from __future__ import annotations

import gzip
import re
import zlib

from cursorgate.util.logger import logger

COMPRESSED_HEADER_BYTES = 5

# 上游偶尔回吐完整的 system/user 提示模板，命中时整段丢弃
SCAFFOLDING_RE = re.compile(
    r"<\|BEGIN_SYSTEM\|>.*?<\|END_SYSTEM\|>.*?<\|BEGIN_USER\|>.*?<\|END_USER\|>",
    re.DOTALL,
)


class CompressionFallback:
    def __init__(self, header_bytes: int = COMPRESSED_HEADER_BYTES, scaffolding: re.Pattern[str] = SCAFFOLDING_RE) -> None:
        self.header_bytes = header_bytes
        self.scaffolding = scaffolding

    def is_scaffolding(self, text: str) -> bool:
        return bool(self.scaffolding.search(text))

    def decompress(self, chunk: bytes) -> str:
        body = bytes(chunk)[self.header_bytes :]
        try:
            raw = gzip.decompress(body)
        except (OSError, EOFError, zlib.error) as exc:
            logger.debug("fallback gunzip failed chunk_bytes=%d error=%s", len(chunk), exc)
            return ""

        text = raw.decode("utf-8", errors="replace")
        if self.is_scaffolding(text):
            logger.debug("fallback suppressed prompt scaffolding chars=%d", len(text))
            return ""
        return text
