"""Identifier generation.

Request, conversation and message ids are produced by an ``IdGenerator``
callable so callers (and tests) can substitute deterministic sources.
"""

from __future__ import annotations

import random
import secrets
import string
import uuid
from enum import Enum
from typing import Callable

IdGenerator = Callable[[], str]


class Charset(str, Enum):
    NUMERIC = string.digits
    ALPHABET = string.ascii_letters
    MAX = string.digits + string.ascii_letters + "_-"


_system_random = secrets.SystemRandom()


def uuid4_id() -> str:
    return str(uuid.uuid4())


def random_id(size: int, charset: Charset | str = Charset.NUMERIC, rng: random.Random | None = None) -> str:
    alphabet = charset.value if isinstance(charset, Charset) else str(charset)
    if not alphabet:
        raise ValueError("empty_charset")
    source = rng if rng is not None else _system_random
    return "".join(source.choice(alphabet) for _ in range(max(0, size)))
