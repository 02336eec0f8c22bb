from __future__ import annotations

import secrets
import string
import time
from typing import Callable

_ALPHABET = string.ascii_lowercase + string.digits


class TimestampedIdProvider:
    """Ids shaped ``<prefix>_<epoch ms>_<random>``, e.g. ``webhook_1718000000000_k3j9x0a1b``."""

    def __init__(
        self,
        prefix: str,
        length: int = 9,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ) -> None:
        self._prefix = prefix
        self._length = length
        self._clock_ms = clock_ms

    def generate(self) -> str:
        token = "".join(secrets.choice(_ALPHABET) for _ in range(self._length))
        return f"{self._prefix}_{self._clock_ms()}_{token}"
