"""Chronologically sortable 20-character ids for new reviews.

The first 8 characters encode the epoch-millisecond timestamp and the last
12 are random. Ids generated in the same millisecond by one process
increment the random tail, so they still sort in creation order. The
alphabet is in ASCII order, which makes plain string comparison match
creation order across writers whose clocks agree.
"""

from __future__ import annotations

import secrets
import threading
import time
from typing import List, Optional

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
TIME_CHARS = 8
RANDOM_CHARS = 12


class PushIdGenerator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_random: List[int] = [0] * RANDOM_CHARS

    def generate(self, now_ms: Optional[int] = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        with self._lock:
            if now_ms == self._last_ms:
                self._increment_random()
            else:
                self._last_ms = now_ms
                self._last_random = [
                    secrets.randbelow(64) for _ in range(RANDOM_CHARS)]
            tail = "".join(PUSH_CHARS[i] for i in self._last_random)
        return encode_timestamp(now_ms) + tail

    def _increment_random(self) -> None:
        for pos in range(RANDOM_CHARS - 1, -1, -1):
            if self._last_random[pos] != 63:
                self._last_random[pos] += 1
                return
            self._last_random[pos] = 0


def encode_timestamp(now_ms: int) -> str:
    chars = []
    for _ in range(TIME_CHARS):
        chars.append(PUSH_CHARS[now_ms % 64])
        now_ms //= 64
    return "".join(reversed(chars))


_generator = PushIdGenerator()


def generate_push_id(now_ms: Optional[int] = None) -> str:
    return _generator.generate(now_ms)
