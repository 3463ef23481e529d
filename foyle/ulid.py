"""Generation and validation of ULIDs in the format used by Runme."""

from __future__ import annotations

import random
import re
import threading
import time
from collections.abc import Callable

_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_RE = re.compile(r"[0123456789ABCDEFGHJKMNPQRSTVWXYZ]{26}")
_ENTROPY_BITS = 80
_MAX_ENTROPY = (1 << _ENTROPY_BITS) - 1
_MAX_TIMESTAMP = (1 << 48) - 1
_MAX_INCREMENT = (1 << 32) - 1


class _MonotonicEntropy:
    """Thread-safe entropy source that increases within the same millisecond."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rng = random.Random(time.time_ns())
        self._last_ms = -1
        self._last = 0

    def next(self, ms: int) -> int:
        with self._lock:
            if ms == self._last_ms:
                value = self._last + self._rng.randint(1, _MAX_INCREMENT)
                if value > _MAX_ENTROPY:
                    raise OverflowError("ulid: monotonic entropy overflow")
            else:
                value = self._rng.getrandbits(_ENTROPY_BITS)
                self._last_ms = ms
            self._last = value
            return value


_entropy = _MonotonicEntropy()


def _encode(ms: int, entropy: int) -> str:
    if ms > _MAX_TIMESTAMP:
        raise OverflowError("ulid: timestamp too large")
    value = (ms << _ENTROPY_BITS) | entropy
    chars = []
    for _ in range(26):
        chars.append(_ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def valid_id(value: str) -> bool:
    """Return True if value is a canonical upper-case ULID."""
    return _ULID_RE.fullmatch(value) is not None and value[0] <= "7"


def default_generator() -> str:
    """Generate a new monotonic ULID for the current time."""
    ms = time.time_ns() // 1_000_000
    return _encode(ms, _entropy.next(ms))


_generator: Callable[[], str] = default_generator


def generate_id() -> str:
    """Generate a new unique ID using the current generator."""
    return _generator()


def reset_generator() -> None:
    """Restore the default generator."""
    global _generator
    _generator = default_generator


def mock_generator(mock_value: str) -> None:
    """Make generate_id always return mock_value."""
    global _generator

    def _fixed() -> str:
        return mock_value

    _generator = _fixed