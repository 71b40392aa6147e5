"""Snowflake-style business IDs for orders and escrow transactions.

IDs are opaque strings to callers. A short type prefix keeps support
tickets readable ("ord_…" vs "esc_…"); the numeric part is monotonic per
process so ids sort by creation time within one worker.
"""

import threading
import time


class SnowflakeIdGenerator:
    """Simple snowflake ID generator.

    Layout (63 bits):
      - 41 bits: millisecond timestamp (since custom epoch)
      - 10 bits: worker_id (0-1023)
      - 12 bits: sequence (0-4095 per millisecond)
    """

    _EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
    _WORKER_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, worker_id: int = 0) -> None:
        if not (0 <= worker_id < (1 << self._WORKER_BITS)):
            raise ValueError(f"worker_id must be 0-{(1 << self._WORKER_BITS) - 1}")
        self._worker_id = worker_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            ts = self._now_ms()
            if ts == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    while ts <= self._last_ms:
                        ts = self._now_ms()
            else:
                self._sequence = 0
            self._last_ms = ts
            return (
                ((ts - self._EPOCH_MS) << (self._WORKER_BITS + self._SEQUENCE_BITS))
                | (self._worker_id << self._SEQUENCE_BITS)
                | self._sequence
            )

    def _now_ms(self) -> int:
        return int(time.time() * 1000)


_default_generator = SnowflakeIdGenerator()


def generate_id(prefix: str = "") -> str:
    """Next id from the process-wide generator, e.g. generate_id("esc") -> 'esc_8412…'."""
    n = _default_generator.next_int()
    return f"{prefix}_{n}" if prefix else str(n)
