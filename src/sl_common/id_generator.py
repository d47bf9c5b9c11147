"""Time-ordered 64-bit ids for events, ledger entries and payments.

Ids are rendered as "<prefix><decimal>", e.g. "ent_1234567890123456". Within
one process they strictly increase, so entries created by one split also sort
in creation order.

Bit layout, high to low:
    41 bits  milliseconds since ID_EPOCH_MS
    10 bits  machine id (settings.ID_MACHINE_ID, one per running instance)
    12 bits  per-millisecond sequence
"""

import threading
import time

from config.settings import settings

ID_EPOCH_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z

_MACHINE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1
_MAX_MACHINE_ID = (1 << _MACHINE_BITS) - 1


class SnowflakeIdGenerator:
    def __init__(self, machine_id: int = 0) -> None:
        if not 0 <= machine_id <= _MAX_MACHINE_ID:
            raise ValueError(f"machine_id must be 0-{_MAX_MACHINE_ID}, got {machine_id}")
        self._machine_id = machine_id
        self._lock = threading.Lock()
        self._last_timestamp_ms = -1
        self._sequence = 0

    def next_int(self) -> int:
        with self._lock:
            # Never step back in time: a clock adjustment reuses the last millisecond
            ts = max(self._current_ms(), self._last_timestamp_ms)
            if ts == self._last_timestamp_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    ts = self._wait_past(ts)
            else:
                self._sequence = 0
            self._last_timestamp_ms = ts
            return self._compose(ts, self._sequence)

    def next_id(self, prefix: str = "") -> str:
        return f"{prefix}{self.next_int()}"

    def _compose(self, ts: int, sequence: int) -> int:
        elapsed = ts - ID_EPOCH_MS
        return (
            (elapsed << (_MACHINE_BITS + _SEQUENCE_BITS))
            | (self._machine_id << _SEQUENCE_BITS)
            | sequence
        )

    def _current_ms(self) -> int:
        return time.time_ns() // 1_000_000

    def _wait_past(self, ts: int) -> int:
        now = self._current_ms()
        while now <= ts:
            time.sleep(0)
            now = self._current_ms()
        return now


_generator = SnowflakeIdGenerator(settings.ID_MACHINE_ID)


def generate_id(prefix: str = "") -> str:
    """Next id from the process-wide generator, e.g. generate_id("pay_")."""
    return _generator.next_id(prefix)
