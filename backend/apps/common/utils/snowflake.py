"""
Snowflake 风格的 64 位 ID 生成器

位布局（最高位恒为 0，保证落在有符号 BIGINT 范围内）：
    | 41 位毫秒时间戳（相对 EPOCH） | 10 位节点号 | 12 位序列号 |

- 同一毫秒内序列号递增，用尽则自旋等待下一毫秒
- 系统时钟回拨时沿用上次时间戳继续递增，保证单调
"""

from __future__ import annotations

import os
import threading
import time

# 2020-01-01 00:00:00 UTC
EPOCH_MS = 1577836800000

NODE_BITS = 10
SEQUENCE_BITS = 12
MAX_NODE_ID = (1 << NODE_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1


def _now_ms() -> int:
    return int(time.time() * 1000)


class Snowflake:
    """线程安全的 ID 生成器，多个线程共享同一实例也不会产生重复 ID"""

    def __init__(self, node_id: int = 1, *, clock=_now_ms):
        if not 0 <= node_id <= MAX_NODE_ID:
            raise ValueError(f"node_id 需在 0-{MAX_NODE_ID} 之间")
        self.node_id = node_id
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ts = -1
        self._sequence = 0

    def next_id(self) -> int:
        with self._lock:
            ts = max(self._clock(), self._last_ts)
            if ts == self._last_ts:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    ts = self._wait_next_ms(self._last_ts)
            else:
                self._sequence = 0
            self._last_ts = ts
            return ((ts - EPOCH_MS) << (NODE_BITS + SEQUENCE_BITS)) | (self.node_id << SEQUENCE_BITS) | self._sequence

    def _wait_next_ms(self, last_ts: int) -> int:
        ts = self._clock()
        while ts <= last_ts:
            time.sleep(0.0001)
            ts = self._clock()
        return ts


_default: Snowflake | None = None
_default_lock = threading.Lock()


def _resolve_node_id() -> int:
    from django.conf import settings

    raw = getattr(settings, "SNOWFLAKE_NODE_ID", None)
    if raw is None:
        raw = os.getenv("SNOWFLAKE_NODE_ID", "1")
    return int(raw)


def get_generator() -> Snowflake:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = Snowflake(_resolve_node_id())
    return _default


def must_id() -> int:
    """生成一个新 ID（进程内单例生成器）"""
    return get_generator().next_id()
