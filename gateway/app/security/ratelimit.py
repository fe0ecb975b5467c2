"""
Per-client token bucket.

The bucket step is a pure function of (state, config, now) so it can be
replayed deterministically; the mutable table lives behind ``BucketStore``
so the in-process dict can be swapped for a shared store.
"""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class TokenBucketConfig:
    """
    Attributes:
        capacity: Maximum burst (bucket size)
        refill_per_minute: Whole tokens added per elapsed minute
    """
    capacity: int
    refill_per_minute: int


@dataclass(frozen=True)
class ClientBucket:
    """Invariant: 0 <= tokens <= capacity."""
    tokens: int
    last_refill_ts: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    tokens_remaining: int
    retry_after_s: Optional[int]


def validate_config(config: TokenBucketConfig) -> bool:
    return config.capacity > 0 and config.refill_per_minute > 0


def create_bucket(config: TokenBucketConfig, now_ts: float) -> ClientBucket:
    return ClientBucket(tokens=config.capacity, last_refill_ts=now_ts)


def refill(bucket: ClientBucket, config: TokenBucketConfig, now_ts: float) -> ClientBucket:
    """
    Add floor(elapsed_minutes * refill_per_minute) tokens, capped at capacity.

    The refill timestamp moves only when at least one token was added, so
    partial intervals keep accumulating across calls.
    """
    elapsed_s = max(0.0, now_ts - bucket.last_refill_ts)
    added = math.floor(elapsed_s * config.refill_per_minute / 60.0)
    if added <= 0:
        return bucket
    return ClientBucket(
        tokens=min(config.capacity, bucket.tokens + added),
        last_refill_ts=now_ts,
    )


def refill_and_consume(
    bucket: Optional[ClientBucket],
    config: TokenBucketConfig,
    now_ts: float,
) -> Tuple[ClientBucket, bool]:
    """
    Returns:
        (new_bucket, allowed). A denied call consumes nothing.

    Invalid config fails closed: (bucket, False).
    """
    current = bucket if bucket is not None else create_bucket(config, now_ts)
    if not validate_config(config):
        return (current, False)

    current = refill(current, config, now_ts)
    if current.tokens > 0:
        return (ClientBucket(tokens=current.tokens - 1, last_refill_ts=current.last_refill_ts), True)
    return (current, False)


def seconds_until_next_token(bucket: ClientBucket, config: TokenBucketConfig, now_ts: float) -> int:
    if not validate_config(config):
        return 60
    per_token_s = 60.0 / config.refill_per_minute
    elapsed_s = max(0.0, now_ts - bucket.last_refill_ts)
    return max(1, math.ceil(per_token_s - elapsed_s))


class BucketStore(ABC):
    """Ownership boundary for bucket state."""

    @abstractmethod
    def get(self, key: str) -> Optional[ClientBucket]:
        ...

    @abstractmethod
    def put(self, key: str, bucket: ClientBucket) -> None:
        ...


class InMemoryBucketStore(BucketStore):
    """
    Process-local table. Entries are never evicted and nothing is shared
    between workers, so limits are approximate under scale-out.
    """

    def __init__(self) -> None:
        self._buckets: Dict[str, ClientBucket] = {}

    def get(self, key: str) -> Optional[ClientBucket]:
        return self._buckets.get(key)

    def put(self, key: str, bucket: ClientBucket) -> None:
        self._buckets[key] = bucket

    def __len__(self) -> int:
        return len(self._buckets)


class AbuseLimiter:
    def __init__(
        self,
        config: TokenBucketConfig,
        store: Optional[BucketStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.store = store if store is not None else InMemoryBucketStore()
        self._clock = clock

    def check(self, client_key: str) -> RateDecision:
        # get -> step -> put runs without an await, so it is atomic on the event loop
        now_ts = self._clock()
        bucket, allowed = refill_and_consume(self.store.get(client_key), self.config, now_ts)
        self.store.put(client_key, bucket)
        if allowed:
            return RateDecision(allowed=True, tokens_remaining=bucket.tokens, retry_after_s=None)
        return RateDecision(
            allowed=False,
            tokens_remaining=0,
            retry_after_s=seconds_until_next_token(bucket, self.config, now_ts),
        )


def client_ip(headers, header_name: str) -> str:
    """
    Client identity from the configured proxy header.

    The header is taken as-is: it is only trustworthy when the edge proxy
    overwrites it, otherwise callers can spoof it to get fresh buckets.
    """
    raw = headers.get(header_name) if header_name else None
    if raw:
        first = raw.split(",")[0].strip()
        if first:
            return first[:64]
    return UNKNOWN_CLIENT


__all__ = [
    "UNKNOWN_CLIENT",
    "TokenBucketConfig",
    "ClientBucket",
    "RateDecision",
    "validate_config",
    "create_bucket",
    "refill",
    "refill_and_consume",
    "seconds_until_next_token",
    "BucketStore",
    "InMemoryBucketStore",
    "AbuseLimiter",
    "client_ip",
]
