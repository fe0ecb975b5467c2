from gateway.app.security.headers import apply_security_headers, cors_headers, security_headers
from gateway.app.security.origin import OriginDecision, evaluate_origin
from gateway.app.security.ratelimit import (
    AbuseLimiter,
    BucketStore,
    ClientBucket,
    InMemoryBucketStore,
    RateDecision,
    TokenBucketConfig,
    client_ip,
    refill_and_consume,
)

__all__ = [
    "apply_security_headers",
    "cors_headers",
    "security_headers",
    "OriginDecision",
    "evaluate_origin",
    "AbuseLimiter",
    "BucketStore",
    "ClientBucket",
    "InMemoryBucketStore",
    "RateDecision",
    "TokenBucketConfig",
    "client_ip",
    "refill_and_consume",
]
