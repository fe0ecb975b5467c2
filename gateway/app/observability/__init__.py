from .logging import hash_client, safe_redact, structured_log
from .request_id import get_request_id

__all__ = ["hash_client", "safe_redact", "structured_log", "get_request_id"]
