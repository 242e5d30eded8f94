from .security_headers import apply_response_security_headers
from .request_hardening import enforce_request_hardening
from .rate_limiting import enforce_rate_limits
from .request_logging import log_requests

__all__ = [
    "apply_response_security_headers",
    "enforce_request_hardening",
    "enforce_rate_limits",
    "log_requests",
]
