import hmac
from typing import Optional

from core.errors import (
    InputContractViolation,
    LocationNotFound,
    PipelineDefinitionError,
    PipelineError,
    ProviderTimeout,
    RunStateError,
)

BEARER_PREFIX = "Bearer "


def error_status(error: PipelineError) -> int:
    """HTTP status code for a pipeline failure."""
    if isinstance(error, InputContractViolation):
        return 422
    if isinstance(error, LocationNotFound):
        return 404
    if isinstance(error, ProviderTimeout):
        return 504
    if isinstance(error, (PipelineDefinitionError, RunStateError)):
        return 500
    # Output violations, interrupted streams and executor failures are upstream faults
    return 502


def check_bearer(auth_header: Optional[str], expected: Optional[str]) -> Optional[str]:
    """
    Validate an Authorization header.

    Returns:
        None when accepted, otherwise the 401 body ("Unauthorized" or "Invalid token")
    """
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return "Unauthorized"
    token = auth_header[len(BEARER_PREFIX):]
    if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
        return "Invalid token"
    return None
