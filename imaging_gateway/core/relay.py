"""
Response relay.

Single place that maps a pipeline result, local or remote, onto the
gateway's outward status code and JSON body.
"""

from dataclasses import dataclass
from typing import Any, Union

from .errors import AdmissionDenied, ConfigurationError, UploadRejected
from ..sdk.inference_client import InferenceOutcome

GENERIC_FAILURE_MESSAGE = "Failed to analyze image"


@dataclass(frozen=True)
class RelayedResponse:
    """Outward response: status code plus JSON-serializable body."""
    status_code: int
    body: Any


def relay(result: Union[InferenceOutcome, BaseException]) -> RelayedResponse:
    """Convert an inference outcome or a local failure into a response.

    Remote outcomes pass through unchanged, whatever their status. Transport
    failures and anything unexpected collapse to a generic 500 so no
    untrusted remote detail leaks out.

    Args:
        result: InferenceOutcome from the client, or the exception raised

    Returns:
        RelayedResponse for the caller
    """
    if isinstance(result, InferenceOutcome):
        return RelayedResponse(status_code=result.status_code, body=result.body)
    if isinstance(result, AdmissionDenied):
        return RelayedResponse(
            status_code=429,
            body={"error": f"Daily free limit reached ({result.limit} analyses/day)."},
        )
    if isinstance(result, UploadRejected):
        return RelayedResponse(status_code=400, body={"error": result.reason})
    if isinstance(result, ConfigurationError):
        return RelayedResponse(status_code=500, body={"error": str(result)})
    return RelayedResponse(status_code=500, body={"error": GENERIC_FAILURE_MESSAGE})
