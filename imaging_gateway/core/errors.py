"""
Gateway error taxonomy.

Components raise these; the pipeline catches them at the request boundary
and the relay turns each one into an outward response.
"""


class GatewayError(Exception):
    """Base class for failures the gateway reports to the caller."""


class AdmissionDenied(GatewayError):
    """Raised when a client has used its daily quota."""
    def __init__(self, limit: int):
        super().__init__(f"Daily free limit reached ({limit} analyses/day).")
        self.limit = limit


class UploadRejected(GatewayError):
    """Raised when the request carries no usable image."""
    def __init__(self, reason: str = "No image uploaded"):
        super().__init__(reason)
        self.reason = reason


class ConfigurationError(GatewayError):
    """Raised when a required deployment setting is missing.

    The message names the missing setting so operators can fix it.
    """


class InferenceTransportError(GatewayError):
    """Raised when the remote call fails or its body cannot be parsed."""
