"""
Client for the remote inference service.
"""

from .inference_client import InferenceClient, InferenceOutcome, InferenceRequest

__all__ = ["InferenceClient", "InferenceOutcome", "InferenceRequest"]
