"""
Analyze request pipeline.

Request flow:
1. Quota check - cheapest step, rejects exhausted clients first
2. Upload validation - requires an image file field
3. Encoding - image bytes to an inline data URL
4. Invocation - one call to the inference service
5. Relay - the only step that produces the response

Every failure is caught here and relayed; none reaches the server.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from .encoder import encode_data_url
from .errors import AdmissionDenied, ConfigurationError, GatewayError, InferenceTransportError
from .quota import QuotaTracker
from .relay import RelayedResponse, relay
from .upload import validate_upload
from ..sdk.inference_client import InferenceClient

logger = logging.getLogger(__name__)

# Parses the request body on demand; returns None when it cannot be parsed
FormReader = Callable[[], Awaitable[Optional[Mapping[str, Any]]]]


class AnalysisPipeline:
    """Runs one analyze request from admission to response."""

    def __init__(self, tracker: QuotaTracker, client: InferenceClient, upload_field: str = "image"):
        self.tracker = tracker
        self.client = client
        self.upload_field = upload_field

    async def analyze(self, client_key: str, read_form: FormReader) -> RelayedResponse:
        """Process one request.

        Quota is consumed before validation, so a request without an image
        still counts against the client's daily limit.

        Args:
            client_key: Requester identity (network address)
            read_form: Coroutine function returning the parsed multipart form,
                or None if the body was unreadable. Called only after admission.

        Returns:
            RelayedResponse to send back to the caller
        """
        try:
            decision = self.tracker.admit(client_key)
            if not decision.admitted:
                raise AdmissionDenied(decision.limit)

            form = await read_form()
            image = await validate_upload(form, self.upload_field)
            data_url = encode_data_url(image)
            logger.debug(
                "Forwarding %s (%d bytes, %s) for %s (%d/%d today)",
                image.filename or "unnamed upload", len(image.data), image.mime_type,
                client_key, decision.count, decision.limit,
            )

            # No quota lock is held across the remote call
            outcome = await self.client.invoke(data_url)
            return relay(outcome)
        except ConfigurationError as e:
            logger.error("Gateway misconfigured: %s", e)
            return relay(e)
        except InferenceTransportError as e:
            logger.error("Inference call failed for %s: %s", client_key, e, exc_info=True)
            return relay(e)
        except GatewayError as e:
            logger.warning("Analyze rejected for %s: %s", client_key, e)
            return relay(e)
        except Exception as e:
            logger.exception("Analyze error for %s", client_key)
            return relay(e)
