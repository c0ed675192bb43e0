"""
Inference service client.

Builds the chat-completions request for one image and relays the remote
status and body unchanged.
"""

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
from openai import APIError, APIStatusError, AsyncOpenAI

from ..config.loader import ENDPOINT_URL_ENV, TOKEN_ENV, GatewayConfig
from ..core.errors import ConfigurationError, InferenceTransportError

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON and cannot be sent back to the caller
    raise ValueError(f"Invalid JSON constant: {name}")


@dataclass(frozen=True)
class InferenceRequest:
    """Immutable outbound request for a single image analysis."""
    instruction_text: str
    image_data_url: str
    model: str
    temperature: float
    max_output_tokens: int

    def to_payload(self) -> Dict[str, Any]:
        """Chat-completions JSON body: one user turn, text part then image part."""
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.instruction_text},
                        {"type": "image_url", "image_url": {"url": self.image_data_url}},
                    ],
                }
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }


@dataclass(frozen=True)
class InferenceOutcome:
    """Remote status code and parsed JSON body, passed through verbatim."""
    status_code: int
    body: Any


def build_inference_request(image_data_url: str, config: GatewayConfig) -> InferenceRequest:
    return InferenceRequest(
        instruction_text=config.instruction_text,
        image_data_url=image_data_url,
        model=config.model,
        temperature=config.temperature,
        max_output_tokens=config.max_output_tokens,
    )


class InferenceClient:
    """Async client for an OpenAI-compatible chat-completions endpoint.

    The endpoint URL and token are read from the environment on every call,
    so a deployment can be fixed without restarting. Each call opens its own
    connection; there are no retries and no streaming.
    """

    def __init__(
        self,
        config: GatewayConfig,
        environ: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize inference client.

        Args:
            config: Gateway configuration (model, sampling, timeout)
            environ: Environment mapping (defaults to os.environ at call time)
            transport: Optional httpx transport replacing the network
        """
        self.config = config
        self._environ = environ
        self._transport = transport

    def _resolve_endpoint(self):
        env = os.environ if self._environ is None else self._environ
        endpoint_url = env.get(ENDPOINT_URL_ENV, "").strip()
        if not endpoint_url:
            raise ConfigurationError(f"{ENDPOINT_URL_ENV} missing in .env")
        token = env.get(TOKEN_ENV, "").strip()
        if not token:
            raise ConfigurationError(f"{TOKEN_ENV} missing in .env")
        return endpoint_url.rstrip("/"), token

    async def invoke(self, image_data_url: str) -> InferenceOutcome:
        """Send one image to the inference service.

        Args:
            image_data_url: Base64 data URL of the uploaded image

        Returns:
            InferenceOutcome mirroring the remote response, including non-2xx ones

        Raises:
            ConfigurationError: If endpoint URL or token is missing (no network call is made)
            InferenceTransportError: On connection failure, timeout or a non-JSON body
        """
        endpoint_url, token = self._resolve_endpoint()
        request = build_inference_request(image_data_url, self.config)

        http_client = None
        if self._transport is not None:
            http_client = httpx.AsyncClient(transport=self._transport)

        t0 = time.time()
        try:
            async with AsyncOpenAI(
                base_url=f"{endpoint_url}/v1",
                api_key=token,
                max_retries=0,
                timeout=self.config.request_timeout_seconds,
                http_client=http_client,
            ) as client:
                raw = await client.chat.completions.with_raw_response.create(**request.to_payload())
                response = raw.http_response
        except APIStatusError as exc:
            # Remote business failures (rate limits, refusals) are relayed as-is
            response = exc.response
        except APIError as exc:
            raise InferenceTransportError(f"Inference request failed: {exc}") from exc

        latency = (time.time() - t0) * 1000
        try:
            body = json.loads(response.content, parse_constant=_reject_constant)
        except ValueError as exc:
            raise InferenceTransportError(
                f"Inference service returned a non-JSON body (status {response.status_code})"
            ) from exc

        logger.info(
            "Inference %s -> %d (%.0fms)",
            request.model, response.status_code, latency,
        )
        return InferenceOutcome(status_code=response.status_code, body=body)
