"""Shared fixtures for the Imaging Gateway test suite."""

import json
from typing import List

import httpx
import pytest

from imaging_gateway.config.loader import GatewayConfig
from imaging_gateway.sdk.inference_client import InferenceClient

ENDPOINT_URL = "https://medgemma.endpoints.example"
TOKEN = "hf_test_token"

COMPLETION_BODY = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "model": "google/medgemma-27b-it",
    "choices": [
        {
            "index": 0,
            "finish_reason": "stop",
            "message": {"role": "assistant", "content": "1) Modality and view: PA chest X-ray."},
        }
    ],
    "usage": {"prompt_tokens": 300, "completion_tokens": 40, "total_tokens": 340},
}


class RecordingTransport(httpx.MockTransport):
    """httpx transport that records requests and answers with a fixed response."""

    def __init__(self, status_code: int = 200, body=None, error: Exception = None):
        self.requests: List[httpx.Request] = []
        self.status_code = status_code
        self.body = COMPLETION_BODY if body is None else body
        self.error = error
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def endpoint_env():
    """Environment with the inference endpoint fully configured."""
    return {"HF_ENDPOINT_URL": ENDPOINT_URL, "HF_TOKEN": TOKEN}


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def gateway_config():
    return GatewayConfig(daily_limit=3, request_timeout_seconds=5.0)


@pytest.fixture
def inference_client(gateway_config, endpoint_env, transport):
    return InferenceClient(gateway_config, environ=endpoint_env, transport=transport)
