"""Shared fixtures: test credentials and a scriptable HTTP transport."""

import json
import os

os.environ.setdefault("HF_ACCESS_TOKEN", "hf-test-token")
os.environ.setdefault("LLM_API_KEY", "llm-test-key")
os.environ.setdefault("LOG_JSON", "false")

import httpx
import pytest

from checkmatic.config import Settings

ARTICLE_TEXT = (
    "The city council approved the new transit budget on Tuesday after a lengthy debate. "
    "Council members said the plan would add three bus routes and extend service hours."
)

VERDICT = {
    "summary": "The council approved a transit budget adding bus routes.",
    "primary_classification": {
        "type": "authentic",
        "quote": "The city council approved the new transit budget",
        "model_confidence": 0.91,
        "llm_confidence": 0.88,
        "llm_reason": "Reads as a factual report; authentic at 91%.",
        "llm_positive": True,
    },
    "secondary_classification": {
        "type": "news report",
        "quote": "after a lengthy debate",
        "model_confidence": 0.84,
        "llm_confidence": 0.8,
        "llm_reason": "Neutral reporting of an event; report at 84%.",
        "llm_positive": True,
    },
    "tertiary_classification": {
        "type": "neutral",
        "quote": "Council members said",
        "model_confidence": 0.6,
        "llm_confidence": 0.7,
        "llm_reason": "No partisan framing; center at 60%.",
        "llm_positive": True,
    },
}

SARCASM_PAYLOAD = [[{"label": "LABEL_0", "score": 0.93}, {"label": "LABEL_1", "score": 0.07}]]
ZERO_SHOT_PAYLOAD = {"sequence": ARTICLE_TEXT, "labels": ["report", "authentic"], "scores": [0.84, 0.91]}
BIAS_PAYLOAD = [[{"label": "CENTER", "score": 0.6}, {"label": "LEFT", "score": 0.25}, {"label": "RIGHT", "score": 0.15}]]


def fresh(response: httpx.Response) -> httpx.Response:
    """Copy of a canned response; a Response object can only be sent once."""
    return httpx.Response(response.status_code, headers=response.headers, content=response.content)


def gemini_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def settings() -> Settings:
    return Settings(
        hf_access_token="hf-test-token",
        llm_api_key="llm-test-key",
        retry_base_delay=0,
        resolve_dns=False,
        log_json=False,
    )


class FakeUpstream:
    """Routes requests to canned handlers by host and path, recording each call."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.pages: dict[str, httpx.Response] = {}
        self.models: dict[str, object] = {
            "helinivan/multilingual-sarcasm-detector": SARCASM_PAYLOAD,
            "facebook/bart-large-mnli": ZERO_SHOT_PAYLOAD,
            "bucketresearch/politicalBiasBERT": BIAS_PAYLOAD,
        }
        self.llm_texts: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        host = request.url.host
        if host == "api-inference.huggingface.co":
            model = request.url.path.removeprefix("/models/")
            payload = self.models.get(model)
            if isinstance(payload, int):
                return httpx.Response(payload, text="model error")
            return httpx.Response(200, json=payload)
        if host == "generativelanguage.googleapis.com":
            text = self.llm_texts.pop(0) if self.llm_texts else json.dumps(VERDICT)
            return httpx.Response(200, json=gemini_response(text))
        page = self.pages.get(str(request.url))
        if page is not None:
            return fresh(page)
        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls_to(self, host: str) -> list[httpx.Request]:
        return [call for call in self.calls if call.url.host == host]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
