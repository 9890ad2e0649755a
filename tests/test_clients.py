"""Tests for oracle clients with mocked transports."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from speech_coach.clients.generative import GenerativeClient
from speech_coach.clients.scope_classifier import ScopeClassifierClient
from speech_coach.clients.severity_classifier import SeverityClassifierClient
from speech_coach.clients.transcription import TranscriptionClient


def _chat_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestGenerativeClient:
    async def test_returns_model_text(self):
        client = GenerativeClient(api_key="test-key", model="gpt-4o-mini")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response("sun, sea"))

        assert await client.generate("prompt") == "sun, sea"
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    async def test_model_override(self):
        client = GenerativeClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response("ok"))

        await client.generate("prompt", model="gpt-4o")
        assert client.client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"

    async def test_failure_returns_none(self):
        client = GenerativeClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(side_effect=RuntimeError("down"))

        assert await client.generate("prompt") is None

    async def test_empty_reply_returns_none(self):
        client = GenerativeClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=_chat_response(None))

        assert await client.generate("prompt") is None


class TestScopeClassifierClient:
    async def test_returns_raw_text(self):
        client = ScopeClassifierClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(
            return_value=_chat_response('{"label": "allowed"}')
        )
        assert await client.classify("What is dysarthria?") == '{"label": "allowed"}'

    async def test_errors_propagate(self):
        client = ScopeClassifierClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(side_effect=RuntimeError("down"))
        with pytest.raises(RuntimeError):
            await client.classify("x")


class TestTranscriptionClient:
    async def test_strips_transcript(self):
        client = TranscriptionClient(api_key="test-key")
        client.client = MagicMock()
        result = MagicMock()
        result.text = "  sun  "
        client.client.audio.transcriptions.create = AsyncMock(return_value=result)

        assert await client.transcribe(b"RIFF") == "sun"
        kwargs = client.client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["file"] == ("audio.wav", b"RIFF")

    async def test_failure_returns_empty(self):
        client = TranscriptionClient(api_key="test-key")
        client.client = MagicMock()
        client.client.audio.transcriptions.create = AsyncMock(side_effect=RuntimeError("down"))
        assert await client.transcribe(b"RIFF") == ""

    async def test_empty_audio_skips_call(self):
        client = TranscriptionClient(api_key="test-key")
        client.client = MagicMock()
        client.client.audio.transcriptions.create = AsyncMock()
        assert await client.transcribe(b"") == ""
        client.client.audio.transcriptions.create.assert_not_called()


def _severity_client(handler) -> SeverityClassifierClient:
    client = SeverityClassifierClient(url="http://classifier.test/infer")
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


class TestSeverityClassifierClient:
    async def test_parses_output(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.content
            return httpx.Response(
                200,
                json={
                    "ensemble_pred": 1,
                    "ensemble_prob": 0.85,
                    "model_probs": {"rf": 0.8, "xgb": 0.9},
                    "timestamp": "2026-03-01T10:00:00",
                },
            )

        client = _severity_client(handler)
        output = await client.infer(b"RIFFDATA", "alice")
        await client.aclose()

        assert output.ensemble_pred == 1
        assert output.ensemble_prob == 0.85
        assert output.model_probs == {"rf": 0.8, "xgb": 0.9}
        assert seen["url"] == "http://classifier.test/infer"
        assert b"RIFFDATA" in seen["body"]
        assert b"alice" in seen["body"]

    async def test_http_error_returns_none(self):
        client = _severity_client(lambda request: httpx.Response(500, text="boom"))
        assert await client.infer(b"RIFF", "alice") is None

    async def test_invalid_payload_returns_none(self):
        client = _severity_client(
            lambda request: httpx.Response(200, json={"ensemble_pred": 3, "ensemble_prob": 2})
        )
        assert await client.infer(b"RIFF", "alice") is None

    async def test_non_json_returns_none(self):
        client = _severity_client(lambda request: httpx.Response(200, text="not json"))
        assert await client.infer(b"RIFF", "alice") is None

    async def test_transport_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _severity_client(handler)
        assert await client.infer(b"RIFF", "alice") is None
