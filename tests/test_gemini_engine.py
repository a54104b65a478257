"""
Gemini Engine Tests
The SDK client is mocked; no network calls are made.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.gemini_engine import (
    GREETING,
    INSIGHT_FALLBACK,
    MODEL_FAST,
    MODEL_PRO_THINKING,
    THINKING_BUDGET,
    analyze_triage_image,
    build_history,
    chat_with_gemini,
    edit_image,
    extract_sources,
    generate_image,
    get_availability_message,
    get_fast_insight,
    is_gemini_available,
)


def grounded_response(text, chunks):
    metadata = SimpleNamespace(grounding_chunks=chunks)
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=metadata)])


def image_response(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    text_part = SimpleNamespace(inline_data=None)
    content = SimpleNamespace(parts=[text_part, part])
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


class TestExtractSources:

    def test_web_and_maps_chunks(self):
        response = grounded_response("ok", [
            SimpleNamespace(web=SimpleNamespace(uri="https://saude.gov.br", title="Ministério"), maps=None),
            SimpleNamespace(web=None, maps=SimpleNamespace(uri="https://maps.example/upa", title=None)),
            SimpleNamespace(web=SimpleNamespace(uri="", title="Sem link"), maps=None),
        ])
        assert extract_sources(response) == [
            {"uri": "https://saude.gov.br", "title": "Ministério"},
            {"uri": "https://maps.example/upa", "title": "Fonte"},
        ]

    def test_no_metadata(self):
        assert extract_sources(SimpleNamespace(candidates=[SimpleNamespace(grounding_metadata=None)])) == []
        assert extract_sources(SimpleNamespace(candidates=None)) == []


def test_build_history_skips_greeting_and_blanks():
    history = build_history([
        {"role": "model", "text": GREETING},
        {"role": "user", "text": "Quantos vermelhos ontem?"},
        {"role": "model", "text": "   "},
        {"role": "model", "text": "Foram 2."},
    ])
    assert [c.role for c in history] == ["user", "model"]
    assert history[1].parts[0].text == "Foram 2."


class TestChat:

    def test_reply_with_sources(self):
        client = MagicMock()
        client.chats.create.return_value.send_message.return_value = grounded_response(
            "Protocolo de Manchester.",
            [SimpleNamespace(web=SimpleNamespace(uri="https://a.example", title="A"), maps=None)],
        )
        with patch("src.gemini_engine._client", return_value=client):
            reply = chat_with_gemini("O que é?", [{"role": "model", "text": GREETING}], use_search=True)

        assert reply.text == "Protocolo de Manchester."
        assert reply.sources == [{"uri": "https://a.example", "title": "A"}]
        assert not reply.thinking
        kwargs = client.chats.create.call_args.kwargs
        assert kwargs["model"] == MODEL_FAST
        assert kwargs["history"] == []
        assert kwargs["config"].tools

    def test_thinking_uses_pro_model(self):
        client = MagicMock()
        client.chats.create.return_value.send_message.return_value = grounded_response("ok", [])
        with patch("src.gemini_engine._client", return_value=client):
            reply = chat_with_gemini("Analise", [], use_thinking=True)

        kwargs = client.chats.create.call_args.kwargs
        assert kwargs["model"] == MODEL_PRO_THINKING
        assert kwargs["config"].thinking_config.thinking_budget == THINKING_BUDGET
        assert reply.thinking

    def test_error_returns_none(self):
        with patch("src.gemini_engine._client", side_effect=RuntimeError("offline")):
            assert chat_with_gemini("Oi", []) is None


class TestImages:

    def test_generate_returns_first_inline_image(self):
        client = MagicMock()
        client.models.generate_content.return_value = image_response(b"\x89PNG")
        with patch("src.gemini_engine._client", return_value=client):
            assert generate_image("UPA ao amanhecer", "2K") == b"\x89PNG"

        config = client.models.generate_content.call_args.kwargs["config"]
        assert config.image_config.image_size == "2K"
        assert config.image_config.aspect_ratio == "16:9"

    def test_generate_rejects_unknown_size(self):
        with pytest.raises(ValueError):
            generate_image("x", "8K")

    def test_edit_without_image_part(self):
        client = MagicMock()
        client.models.generate_content.return_value = SimpleNamespace(candidates=[])
        with patch("src.gemini_engine._client", return_value=client):
            assert edit_image(b"img", "image/png", "retrô") is None

    def test_analyze_returns_text(self):
        client = MagicMock()
        client.models.generate_content.return_value = SimpleNamespace(text='{"verde": 3}')
        with patch("src.gemini_engine._client", return_value=client):
            assert analyze_triage_image(b"img", "image/jpeg") == '{"verde": 3}'

    def test_analyze_error_returns_none(self):
        client = MagicMock()
        client.models.generate_content.side_effect = RuntimeError("quota")
        with patch("src.gemini_engine._client", return_value=client):
            assert analyze_triage_image(b"img", "image/jpeg") is None


class TestInsight:

    def test_text(self):
        client = MagicMock()
        client.models.generate_content.return_value = SimpleNamespace(text="Carga estável.")
        with patch("src.gemini_engine._client", return_value=client):
            assert get_fast_insight("01/10/2023: Total 43") == "Carga estável."

    def test_fallback(self):
        with patch("src.gemini_engine._client", side_effect=RuntimeError("offline")):
            assert get_fast_insight("") == INSIGHT_FALLBACK


def test_availability(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    assert not is_gemini_available()
    assert "GEMINI_API_KEY" in get_availability_message()

    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
    assert is_gemini_available()
    assert get_availability_message() == "AI Engine is ready"
