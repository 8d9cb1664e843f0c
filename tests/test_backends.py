"""Tests for the OpenAI predictor backend."""

from unittest.mock import MagicMock, patch

import pytest

from color_oracle.config.settings import OracleSettings
from color_oracle.forecasting.backends import (
    OpenAIPredictorBackend,
    build_backends,
    build_prompt,
)


def mock_completion(content):
    """Create a mock OpenAI ChatCompletion response."""
    response = MagicMock()
    choice = MagicMock()
    choice.message.content = content
    response.choices = [choice]
    return response


@pytest.fixture
def clean_keys(monkeypatch):
    for i in range(1, 11):
        monkeypatch.delenv(f"PREDICTOR_KEY_{i}", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return monkeypatch


class TestOpenAIPredictorBackend:
    @patch("color_oracle.forecasting.backends.OpenAI")
    def test_returns_message_text(self, MockOpenAI):
        client = MagicMock()
        client.chat.completions.create.return_value = mock_completion('  {"color": "Red", "size": "Big"}\n')
        MockOpenAI.return_value = client

        backend = OpenAIPredictorBackend("sk-test", "gpt-4o-mini", timeout=5)
        text = backend([{"period_id": "1", "outcome_number": 4, "color": None}], "AI-1")

        assert text == '{"color": "Red", "size": "Big"}'
        MockOpenAI.assert_called_once_with(api_key="sk-test", timeout=5, max_retries=0)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert "AI-1" in kwargs["messages"][1]["content"]

    @patch("color_oracle.forecasting.backends.OpenAI")
    def test_client_reused(self, MockOpenAI):
        MockOpenAI.return_value.chat.completions.create.return_value = mock_completion("7")
        backend = OpenAIPredictorBackend("sk-test", "gpt-4o-mini")

        backend([], "AI-1")
        backend([], "AI-1")

        assert MockOpenAI.call_count == 1

    @patch("color_oracle.forecasting.backends.OpenAI")
    def test_empty_content(self, MockOpenAI):
        MockOpenAI.return_value.chat.completions.create.return_value = mock_completion(None)
        backend = OpenAIPredictorBackend("sk-test", "gpt-4o-mini")
        assert backend([], "AI-2") == ""

    @patch("color_oracle.forecasting.backends.OpenAI")
    def test_api_error_propagates_to_pool(self, MockOpenAI):
        MockOpenAI.return_value.chat.completions.create.side_effect = RuntimeError("401 Unauthorized")
        backend = OpenAIPredictorBackend("sk-bad", "gpt-4o-mini")
        with pytest.raises(RuntimeError):
            backend([], "AI-3")


class TestBuildPrompt:
    def test_includes_history(self):
        prompt = build_prompt([{"period_id": "P9", "outcome_number": 2, "color": "red"}], "AI-4")
        assert "P9" in prompt
        assert "AI-4" in prompt


class TestBuildBackends:
    def test_slot_without_key_is_none(self, clean_keys):
        clean_keys.setenv("PREDICTOR_KEY_2", "sk-two")

        backends = build_backends(OracleSettings(slot_count=3))

        assert backends[0] is None
        assert isinstance(backends[1], OpenAIPredictorBackend)
        assert backends[1].api_key == "sk-two"
        assert backends[2] is None

    def test_shared_key(self, clean_keys):
        clean_keys.setenv("OPENAI_API_KEY", "sk-shared")
        clean_keys.setenv("PREDICTOR_KEY_1", "sk-one")

        backends = build_backends(OracleSettings(slot_count=2, share_default_key=True))

        assert backends[0].api_key == "sk-one"
        assert backends[1].api_key == "sk-shared"

    def test_shared_key_ignored_unless_enabled(self, clean_keys):
        clean_keys.setenv("OPENAI_API_KEY", "sk-shared")
        backends = build_backends(OracleSettings(slot_count=2))
        assert backends == [None, None]
