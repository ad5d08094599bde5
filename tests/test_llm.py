"""Tests for core/llm.py -- CompletionClient against a mocked requests.Session."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from core.exceptions import UpstreamFailure
from core.llm import ANTHROPIC_MESSAGES_URL, ANTHROPIC_VERSION, CompletionClient


def _make_response(json_data=None, status_code=200, json_error=None):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def client():
    c = CompletionClient(api_key="sk-test", model="claude-test", max_tokens=256, timeout=7.0)
    yield c
    c.close()


class TestInvoke:
    def test_returns_first_text_block(self, client):
        payload = {"content": [{"type": "text", "text": "Try shakshuka."}]}
        with patch.object(client._session, "post", return_value=_make_response(payload)) as mock_post:
            assert client.invoke("Be helpful.", "eggs and tomatoes") == "Try shakshuka."

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == ANTHROPIC_MESSAGES_URL
        assert kwargs["timeout"] == 7.0
        assert kwargs["headers"]["x-api-key"] == "sk-test"
        assert kwargs["headers"]["anthropic-version"] == ANTHROPIC_VERSION
        assert kwargs["json"] == {
            "model": "claude-test",
            "max_tokens": 256,
            "messages": [{"role": "user", "content": "eggs and tomatoes"}],
            "system": "Be helpful.",
        }

    def test_empty_system_prompt_omitted(self, client):
        payload = {"content": [{"type": "text", "text": "ok"}]}
        with patch.object(client._session, "post", return_value=_make_response(payload)) as mock_post:
            client.invoke("", "hi")
        assert "system" not in mock_post.call_args.kwargs["json"]

    def test_skips_non_text_blocks(self, client):
        payload = {"content": [{"type": "tool_use", "id": "x"}, {"type": "text", "text": "second"}]}
        with patch.object(client._session, "post", return_value=_make_response(payload)):
            assert client.invoke("", "hi") == "second"

    def test_missing_key_never_posts(self):
        unconfigured = CompletionClient(api_key="", model="claude-test")
        assert unconfigured.is_configured is False
        with patch.object(unconfigured._session, "post") as mock_post:
            with pytest.raises(UpstreamFailure):
                unconfigured.invoke("", "hi")
        mock_post.assert_not_called()

    @pytest.mark.parametrize(
        "side_effect",
        [requests.ConnectionError("refused"), requests.Timeout("slow")],
    )
    def test_network_errors_become_upstream_failure(self, client, side_effect):
        with patch.object(client._session, "post", side_effect=side_effect):
            with pytest.raises(UpstreamFailure) as exc_info:
                client.invoke("", "hi")
        # Internal detail is kept for logs, never exposed in the client message.
        assert "refused" not in exc_info.value.message
        assert "slow" not in exc_info.value.message

    def test_http_error_becomes_upstream_failure(self, client):
        with patch.object(client._session, "post", return_value=_make_response({}, status_code=529)):
            with pytest.raises(UpstreamFailure):
                client.invoke("", "hi")

    def test_non_json_body_becomes_upstream_failure(self, client):
        resp = _make_response(json_error=ValueError("Expecting value"))
        with patch.object(client._session, "post", return_value=resp):
            with pytest.raises(UpstreamFailure):
                client.invoke("", "hi")

    @pytest.mark.parametrize(
        "payload",
        [{}, {"content": []}, {"content": "text"}, {"content": [{"type": "text"}]}, []],
    )
    def test_no_text_block_becomes_upstream_failure(self, client, payload):
        with patch.object(client._session, "post", return_value=_make_response(payload)):
            with pytest.raises(UpstreamFailure):
                client.invoke("", "hi")
