"""Tests for utils/api_client.py - shared HTTP client behaviour."""

import pytest
import requests
from unittest.mock import Mock, patch

from utils.api_client import BaseAPIClient
from utils.errors import MalformedPayloadError, TokenExchangeError, UpstreamError


class DummyClient(BaseAPIClient):
    api_name = "Dummy"


class TestRateLimit:
    """Tests for request spacing."""

    @patch('utils.api_client.time.sleep')
    @patch('utils.api_client.time.time')
    def test_sleeps_when_too_fast(self, mock_time, mock_sleep):
        mock_time.side_effect = [100.05, 100.2]
        client = DummyClient()
        client._last_request_time = 100.0

        client._rate_limit()

        mock_sleep.assert_called_once()
        assert mock_sleep.call_args[0][0] == pytest.approx(0.15)
        assert client._last_request_time == 100.2

    @patch('utils.api_client.time.sleep')
    @patch('utils.api_client.time.time')
    def test_no_sleep_when_spaced(self, mock_time, mock_sleep):
        mock_time.side_effect = [101.0, 101.0]
        client = DummyClient()
        client._last_request_time = 100.0

        client._rate_limit()

        mock_sleep.assert_not_called()


class TestSend:
    """Tests for _send transport error wrapping."""

    @patch('utils.api_client.requests.request')
    def test_passes_arguments(self, mock_request):
        client = DummyClient()
        client._send("POST", "https://example.test/x", form_body={"a": "1"})

        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["data"] == {"a": "1"}
        assert kwargs["json"] is None
        assert kwargs["timeout"] == 30
        assert kwargs["headers"]["User-Agent"] == "Media Tracker/1.0.0"

    @patch('utils.api_client.requests.request')
    def test_timeout_wrapped(self, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout()
        client = DummyClient()

        with pytest.raises(UpstreamError) as exc_info:
            client._send("GET", "https://example.test")

        assert exc_info.value.status is None
        assert "timeout" in exc_info.value.body

    @patch('utils.api_client.requests.request')
    def test_connection_error_uses_error_class(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError()
        client = DummyClient()

        with pytest.raises(TokenExchangeError) as exc_info:
            client._send("POST", "https://example.test", error_class=TokenExchangeError)

        assert "Could not connect to Dummy" in str(exc_info.value)


class TestHandleResponse:
    """Tests for _handle_response."""

    def test_returns_json(self):
        response = Mock(status_code=200)
        response.json.return_value = {"ok": True}
        assert DummyClient()._handle_response(response) == {"ok": True}

    def test_non_200_raises(self):
        response = Mock(status_code=503, text="maintenance")
        with pytest.raises(UpstreamError) as exc_info:
            DummyClient()._handle_response(response)
        assert exc_info.value.status == 503
        assert exc_info.value.body == "maintenance"

    def test_invalid_json_raises(self):
        response = Mock(status_code=200)
        response.json.side_effect = ValueError("Expecting value")
        with pytest.raises(MalformedPayloadError):
            DummyClient()._handle_response(response)
