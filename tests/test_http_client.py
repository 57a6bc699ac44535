"""Tests for the shared HTTP helper."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from common.http_client import robust_get
from constants import Constants


def _response(status, text=""):
    response = MagicMock()
    response.status_code = status
    response.headers = {"Content-Type": "application/xml"}
    response.text = text
    return response


@pytest.fixture(autouse=True)
def _retry_settings(monkeypatch):
    monkeypatch.setattr(Constants, "HTTP_RETRY_MAX", 3)
    monkeypatch.setattr(Constants, "REQUEST_TIMEOUT", 30)


class TestRobustGet:
    """Test retries and status handling."""

    @patch('common.http_client.time.sleep')
    @patch('common.http_client.requests.get')
    def test_success(self, mock_get, mock_sleep):
        """A 200 is returned directly."""
        mock_get.return_value = _response(200, "<metadata/>")
        status, headers, text = robust_get("https://repo.example/x")
        assert (status, text) == (200, "<metadata/>")
        assert headers["Content-Type"] == "application/xml"
        assert mock_get.call_args.kwargs["headers"]["User-Agent"] == Constants.USER_AGENT
        mock_sleep.assert_not_called()

    @patch('common.http_client.time.sleep')
    @patch('common.http_client.requests.get')
    def test_client_error_not_retried(self, mock_get, mock_sleep):
        """A 404 is final."""
        mock_get.return_value = _response(404)
        assert robust_get("https://repo.example/x")[0] == 404
        assert mock_get.call_count == 1

    @patch('common.http_client.time.sleep')
    @patch('common.http_client.requests.get')
    def test_server_error_retried(self, mock_get, mock_sleep):
        """5xx answers are retried."""
        mock_get.side_effect = [_response(503), _response(200, "ok")]
        assert robust_get("https://repo.example/x")[0] == 200
        assert mock_get.call_count == 2
        assert mock_sleep.call_count == 1

    @patch('common.http_client.time.sleep')
    @patch('common.http_client.requests.get')
    def test_persistent_server_error(self, mock_get, mock_sleep):
        """The last 5xx is returned when retries run out."""
        mock_get.return_value = _response(502)
        assert robust_get("https://repo.example/x")[0] == 502
        assert mock_get.call_count == 3

    @patch('common.http_client.time.sleep')
    @patch('common.http_client.requests.get')
    def test_timeouts(self, mock_get, mock_sleep):
        """Transport failures yield status 0 with the last error."""
        mock_get.side_effect = requests.Timeout()
        status, headers, text = robust_get("https://repo.example/x")
        assert status == 0
        assert headers == {}
        assert text == "Request failed after 3 attempts: timeout after 30s"

    @patch('common.http_client.time.sleep')
    def test_session_used(self, mock_sleep):
        """A provided session is used instead of the module function."""
        session = MagicMock()
        session.get.return_value = _response(200, "x")
        assert robust_get("https://repo.example/x", session=session)[2] == "x"
        session.get.assert_called_once()
