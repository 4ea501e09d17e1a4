"""Tests for the Python client, with the HTTP session mocked out."""

import sys
import os
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bgts.client import BGTSClient, BGTSError


def response(status_code=200, json_data=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    if json_data is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_data
    resp.text = text
    return resp


@pytest.fixture
def client():
    return BGTSClient("http://bgts.test/", token="demo-servant-token")


class TestSession:

    def test_headers(self, client):
        assert client.base_url == "http://bgts.test"
        assert client._session.headers["Authorization"] == "Bearer demo-servant-token"

    def test_no_token_no_auth_header(self):
        assert "Authorization" not in BGTSClient()._session.headers


class TestRules:

    def test_calculate_penalty(self, client):
        data = {"success": True, "value": 1000, "breachNumber": 2, "multiplier": 5,
                "fine": 5000, "formatted": "Nu. 5,000"}
        with patch.object(client._session, "request", return_value=response(json_data=data)) as req:
            quote = client.calculate_penalty(1000, 2)

        req.assert_called_once_with(
            "POST", "http://bgts.test/api/penalty",
            json={"value": 1000, "breachNumber": 2}, timeout=30,
        )
        assert quote.fine == 5000
        assert quote.multiplier == 5
        assert quote.offline is False

    def test_penalty_offline_fallback(self, client):
        with patch.object(client._session, "request", side_effect=requests.ConnectionError("down")):
            quote = client.calculate_penalty(1000, 3, offline_fallback=True)
        assert quote.offline is True
        assert quote.fine == 10000
        assert quote.formatted.endswith("10,000")

    def test_penalty_without_fallback_raises(self, client):
        with patch.object(client._session, "request", side_effect=requests.ConnectionError("down")):
            with pytest.raises(requests.ConnectionError):
                client.calculate_penalty(1000, 3)

    def test_check_source(self, client):
        data = {"success": True, "relationship": "seeks-action", "verdict": "prohibited",
                "title": "PROHIBITED SOURCE", "description": "...", "rule": "Rule 8(a): ...",
                "isProhibited": True}
        with patch.object(client._session, "request", return_value=response(json_data=data)):
            check = client.check_source("seeks-action")
        assert check.is_prohibited is True
        assert check.verdict == "prohibited"

    def test_check_source_offline_fallback(self, client):
        with patch.object(client._session, "request", side_effect=requests.ConnectionError("down")):
            check = client.check_source("mystery", offline_fallback=True)
        assert check.offline is True
        assert check.verdict == "reviewRequired"
        assert check.is_prohibited is None


class TestErrors:

    def test_validation_error_carries_fields(self, client):
        body = {"success": False, "error": "Missing required fields: description", "fields": ["description"]}
        with patch.object(client._session, "request", return_value=response(422, body)):
            with pytest.raises(BGTSError) as exc:
                client.submit_gift({"value": 10})
        assert exc.value.status_code == 422
        assert exc.value.fields == ["description"]
        assert "description" in str(exc.value)

    def test_non_json_error(self, client):
        with patch.object(client._session, "request", return_value=response(502, text="Bad Gateway")):
            with pytest.raises(BGTSError) as exc:
                client.health()
        assert exc.value.body == "Bad Gateway"
        assert exc.value.fields == []


class TestDeclarations:

    def test_submit_returns_record(self, client):
        body = {"success": True, "reference": "BGTS-2024-1234", "data": {"reference": "BGTS-2024-1234"}}
        with patch.object(client._session, "request", return_value=response(201, body)):
            assert client.submit_gift({"description": "x"})["reference"] == "BGTS-2024-1234"

    def test_list_with_status(self, client):
        with patch.object(client._session, "request", return_value=response(json_data=[])) as req:
            client.list_gifts(status="pending")
        assert req.call_args.kwargs["params"] == {"status": "pending"}

    def test_review(self, client):
        with patch.object(client._session, "request", return_value=response(json_data={"status": "approved"})) as req:
            client.review_gift("abc", "approved", comments="ok")
        assert req.call_args.kwargs["json"] == {"decision": "approved", "comments": "ok"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
