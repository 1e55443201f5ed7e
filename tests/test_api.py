"""Tests for vnext_sync.api — definition API client over httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from vnext_sync.api import DefinitionApiClient, extract_error, extract_instance_id


def _client(settings, handler) -> DefinitionApiClient:
    return DefinitionApiClient(settings, client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestPublish:
    def test_success_returns_instance_id(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "abc-123"})

        result = _client(settings, handler).publish({"key": "k1", "version": "1.0.0"})
        assert result.success
        assert result.instance_id == "abc-123"
        assert seen == {
            "method": "POST",
            "url": "http://engine.test/api/v1/definitions/publish",
            "body": {"key": "k1", "version": "1.0.0"},
        }

    def test_structured_error_message_is_verbatim(self, settings):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "schema invalid", "code": "E42"}})

        result = _client(settings, handler).publish({"key": "k1"})
        assert not result.success
        assert result.error == "schema invalid"
        assert result.error_details == {"message": "schema invalid", "code": "E42"}
        assert result.status_code == 400

    def test_plain_text_error(self, settings):
        result = _client(settings, lambda r: httpx.Response(500, text="Internal failure")).publish({})
        assert result.error == "Internal failure"
        assert result.status_code == 500

    def test_timeout_is_a_failure(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = _client(settings, handler).publish({"key": "k1"})
        assert not result.success
        assert "timed out" in result.error
        assert result.status_code is None

    def test_connection_error_is_a_failure(self, settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = _client(settings, handler).publish({"key": "k1"})
        assert not result.success
        assert "refused" in result.error


class TestExtractError:
    @pytest.mark.parametrize(
        "body, message",
        [
            ("plain", "plain"),
            ({"error": {"message": "nested"}}, "nested"),
            ({"error": "flat"}, "flat"),
            ({"message": "top"}, "top"),
            ({"detail": 1}, '{"detail": 1}'),
            (None, "HTTP 503"),
        ],
    )
    def test_order(self, body, message):
        assert extract_error(body, 503).message == message

    def test_instance_id_variants(self):
        assert extract_instance_id({"Id": 7}) == "7"
        assert extract_instance_id({"data": {"id": "x"}}) == "x"
        assert extract_instance_id(["x"]) is None


class TestReinitializeAndHealth:
    def test_reinitialize_ok(self, settings):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200)

        assert _client(settings, handler).reinitialize()
        assert urls == ["http://engine.test/api/v1/definitions/re-initialize"]

    def test_reinitialize_failure_returns_false(self, settings):
        assert not _client(settings, lambda r: httpx.Response(502)).reinitialize()

    def test_health(self, settings):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "ok"})

        assert _client(settings, handler).health()
        assert not _client(settings, lambda r: httpx.Response(503)).health()

    def test_context_manager_leaves_injected_client_open(self, settings):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with DefinitionApiClient(settings, client=http):
            pass
        assert not http.is_closed
        http.close()
