import io

import httpx
import pytest

from livingkit.core.config import Config
from livingkit.core.http import HTTPClient, ServerResponseError, dump_verbose_request_response


def _client(handler, **kwargs):
    transport = httpx.MockTransport(handler)
    kwargs.setdefault("retry_times", 1)
    kwargs.setdefault("retry_delay", 0)
    return HTTPClient(client=httpx.Client(transport=transport), **kwargs)


class TestAddress:
    def test_invalid_scheme(self):
        with pytest.raises(ValueError, match="scheme"):
            HTTPClient(address="ftp://files.test")

    def test_missing_host(self):
        with pytest.raises(ValueError, match="host"):
            HTTPClient(address="http://")

    def test_relative_path_uses_address(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={})

        hc = _client(handler, address="http://api.test/")
        hc.get("/v1/users")
        assert seen["url"] == "http://api.test/v1/users"
        assert (hc.scheme, hc.host) == ("http", "api.test")

    def test_absolute_path_wins(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={})

        _client(handler, address="http://api.test").get("https://other.test/x")
        assert seen["url"] == "https://other.test/x"


class TestRequests:
    def test_get_merges_query_and_default_headers(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"ok": True})

        hc = _client(handler)
        resp = hc.get("http://api.test/search?q=a", params={"page": 2})
        request = seen["request"]
        assert request.url.query == b"q=a&page=2"
        assert request.headers["accept"] == "*/*"
        assert request.headers["connection"] == "keep-alive"
        assert hc.handle_response(resp) == {"ok": True}

    def test_post_json(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(201, json={"id": 1})

        _client(handler).post("http://api.test/items", json={"name": "x"})
        request = seen["request"]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert request.content == b'{"name": "x"}'

    def test_put_form_data_wins_over_json(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200)

        _client(handler).put("http://api.test/items/1", json={"ignored": True}, data={"name": "x", "tag": ["a", "b"]})
        request = seen["request"]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.content == b"name=x&tag=a&tag=b"

    def test_patch_without_body_defaults_to_text_plain(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(204)

        resp = _client(handler).patch("http://api.test/items/1")
        assert seen["request"].headers["content-type"] == "text/plain"
        assert seen["request"].content == b""
        assert HTTPClient.ok(resp)

    def test_delete(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(204)

        _client(handler).delete("http://api.test/items/1", params={"force": "true"})
        assert seen["request"].method == "DELETE"
        assert seen["request"].url.query == b"force=true"

    def test_retries_transport_errors(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={})

        resp = _client(handler, retry_times=2).get("http://api.test/")
        assert resp.status_code == 200
        assert calls["n"] == 2

    def test_transport_error_after_retries(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(httpx.ConnectError):
            _client(handler, retry_times=2).get("http://api.test/")


class TestHandleResponse:
    def test_error_body(self):
        hc = _client(lambda request: httpx.Response(400, json={"success": False, "message": "bad input"}))
        resp = hc.get("http://api.test/")
        with pytest.raises(ServerResponseError) as exc_info:
            hc.handle_response(resp)
        assert exc_info.value.message == "bad input"
        assert exc_info.value.success is False
        assert exc_info.value.status_code == 400

    def test_undecodable_error_body(self):
        hc = _client(lambda request: httpx.Response(502, content=b"<html>bad gateway</html>"))
        resp = hc.get("http://api.test/")
        with pytest.raises(ServerResponseError, match="unable to unmarshal json error response"):
            hc.handle_response(resp)

    def test_undecodable_ok_body(self):
        hc = _client(lambda request: httpx.Response(200, content=b"not json"))
        resp = hc.get("http://api.test/")
        with pytest.raises(ServerResponseError, match="unable to unmarshal json response"):
            hc.handle_response(resp)

    def test_empty_ok_body(self):
        hc = _client(lambda request: httpx.Response(204))
        assert hc.handle_response(hc.get("http://api.test/")) is None

    def test_redirect_status_is_ok(self):
        assert HTTPClient.ok(httpx.Response(302))
        assert not HTTPClient.ok(httpx.Response(404))
        assert not HTTPClient.ok(httpx.Response(199))


class TestPrepare:
    def test_prepare_path(self):
        assert HTTPClient.prepare_path("/a", None) == "/a"
        assert HTTPClient.prepare_path("/a", {"x": 1}) == "/a?x=1"
        assert HTTPClient.prepare_path("/a?y=2", {"x": 1}) == "/a?y=2&x=1"

    def test_prepare_body(self):
        assert HTTPClient.prepare_body() == (None, None)
        assert HTTPClient.prepare_body(json=[1]) == (b"[1]", "application/json")
        assert HTTPClient.prepare_body(data={"a": "b"}) == (b"a=b", "application/x-www-form-urlencoded")

    def test_prepare_body_invalid_json(self):
        with pytest.raises(ValueError, match="invalid json data"):
            HTTPClient.prepare_body(json={"s": {1, 2}})


class TestDump:
    def _exchange(self):
        request = httpx.Request("POST", "http://api.test/items?x=1", content=b"payload")
        response = httpx.Response(201, content=b"created", request=request)
        return request, response

    def test_disabled_by_default(self, monkeypatch):
        monkeypatch.setattr(Config, "DEBUG_HTTPCLIENT", False)
        out = io.StringIO()
        dump_verbose_request_response(out, *self._exchange())
        assert out.getvalue() == ""

    def test_headers_only(self, monkeypatch):
        monkeypatch.setattr(Config, "DEBUG_HTTPCLIENT", True)
        monkeypatch.setattr(Config, "DEBUG_HTTPCLIENT_BODY", False)
        out = io.StringIO()
        dump_verbose_request_response(out, *self._exchange())
        text = out.getvalue()
        assert ">" * 100 in text
        assert "<" * 100 in text
        assert "POST /items?x=1 HTTP/1.1" in text
        assert "HTTP/1.1 201 Created" in text
        assert "payload" not in text

    def test_with_body(self, monkeypatch):
        monkeypatch.setattr(Config, "DEBUG_HTTPCLIENT", True)
        monkeypatch.setattr(Config, "DEBUG_HTTPCLIENT_BODY", True)
        out = io.StringIO()
        dump_verbose_request_response(out, *self._exchange())
        text = out.getvalue()
        assert "payload" in text
        assert "created" in text
