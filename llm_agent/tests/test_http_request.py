import httpx

from llm_agent.tools.http_request import HttpRequestExecutor


class SettingsStub:
    http_timeout = 1.0
    ai_pipe_base_url = "https://aipipe.org"


def _fake_client(monkeypatch, status=200, body=None, text="", captured=None):
    captured = captured if captured is not None else {}

    class Resp:
        status_code = status

        def __init__(self):
            self.text = text

        def json(self):
            if body is None:
                raise ValueError("not json")
            return body

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def request(self, method, url, **kw):
            captured.update({"method": method, "url": url, **kw})
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    return captured


def test_get_with_params_and_json_body(monkeypatch):
    captured = _fake_client(monkeypatch, body={"message": "hi"})
    ex = HttpRequestExecutor(cfg=SettingsStub())
    res = ex.run({"endpoint": "https://api.example.com/data", "method": "get", "data": {"a": 1}})
    assert res.success
    assert res.payload == {
        "endpoint": "https://api.example.com/data",
        "method": "GET",
        "status": 200,
        "data": {"message": "hi"},
    }
    assert captured["params"] == {"a": 1}
    assert "json" not in captured


def test_relative_endpoint_uses_proxy_and_token(monkeypatch):
    captured = _fake_client(monkeypatch, body={})
    ex = HttpRequestExecutor({"ai_pipe_token": "tok"}, cfg=SettingsStub())
    res = ex.run({"endpoint": "/openrouter/v1/models", "method": "POST", "data": {"x": 1}})
    assert res.success
    assert captured["url"] == "https://aipipe.org/openrouter/v1/models"
    assert captured["json"] == {"x": 1}
    assert captured["headers"]["Authorization"] == "Bearer tok"


def test_http_error_status_is_returned_not_failed(monkeypatch):
    _fake_client(monkeypatch, status=404, text="not found")
    res = HttpRequestExecutor(cfg=SettingsStub()).run({"endpoint": "https://api.example.com/missing"})
    assert res.success
    assert res.payload["status"] == 404
    assert res.payload["data"] == "not found"


def test_transport_error_is_failed_result(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def request(self, *a, **kw):
            raise httpx.ConnectTimeout("timed out")

    monkeypatch.setattr("httpx.Client", Client)
    res = HttpRequestExecutor(cfg=SettingsStub()).run({"endpoint": "https://api.example.com/data"})
    assert not res.success
    assert res.error_code == "NETWORK_ERROR"


def test_invalid_endpoint_and_method_rejected():
    ex = HttpRequestExecutor(cfg=SettingsStub())
    assert ex.run({"endpoint": "ftp://x"}).error_code == "VALIDATION_ERROR"
    assert ex.run({"endpoint": "https://x.example", "method": "PATCH"}).error_code == "VALIDATION_ERROR"
