import httpx

from llm_agent.tools.search import STUB_RESULTS, SearchExecutor


class SettingsStub:
    http_timeout = 1.0
    google_search_url = "https://www.googleapis.com/customsearch/v1"


def test_search_without_credentials_returns_stub():
    ex = SearchExecutor(cfg=SettingsStub())
    res = ex.run({"query": "AI news", "num_results": 5})
    assert res.success
    assert res.payload["query"] == "AI news"
    assert len(res.payload["results"]) == 3
    assert res.payload["results"][0]["title"] == STUB_RESULTS[0]["title"]

    res = ex.run({"query": "AI news", "num_results": 2})
    assert len(res.payload["results"]) == 2


def test_search_rejects_bad_arguments():
    ex = SearchExecutor(cfg=SettingsStub())
    assert ex.run({"query": "  "}).error_code == "VALIDATION_ERROR"
    assert ex.run({"query": "x", "num_results": 50}).error_code == "VALIDATION_ERROR"


def test_search_google_api(monkeypatch):
    captured = {}

    class Resp:
        status_code = 200

        def json(self):
            return {
                "searchInformation": {"totalResults": "1234"},
                "items": [
                    {"title": "A", "snippet": "sa", "link": "https://a.example"},
                    {"title": "B", "snippet": "sb", "link": "https://b.example"},
                ],
            }

    class Client:
        def __init__(self, *a, **kw):
            captured["client_kwargs"] = kw

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, url, params=None, **kw):
            captured["url"] = url
            captured["params"] = params
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    ex = SearchExecutor({"google_api_key": "key", "search_engine_id": "cx"}, cfg=SettingsStub())
    res = ex.run({"query": "python", "num_results": 2})
    assert res.success
    assert res.payload["total_results"] == 1234
    assert res.payload["results"][1] == {"title": "B", "snippet": "sb", "url": "https://b.example"}
    assert captured["params"] == {"key": "key", "cx": "cx", "q": "python", "num": 2}
    assert captured["client_kwargs"]["trust_env"] is False


def test_search_network_error_is_failed_result(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, *a, **kw):
            raise httpx.ConnectError("no route")

    monkeypatch.setattr("httpx.Client", Client)
    ex = SearchExecutor({"google_api_key": "key", "search_engine_id": "cx"}, cfg=SettingsStub())
    res = ex.run({"query": "python"})
    assert not res.success
    assert res.error_code == "NETWORK_ERROR"


def test_search_auth_error(monkeypatch):
    class Resp:
        status_code = 403
        text = "forbidden"

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, *a, **kw):
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    ex = SearchExecutor({"google_api_key": "bad", "search_engine_id": "cx"}, cfg=SettingsStub())
    res = ex.run({"query": "python"})
    assert res.error_code == "AUTH_ERROR"
