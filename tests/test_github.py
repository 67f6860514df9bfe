# tests/test_github.py
# Client contents GitHub contre une fausse session aiohttp (pas de réseau)

import asyncio

import pytest

from nachweis_check import GitHubContents, GitHubError, github_headers

class FakeResponse:
    def __init__(self, status, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type="application/json"):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []
        self.timeouts = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params))
        self.timeouts.append(timeout)
        return self.response

def lookup(session, path="AN/AN_Doe_Jane_005.pdf"):
    client = GitHubContents(session, "https://api.example.test/")
    return asyncio.run(client.get_content("ngitl", "Jane_Doe", path, "main"))

def test_existing_file_returns_metadata():
    session = FakeSession(FakeResponse(200, {"type": "file", "name": "AN_Doe_Jane_005.pdf"}))
    assert lookup(session)["name"] == "AN_Doe_Jane_005.pdf"
    url, params = session.requests[0]
    assert url == "https://api.example.test/repos/ngitl/Jane_Doe/contents/AN/AN_Doe_Jane_005.pdf"
    assert params == {"ref": "main"}

def test_not_found_returns_none():
    session = FakeSession(FakeResponse(404, {"message": "Not Found"}))
    assert lookup(session) is None

def test_other_status_raises_with_message():
    session = FakeSession(FakeResponse(401, {"message": "Bad credentials"}))
    with pytest.raises(GitHubError) as exc:
        lookup(session)
    assert exc.value.status == 401
    assert exc.value.message == "Bad credentials"

def test_non_json_error_body():
    session = FakeSession(FakeResponse(502, None, text="Bad Gateway\n"))
    with pytest.raises(GitHubError, match="502: Bad Gateway"):
        lookup(session)

def test_path_is_quoted():
    session = FakeSession(FakeResponse(404))
    lookup(session, path="/Nachweise 2023/AN_Doe_Jane_005.pdf")
    assert session.requests[0][0].endswith("/contents/Nachweise%202023/AN_Doe_Jane_005.pdf")

def test_headers_carry_token():
    h = github_headers("t0k", "ua/1")
    assert h["Authorization"] == "Bearer t0k"
    assert h["Accept"] == "application/vnd.github+json"
    assert h["User-Agent"] == "ua/1"

def test_timeout_sec_reaches_the_request():
    session = FakeSession(FakeResponse(404))
    client = GitHubContents(session, timeout_sec=7)
    asyncio.run(client.get_content("ngitl", "Jane_Doe", "AN/x.pdf", "main"))
    assert session.timeouts[0].total == 7
