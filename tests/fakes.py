import inspect

import requests

from llm_providers import LLMProvider

SUBTITLES_API_URL = "https://subtitles.test/api/subtitles"


class FakeLLMProvider(LLMProvider):
    name = "Fake LLM"

    def __init__(self, responder=None):
        self.responder = responder or (lambda messages: "ok")
        self.calls = []

    async def generate_content(self, messages):
        self.calls.append(messages)
        result = self.responder(messages)
        if inspect.isawaitable(result):
            result = await result
        return result


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session: maps URLs to responses or exceptions."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, timeout=None, **kwargs):
        self.calls.append({"url": url, "timeout": timeout, **kwargs})
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status_code=404)
        if isinstance(route, Exception):
            raise route
        return route


def subtitles_payload(tracks, **meta):
    payload = {
        "title": "Test video",
        "description": "A video used in tests",
        "author": "Test channel",
        "thumbnail": [
            {"url": "https://img.test/small.jpg"},
            {"url": "https://img.test/large.jpg"},
        ],
        "publishDate": "2024-05-01",
        "subtitles": tracks,
    }
    payload.update(meta)
    return payload


def track(language, **formats):
    return {
        "language": language,
        "formats": [{"format": name, "url": url} for name, url in formats.items()],
    }
