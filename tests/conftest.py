import types
from logging import Logger
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from logger.basic_logger import setup_logger


# ----- capture logger used across tests -----
class CaptureLog:
    def __init__(self):
        self.infos = []
        self.debugs = []
        self.errors = []

    def info(self, msg, *a, **k):
        self.infos.append(msg)

    def debug(self, msg, *a, **k):
        self.debugs.append(msg)

    def error(self, msg, *a, **k):
        self.errors.append(msg)


@pytest.fixture
def capture_log():
    return CaptureLog()


# ----- lightweight HTTP fakes -----
class FakeResponse:
    def __init__(self, *, json_data=None, text=None, status_code=200, headers=None):
        self._json = json_data
        self._text = text
        self.status_code = status_code
        self.headers = headers or {}

    def json(self):
        if self._text is not None:
            raise ValueError(f"Expecting value: {self._text[:20]!r}")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """
    pages = {1: [rec, rec], 2: [rec], 3: []}
    Responds by the PageReturned query value; unknown pages are empty.
    A FakeResponse value is returned as-is.
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []  # tuples (url, kwargs)
        self.headers = {}
        self.proxies = {}
        self.verify = True
        self.auth = None

    def get(self, url, **kw):
        self.calls.append((url, kw))
        page = int(parse_qs(urlparse(url).query)["PageReturned"][0])
        body = self.pages.get(page, [])
        if isinstance(body, FakeResponse):
            return body
        return FakeResponse(json_data=body)

    @property
    def urls(self):
        return [c[0] for c in self.calls]

    def query(self, i):
        return {
            k: v[0]
            for k, v in parse_qs(
                urlparse(self.calls[i][0]).query, keep_blank_values=True
            ).items()
        }


def make_records(n, start=0, **extra):
    return [
        {"Id": start + i, "Thumbprint": f"TP{start + i}", **extra}
        for i in range(n)
    ]


# ----- stub boto3 for output tests -----
@pytest.fixture
def patch_boto3(monkeypatch):
    uploads = []

    class Client:
        def put_object(self, Bucket, Key, Body, **kw):
            uploads.append({"Bucket": Bucket, "Key": Key, "Body": Body, **kw})

    class Session:
        def __init__(self, region_name=None):
            pass

        def client(self, name, endpoint_url=None):
            return Client()

    monkeypatch.setitem(
        __import__("sys").modules,
        "boto3",
        types.SimpleNamespace(session=types.SimpleNamespace(Session=Session)),
    )
    return uploads


@pytest.fixture(scope="session", autouse=True)
def log() -> Logger:
    log = setup_logger()
    return log


@pytest.fixture
def fake_sess():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def records():
    return make_records
