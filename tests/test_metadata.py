import types

import requests

from ec2_quickstart import metadata
from ec2_quickstart.metadata import detect_public_ip, fetch_metadata


def _response(status, text=""):
    return types.SimpleNamespace(status_code=status, text=text)


def test_imdsv2_token_is_sent(monkeypatch):
    seen = {}

    def fake_put(url, headers=None, timeout=None):
        seen["put"] = url
        return _response(200, "tok-123")

    def fake_get(url, headers=None, timeout=None):
        seen["get"] = url
        seen["headers"] = headers
        return _response(200, "54.1.2.3\n")

    monkeypatch.setattr(requests, "put", fake_put)
    monkeypatch.setattr(requests, "get", fake_get)

    assert detect_public_ip() == "54.1.2.3"
    assert seen["put"].endswith("/latest/api/token")
    assert seen["get"].endswith("/latest/meta-data/public-ipv4")
    assert seen["headers"] == {"X-aws-ec2-metadata-token": "tok-123"}


def test_falls_back_to_imdsv1(monkeypatch):
    def fake_put(url, headers=None, timeout=None):
        raise requests.ConnectionError("refused")

    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen["headers"] = headers
        return _response(200, "54.1.2.3")

    monkeypatch.setattr(requests, "put", fake_put)
    monkeypatch.setattr(requests, "get", fake_get)

    assert fetch_metadata("meta-data/public-ipv4") == "54.1.2.3"
    assert seen["headers"] == {}


def test_unreachable_endpoint_returns_none(monkeypatch):
    def unreachable(url, headers=None, timeout=None):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(requests, "put", unreachable)
    monkeypatch.setattr(requests, "get", unreachable)
    assert detect_public_ip(timeout=0.1) is None


def test_missing_public_ip_returns_none(monkeypatch):
    monkeypatch.setattr(requests, "put", lambda url, headers=None, timeout=None: _response(200, "tok"))
    monkeypatch.setattr(requests, "get", lambda url, headers=None, timeout=None: _response(404, "Not Found"))
    assert detect_public_ip() is None


def test_module_uses_link_local_endpoint():
    assert metadata.METADATA_BASE_URL == "http://169.254.169.254/latest"
