import time

import pytest
import requests

from merkle_core import http_client
from merkle_core.digest import Digest


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


def test_fetch_proof_decodes_digests(monkeypatch, four):
    calls = []

    def fake_get(url, timeout=None):
        calls.append(url)
        return FakeResponse(200, {'leaf': four.d[2].hex(), 'proof': [four.d[3].hex(), four.n01.hex()]})

    monkeypatch.setattr(requests, 'get', fake_get)
    leaf, proof = http_client.fetch_proof('http://node:1313/', 2, tree=5)
    assert calls == ['http://node:1313/api/trees/5/proof/2']
    assert leaf == four.d[2]
    assert proof == [four.d[3], four.n01]


def test_fetch_root_and_last(monkeypatch, four):
    bodies = {
        'http://n/api/trees/latest/root': {'root': four.root.hex()},
        'http://n/api/trees/latest/last': {'leaf': four.d[3].hex(), 'proof': [four.d[2].hex(), four.n01.hex()]},
    }
    monkeypatch.setattr(requests, 'get', lambda url, timeout=None: FakeResponse(200, bodies[url]))
    assert http_client.fetch_root('http://n') == four.root
    assert http_client.fetch_last('http://n') == (four.d[3], [four.d[2], four.n01])


def test_error_status_not_retried(monkeypatch):
    calls = {'count': 0}

    def fake_get(url, timeout=None):
        calls['count'] += 1
        return FakeResponse(400, {'error': 'index-out-of-range', 'detail': 'too big'})

    monkeypatch.setattr(requests, 'get', fake_get)
    with pytest.raises(http_client.RemoteError) as exc:
        http_client.fetch_proof('http://n', 99)
    assert exc.value.status_code == 400
    assert exc.value.payload['error'] == 'index-out-of-range'
    assert calls['count'] == 1


def test_transport_errors_retried(monkeypatch):
    calls = {'count': 0}

    def fake_get(url, timeout=None):
        calls['count'] += 1
        if calls['count'] < 3:
            raise requests.ConnectionError('refused')
        return FakeResponse(200, {'root': Digest.zeroed().hex()})

    monkeypatch.setattr(requests, 'get', fake_get)
    monkeypatch.setattr(time, 'sleep', lambda s: None)
    assert http_client.fetch_root('http://n').is_zeroed()
    assert calls['count'] == 3


def test_transport_gives_up(monkeypatch):
    def fake_get(url, timeout=None):
        raise requests.Timeout('slow')

    monkeypatch.setattr(requests, 'get', fake_get)
    monkeypatch.setattr(time, 'sleep', lambda s: None)
    with pytest.raises(http_client.TransportError):
        http_client.get_json('http://n/api/trees', retries=2)
