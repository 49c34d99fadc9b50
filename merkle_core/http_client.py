"""Client for fetching roots and proofs from a remote proof server."""
import logging
import time
from typing import List, Tuple

import requests

from .digest import Digest

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"{status_code}: {payload.get('error')} {payload.get('detail', '')}".strip())


class TransportError(Exception):
    pass


def get_json(url: str, retries: int = 3, timeout: int = 15) -> dict:
    """GET a JSON document, retrying connection failures only.

    Error statuses from the server are not retried: they describe the tree or
    the request, which will not change on a second attempt.
    """
    last_exc = None
    for attempt in range(retries):
        try:
            r = requests.get(url, timeout=timeout)
        except requests.RequestException as e:
            last_exc = e
            logger.warning('GET %s failed (attempt %s): %s', url, attempt + 1, e)
            time.sleep(1 + attempt)
            continue
        if r.status_code != 200:
            try:
                payload = r.json()
            except ValueError:
                payload = {'error': r.text}
            raise RemoteError(r.status_code, payload)
        return r.json()
    logger.error('GET %s failed after %s attempts: %s', url, retries, last_exc)
    raise TransportError(f'GET {url} failed after {retries} attempts') from last_exc


def _tree_url(base: str, tree) -> str:
    return f"{base.rstrip('/')}/api/trees/{tree}"


def _decode_proof(body: dict) -> Tuple[Digest, List[Digest]]:
    return Digest.from_hex(body['leaf']), [Digest.from_hex(d) for d in body['proof']]


def fetch_root(base: str, tree='latest') -> Digest:
    body = get_json(_tree_url(base, tree) + '/root')
    return Digest.from_hex(body['root'])


def fetch_proof(base: str, index: int, tree='latest') -> Tuple[Digest, List[Digest]]:
    return _decode_proof(get_json(f'{_tree_url(base, tree)}/proof/{index}'))


def fetch_last(base: str, tree='latest') -> Tuple[Digest, List[Digest]]:
    return _decode_proof(get_json(_tree_url(base, tree) + '/last'))
