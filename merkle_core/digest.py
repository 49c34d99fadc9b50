"""Fixed-width digest type used as node key and edge label.

Digests are opaque 32-byte values. The hash helpers here are what the builder
uses to derive leaf and parent digests; the proof layer never hashes.
"""
import hashlib

DIGEST_SIZE = 32

ALGORITHMS = ('sha256', 'sha3_256', 'blake2s', 'blake2b')

# hash prefixes for leaf data and internal nodes
LEAF_TAG = b'\x00'
NODE_TAG = b'\x01'


def _hasher(algorithm: str):
    if algorithm == 'blake2b':
        # blake2b defaults to 64 bytes
        return hashlib.blake2b(digest_size=DIGEST_SIZE)
    if algorithm not in ALGORITHMS:
        raise ValueError(f'unsupported hash algorithm: {algorithm}')
    return hashlib.new(algorithm)


def hash_bytes(data: bytes, algorithm: str = 'sha256') -> bytes:
    h = _hasher(algorithm)
    h.update(data)
    return h.digest()


class Digest:
    __slots__ = ('_value',)

    def __init__(self, value: bytes):
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f'digest must be bytes-like, not {type(value).__name__}')
        value = bytes(value)
        if len(value) != DIGEST_SIZE:
            raise ValueError(f'digest must be {DIGEST_SIZE} bytes, got {len(value)}')
        object.__setattr__(self, '_value', value)

    def __setattr__(self, name, value):
        raise AttributeError('Digest is immutable')

    @classmethod
    def zeroed(cls) -> 'Digest':
        return cls(bytes(DIGEST_SIZE))

    @classmethod
    def from_hex(cls, s: str) -> 'Digest':
        if s.startswith(('0x', '0X')):
            s = s[2:]
        try:
            raw = bytes.fromhex(s)
        except ValueError:
            raise ValueError(f'invalid digest hex: {s!r}')
        return cls(raw)

    @classmethod
    def from_data(cls, data: bytes, algorithm: str = 'sha256') -> 'Digest':
        """Leaf digest H(0x00 || data) of raw leaf data."""
        return cls(hash_bytes(LEAF_TAG + data, algorithm))

    def join(self, other: 'Digest', algorithm: str = 'sha256') -> 'Digest':
        """Parent digest H(0x01 || self || other) with self as the left child."""
        return Digest(hash_bytes(NODE_TAG + self._value + other._value, algorithm))

    def is_zeroed(self) -> bool:
        return self._value == bytes(DIGEST_SIZE)

    def hex(self) -> str:
        return '0x' + self._value.hex()

    def __bytes__(self) -> bytes:
        return self._value

    def __eq__(self, other):
        if not isinstance(other, Digest):
            return NotImplemented
        return self._value == other._value

    def __hash__(self):
        return hash(self._value)

    def __lt__(self, other: 'Digest') -> bool:
        if not isinstance(other, Digest):
            return NotImplemented
        return self._value < other._value

    def __str__(self):
        return self.hex()

    def __repr__(self):
        return f'Digest({self.hex()})'
