from dataclasses import dataclass
from typing import Optional, Tuple

from .digest import Digest


@dataclass(frozen=True)
class MerkleTreeNode:
    """A node of the digest-keyed node table.

    `children` is None for a leaf terminal, or the (left, right) child
    digests of an internal node. The node digest is taken as given.
    """
    digest: Digest
    children: Optional[Tuple[Digest, Digest]] = None

    @classmethod
    def leaf(cls, digest: Digest) -> 'MerkleTreeNode':
        return cls(digest)

    @classmethod
    def internal(cls, digest: Digest, left: Digest, right: Digest) -> 'MerkleTreeNode':
        return cls(digest, (left, right))

    def is_leaf(self) -> bool:
        return self.children is None
