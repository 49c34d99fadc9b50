"""Query and proof layer of a finished Merkle tree.

A MerkleTree is handed a digest-keyed node table by its builder and never
changes afterwards, so every method here is a pure read and may be called
from several threads at once.

Proofs are lists of sibling digests in bottom-up order: element 0 is the
sibling of the leaf, the last element is the sibling just below the root.
A verifier starts from the leaf and folds in proof[0], proof[1], ... using
bit i of the index to decide whether the running digest is the left (0) or
right (1) operand.
"""
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .digest import Digest
from .errors import IndexOutOfRange, MissingNode, NotInternal
from .node import MerkleTreeNode

logger = logging.getLogger(__name__)

# width of the unsigned integer used for leaf indices
INDEX_BITS = 64

MerkleProof = List[Digest]


@dataclass(frozen=True)
class MerkleTreeLeaf:
    """A leaf of a MerkleTree.

    `accumulated_count` is the running total of leaves up to and including
    this one; `log2_size` is the height of the sub-tree the leaf stands for.
    """
    node: Digest
    accumulated_count: int
    log2_size: Optional[int] = None


@dataclass
class ProofAccumulator:
    leaf: Digest = field(default_factory=Digest.zeroed)
    proof: MerkleProof = field(default_factory=list)


class MerkleTree:
    def __init__(self, log2_size: int, root: Digest, leafs: Iterable[MerkleTreeLeaf],
                 nodes: Mapping[Digest, MerkleTreeNode]):
        self._log2_size = log2_size
        self._root = root
        self._leafs: Tuple[MerkleTreeLeaf, ...] = tuple(leafs)
        self._nodes: Mapping[Digest, MerkleTreeNode] = MappingProxyType(dict(nodes))

    @property
    def log2_size(self) -> int:
        return self._log2_size

    @property
    def leafs(self) -> Tuple[MerkleTreeLeaf, ...]:
        return self._leafs

    @property
    def nodes(self) -> Mapping[Digest, MerkleTreeNode]:
        return self._nodes

    @property
    def height(self) -> int:
        return self.calculate_height()

    def __len__(self):
        return len(self._nodes)

    def __contains__(self, digest):
        return digest in self._nodes

    def __repr__(self):
        return f'MerkleTree(root={self._root}, log2_size={self._log2_size}, leafs={len(self._leafs)}, nodes={len(self._nodes)})'

    def root_hash(self) -> Digest:
        return self._root

    def root_children(self) -> Tuple[Digest, Digest]:
        children = self.node_children(self._root)
        if children is None:
            logger.error('root %s does not have children', self._root)
            raise NotInternal(self._root, 'root')
        return children

    def node_children(self, digest: Digest) -> Optional[Tuple[Digest, Digest]]:
        return self._get_node(digest).children

    def _get_node(self, digest: Digest, what: str = 'node') -> MerkleTreeNode:
        node = self._nodes.get(digest)
        if node is None:
            logger.error('%s %s missing from node table', what, digest)
            raise MissingNode(digest, what)
        return node

    def calculate_height(self) -> int:
        """Number of edges between the root and any leaf.

        Only the first leaf's declared size is consulted; builders keep leaf
        granularity uniform. Without a declared size the whole index width is
        used, so prove_leaf raises NotInternal unless the node table really is
        INDEX_BITS levels deep.
        """
        height = INDEX_BITS
        if self._leafs and self._leafs[0].log2_size is not None:
            height = self._leafs[0].log2_size + self._log2_size
        return height

    def prove_leaf(self, index: int) -> Tuple[Digest, MerkleProof]:
        height = self.calculate_height()
        if index < 0 or (index >> height) != 0:
            logger.error('refusing proof for index %s at height %s', index, height)
            raise IndexOutOfRange(index, height)

        proof_acc = ProofAccumulator()
        self._proof(proof_acc, self._get_node(self._root, 'root'), height, index)
        logger.debug('proved leaf %s of %s: %s (%d siblings)', index, self._root, proof_acc.leaf, len(proof_acc.proof))
        return proof_acc.leaf, proof_acc.proof

    def _proof(self, proof_acc: ProofAccumulator, root: MerkleTreeNode, height: int, include_index: int):
        if height == 0:
            proof_acc.leaf = root.digest
            return

        new_height = height - 1
        if root.children is None:
            logger.error('node %s has no children at height %s', root.digest, height)
            raise NotInternal(root.digest)
        left, right = root.children
        left = self._get_node(left, 'left child')
        right = self._get_node(right, 'right child')

        if (include_index >> new_height) & 1 == 0:
            self._proof(proof_acc, left, new_height, include_index)
            proof_acc.proof.append(right.digest)
        else:
            self._proof(proof_acc, right, new_height, include_index)
            proof_acc.proof.append(left.digest)

    def last(self) -> Tuple[Digest, MerkleProof]:
        """Rightmost leaf and its proof, found by always descending right."""
        proof: MerkleProof = []
        current = self._root
        children = self.node_children(current)

        while children is not None:
            left, right = children
            proof.append(left)
            current = right
            children = self.node_children(right)

        proof.reverse()
        return current, proof


def node_table(nodes: Iterable[MerkleTreeNode]) -> Dict[Digest, MerkleTreeNode]:
    return {n.digest: n for n in nodes}
