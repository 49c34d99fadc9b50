"""Bottom-up construction of MerkleTree node tables.

Leaves are appended as runs of (digest, repetitions). Runs of equal leaves
that cover an aligned power-of-two span collapse into one shared sub-tree,
so a run of 2^k copies costs k internal nodes regardless of its length.
"""
import bisect
import logging
from typing import Dict, Iterable, List, Optional, Union

from .digest import Digest
from .errors import BuilderError
from .node import MerkleTreeNode
from .tree import MerkleTree, MerkleTreeLeaf

logger = logging.getLogger(__name__)


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


class MerkleBuilder:
    def __init__(self, algorithm: str = 'sha256'):
        self.algorithm = algorithm
        self._leafs: List[MerkleTreeLeaf] = []
        self._nodes: Dict[Digest, MerkleTreeNode] = {}
        self._leaf_log2_size: Optional[int] = None
        self._repeated: Dict[Digest, List[Digest]] = {}

    @property
    def count(self) -> int:
        return self._leafs[-1].accumulated_count if self._leafs else 0

    def append(self, leaf: Union[Digest, MerkleTree], repetitions: int = 1) -> 'MerkleBuilder':
        """Append `repetitions` copies of a leaf digest or of a whole sub-tree."""
        if repetitions < 1:
            raise BuilderError(f'repetitions must be positive, got {repetitions}')
        if isinstance(leaf, MerkleTree):
            digest, log2_size = leaf.root_hash(), leaf.calculate_height()
        elif isinstance(leaf, Digest):
            digest, log2_size = leaf, 0
        else:
            raise BuilderError(f'cannot append {type(leaf).__name__} as a leaf')

        if self._leaf_log2_size is None:
            self._leaf_log2_size = log2_size
        elif self._leaf_log2_size != log2_size:
            raise BuilderError(f'leaf of log2 size {log2_size} mixed with leaves of log2 size {self._leaf_log2_size}')

        if isinstance(leaf, MerkleTree):
            for node in leaf.nodes.values():
                self._add_node(node)
        else:
            self._add_node(MerkleTreeNode.leaf(digest))
        self._leafs.append(MerkleTreeLeaf(digest, self.count + repetitions, log2_size))
        return self

    def build(self) -> MerkleTree:
        total = self.count
        if not self._leafs:
            raise BuilderError('cannot build a tree without leaves')
        if not _is_power_of_two(total):
            raise BuilderError(f'leaf count {total} is not a power of two')

        log2_size = total.bit_length() - 1
        ends = [leaf.accumulated_count for leaf in self._leafs]
        root = self._build_span(ends, 0, log2_size)
        logger.info('built tree %s: %d leaves in %d runs, %d nodes', root, total, len(self._leafs), len(self._nodes))
        return MerkleTree(log2_size, root, self._leafs, self._nodes)

    def _build_span(self, ends: List[int], start: int, height: int) -> Digest:
        # run covering position `start`
        i = bisect.bisect_right(ends, start)
        if start + (1 << height) <= ends[i]:
            return self._repeat(self._leafs[i].node, height)
        half = 1 << (height - 1)
        left = self._build_span(ends, start, height - 1)
        right = self._build_span(ends, start + half, height - 1)
        return self._join(left, right)

    def _repeat(self, digest: Digest, height: int) -> Digest:
        levels = self._repeated.setdefault(digest, [digest])
        while len(levels) <= height:
            levels.append(self._join(levels[-1], levels[-1]))
        return levels[height]

    def _join(self, left: Digest, right: Digest) -> Digest:
        parent = left.join(right, self.algorithm)
        self._add_node(MerkleTreeNode.internal(parent, left, right))
        return parent

    def _add_node(self, node: MerkleTreeNode):
        existing = self._nodes.get(node.digest)
        if existing is None:
            self._nodes[node.digest] = node
        elif existing != node:
            logger.error('digest %s already in the table with different children', node.digest)
            raise BuilderError(f'digest {node.digest} maps to two different nodes')


def from_data(chunks: Iterable[bytes], algorithm: str = 'sha256') -> MerkleTree:
    """Tree over hashed data chunks, padded with zeroed leaves to a power of two."""
    builder = MerkleBuilder(algorithm)
    for chunk in chunks:
        builder.append(Digest.from_data(chunk, algorithm))
    count = builder.count
    if count == 0:
        raise BuilderError('no data to build a tree from')
    padding = (1 << (count - 1).bit_length()) - count
    if padding:
        builder.append(Digest.zeroed(), padding)
    return builder.build()
