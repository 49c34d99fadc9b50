import sys, os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from merkle_core import config
from merkle_core.digest import Digest
from merkle_core.node import MerkleTreeNode
from merkle_core.tree import MerkleTree, MerkleTreeLeaf, node_table


def recompute_root(leaf, proof, index, algorithm='sha256'):
    """Fold a bottom-up sibling path into a root, branching on index bits."""
    h = leaf
    for i, sib in enumerate(proof):
        if (index >> i) & 1 == 0:
            h = h.join(sib, algorithm)
        else:
            h = sib.join(h, algorithm)
    return h


class FourLeaves:
    """Height-2 tree with leaves d0..d3, N01, N23 and root R built by hand."""

    def __init__(self):
        self.d = [Digest.from_data(bytes([i])) for i in range(4)]
        d0, d1, d2, d3 = self.d
        self.n01 = d0.join(d1)
        self.n23 = d2.join(d3)
        self.root = self.n01.join(self.n23)
        self.nodes = node_table(
            [MerkleTreeNode.leaf(d) for d in self.d]
            + [MerkleTreeNode.internal(self.n01, d0, d1),
               MerkleTreeNode.internal(self.n23, d2, d3),
               MerkleTreeNode.internal(self.root, self.n01, self.n23)]
        )
        self.leafs = [MerkleTreeLeaf(d, i + 1, 0) for i, d in enumerate(self.d)]

    def tree(self, leafs=None, nodes=None):
        return MerkleTree(2, self.root, self.leafs if leafs is None else leafs,
                          self.nodes if nodes is None else nodes)


@pytest.fixture
def four():
    return FourLeaves()


@pytest.fixture
def tmp_config(tmp_path, monkeypatch):
    """Point config and database at a temporary directory."""
    monkeypatch.setattr(config, 'CFG_PATH', tmp_path / 'merkle_config.json')
    for env in config.ENV_KEYS.values():
        monkeypatch.delenv(env, raising=False)
    config.write_config({'db_path': str(tmp_path / 'merkle.db'), 'log_dir': str(tmp_path / 'logs')})
    return tmp_path
