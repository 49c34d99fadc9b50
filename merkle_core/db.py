"""SQLite persistence for built trees.

Each stored tree keeps its own copy of the node table so trees can be loaded
and proven independently. Digests are stored as 0x-prefixed hex.
"""
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from . import config
from .digest import Digest
from .node import MerkleTreeNode
from .tree import MerkleTree, MerkleTreeLeaf

logger = logging.getLogger(__name__)


def get_conn(path: Optional[str] = None):
    db_path = Path(path or config.get('db_path'))
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: Optional[str] = None):
    conn = get_conn(path)
    cur = conn.cursor()
    cur.executescript("""
    PRAGMA foreign_keys=ON;
    CREATE TABLE IF NOT EXISTS Trees (
        id INTEGER PRIMARY KEY,
        root TEXT NOT NULL,
        log2_size INTEGER NOT NULL,
        hash_algorithm TEXT,
        label TEXT,
        created_at TEXT
    );
    CREATE TABLE IF NOT EXISTS Nodes (
        tree_id INTEGER NOT NULL,
        digest TEXT NOT NULL,
        left_child TEXT,
        right_child TEXT,
        PRIMARY KEY (tree_id, digest),
        FOREIGN KEY(tree_id) REFERENCES Trees(id) ON DELETE CASCADE
    );
    CREATE TABLE IF NOT EXISTS Leafs (
        tree_id INTEGER NOT NULL,
        position INTEGER NOT NULL,
        node TEXT NOT NULL,
        accumulated_count TEXT NOT NULL,
        log2_size INTEGER,
        PRIMARY KEY (tree_id, position),
        FOREIGN KEY(tree_id) REFERENCES Trees(id) ON DELETE CASCADE
    );
    """)
    conn.commit()
    conn.close()


def save_tree(tree: MerkleTree, label: Optional[str] = None, hash_algorithm: Optional[str] = None,
              path: Optional[str] = None) -> int:
    conn = get_conn(path)
    cur = conn.cursor()
    now = datetime.now(timezone.utc).isoformat()
    cur.execute('INSERT INTO Trees (root, log2_size, hash_algorithm, label, created_at) VALUES (?, ?, ?, ?, ?)',
                (tree.root_hash().hex(), tree.log2_size, hash_algorithm, label, now))
    tree_id = cur.lastrowid
    rows = []
    for node in tree.nodes.values():
        left, right = (c.hex() for c in node.children) if node.children else (None, None)
        rows.append((tree_id, node.digest.hex(), left, right))
    cur.executemany('INSERT INTO Nodes (tree_id, digest, left_child, right_child) VALUES (?, ?, ?, ?)', rows)
    cur.executemany('INSERT INTO Leafs (tree_id, position, node, accumulated_count, log2_size) VALUES (?, ?, ?, ?, ?)',
                    [(tree_id, i, leaf.node.hex(), str(leaf.accumulated_count), leaf.log2_size)
                     for i, leaf in enumerate(tree.leafs)])
    conn.commit()
    conn.close()
    logger.info('saved tree id=%s root=%s (%d nodes)', tree_id, tree.root_hash(), len(rows))
    return tree_id


def load_tree(tree_id: int, path: Optional[str] = None) -> MerkleTree:
    conn = get_conn(path)
    cur = conn.cursor()
    row = cur.execute('SELECT * FROM Trees WHERE id=?', (tree_id,)).fetchone()
    if not row:
        conn.close()
        raise LookupError(f'no stored tree with id {tree_id}')
    nodes = {}
    for n in cur.execute('SELECT digest, left_child, right_child FROM Nodes WHERE tree_id=?', (tree_id,)):
        digest = Digest.from_hex(n['digest'])
        if n['left_child'] is None:
            nodes[digest] = MerkleTreeNode.leaf(digest)
        else:
            nodes[digest] = MerkleTreeNode.internal(digest, Digest.from_hex(n['left_child']), Digest.from_hex(n['right_child']))
    leafs = [MerkleTreeLeaf(Digest.from_hex(l['node']), int(l['accumulated_count']), l['log2_size'])
             for l in cur.execute('SELECT * FROM Leafs WHERE tree_id=? ORDER BY position', (tree_id,))]
    conn.close()
    return MerkleTree(row['log2_size'], Digest.from_hex(row['root']), leafs, nodes)


def latest_tree_id(path: Optional[str] = None) -> Optional[int]:
    conn = get_conn(path)
    row = conn.execute('SELECT MAX(id) AS m FROM Trees').fetchone()
    conn.close()
    return row['m'] if row else None


def list_trees(path: Optional[str] = None) -> List[dict]:
    conn = get_conn(path)
    rows = conn.execute('SELECT id, root, log2_size, hash_algorithm, label, created_at FROM Trees ORDER BY id').fetchall()
    conn.close()
    return [dict(r) for r in rows]
