import logging

from flask import Flask, jsonify

from . import db
from .errors import IndexOutOfRange, MerkleTreeError

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _load(tree_ref):
    if tree_ref == 'latest':
        tree_id = db.latest_tree_id()
        if tree_id is None:
            raise LookupError('no stored trees')
    else:
        try:
            tree_id = int(tree_ref)
        except ValueError:
            raise LookupError(f'bad tree id {tree_ref!r}')
    return tree_id, db.load_tree(tree_id)


def _proof_body(tree_id, index, leaf, proof):
    return {'tree': tree_id, 'index': index, 'leaf': leaf.hex(), 'proof': [d.hex() for d in proof]}


@app.errorhandler(LookupError)
def not_found(e):
    return {'error': 'not-found', 'detail': str(e)}, 404


@app.errorhandler(IndexOutOfRange)
def out_of_range(e):
    return {'error': 'index-out-of-range', 'detail': str(e), 'height': e.height}, 400


@app.errorhandler(MerkleTreeError)
def malformed_tree(e):
    logger.error('malformed tree: %s', e)
    return {'error': 'malformed-tree', 'detail': str(e)}, 500


@app.route('/health')
def health():
    try:
        db.list_trees()
        return jsonify({'status': 'ok'})
    except Exception:
        logger.exception('health check failed')
        return jsonify({'status': 'error'}), 500


@app.route('/api/trees')
def api_trees():
    return jsonify({'trees': db.list_trees()})


@app.route('/api/trees/<tree_ref>/root')
def api_root(tree_ref):
    tree_id, tree = _load(tree_ref)
    return {'tree': tree_id, 'root': tree.root_hash().hex(), 'height': tree.calculate_height(), 'log2_size': tree.log2_size}


@app.route('/api/trees/<tree_ref>/proof/<int:index>')
def api_proof(tree_ref, index):
    tree_id, tree = _load(tree_ref)
    leaf, proof = tree.prove_leaf(index)
    return _proof_body(tree_id, index, leaf, proof)


@app.route('/api/trees/<tree_ref>/last')
def api_last(tree_ref):
    tree_id, tree = _load(tree_ref)
    leaf, proof = tree.last()
    # index of the rightmost leaf, as a verifier needs it
    index = (1 << len(proof)) - 1
    return _proof_body(tree_id, index, leaf, proof)
