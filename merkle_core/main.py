import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from . import config, db
from .builder import from_data
from .errors import MerkleTreeError

logger = logging.getLogger(__name__)


def setup_logging():
    # root logger with rotating file handler
    logdir = Path(config.get('log_dir'))
    logdir.mkdir(parents=True, exist_ok=True)
    logfile = os.path.abspath(str(logdir / 'merkle.log'))
    root = logging.getLogger()
    root.setLevel(config.get('log_level'))
    for h in root.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == logfile:
            return h
    handler = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=5)
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
    root.addHandler(handler)
    return handler


def read_chunks(paths, chunk_size):
    for p in paths:
        with open(p, 'rb') as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk


def _tree_id(args):
    if args.tree is not None:
        return args.tree
    tid = db.latest_tree_id()
    if tid is None:
        raise LookupError('no stored trees, run build first')
    return tid


def _print_proof(leaf, proof):
    print('leaf', leaf.hex())
    for i, d in enumerate(proof):
        print(f'{i:>3} {d.hex()}')


def build_parser():
    parser = argparse.ArgumentParser(prog='merkle-core')
    sub = parser.add_subparsers(dest='cmd')
    buildp = sub.add_parser('build', help='Build a tree over file contents and store it')
    buildp.add_argument('files', nargs='+')
    buildp.add_argument('--chunk-size', type=int, default=4096)
    buildp.add_argument('--label')
    sub.add_parser('list')
    for name in ('root', 'last'):
        p = sub.add_parser(name)
        p.add_argument('--tree', type=int)
    provep = sub.add_parser('prove')
    provep.add_argument('index', type=int)
    provep.add_argument('--tree', type=int)
    webp = sub.add_parser('web')
    webp.add_argument('--host', default=None)
    webp.add_argument('--port', type=int, default=None)
    cfgp = sub.add_parser('config-set')
    cfgp.add_argument('key')
    cfgp.add_argument('value')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd is None:
        parser.print_help()
        return 2
    setup_logging()
    db.init_db()
    try:
        return run(args)
    except (MerkleTreeError, LookupError, ValueError) as e:
        logger.error('%s failed: %s', args.cmd, e)
        print('error:', e, file=sys.stderr)
        return 1


def run(args):
    if args.cmd == 'build':
        algorithm = config.get('hash_algorithm')
        tree = from_data(read_chunks(args.files, args.chunk_size), algorithm)
        tid = db.save_tree(tree, label=args.label, hash_algorithm=algorithm)
        print('tree id', tid, 'root', tree.root_hash().hex())
        return 0
    if args.cmd == 'list':
        for t in db.list_trees():
            print(f"{t['id']}: {t['root']} — log2_size={t['log2_size']} — {t['label'] or ''}")
        return 0
    if args.cmd == 'root':
        tree = db.load_tree(_tree_id(args))
        print(tree.root_hash().hex())
        return 0
    if args.cmd == 'prove':
        tree = db.load_tree(_tree_id(args))
        _print_proof(*tree.prove_leaf(args.index))
        return 0
    if args.cmd == 'last':
        tree = db.load_tree(_tree_id(args))
        _print_proof(*tree.last())
        return 0
    if args.cmd == 'config-set':
        config.set_value(args.key, args.value)
        print(args.key, 'set to', args.value)
        return 0
    if args.cmd == 'web':
        from .ui import app
        app.run(host=args.host or config.get('api_host'), port=args.port or config.get('api_port'))
        return 0
    return 2


if __name__ == '__main__':
    sys.exit(main())
