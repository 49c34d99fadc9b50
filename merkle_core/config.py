import json
import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
CFG_PATH = Path(os.environ.get('MERKLE_CONFIG', ROOT_DIR / 'merkle_config.json'))

DEFAULTS = {
    'hash_algorithm': 'sha256',
    'db_path': str(ROOT_DIR / 'merkle.db'),
    'log_dir': str(ROOT_DIR / 'logs'),
    'log_level': 'INFO',
    'api_host': '127.0.0.1',
    'api_port': 1313,
}

# environment overrides, checked before the config file
ENV_KEYS = {
    'hash_algorithm': 'MERKLE_HASH',
    'db_path': 'MERKLE_DB_PATH',
    'log_dir': 'MERKLE_LOG_DIR',
    'log_level': 'MERKLE_LOG_LEVEL',
    'api_host': 'MERKLE_API_HOST',
    'api_port': 'MERKLE_API_PORT',
}


def read_config():
    if not CFG_PATH.exists():
        return {}
    try:
        return json.loads(CFG_PATH.read_text(encoding='utf-8'))
    except (OSError, ValueError):
        return {}


def write_config(d: dict):
    CFG_PATH.write_text(json.dumps(d, indent=2), encoding='utf-8')


def get(key: str):
    env = ENV_KEYS.get(key)
    if env and os.environ.get(env):
        value = os.environ[env]
        if isinstance(DEFAULTS.get(key), int):
            return int(value)
        return value
    return read_config().get(key, DEFAULTS.get(key))


def set_value(key: str, value):
    if key not in DEFAULTS:
        raise KeyError(f'unknown config key: {key}')
    if isinstance(DEFAULTS[key], int):
        value = int(value)
    cfg = read_config()
    cfg[key] = value
    write_config(cfg)
