# src/sealkey/config/manager.py
from __future__ import annotations
from copy import deepcopy
from pathlib import Path
import json, os

DEFAULTS = {
  "cache": {"enabled": True, "ttl_seconds": 900},
  "argon2": {"m": 67108864, "t": 3, "p": 1},
  "keychain": {"service": "sealkey"},
  "prompt": {"retries": 3}
}

def get_app_dir() -> Path:
    home = os.getenv('SEALKEY_HOME')
    if home:
        return Path(home)
    return Path(os.getenv('APPDATA', '.')) / 'SealKey'

def get_config_path() -> Path: return get_app_dir() / 'config.json'

def _merge(base: dict, override: dict) -> dict:
    out = deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out

def load_config() -> dict:
    path = get_config_path()
    try:
        return _merge(DEFAULTS, json.loads(path.read_text(encoding='utf-8')))
    except FileNotFoundError:
        save_config(DEFAULTS)
        return deepcopy(DEFAULTS)

def save_config(cfg: dict) -> None:
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(cfg, ensure_ascii=False, indent=2), encoding='utf-8')
