"""Root conftest: applies .env.test before pickup_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_ENV_TEST = Path(__file__).resolve().parent / ".env.test"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep or key.startswith("#"):
            continue
        os.environ.setdefault(key.strip(), value.strip())


_load_env_file(_ENV_TEST)
