"""Helpers for structured configuration documents."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict


logger = logging.getLogger(__name__)


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value

    return result


def write_json_atomic(path: Path, payload: Dict[str, Any]) -> None:
    """Write a JSON document through a sibling temp file and rename.

    Readers never observe a partially written document. An existing
    file's permission bits are carried over.
    """
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    data = json.dumps(payload, indent=4) + "\n"
    mode = path_obj.stat().st_mode & 0o777 if path_obj.exists() else 0o644

    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=str(path_obj.parent),
        prefix=".tmp-",
        delete=False,
    ) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)

    try:
        tmp_path.chmod(mode)
        tmp_path.replace(path_obj)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.debug(f"Wrote {path_obj}")
