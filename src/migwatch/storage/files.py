"""JSON file helpers shared by the persisted stores.

Files are always read whole and replaced whole: writes go to a sibling
temp file which is then renamed over the target, so a crash mid-write
never leaves a truncated document behind.
"""

import json
import os
from pathlib import Path
from typing import Any


def read_json(path: Path) -> Any:
    """Load a JSON document. Raises OSError / ValueError on unreadable or malformed files."""
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def write_json_atomic(path: Path, data: Any) -> None:
    """Pretty-print ``data`` to ``path``, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=2)
        fh.write("\n")
    os.replace(tmp_path, path)
