"""The handler manifest: a JSON object naming every generated route group.

Downstream router assembly reads ``<path>/handler.json``; each generated
service adds ``"<api dir>/<Service>": "<api dir>"``. Entries are never removed.
"""

import json
import os

from .errors import ManifestError

MANIFEST_NAME = "handler.json"


def read_manifest(path: str) -> dict[str, str]:
    """Load the manifest at ``path``; a missing file is an empty manifest."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise ManifestError(f"{MANIFEST_NAME} file content error: {e}") from e

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ManifestError(f"{MANIFEST_NAME} file content error: expected an object of strings")
    return data


def update_manifest(directory: str, entries: dict[str, str]) -> str:
    """Merge ``entries`` into ``<directory>/handler.json`` and return its path."""
    path = os.path.join(directory, MANIFEST_NAME)
    manifest = read_manifest(path)
    manifest.update(entries)
    os.makedirs(directory or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(manifest, sort_keys=True))
    return path
