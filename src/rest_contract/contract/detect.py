"""Auto-detect the kind of a contract document."""

import json
from pathlib import Path

import yaml


def _classify(data) -> str | None:
    if isinstance(data, dict):
        if "openapi" in data or "swagger" in data:
            return "openapi"
        if "operations" in data:
            return "contract"
    return None


def detect_format(file_path: Path) -> str:
    """Detect the format of a contract file.

    Returns: 'openapi', 'contract', or 'unknown'.
    """
    text = file_path.read_text(encoding="utf-8")

    try:
        kind = _classify(yaml.safe_load(text))
        if kind:
            return kind
    except yaml.YAMLError:
        pass

    # JSON which YAML rejects (tabs, duplicate-key quirks)
    try:
        kind = _classify(json.loads(text))
        if kind:
            return kind
    except ValueError:
        pass

    return "unknown"
