"""Filesystem helpers for configuration and log files.

Provides:
    - Directory creation with exist_ok semantics
    - YAML loading (safe_load, mapping-only)

All paths use pathlib.Path. The engine itself persists nothing; these helpers
serve the config loaders in validators and the log file handlers.

Note: Module named `fs.py` rather than `io.py` to avoid shadowing stdlib `io`.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)

    Notes
    -----
    Thread-safe (mkdir with exist_ok=True).
    Creates parent directories as needed.
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (empty dict for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    ValueError
        If YAML parsing fails or the top level is not a mapping

    Notes
    -----
    Uses safe_load to prevent arbitrary code execution.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at top level of {path}, got {type(data).__name__}")
    return data
