"""
Namespace Path Utilities

Each namespace is an isolated knowledge base stored under
DATA_ROOT/{namespace}/ as two whole-document JSON files.

Security
--------
- Namespace names are sanitized before touching the filesystem
- Only alphanumeric characters, dots and hyphens survive; everything
  else becomes an underscore
- Names made only of dots are rejected to prevent path traversal
"""

from __future__ import annotations

import re
from pathlib import Path


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

NAMESPACE_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")

CONFIG_FILENAME = "config.json"
VECTORS_FILENAME = "vectors.json"


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class InvalidNamespaceError(ValueError):
    """Raised when a namespace name is missing or unusable as a directory."""


# ---------------------------------------------------------------------
# Path Utilities
# ---------------------------------------------------------------------

def sanitize_namespace(namespace: str) -> str:
    """
    Map a namespace name onto a safe directory name.

    Raises
    ------
    InvalidNamespaceError
        If the name is empty or would resolve to '.' or '..'.
    """
    if not namespace or not isinstance(namespace, str):
        raise InvalidNamespaceError("namespace is required")

    safe = NAMESPACE_UNSAFE_CHARS.sub("_", namespace)

    if set(safe) == {"."}:
        raise InvalidNamespaceError(f"Invalid namespace '{namespace}'")

    return safe


def get_namespace_path(root: Path, namespace: str) -> Path:
    return root / sanitize_namespace(namespace)


def get_config_path(root: Path, namespace: str) -> Path:
    return get_namespace_path(root, namespace) / CONFIG_FILENAME


def get_vectors_path(root: Path, namespace: str) -> Path:
    return get_namespace_path(root, namespace) / VECTORS_FILENAME


def ensure_namespace_directory(root: Path, namespace: str) -> Path:
    """
    Ensure the namespace's data directory exists.

    Returns the path to the created/existing directory.
    """
    path = get_namespace_path(root, namespace)
    path.mkdir(parents=True, exist_ok=True)
    return path
