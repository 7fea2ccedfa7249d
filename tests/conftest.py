"""
Shared pytest fixtures: synthetic layer images and engine output trees.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import pytest
from PIL import Image


@pytest.fixture
def make_png() -> Callable[..., Path]:
    def _make(path: Path, size: Tuple[int, int], color=(200, 40, 40, 255), mode: str = "RGBA") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color=color).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def write_record() -> Callable[..., Path]:
    def _write(path: Path, record: Dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        return path

    return _write


def snapshot_tree(root: Path) -> Dict[str, bytes]:
    """Relative path -> bytes for every file, plus directories as b''."""
    tree: Dict[str, bytes] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        tree[rel] = path.read_bytes() if path.is_file() else b""
    return tree


@pytest.fixture
def snapshot() -> Callable[[Path], Dict[str, bytes]]:
    return snapshot_tree
