from __future__ import annotations

from pathlib import Path


def repo_root() -> Path:
    # <repo>/story_reel/common/paths.py
    return Path(__file__).resolve().parents[2]


def data_dir() -> Path:
    return repo_root() / "data"
