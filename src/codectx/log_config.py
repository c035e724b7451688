# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared data-root configuration for the project context engine.

Everything the engine writes outside a project lives under one data root
(default: ~/.codectx/):
- logs/: structured Python logging output from setup_logging()
- snapshots/: exported context cache snapshots
"""

import hashlib
from pathlib import Path
from typing import Optional

# Default data root directory (user home)
DEFAULT_DATA_ROOT = Path.home() / ".codectx"

# Subdirectory names
LOGS_SUBDIR = "logs"
SNAPSHOTS_SUBDIR = "snapshots"


def get_default_data_root() -> Path:
    """Get the default data root directory.

    Returns:
        Path to ~/.codectx/
    """
    return DEFAULT_DATA_ROOT


def get_logs_dir(data_root: Optional[Path] = None) -> Path:
    """Get the log directory.

    Args:
        data_root: Data root directory. If None, uses default.

    Returns:
        Path to {data_root}/logs/
    """
    root = data_root or DEFAULT_DATA_ROOT
    return root / LOGS_SUBDIR


def get_snapshots_dir(data_root: Optional[Path] = None) -> Path:
    """Get the cache snapshot directory.

    Args:
        data_root: Data root directory. If None, uses default.

    Returns:
        Path to {data_root}/snapshots/
    """
    root = data_root or DEFAULT_DATA_ROOT
    return root / SNAPSHOTS_SUBDIR


def get_snapshot_path(project_root: Path, data_root: Optional[Path] = None) -> Path:
    """Get the default snapshot file for a project.

    Snapshots of different projects never collide: the file name carries
    the project directory name and a short digest of its absolute path.

    Returns:
        Path like {data_root}/snapshots/myproj-1a2b3c4d5e6f.json
    """
    resolved = str(Path(project_root).resolve())
    digest = hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:12]
    name = Path(resolved).name or "root"
    return get_snapshots_dir(data_root) / f"{name}-{digest}.json"


def ensure_data_directories(data_root: Optional[Path] = None) -> None:
    """Create the data root and its subdirectories if they don't exist."""
    root = data_root or DEFAULT_DATA_ROOT
    root.mkdir(parents=True, exist_ok=True)
    (root / LOGS_SUBDIR).mkdir(exist_ok=True)
    (root / SNAPSHOTS_SUBDIR).mkdir(exist_ok=True)
