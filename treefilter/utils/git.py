"""Git repository utilities for treefilter.

Config discovery looks for a project-wide treefilter.toml at the git root.
"""

import os
from pathlib import Path
from typing import Optional


def find_git_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the root directory of a git repository.

    Walks up from the start path (or current working directory) looking for
    a .git entry. The TREEFILTER_GIT_ROOT environment variable overrides
    detection and is returned as-is, whether or not it exists.

    Args:
        start_path: Directory to start searching from. If None, uses the
            current working directory.

    Returns:
        Path to the git root directory, or None if not in a git repository.
    """
    env_override = os.environ.get("TREEFILTER_GIT_ROOT")
    if env_override:
        return Path(env_override)

    current = Path.cwd() if start_path is None else Path(start_path).resolve()

    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate

    return None
