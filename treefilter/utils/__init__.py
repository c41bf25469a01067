"""Utility helpers for treefilter."""

from treefilter.utils.git import find_git_root

__all__ = ["find_git_root"]
