"""Execution modes of the recursive sync engine."""

from enum import Enum


class SyncMode(str, Enum):
    """How a (source, target) directory pair is processed."""

    COMPUTE = "compute"
    """Diff source against target and reconcile the differences"""

    ADD = "add"
    """Copy every source descendant into target without comparing"""

    DELETE = "delete"
    """Remove every target descendant, then the target directory itself"""
