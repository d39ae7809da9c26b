"""
Atom store package.

The engine consumes atoms through the ``AtomStore`` contract (tenant-scoped
lookup by code, optional version, and id). ``InMemoryAtomStore`` backs tests
and local runs; production deployments provide a database-backed store.
"""

from .base import AtomStore, WritableAtomStore
from .memory import InMemoryAtomStore

__all__ = ["AtomStore", "WritableAtomStore", "InMemoryAtomStore"]
