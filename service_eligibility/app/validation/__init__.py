"""
Atom validation: structure, dependencies, activation readiness and input.
"""

from .validator import AtomValidator

__all__ = ["AtomValidator"]
