"""
Dependency resolution: atom lookup, dependency graphs and execution order.
"""

from .resolver import DependencyGraph, DependencyNode, DependencyResolver, dependency_codes

__all__ = ["DependencyGraph", "DependencyNode", "DependencyResolver", "dependency_codes"]
