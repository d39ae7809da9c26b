"""
Dependency resolver for eligibility atoms.

Graphs are built depth-first from a root atom. The set of atoms on the
current path is kept apart from the set of atoms already expanded, so a
shared dependency (diamond) is expanded once while re-entering an atom
still on the path is reported as a cycle.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from shared.logging import get_logger, bind_request
from ..atoms.models import Atom, AtomType
from ..context import RequestContext
from ..errors import (
    AtomDependencyError, AtomNotFoundError, CycleDetectedError, DepthExceededError
)
from ..store.base import AtomStore

DEFAULT_MAX_DEPTH = 10


def dependency_codes(atom: Atom) -> List[str]:
    """Declared dependencies followed by composite child atoms, without repeats."""
    codes = list(atom.dependencies)
    if atom.type == AtomType.COMPOSITE and isinstance(atom.logic_definition, dict):
        children = atom.logic_definition.get("childAtoms")
        if isinstance(children, list):
            codes.extend(c for c in children if isinstance(c, str) and c)
    return list(dict.fromkeys(codes))


@dataclass
class DependencyNode:
    """One visited atom; ``depth`` is its distance from the root."""
    code: str
    atom: Atom
    depth: int
    children: List["DependencyNode"] = field(default_factory=list)
    height: int = 0


class DependencyGraph:
    """Dependency DAG rooted at the atom being executed."""

    def __init__(self, root: DependencyNode, nodes: Dict[str, DependencyNode]):
        self.root = root
        self.nodes = nodes

    def execution_order(self) -> List[str]:
        """Atom codes, dependencies first, each exactly once."""
        order: List[str] = []
        seen: Set[str] = set()

        def visit(node: DependencyNode):
            if node.code in seen:
                return
            for child in node.children:
                visit(child)
            seen.add(node.code)
            order.append(node.code)

        visit(self.root)
        return order

    def atom(self, code: str) -> Atom:
        return self.nodes[code].atom

    def depth(self) -> int:
        """Longest dependency chain below the root."""
        return self.root.height

    def __contains__(self, code: str) -> bool:
        return code in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)


class DependencyResolver:
    """Resolves atoms and their transitive dependencies from the atom store."""

    def __init__(self, store: AtomStore, max_depth: int = DEFAULT_MAX_DEPTH):
        self.logger = get_logger("eligibility.resolution")
        self.store = store
        self.max_depth = max_depth

    async def resolve(self, code: str, request: RequestContext) -> Atom:
        """Fetch an executable atom by code."""
        atom = await self.store.find_by_code(request.tenant_id, code)
        if atom is None:
            raise AtomNotFoundError(code)
        if not atom.is_executable:
            raise AtomNotFoundError(code, f"Atom {code} is not executable (status: {atom.status.value})")
        return atom

    async def build_graph(self, atom: Atom, request: RequestContext,
                          max_depth: Optional[int] = None) -> DependencyGraph:
        """Build and check the dependency graph of ``atom``.

        Raises ``CycleDetectedError``, ``DepthExceededError`` or
        ``AtomDependencyError`` before anything is evaluated.
        """
        max_depth = self.max_depth if max_depth is None else max_depth
        nodes: Dict[str, DependencyNode] = {}
        root = await self._visit(atom, request, 0, [], nodes, max_depth)

        graph = DependencyGraph(root, nodes)
        bind_request(self.logger, request).debug(
            "Dependency graph built",
            atom_code=atom.code,
            atoms=len(graph),
            depth=graph.depth()
        )
        return graph

    async def _visit(self, atom: Atom, request: RequestContext, depth: int, path: List[str],
                     nodes: Dict[str, DependencyNode], max_depth: int) -> DependencyNode:
        if depth > max_depth:
            raise DepthExceededError(path[0] if path else atom.code, max_depth)

        node = DependencyNode(code=atom.code, atom=atom, depth=depth)
        path.append(atom.code)
        missing: List[str] = []

        for code in dependency_codes(atom):
            if code in path:
                raise CycleDetectedError(atom.code, path[path.index(code):] + [code])

            if code in nodes:
                # Already expanded through another branch; only the depth can differ
                shared = nodes[code]
                if depth + 1 + shared.height > max_depth:
                    raise DepthExceededError(path[0], max_depth)
                node.children.append(shared)
                continue

            dependency = await self.store.find_by_code(request.tenant_id, code)
            if dependency is None or not dependency.is_executable:
                missing.append(code)
                continue

            node.children.append(await self._visit(dependency, request, depth + 1, path, nodes, max_depth))

        if missing:
            raise AtomDependencyError(
                f"Missing or inactive dependencies for atom {atom.code}: {', '.join(missing)}",
                atom.code,
                missing
            )

        path.pop()
        node.height = 1 + max((c.height for c in node.children), default=-1)
        nodes[atom.code] = node
        return node

    async def detect_cycles(self, atom: Atom, request: RequestContext, max_depth: int = 5) -> List[str]:
        """Describe dependency cycles reachable from ``atom`` within ``max_depth``.

        Missing dependencies are skipped here; they are reported separately.
        """
        cycles: List[str] = []
        expanded: Set[str] = set()

        async def visit(current: Atom, path: List[str]):
            if len(path) > max_depth:
                return
            for code in dependency_codes(current):
                if code in path:
                    cycle = path[path.index(code):] + [code]
                    cycles.append(f"Circular dependency detected: {' -> '.join(cycle)}")
                    continue
                if code in expanded:
                    continue
                dependency = await self.store.find_by_code(request.tenant_id, code)
                if dependency is None:
                    continue
                await visit(dependency, path + [code])
                expanded.add(code)

        await visit(atom, [atom.code])
        return cycles
