"""
Atom store contract consumed by the engine.
"""

from typing import List, Optional, Protocol, runtime_checkable

from ..atoms.models import Atom


@runtime_checkable
class AtomStore(Protocol):
    """Tenant-scoped atom lookup. Absence returns ``None``; lookups never raise."""

    async def find_by_code(self, tenant_id: str, code: str, version: Optional[int] = None) -> Optional[Atom]:
        """Atom for ``code``; the given version, or the current one when omitted."""
        ...

    async def find_latest_version(self, tenant_id: str, code: str) -> Optional[Atom]:
        """Highest version of ``code`` regardless of status."""
        ...

    async def find_by_id(self, tenant_id: str, atom_id: str) -> Optional[Atom]:
        """Atom by its id within the tenant."""
        ...


@runtime_checkable
class WritableAtomStore(AtomStore, Protocol):
    """Atom store that also accepts new versions and status changes."""

    def save(self, atom: Atom) -> Atom:
        ...

    def next_version(self, tenant_id: str, code: str) -> int:
        ...

    def list_atoms(self, tenant_id: str) -> List[Atom]:
        ...
