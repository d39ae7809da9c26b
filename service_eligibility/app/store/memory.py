"""
In-memory atom store.
"""

from typing import Dict, List, Optional

from shared.logging import get_logger
from ..atoms.models import Atom


class InMemoryAtomStore:
    """Atom store holding every version of every atom per tenant."""

    def __init__(self):
        self.logger = get_logger("eligibility.store.memory")
        # tenant -> code -> version -> atom
        self._atoms: Dict[str, Dict[str, Dict[int, Atom]]] = {}

    def save(self, atom: Atom) -> Atom:
        """Insert a new version or replace an existing one with the same id.

        Version numbers are strictly increasing per code and never reused.
        """
        versions = self._atoms.setdefault(atom.tenant_id, {}).setdefault(atom.code, {})
        existing = versions.get(atom.version)

        if existing is not None and existing.atom_id != atom.atom_id:
            raise ValueError(f"Version {atom.version} of atom {atom.code} already exists")
        if existing is None and versions and atom.version <= max(versions):
            raise ValueError(
                f"Version {atom.version} of atom {atom.code} must be greater than {max(versions)}"
            )

        versions[atom.version] = atom
        self.logger.debug("Atom saved", tenant_id=atom.tenant_id, code=atom.code, version=atom.version)
        return atom

    def next_version(self, tenant_id: str, code: str) -> int:
        """Next unused version number for ``code``."""
        versions = self._atoms.get(tenant_id, {}).get(code, {})
        return max(versions) + 1 if versions else 1

    def list_atoms(self, tenant_id: str) -> List[Atom]:
        """All stored versions for a tenant."""
        return [
            atom
            for versions in self._atoms.get(tenant_id, {}).values()
            for atom in versions.values()
        ]

    async def find_by_code(self, tenant_id: str, code: str, version: Optional[int] = None) -> Optional[Atom]:
        versions = self._atoms.get(tenant_id, {}).get(code)
        if not versions:
            return None
        if version is not None:
            return versions.get(version)

        # Prefer the newest executable version so a fresh draft does not shadow it
        for number in sorted(versions, reverse=True):
            if versions[number].is_executable:
                return versions[number]
        return versions[max(versions)]

    async def find_latest_version(self, tenant_id: str, code: str) -> Optional[Atom]:
        versions = self._atoms.get(tenant_id, {}).get(code)
        if not versions:
            return None
        return versions[max(versions)]

    async def find_by_id(self, tenant_id: str, atom_id: str) -> Optional[Atom]:
        for atom in self.list_atoms(tenant_id):
            if atom.atom_id == atom_id:
                return atom
        return None
