"""
Field versioning

SSA-like renaming of fields: an optimizer pass may give a field a fresh
AccessID (a "version") so later passes can treat the two lifetimes
separately. VariableVersions keeps three views in sync:

    original -> ordered list of versions
    version  -> original
    the set of all version IDs (kept in registration order)

A version belongs to exactly one original, an original is never its own
version and no version ID is also an original.
"""

import logging
from typing import Dict, Iterator, List, Mapping, Iterable

from ..shared.errors import InvariantViolationError, LookupFailureError

logger = logging.getLogger("stencilir.metadata.versioning")


class VariableVersions:
    __slots__ = ('_versions', '_version_to_original', '_version_ids')

    def __init__(self):
        self._versions: Dict[int, List[int]] = {}
        self._version_to_original: Dict[int, int] = {}
        self._version_ids: List[int] = []

    @classmethod
    def from_tables(cls, versions: Mapping[int, Iterable[int]], version_ids: Iterable[int],
                    version_to_original: Mapping[int, int]) -> "VariableVersions":
        """
        Load the three tables as stored, without checking them.

        Used by the decoder; inconsistencies are reported by `violations()`
        (and so by `StencilInstantiation.validate()`).
        """
        result = cls()
        result._versions = {original: list(ids) for original, ids in versions.items()}
        result._version_ids = list(version_ids)
        result._version_to_original = dict(version_to_original)
        return result

    def add_version(self, access_id: int, version_id: int) -> None:
        """
        Record `version_id` as a new version of `access_id`.

        If `access_id` is itself a version, the new version is recorded under
        its original. Registering a version that already belongs to another
        original raises InvariantViolationError.
        """
        original = self._version_to_original.get(access_id, access_id)
        if version_id == original:
            raise InvariantViolationError(f"AccessID {version_id} cannot be a version of itself")
        if version_id in self._versions:
            raise InvariantViolationError(
                f"AccessID {version_id} is an original with versions and cannot become a version"
            )
        owner = self._version_to_original.get(version_id)
        if owner is not None:
            if owner == original:
                return
            raise InvariantViolationError(
                f"version re-parented: AccessID {version_id} already belongs to original {owner}, "
                f"cannot register it under {original}"
            )
        self._versions.setdefault(original, []).append(version_id)
        self._version_to_original[version_id] = original
        self._version_ids.append(version_id)
        logger.debug(f"registered version {version_id} of AccessID {original}")

    def original_of(self, access_id: int) -> int:
        """Original of a version; an original with versions is its own original."""
        if access_id in self._version_to_original:
            return self._version_to_original[access_id]
        if access_id in self._versions:
            return access_id
        raise LookupFailureError(f"AccessID {access_id} is not versioned", access_id)

    def versions_of(self, access_id: int) -> List[int]:
        """All versions of the field `access_id` belongs to, in registration order"""
        original = self.original_of(access_id)
        return list(self._versions[original])

    def is_versioned(self, access_id: int) -> bool:
        """True for originals that have versions and for the versions themselves"""
        return access_id in self._versions or access_id in self._version_to_original

    def is_version(self, access_id: int) -> bool:
        return access_id in self._version_to_original

    def has_versions(self, access_id: int) -> bool:
        return bool(self._versions.get(access_id))

    @property
    def originals(self) -> List[int]:
        return list(self._versions)

    @property
    def version_ids(self) -> List[int]:
        return list(self._version_ids)

    @property
    def version_map(self) -> Dict[int, List[int]]:
        return {original: list(ids) for original, ids in self._versions.items()}

    @property
    def version_to_original(self) -> Dict[int, int]:
        return dict(self._version_to_original)

    def all_ids(self) -> List[int]:
        """Every AccessID the tables mention (originals first)"""
        ids = dict.fromkeys(self._versions)
        ids.update(dict.fromkeys(self._version_ids))
        ids.update(dict.fromkeys(self._version_to_original))
        return list(ids)

    def violations(self) -> Iterator[str]:
        """Describe every inconsistency between the three tables"""
        owners: Dict[int, List[int]] = {}
        for original, versions in self._versions.items():
            for version in versions:
                owners.setdefault(version, []).append(original)
            if original in versions:
                yield f"AccessID {original} is listed as a version of itself"
            if original in self._version_to_original:
                yield f"original AccessID {original} is also registered as a version"

        for version, originals in owners.items():
            if len(originals) > 1:
                yield (f"version {version} belongs to several originals: "
                       f"{', '.join(str(o) for o in originals)}")
            recorded = self._version_to_original.get(version)
            if recorded is None:
                yield f"version {version} has no recorded original"
            elif recorded not in originals:
                yield f"version {version} maps to original {recorded} but is listed under {originals[0]}"

        listed = set(owners)
        for version in self._version_to_original:
            if version not in listed:
                yield f"version {version} maps to an original which does not list it"

        version_id_set = set(self._version_ids)
        if len(version_id_set) != len(self._version_ids):
            yield "the version ID list contains duplicates"
        if version_id_set != set(self._version_to_original):
            yield "the version ID list does not match the version -> original table"

    def __len__(self) -> int:
        return len(self._version_to_original)

    def __eq__(self, other):
        if not isinstance(other, VariableVersions):
            return NotImplemented
        return (self._versions == other._versions
                and self._version_to_original == other._version_to_original
                and self._version_ids == other._version_ids)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"VariableVersions({self._versions!r})"
