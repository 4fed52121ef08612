"""
Tests for field versioning (VariableVersions).
"""

import pytest

from stencilir.metadata.versioning import VariableVersions
from stencilir.shared.errors import InvariantViolationError, LookupFailureError


@pytest.fixture
def versions():
    table = VariableVersions()
    table.add_version(3, 103)
    table.add_version(3, 203)
    return table


class TestAddVersion:
    def test_three_views_stay_in_sync(self, versions):
        assert versions.version_map == {3: [103, 203]}
        assert versions.version_to_original == {103: 3, 203: 3}
        assert versions.version_ids == [103, 203]
        assert list(versions.violations()) == []

    def test_version_of_a_version_goes_to_the_original(self, versions):
        versions.add_version(103, 303)
        assert versions.original_of(303) == 3
        assert versions.versions_of(3) == [103, 203, 303]

    def test_reparenting_is_rejected(self, versions):
        with pytest.raises(InvariantViolationError, match="re-parented"):
            versions.add_version(9, 103)
        assert versions.original_of(103) == 3
        assert 9 not in versions.originals

    def test_registering_same_version_twice_is_a_no_op(self, versions):
        versions.add_version(3, 103)
        assert versions.version_ids == [103, 203]

    def test_self_version_rejected(self):
        with pytest.raises(InvariantViolationError):
            VariableVersions().add_version(5, 5)

    def test_original_cannot_become_a_version(self, versions):
        with pytest.raises(InvariantViolationError):
            versions.add_version(7, 3)


class TestQueries:
    def test_original_of(self, versions):
        assert versions.original_of(103) == 3
        assert versions.original_of(3) == 3

    def test_original_of_unversioned_id(self, versions):
        with pytest.raises(LookupFailureError):
            versions.original_of(42)

    def test_versions_of_from_a_version(self, versions):
        assert versions.versions_of(203) == [103, 203]

    def test_predicates(self, versions):
        assert versions.is_versioned(3)
        assert versions.is_versioned(103)
        assert not versions.is_versioned(4)
        assert versions.is_version(103)
        assert not versions.is_version(3)
        assert versions.has_versions(3)
        assert not versions.has_versions(103)

    def test_len_counts_versions(self, versions):
        assert len(versions) == 2

    def test_all_ids(self, versions):
        assert versions.all_ids() == [3, 103, 203]

    def test_returned_tables_are_copies(self, versions):
        versions.version_map[3].append(999)
        assert versions.versions_of(3) == [103, 203]


class TestFromTables:
    def test_loads_without_checks(self):
        table = VariableVersions.from_tables({3: [103]}, [103], {103: 4})
        assert table.original_of(103) == 4
        messages = list(table.violations())
        assert any("maps to original 4" in m for m in messages)

    def test_version_listed_under_two_originals(self):
        table = VariableVersions.from_tables({3: [7], 4: [7]}, [7], {7: 3})
        assert any("several originals" in m for m in table.violations())

    def test_id_list_mismatch(self):
        table = VariableVersions.from_tables({3: [7]}, [], {7: 3})
        assert any("version ID list" in m for m in table.violations())

    def test_equality(self, versions):
        same = VariableVersions.from_tables({3: [103, 203]}, [103, 203], {103: 3, 203: 3})
        assert same == versions
        assert VariableVersions() != versions
