"""Tests for the role parameter table."""

import pytest

from batch_productivity_sim.errors import ConfigurationError
from batch_productivity_sim.roles import (
    BATCH_SIZES,
    DEFAULT_ROLE_TABLE,
    RoleProfile,
    RoleTable,
    get_role_profile,
)


def make_profile(role_id="test", cycles=None, depths=None):
    return RoleProfile(
        role_id=role_id,
        name="Test Role",
        time_per_unit=10,
        cycles_by_batch=cycles if cycles is not None else {30: 6, 15: 3, 5: 1},
        depths_by_batch=depths if depths is not None else {30: 30, 15: 15, 5: 5},
    )


class TestDefaultTable:
    """Tests for the shipped role table."""

    def test_has_four_roles(self):
        assert set(DEFAULT_ROLE_TABLE.role_ids) == {"fridge", "pharma", "shippers", "tech"}

    def test_fridge_profile(self):
        fridge = get_role_profile("fridge")

        assert fridge.name == "Fridge Filler"
        assert fridge.time_per_unit == 34
        assert fridge.cycle_for(30) == 17
        assert fridge.depth_for(30) == 35

    @pytest.mark.parametrize("role_id", ["fridge", "pharma", "shippers", "tech"])
    def test_smaller_batches_have_shorter_cycles_and_shallower_dips(self, role_id):
        profile = get_role_profile(role_id)
        cycles = profile.cycles_by_batch
        depths = profile.depths_by_batch

        assert cycles[5] < cycles[15] < cycles[30]
        assert depths[5] < depths[15] < depths[30]

    def test_every_role_covers_every_batch_size(self):
        for profile in DEFAULT_ROLE_TABLE:
            for batch_size in BATCH_SIZES:
                assert profile.cycle_for(batch_size) > 0
                assert profile.depth_for(batch_size) > 0


class TestLookups:
    """Tests for role and batch size lookups."""

    def test_unknown_role(self):
        with pytest.raises(ConfigurationError, match="Undefined role"):
            get_role_profile("unknown-role")

    def test_unsupported_batch_size(self):
        fridge = get_role_profile("fridge")

        with pytest.raises(ConfigurationError, match="Unsupported batch size"):
            fridge.cycle_for(7)
        with pytest.raises(ConfigurationError, match="Unsupported batch size"):
            fridge.depth_for(7)

    def test_lookup_in_substitute_table(self):
        table = RoleTable([make_profile("picker")])

        assert get_role_profile("picker", table).name == "Test Role"
        with pytest.raises(ConfigurationError):
            get_role_profile("fridge", table)

    def test_contains_and_len(self):
        assert "tech" in DEFAULT_ROLE_TABLE
        assert "nobody" not in DEFAULT_ROLE_TABLE
        assert len(DEFAULT_ROLE_TABLE) == 4


class TestValidation:
    """The table is validated once, when it is built."""

    def test_missing_batch_size_rejected(self):
        with pytest.raises(ConfigurationError, match="no cycle for batch size 5"):
            RoleTable([make_profile(cycles={30: 6, 15: 3})])

    def test_missing_depth_rejected(self):
        with pytest.raises(ConfigurationError, match="no depth for batch size 15"):
            RoleTable([make_profile(depths={30: 30, 5: 5})])

    def test_non_positive_cycle_rejected(self):
        with pytest.raises(ConfigurationError, match="must be positive"):
            RoleTable([make_profile(cycles={30: 6, 15: 0, 5: 1})])

    def test_empty_table_rejected(self):
        with pytest.raises(ConfigurationError):
            RoleTable([])

    def test_custom_batch_sizes(self):
        table = RoleTable([make_profile(cycles={10: 2}, depths={10: 4})], batch_sizes=(10,))

        assert table.batch_sizes == (10,)
        assert table.get("test").cycle_for(10) == 2


class TestImmutability:
    """Profiles cannot be changed after load."""

    def test_profile_fields_frozen(self):
        fridge = get_role_profile("fridge")

        with pytest.raises(AttributeError):
            fridge.name = "Changed"

    def test_batch_tables_read_only(self):
        fridge = get_role_profile("fridge")

        with pytest.raises(TypeError):
            fridge.cycles_by_batch[30] = 1

    def test_source_dict_changes_do_not_leak(self):
        cycles = {30: 6, 15: 3, 5: 1}
        profile = make_profile(cycles=cycles)
        cycles[30] = 99

        assert profile.cycle_for(30) == 6


class TestFromDict:
    """Tests for building tables from YAML-shaped data."""

    def test_round_trip_default_table(self):
        table = RoleTable.from_dict(DEFAULT_ROLE_TABLE.to_dict())

        assert table.role_ids == DEFAULT_ROLE_TABLE.role_ids
        assert table.get("pharma").cycle_for(15) == 2
        assert table.get("shippers").depth_for(5) == 7

    def test_string_keys_accepted(self):
        table = RoleTable.from_dict(
            {
                "packer": {
                    "name": "Packer",
                    "time_per_unit": 20,
                    "cycles": {"30": 10, "15": 5, "5": 2.5},
                    "depths": {"30": 25, "15": 12, "5": 4},
                }
            }
        )

        packer = table.get("packer")
        assert packer.cycle_for(30) == 10
        assert packer.cycle_for(5) == 2.5

    def test_bad_values_raise_configuration_error(self):
        with pytest.raises(ConfigurationError):
            RoleTable.from_dict({"packer": {"cycles": {"30": "fast"}}})

    def test_non_mapping_role_rejected(self):
        with pytest.raises(ConfigurationError):
            RoleTable.from_dict({"packer": [1, 2, 3]})

    def test_null_roles_rejected(self):
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            RoleTable.from_dict(None)

    def test_null_batch_table_rejected(self):
        with pytest.raises(ConfigurationError, match="packer"):
            RoleTable.from_dict({"packer": {"cycles": None}})

    @pytest.mark.parametrize("batch_sizes", [None, ["thirty"], 30])
    def test_bad_batch_sizes_rejected(self, batch_sizes):
        with pytest.raises(ConfigurationError, match="Invalid batch sizes"):
            RoleTable.from_dict(DEFAULT_ROLE_TABLE.to_dict(), batch_sizes)
