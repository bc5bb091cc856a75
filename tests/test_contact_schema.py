"""Tests for the contact schema registry."""

import pytest

from schemas.contact_schema import (
    COLUMN_GROUPS,
    COLUMNS,
    MALAYSIAN_STATES,
    REQUIRED_FOR_COMPLETE,
    STATE_ALIASES,
    FieldKind,
    InputType,
    RowHandle,
    column_index_to_letter,
    column_letter_to_index,
    get_all_headers,
    get_column_by_key,
    get_column_by_label,
    get_column_keys,
    get_field_input_type,
    get_group_column_counts,
    get_schema_info,
)


class TestRegistry:
    """Tests for the column registry."""

    def test_forty_two_columns(self):
        """The record has exactly 42 fields."""
        assert len(COLUMNS) == 42

    def test_keys_and_labels_unique(self):
        """Keys and header labels are unique."""
        assert len(set(get_column_keys())) == 42
        assert len(set(get_all_headers())) == 42

    def test_every_column_in_known_group(self):
        """Group membership covers every column."""
        assert all(col.group in COLUMN_GROUPS for col in COLUMNS)
        assert sum(get_group_column_counts().values()) == 42

    def test_fresh_sheet_letters_sequential(self):
        """Advisory letters run A..AP in registry order."""
        letters = [col.col_letter for col in COLUMNS]
        assert letters == [column_index_to_letter(i) for i in range(42)]

    def test_required_fields_exist(self):
        """Completeness fields are registry keys."""
        keys = set(get_column_keys())
        assert set(REQUIRED_FOR_COMPLETE) <= keys

    def test_lookup_by_key_and_label(self):
        """Columns are reachable by key and exact label."""
        assert get_column_by_key("zip").label == "Zip"
        assert get_column_by_label("Contact phonenumber").key == "contact_phone"
        assert get_column_by_key("nope") is None
        assert get_column_by_label("zip") is None

    def test_field_kinds(self):
        """Validation kinds are attached to the right fields."""
        assert get_column_by_key("zip").kind == FieldKind.POSTCODE
        assert get_column_by_key("billing_state").kind == FieldKind.STATE
        assert get_column_by_key("email_address").kind == FieldKind.EMAIL
        assert get_column_by_key("birthday").kind == FieldKind.DATE
        assert get_column_by_key("firstname").kind == FieldKind.TEXT

    def test_input_type_hint(self):
        """Unknown keys default to a text input."""
        assert get_field_input_type("state") == InputType.DROPDOWN
        assert get_field_input_type("auto_invoice") == InputType.CHECKBOX
        assert get_field_input_type("unknown") == InputType.TEXT


class TestStates:
    """Tests for the Malaysian state enumeration."""

    def test_sixteen_states(self):
        """Thirteen states and three federal territories."""
        assert len(MALAYSIAN_STATES) == 16

    def test_aliases_point_to_canonical_states(self):
        """Every alias resolves to an enumerated state."""
        assert all(state in MALAYSIAN_STATES for state in STATE_ALIASES.values())
        assert all(alias == alias.lower() for alias in STATE_ALIASES)


class TestColumnLetters:
    """Tests for A1 column letter conversion."""

    @pytest.mark.parametrize("index,letter", [(0, "A"), (25, "Z"), (26, "AA"), (41, "AP"), (701, "ZZ"), (702, "AAA")])
    def test_index_to_letter(self, index, letter):
        """Test 0-based index conversion."""
        assert column_index_to_letter(index) == letter
        assert column_letter_to_index(letter) == index

    def test_lowercase_letter(self):
        """Letters are case-insensitive."""
        assert column_letter_to_index("ab") == 27

    @pytest.mark.parametrize("bad", ["", "A1", "$"])
    def test_invalid_letter(self, bad):
        """Non-letter input is rejected."""
        with pytest.raises(ValueError):
            column_letter_to_index(bad)


class TestRowHandle:
    """Tests for the row handle."""

    def test_header_row_is_not_data(self):
        """Row 1 is the header row."""
        assert not RowHandle(1).is_data_row
        assert RowHandle(2).is_data_row

    def test_int_and_str(self):
        """The handle behaves like its row number."""
        handle = RowHandle(7)
        assert int(handle) == 7
        assert str(handle) == "7"


class TestSchemaInfo:
    """Tests for the frontend export."""

    def test_shape(self):
        """Schema info carries columns, groups and states."""
        info = get_schema_info()
        assert info["total_columns"] == 42
        assert len(info["columns"]) == 42
        assert info["columns"][2]["kind"] == "email"
        assert [g["key"] for g in info["groups"]] == list(COLUMN_GROUPS)
        assert "Selangor" in info["states"]
