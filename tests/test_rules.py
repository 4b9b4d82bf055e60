"""Tests for the prioritized intent rules."""

import pytest

from cellpilot.errors import FormatError, ParseError
from cellpilot.intent.rules import (
    DEFAULT_PIVOT_COLUMNS,
    DEFAULT_PIVOT_DESTINATION,
    DEFAULT_PIVOT_ROWS,
    DEFAULT_PIVOT_SOURCE,
    CellWriteIntent,
    MalformedValues,
    PivotIntent,
    RangeWriteIntent,
    ReadIntent,
    SelectionIntent,
    classify,
    match_cell_write,
    match_pivot,
    match_range_write,
    parse_values_literal,
)


class TestPriority:
    """Test first-match-wins ordering."""

    def test_pivot_beats_write(self):
        assert isinstance(classify("write the pivot summary"), PivotIntent)

    def test_pivot_beats_read(self):
        assert isinstance(classify("show me a pivot of sales"), PivotIntent)

    def test_read_with_selection_reads_selection(self):
        intent = classify("Show me what's in the selected range")
        assert intent == ReadIntent(use_selection=True)

    def test_read_without_address_reads_used_range(self):
        assert classify("Read the current worksheet") == ReadIntent()

    def test_read_with_explicit_address(self):
        assert classify("show B2:C4") == ReadIntent(address="B2:C4")

    def test_selection_without_read_keyword(self):
        assert isinstance(classify("the selection please"), SelectionIntent)

    def test_unrecognized(self):
        assert classify("hello there") is None


class TestCellWrite:
    """Test cell-write extraction."""

    def test_value_then_target(self):
        assert classify("Write value 42 to cell A1") == CellWriteIntent(address="A1", value="42")

    def test_address_before_value(self):
        assert match_cell_write("Set B2 value hello world") == CellWriteIntent(
            address="B2", value="hello world"
        )

    def test_quoted_value_is_unquoted(self):
        assert match_cell_write("put value 'Q1 total' in C3") == CellWriteIntent(
            address="C3", value="Q1 total"
        )

    def test_missing_value_token_falls_through(self):
        assert match_cell_write("write 42 to A1") is None

    def test_missing_address_falls_through(self):
        assert match_cell_write("write value 42 somewhere") is None


class TestRangeWrite:
    """Test range-write extraction."""

    def test_scenario(self):
        intent = classify("Write range A1:B3 values [[1,2],[3,4],[5,6]]")
        assert intent == RangeWriteIntent(address="A1:B3", values=[[1, 2], [3, 4], [5, 6]])

    def test_single_quotes_normalized(self):
        intent = match_range_write("fill range A1:B1 values [['a','b']]")
        assert intent.values == [["a", "b"]]

    def test_malformed_literal(self):
        intent = match_range_write("fill range A1:B1 values [[1,2]")
        assert isinstance(intent, MalformedValues)
        assert intent.address == "A1:B1"
        assert "Invalid values format" in intent.message

    def test_requires_values_token(self):
        assert match_range_write("fill range A1:B2 with stuff") is None

    def test_parse_values_literal_requires_rows(self):
        with pytest.raises(FormatError):
            parse_values_literal("1,2")


class TestPivot:
    """Test pivot extraction and defaults."""

    def test_scenario(self):
        intent = match_pivot(
            "create a pivot table from A1:D10 to F1 with rows: Product, columns: Region, values: Sales"
        )
        assert intent.source_range == "A1:D10"
        assert intent.destination_range == "F1"
        assert intent.rows == ("Product",)
        assert intent.columns == ("Region",)
        assert intent.value_field == "Sales"
        assert intent.function == "sum"

    def test_defaults_when_parts_missing(self):
        intent = match_pivot("make a pivot table")
        assert intent.source_range == DEFAULT_PIVOT_SOURCE
        assert intent.destination_range == DEFAULT_PIVOT_DESTINATION
        assert intent.rows == DEFAULT_PIVOT_ROWS
        assert intent.columns == DEFAULT_PIVOT_COLUMNS
        assert (intent.value_field, intent.function) == ("Sales", "sum")

    def test_unparseable_addresses_fall_back_to_defaults(self):
        intent = match_pivot("create a pivot table from D10:A1 to A0")
        assert intent.source_range == DEFAULT_PIVOT_SOURCE
        assert intent.destination_range == DEFAULT_PIVOT_DESTINATION

    @pytest.mark.parametrize(
        "values,field,function",
        [
            ("average of Revenue", "Revenue", "average"),
            ("Units (count)", "Units", "count"),
            ("max Price", "Price", "max"),
        ],
    )
    def test_aggregation_spellings(self, values, field, function):
        intent = match_pivot(f"pivot from A1:C20 to E1 with rows: Region, values: {values}")
        assert (intent.value_field, intent.function) == (field, function)

    def test_multiple_row_fields(self):
        intent = match_pivot("pivot with rows: Region and Product, columns: Year")
        assert intent.rows == ("Region", "Product")
        assert intent.columns == ("Year",)

    def test_not_a_pivot(self):
        assert match_pivot("write value 1 to A1") is None


class TestErrorTaxonomy:
    """Malformed literals are a kind of parse error."""

    def test_format_error_is_parse_error(self):
        with pytest.raises(ParseError):
            parse_values_literal("[1,")
