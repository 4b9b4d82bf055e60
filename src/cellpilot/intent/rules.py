"""
Pattern rules that classify free-text commands.

Each rule is a pure function ``(text) -> Optional[ParsedIntent]``. A rule
returns ``None`` when the text is not its intent or lacks required fields,
letting the next rule try. ``RULES`` fixes the priority order: the pivot
rule must run before the broader read and write rules so phrases like
"write the pivot summary" are not captured by them.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ..errors import FormatError
from ..sheets.addresses import parse_range

# Documented fallbacks for a recognized pivot request with missing parts
DEFAULT_PIVOT_SOURCE = "A1:D10"
DEFAULT_PIVOT_DESTINATION = "F1"
DEFAULT_PIVOT_ROWS = ("Category",)
DEFAULT_PIVOT_COLUMNS = ("Region",)
DEFAULT_PIVOT_VALUE_FIELD = "Sales"
DEFAULT_PIVOT_FUNCTION = "sum"

PIVOT_KEYWORD = re.compile(r"\bpivot\b", re.IGNORECASE)
READ_KEYWORDS = re.compile(r"\b(read|show|display|view|what|query)\b", re.IGNORECASE)
WRITE_KEYWORDS = re.compile(r"\b(write|put|set|enter|store)\b", re.IGNORECASE)
FILL_KEYWORDS = re.compile(r"\b(write|fill|put|set)\b", re.IGNORECASE)
RANGE_KEYWORD = re.compile(r"\brange\b", re.IGNORECASE)
SELECTION_KEYWORDS = re.compile(r"\b(selected|selection)\b", re.IGNORECASE)

CELL_TOKEN = re.compile(r"\b[A-Z]+[0-9]+\b")
ADDRESS_TOKEN = re.compile(r"\b([A-Z]+[0-9]+(?::[A-Z]+[0-9]+)?)\b")
VALUE_TOKEN = re.compile(r"\bvalue\s+(.+)$", re.IGNORECASE | re.DOTALL)
TARGET_SUFFIX = re.compile(
    r"\s+(?:to|in|into|at)\s+(?:the\s+)?(?:cell\s+)?([A-Z]+[0-9]+)\s*[.!]?\s*$",
    re.IGNORECASE,
)
RANGE_TOKEN = re.compile(r"\brange\s+([A-Z]+[0-9]+:[A-Z]+[0-9]+)", re.IGNORECASE)
VALUES_TOKEN = re.compile(r"\bvalues\s+\[(.*)\]", re.IGNORECASE | re.DOTALL)

PIVOT_SOURCE = re.compile(r"\bfrom\s+([A-Z]+[0-9]+:[A-Z]+[0-9]+)", re.IGNORECASE)
PIVOT_DESTINATION = re.compile(
    r"\b(?:to|at|into)\s+(?:cell\s+)?([A-Z]+[0-9]+(?::[A-Z]+[0-9]+)?)\b", re.IGNORECASE
)
_LABELS = r"(?:rows?|columns?|values?|filters?)"
AGGREGATIONS = {
    "sum": "sum",
    "total": "sum",
    "count": "count",
    "average": "average",
    "avg": "average",
    "mean": "average",
    "max": "max",
    "maximum": "max",
    "min": "min",
    "minimum": "min",
    "product": "product",
}
_AGG = "(" + "|".join(AGGREGATIONS) + ")"
VALUE_SPEC = re.compile(
    rf"^(?:{_AGG}\s+(?:of\s+)?)?(.+?)(?:\s*\(\s*{_AGG}\s*\))?$", re.IGNORECASE
)

QUOTE_CHARS = str.maketrans({"'": '"', "‘": '"', "’": '"', "“": '"', "”": '"'})


@dataclass(frozen=True)
class PivotIntent:
    source_range: str
    destination_range: str
    rows: tuple[str, ...]
    columns: tuple[str, ...]
    value_field: str
    function: str
    filters: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReadIntent:
    address: Optional[str] = None
    use_selection: bool = False


@dataclass(frozen=True)
class CellWriteIntent:
    address: str
    value: str


@dataclass(frozen=True)
class RangeWriteIntent:
    address: str
    values: list[list[Any]] = field(default_factory=list)


@dataclass(frozen=True)
class MalformedValues:
    """A range write whose values literal failed to parse."""

    address: str
    message: str


@dataclass(frozen=True)
class SelectionIntent:
    pass


ParsedIntent = Union[
    PivotIntent, ReadIntent, CellWriteIntent, RangeWriteIntent, MalformedValues, SelectionIntent
]


def _labelled_list(text: str, label: str) -> list[str]:
    pattern = re.compile(
        rf"\b{label}\s*:\s*(.+?)(?=\s*[,;]?\s*\b{_LABELS}\s*:|[.;]?\s*$)",
        re.IGNORECASE | re.DOTALL,
    )
    match = pattern.search(text)
    if not match:
        return []
    items = re.split(r"\s*,\s*|\s+and\s+", match.group(1).strip())
    return [item.strip().strip("\"'") for item in items if item.strip().strip("\"'")]


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def parse_values_literal(literal: str) -> list[list[Any]]:
    """
    Parse the inside of ``values [...]`` as a nested array.

    Single and typographic quotes are normalized to double quotes first.

    Raises:
        FormatError: If the literal is not a list of rows.
    """
    try:
        parsed = json.loads(f"[{literal.translate(QUOTE_CHARS)}]")
    except json.JSONDecodeError as e:
        raise FormatError(f"Invalid values format: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(row, list) for row in parsed):
        raise FormatError("Invalid values format: expected a list of rows like [[1,2],[3,4]]")
    return parsed


def _address_or_default(match: Optional[re.Match], default: str) -> str:
    """Extracted address, or ``default`` when absent or not a valid cell/range."""
    if not match:
        return default
    candidate = match.group(1).upper()
    try:
        parse_range(candidate)
    except ValueError:
        return default
    return candidate


def match_pivot(text: str) -> Optional[PivotIntent]:
    """Pivot request; every missing part falls back to its default."""
    if not PIVOT_KEYWORD.search(text):
        return None

    source = PIVOT_SOURCE.search(text)
    destination = PIVOT_DESTINATION.search(text)
    rows = _labelled_list(text, "rows?")
    columns = _labelled_list(text, "columns?")
    filters = _labelled_list(text, "filters?")
    values = _labelled_list(text, "values?")

    value_field, function = DEFAULT_PIVOT_VALUE_FIELD, DEFAULT_PIVOT_FUNCTION
    if values:
        spec = VALUE_SPEC.match(values[0])
        if spec:
            value_field = spec.group(2).strip()
            aggregation = spec.group(1) or spec.group(3)
            if aggregation:
                function = AGGREGATIONS[aggregation.lower()]

    return PivotIntent(
        source_range=_address_or_default(source, DEFAULT_PIVOT_SOURCE),
        destination_range=_address_or_default(destination, DEFAULT_PIVOT_DESTINATION),
        rows=tuple(rows) or DEFAULT_PIVOT_ROWS,
        columns=tuple(columns) or DEFAULT_PIVOT_COLUMNS,
        value_field=value_field,
        function=function,
        filters=tuple(filters),
    )


def match_read(text: str) -> Optional[ReadIntent]:
    if not READ_KEYWORDS.search(text):
        return None
    address = ADDRESS_TOKEN.search(text)
    if address:
        return ReadIntent(address=address.group(1))
    return ReadIntent(use_selection=bool(SELECTION_KEYWORDS.search(text)))


def match_cell_write(text: str) -> Optional[CellWriteIntent]:
    """Needs both a cell address and a ``value <rest>`` token."""
    if not WRITE_KEYWORDS.search(text):
        return None
    value_match = VALUE_TOKEN.search(text)
    if not value_match:
        return None

    rest = value_match.group(1).strip()
    target = TARGET_SUFFIX.search(rest)
    if target:
        address = target.group(1).upper()
        value = rest[: target.start()]
    else:
        cell = CELL_TOKEN.search(text, 0, value_match.start())
        if not cell:
            return None
        address = cell.group(0)
        value = rest

    value = _strip_quotes(value)
    if not value:
        return None
    return CellWriteIntent(address=address, value=value)


def match_range_write(text: str) -> Optional[Union[RangeWriteIntent, MalformedValues]]:
    if not (RANGE_KEYWORD.search(text) and FILL_KEYWORDS.search(text)):
        return None
    range_match = RANGE_TOKEN.search(text)
    values_match = VALUES_TOKEN.search(text)
    if not range_match or not values_match:
        return None

    address = range_match.group(1).upper()
    try:
        values = parse_values_literal(values_match.group(1))
    except FormatError as e:
        return MalformedValues(address=address, message=str(e))
    return RangeWriteIntent(address=address, values=values)


def match_selection(text: str) -> Optional[SelectionIntent]:
    if SELECTION_KEYWORDS.search(text):
        return SelectionIntent()
    return None


Rule = Callable[[str], Optional[ParsedIntent]]

RULES: tuple[Rule, ...] = (
    match_pivot,
    match_read,
    match_cell_write,
    match_range_write,
    match_selection,
)


def classify(text: str, rules: tuple[Rule, ...] = RULES) -> Optional[ParsedIntent]:
    """Return the first rule's match, or ``None`` when nothing matches."""
    for rule in rules:
        intent = rule(text)
        if intent is not None:
            return intent
    return None
