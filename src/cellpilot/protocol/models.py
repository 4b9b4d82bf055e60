"""Action vocabulary: kinds, payload shapes and the Action value object."""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ..sheets.addresses import indices_to_cell, is_cell_address, parse_range, range_from_anchor


class ActionKind(str, Enum):
    """Closed set of operations. New kinds are only ever added."""

    WRITE_CELL = "write-cell"
    WRITE_RANGE = "write-range"
    READ_CELL = "read-cell"
    READ_RANGE = "read-range"
    FORMAT_CELL = "format-cell"
    FORMAT_RANGE = "format-range"
    CREATE_WORKSHEET = "create-worksheet"
    DELETE_WORKSHEET = "delete-worksheet"
    RENAME_WORKSHEET = "rename-worksheet"
    INSERT_FORMULA = "insert-formula"
    CREATE_CHART = "create-chart"
    CREATE_PIVOT_TABLE = "create-pivot-table"
    APPLY_FILTER = "apply-filter"
    APPLY_CONDITIONAL_FORMATTING = "apply-conditional-formatting"
    APPLY_DATA_VALIDATION = "apply-data-validation"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, raw: Any) -> "ActionKind":
        """Resolve a wire spelling ('write-cell', 'WRITE_CELL') to a kind."""
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"Action kind must be a string, got {type(raw).__name__}")
        normalized = raw.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown action kind: '{raw}'") from None


def _check_cell(value: str) -> str:
    value = value.strip().upper()
    if not is_cell_address(value):
        raise ValueError(f"Invalid cell address: '{value}'")
    return value


def _check_range(value: str) -> str:
    value = value.strip().upper()
    parse_range(value)
    return value


def _payload_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        message = item["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


CellAddress = Annotated[str, AfterValidator(_check_cell)]
RangeAddress = Annotated[str, AfterValidator(_check_range)]


class WireModel(BaseModel):
    """Immutable payload model accepting camelCase or snake_case keys and ignoring unknown ones."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# Formatting


class FontSpec(WireModel):
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    color: Optional[str] = None
    size: Optional[float] = None
    name: Optional[str] = None


class FillSpec(WireModel):
    fill_type: Literal["pattern", "gradient"] = Field(default="pattern", alias="type")
    color: Optional[str] = None
    pattern: Optional[Literal["solid", "darkGray", "mediumGray", "lightGray", "none"]] = None


class BorderSpec(WireModel):
    style: Optional[Literal["thin", "medium", "thick", "dashed", "dotted"]] = None
    color: Optional[str] = None


class AlignmentSpec(WireModel):
    horizontal: Optional[Literal["left", "center", "right"]] = None
    vertical: Optional[Literal["top", "middle", "bottom"]] = None
    wrap_text: Optional[bool] = None


class FormattingSpec(WireModel):
    """Composable formatting; a missing section means 'leave unchanged'."""

    font: Optional[FontSpec] = None
    fill: Optional[FillSpec] = None
    border: Optional[BorderSpec] = None
    alignment: Optional[AlignmentSpec] = None
    number_format: Optional[str] = Field(default=None, alias="numFmt")

    def is_empty(self) -> bool:
        return not self.changes()

    def changes(self) -> dict[str, Any]:
        """Only the sections that were actually specified."""
        return self.model_dump(exclude_none=True)


# Payloads


class WriteCellPayload(WireModel):
    address: CellAddress
    value: Any
    formatting: Optional[FormattingSpec] = None


class WriteRangePayload(WireModel):
    """A rectangular block of values. ``address`` is the full span or just its top-left cell."""

    address: RangeAddress
    values: list[list[Any]]
    formatting: Optional[FormattingSpec] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "WriteRangePayload":
        if not self.values or not self.values[0]:
            raise ValueError("values must contain at least one row and one column")
        widths = {len(row) for row in self.values}
        if len(widths) != 1:
            raise ValueError(
                f"values must be rectangular, got row lengths {[len(row) for row in self.values]}"
            )
        bounds = parse_range(self.address)
        rows, columns = len(self.values), len(self.values[0])
        if ":" in self.address and (bounds.rows, bounds.columns) != (rows, columns):
            raise ValueError(
                f"values are {rows}x{columns} but range {self.address} is "
                f"{bounds.rows}x{bounds.columns}"
            )
        return self

    @property
    def target_range(self) -> str:
        """The full span written, derived from the matrix when only an anchor is given."""
        bounds = parse_range(self.address)
        anchor = indices_to_cell(bounds.start_row, bounds.start_col)
        return range_from_anchor(anchor, len(self.values), len(self.values[0])).to_a1()


class ReadCellPayload(WireModel):
    address: CellAddress


class ReadRangePayload(WireModel):
    address: RangeAddress


class FormatCellPayload(WireModel):
    address: CellAddress
    formatting: FormattingSpec


class FormatRangePayload(WireModel):
    address: RangeAddress
    formatting: FormattingSpec


class CreateWorksheetPayload(WireModel):
    name: str = Field(min_length=1)


class DeleteWorksheetPayload(WireModel):
    name: str = Field(min_length=1)


class RenameWorksheetPayload(WireModel):
    old_name: str = Field(min_length=1)
    new_name: str = Field(min_length=1)


class InsertFormulaPayload(WireModel):
    address: CellAddress
    formula: str = Field(min_length=1)

    @field_validator("formula")
    @classmethod
    def _leading_equals(cls, value: str) -> str:
        value = value.strip()
        return value if value.startswith("=") else f"={value}"


class ChartSeries(WireModel):
    name: str
    x_values: Optional[RangeAddress] = None
    y_values: RangeAddress


class CreateChartPayload(WireModel):
    chart_type: Literal["column", "bar", "line", "pie", "scatter", "area", "doughnut", "radar"] = Field(
        alias="type"
    )
    title: str
    data_range: RangeAddress
    destination_range: RangeAddress
    series: Optional[list[ChartSeries]] = None


AggregationFunction = Literal[
    "sum", "count", "average", "max", "min", "product", "stdDev", "stdDevP", "var", "varP"
]


class PivotValueField(WireModel):
    field: str = Field(min_length=1)
    function: AggregationFunction = "sum"


class CreatePivotTablePayload(WireModel):
    source_range: RangeAddress
    destination_range: RangeAddress
    rows: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)
    values: list[PivotValueField] = Field(min_length=1)
    filters: Optional[list[str]] = None
    name: Optional[str] = None


class ApplyFilterPayload(WireModel):
    address: RangeAddress = Field(alias="range")
    criteria: dict[str, Any] = Field(default_factory=dict)


class ApplyConditionalFormattingPayload(WireModel):
    address: RangeAddress = Field(alias="range")
    rule_type: Literal[
        "cellIs", "containsText", "colorScale", "dataBar", "iconSet", "topBottom", "uniqueValues"
    ] = Field(alias="type")
    criteria: Any = None
    formatting: FormattingSpec


class ApplyDataValidationPayload(WireModel):
    address: RangeAddress = Field(alias="range")
    validation: dict[str, Any]


class CustomPayload(WireModel):
    name: str = Field(min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


PAYLOAD_MODELS: dict[ActionKind, type[WireModel]] = {
    ActionKind.WRITE_CELL: WriteCellPayload,
    ActionKind.WRITE_RANGE: WriteRangePayload,
    ActionKind.READ_CELL: ReadCellPayload,
    ActionKind.READ_RANGE: ReadRangePayload,
    ActionKind.FORMAT_CELL: FormatCellPayload,
    ActionKind.FORMAT_RANGE: FormatRangePayload,
    ActionKind.CREATE_WORKSHEET: CreateWorksheetPayload,
    ActionKind.DELETE_WORKSHEET: DeleteWorksheetPayload,
    ActionKind.RENAME_WORKSHEET: RenameWorksheetPayload,
    ActionKind.INSERT_FORMULA: InsertFormulaPayload,
    ActionKind.CREATE_CHART: CreateChartPayload,
    ActionKind.CREATE_PIVOT_TABLE: CreatePivotTablePayload,
    ActionKind.APPLY_FILTER: ApplyFilterPayload,
    ActionKind.APPLY_CONDITIONAL_FORMATTING: ApplyConditionalFormattingPayload,
    ActionKind.APPLY_DATA_VALIDATION: ApplyDataValidationPayload,
    ActionKind.CUSTOM: CustomPayload,
}

ActionPayload = Union[
    WriteCellPayload,
    WriteRangePayload,
    ReadCellPayload,
    ReadRangePayload,
    FormatCellPayload,
    FormatRangePayload,
    CreateWorksheetPayload,
    DeleteWorksheetPayload,
    RenameWorksheetPayload,
    InsertFormulaPayload,
    CreateChartPayload,
    CreatePivotTablePayload,
    ApplyFilterPayload,
    ApplyConditionalFormattingPayload,
    ApplyDataValidationPayload,
    CustomPayload,
]


class Action(BaseModel):
    """
    One typed instruction against the document.

    The payload shape is bound to ``kind`` when the action is built: raw
    payload dicts are parsed with the kind's payload model, and a payload
    object of another kind is rejected.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    kind: ActionKind = Field(validation_alias=AliasChoices("kind", "type"))
    payload: ActionPayload = Field(validation_alias=AliasChoices("payload", "data"))
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _bind_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind_key = "kind" if "kind" in data else "type"
        payload_key = "payload" if "payload" in data else "data"
        if kind_key not in data:
            raise ValueError("Action is missing 'kind'")
        kind = ActionKind.parse(data[kind_key])
        model = PAYLOAD_MODELS[kind]
        raw = data.get(payload_key)
        if raw is None:
            raise ValueError(f"Action '{kind.value}' is missing its payload")
        if isinstance(raw, BaseModel):
            if not isinstance(raw, model):
                raise ValueError(
                    f"Payload {type(raw).__name__} does not match kind '{kind.value}'"
                )
            payload = raw
        else:
            try:
                payload = model.model_validate(raw)
            except ValidationError as e:
                raise ValueError(f"Invalid {kind.value} payload: {_payload_errors(e)}") from None
        data[kind_key] = kind
        data[payload_key] = payload
        return data

    def summary(self) -> str:
        """Short human-readable description for logs and reports."""
        payload = self.payload
        target = (
            getattr(payload, "address", None)
            or getattr(payload, "source_range", None)
            or getattr(payload, "data_range", None)
            or getattr(payload, "name", None)
            or getattr(payload, "old_name", None)
        )
        return f"{self.kind.value} {target}" if target else self.kind.value

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the wire shape (camelCase payload keys)."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "payload": self.payload.model_dump(mode="json", by_alias=True, exclude_none=True),
        }
        if self.description:
            data["description"] = self.description
        return data


MUTATING_KINDS = frozenset(
    {
        ActionKind.WRITE_CELL,
        ActionKind.WRITE_RANGE,
        ActionKind.FORMAT_CELL,
        ActionKind.FORMAT_RANGE,
        ActionKind.CREATE_WORKSHEET,
        ActionKind.DELETE_WORKSHEET,
        ActionKind.RENAME_WORKSHEET,
        ActionKind.INSERT_FORMULA,
        ActionKind.CREATE_CHART,
        ActionKind.CREATE_PIVOT_TABLE,
        ActionKind.APPLY_FILTER,
        ActionKind.APPLY_CONDITIONAL_FORMATTING,
        ActionKind.APPLY_DATA_VALIDATION,
        ActionKind.CUSTOM,
    }
)
