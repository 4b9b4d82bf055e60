"""Action protocol: the typed vocabulary exchanged between resolver, backend and executor."""

from .models import (
    MUTATING_KINDS,
    PAYLOAD_MODELS,
    Action,
    ActionKind,
    ActionPayload,
    AlignmentSpec,
    ApplyConditionalFormattingPayload,
    ApplyDataValidationPayload,
    ApplyFilterPayload,
    BorderSpec,
    ChartSeries,
    CreateChartPayload,
    CreatePivotTablePayload,
    CreateWorksheetPayload,
    CustomPayload,
    DeleteWorksheetPayload,
    FillSpec,
    FontSpec,
    FormatCellPayload,
    FormatRangePayload,
    FormattingSpec,
    InsertFormulaPayload,
    PivotValueField,
    ReadCellPayload,
    ReadRangePayload,
    RenameWorksheetPayload,
    WriteCellPayload,
    WriteRangePayload,
)
from .envelope import (
    ErrorCategory,
    ErrorInfo,
    ExecutionOutcome,
    ResponseEnvelope,
    ResponseMetadata,
)
from .validation import validate_action, validate_actions

__all__ = [
    "MUTATING_KINDS",
    "PAYLOAD_MODELS",
    "Action",
    "ActionKind",
    "ActionPayload",
    "AlignmentSpec",
    "ApplyConditionalFormattingPayload",
    "ApplyDataValidationPayload",
    "ApplyFilterPayload",
    "BorderSpec",
    "ChartSeries",
    "CreateChartPayload",
    "CreatePivotTablePayload",
    "CreateWorksheetPayload",
    "CustomPayload",
    "DeleteWorksheetPayload",
    "FillSpec",
    "FontSpec",
    "FormatCellPayload",
    "FormatRangePayload",
    "FormattingSpec",
    "InsertFormulaPayload",
    "PivotValueField",
    "ReadCellPayload",
    "ReadRangePayload",
    "RenameWorksheetPayload",
    "WriteCellPayload",
    "WriteRangePayload",
    # Envelope
    "ErrorCategory",
    "ErrorInfo",
    "ExecutionOutcome",
    "ResponseEnvelope",
    "ResponseMetadata",
    # Validation
    "validate_action",
    "validate_actions",
]
