"""Sequential action executor with per-action failure isolation."""

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from ..errors import ActionValidationError, CellPilotError
from ..output import OutputFormatter
from ..protocol import (
    MUTATING_KINDS,
    Action,
    ActionKind,
    ErrorCategory,
    ErrorInfo,
    ExecutionOutcome,
    FormattingSpec,
    validate_action,
)
from ..sheets import DocumentPort, parse_range
from ..sheets.port import (
    CHARTS,
    CONDITIONAL_FORMATTING,
    DATA_VALIDATION,
    FILTERS,
    FORMATTING,
    PIVOT_TABLES,
    WORKSHEETS,
)

if TYPE_CHECKING:
    from ..audit import AuditTrail

logger = logging.getLogger(__name__)

Effect = Optional[dict[str, Any]]
CustomHandler = Callable[[DocumentPort, dict[str, Any]], Awaitable[Effect]]


class CustomHandlerError(CellPilotError):
    """A custom action had no handler, or its handler failed."""


class ActionExecutor:
    """
    Applies actions to a document strictly in input order.

    Each action is validated on its own, then dispatched to exactly one
    handler keyed by its kind. A failure is recorded in that action's
    outcome and the batch continues. Optional capabilities the document does
    not declare are acknowledged as advisory no-ops with a note explaining
    how to do the step by hand.
    """

    def __init__(
        self,
        document: DocumentPort,
        formatter: Optional[OutputFormatter] = None,
        audit_trail: Optional["AuditTrail"] = None,
        save_after_write: bool = True,
    ):
        """
        Initialize the executor.

        Args:
            document: Document the actions are applied to
            formatter: Formatter for read-range summaries
            audit_trail: Optional persisted record of executed batches
            save_after_write: Send the document a save hint after a batch that changed it
        """
        self.document = document
        self.formatter = formatter or OutputFormatter()
        self.audit_trail = audit_trail
        self.save_after_write = save_after_write
        self._custom_handlers: dict[str, CustomHandler] = {}
        self._handlers: dict[ActionKind, Callable[[Action], Awaitable[Effect]]] = {
            ActionKind.WRITE_CELL: self._write_cell,
            ActionKind.WRITE_RANGE: self._write_range,
            ActionKind.READ_CELL: self._read_cell,
            ActionKind.READ_RANGE: self._read_range,
            ActionKind.FORMAT_CELL: self._format,
            ActionKind.FORMAT_RANGE: self._format,
            ActionKind.CREATE_WORKSHEET: self._create_worksheet,
            ActionKind.DELETE_WORKSHEET: self._delete_worksheet,
            ActionKind.RENAME_WORKSHEET: self._rename_worksheet,
            ActionKind.INSERT_FORMULA: self._insert_formula,
            ActionKind.CREATE_CHART: self._create_chart,
            ActionKind.CREATE_PIVOT_TABLE: self._create_pivot_table,
            ActionKind.APPLY_FILTER: self._apply_filter,
            ActionKind.APPLY_CONDITIONAL_FORMATTING: self._apply_conditional_formatting,
            ActionKind.APPLY_DATA_VALIDATION: self._apply_data_validation,
            ActionKind.CUSTOM: self._custom,
        }

    def register_custom_handler(self, name: str, handler: CustomHandler) -> None:
        """Route ``custom`` actions named ``name`` to ``handler(document, parameters)``."""
        self._custom_handlers[name] = handler
        logger.info(f"Registered custom action handler '{name}'")

    async def execute_all(self, actions: list[Union[Action, dict[str, Any]]]) -> list[ExecutionOutcome]:
        """
        Execute a batch sequentially.

        Args:
            actions: Actions or raw wire dicts, in the order they must be applied

        Returns:
            One outcome per input action, in input order
        """
        logger.info(f"Executing batch of {len(actions)} action(s)")
        outcomes: list[ExecutionOutcome] = []
        for index, raw in enumerate(actions):
            outcomes.append(await self._execute_one(index, raw))

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(f"Batch finished: {len(outcomes) - failed} ok, {failed} failed")

        if self.save_after_write and any(self._changed_document(o) for o in outcomes):
            try:
                await self.document.request_save()
            except Exception as e:
                logger.error(f"Save request failed: {e}", exc_info=True)

        if self.audit_trail is not None:
            try:
                await self.audit_trail.record_batch(outcomes)
            except Exception as e:
                logger.error(f"Failed to record batch in audit trail: {e}", exc_info=True)

        return outcomes

    async def _execute_one(self, index: int, raw: Any) -> ExecutionOutcome:
        try:
            action = validate_action(raw)
        except ActionValidationError as e:
            logger.warning(f"Action {index + 1} rejected: {e}")
            return ExecutionOutcome(
                index=index,
                action=raw if isinstance(raw, dict) else {"value": repr(raw)},
                ok=False,
                error=ErrorInfo(category=ErrorCategory.VALIDATION, message=str(e)),
            )

        logger.info(f"Dispatching action {index + 1}: {action.summary()}")
        try:
            effect = await self._handlers[action.kind](action)
        except CustomHandlerError as e:
            return self._failed(index, action, ErrorCategory.HANDLER, e)
        except Exception as e:
            return self._failed(index, action, ErrorCategory.COLLABORATOR, e)

        logger.info(f"Action {index + 1} ({action.kind.value}) done: {effect}")
        return ExecutionOutcome(index=index, action=action, ok=True, effect=effect)

    @staticmethod
    def _failed(index: int, action: Action, category: ErrorCategory, error: Exception) -> ExecutionOutcome:
        logger.warning(f"Action {index + 1} ({action.kind.value}) failed: {error}")
        return ExecutionOutcome(
            index=index,
            action=action,
            ok=False,
            error=ErrorInfo(category=category, message=str(error) or type(error).__name__),
        )

    @staticmethod
    def _changed_document(outcome: ExecutionOutcome) -> bool:
        if not outcome.ok or not isinstance(outcome.action, Action):
            return False
        if outcome.action.kind not in MUTATING_KINDS:
            return False
        return (outcome.effect or {}).get("applied", True)

    # Advisory acknowledgments

    @staticmethod
    def _advisory(capability: str, note: str, **details: Any) -> dict[str, Any]:
        return {"applied": False, "capability": capability, "note": note, **details}

    @staticmethod
    def _write_formatting_note(address: str, formatting: Optional[FormattingSpec]) -> Effect:
        """Writes only touch values; formatting attached to a write is acknowledged, not applied."""
        if formatting is None or formatting.is_empty():
            return None
        kind = ActionKind.FORMAT_RANGE if ":" in address else ActionKind.FORMAT_CELL
        return {
            "applied": False,
            "note": f"Formatting for {address} was not applied: send a {kind.value} action to format it.",
            "formatting": formatting.changes(),
        }

    # Grid handlers

    async def _write_cell(self, action: Action) -> Effect:
        payload = action.payload
        await self.document.write_cell(payload.address, payload.value)
        effect: dict[str, Any] = {"applied": True, "address": payload.address, "value": payload.value}
        formatting = self._write_formatting_note(payload.address, payload.formatting)
        if formatting is not None:
            effect["formatting"] = formatting
        return effect

    async def _write_range(self, action: Action) -> Effect:
        payload = action.payload
        target = payload.target_range
        await self.document.write_range(target, payload.values)
        effect: dict[str, Any] = {
            "applied": True,
            "address": target,
            "rows": len(payload.values),
            "columns": len(payload.values[0]),
        }
        formatting = self._write_formatting_note(target, payload.formatting)
        if formatting is not None:
            effect["formatting"] = formatting
        return effect

    async def _read_cell(self, action: Action) -> Effect:
        address = action.payload.address
        grid = await self.document.read_grid(address)
        value = grid[0][0] if grid and grid[0] else None
        return {"address": address, "value": value}

    async def _read_range(self, action: Action) -> Effect:
        address = action.payload.address
        bounds = parse_range(address)
        grid = await self.document.read_grid(address)
        return {
            "address": address,
            "values": grid,
            "summary": self.formatter.format(grid, bounds.start_row, bounds.start_col),
        }

    async def _insert_formula(self, action: Action) -> Effect:
        payload = action.payload
        await self.document.write_cell(payload.address, payload.formula)
        return {"applied": True, "address": payload.address, "formula": payload.formula}

    async def _format(self, action: Action) -> Effect:
        payload = action.payload
        if payload.formatting is None or payload.formatting.is_empty():
            return {"applied": False, "address": payload.address, "note": "No formatting changes were given."}
        changes = payload.formatting.changes()
        if not self.document.supports(FORMATTING):
            return self._advisory(
                FORMATTING,
                f"Formatting for {payload.address} was not applied: this document does not support formatting.",
                address=payload.address,
                formatting=changes,
            )
        await self.document.apply_formatting(payload.address, changes)
        return {"applied": True, "address": payload.address, "formatting": changes}

    # Worksheet handlers

    async def _create_worksheet(self, action: Action) -> Effect:
        name = action.payload.name
        if not self.document.supports(WORKSHEETS):
            return self._advisory(WORKSHEETS, f"Add a worksheet named '{name}' by hand.", worksheet=name)
        await self.document.create_worksheet(name)
        return {"applied": True, "worksheet": name}

    async def _delete_worksheet(self, action: Action) -> Effect:
        name = action.payload.name
        if not self.document.supports(WORKSHEETS):
            return self._advisory(WORKSHEETS, f"Delete the worksheet '{name}' by hand.", worksheet=name)
        await self.document.delete_worksheet(name)
        return {"applied": True, "worksheet": name}

    async def _rename_worksheet(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(WORKSHEETS):
            return self._advisory(
                WORKSHEETS,
                f"Rename the worksheet '{payload.old_name}' to '{payload.new_name}' by hand.",
                worksheet=payload.old_name,
            )
        await self.document.rename_worksheet(payload.old_name, payload.new_name)
        return {"applied": True, "worksheet": payload.new_name, "previous_name": payload.old_name}

    # Analysis handlers

    async def _create_chart(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(CHARTS):
            return self._advisory(
                CHARTS,
                f"Insert a {payload.chart_type} chart titled '{payload.title}' from "
                f"{payload.data_range} and place it at {payload.destination_range}.",
            )
        result = await self.document.create_chart(payload.model_dump(exclude_none=True))
        return {"applied": True, "data_range": payload.data_range, **(result or {})}

    async def _create_pivot_table(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(PIVOT_TABLES):
            values = ", ".join(f"{v.function} of {v.field}" for v in payload.values)
            steps = [
                f"Select {payload.source_range} and insert a pivot table at {payload.destination_range}",
            ]
            if payload.rows:
                steps.append(f"add {', '.join(payload.rows)} to Rows")
            if payload.columns:
                steps.append(f"add {', '.join(payload.columns)} to Columns")
            steps.append(f"add {values} to Values")
            if payload.filters:
                steps.append(f"add {', '.join(payload.filters)} to Filters")
            return self._advisory(PIVOT_TABLES, "; ".join(steps) + ".")
        result = await self.document.create_pivot_table(payload.model_dump(exclude_none=True))
        return {"applied": True, **(result or {})}

    async def _apply_filter(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(FILTERS):
            return self._advisory(FILTERS, f"Turn on a filter for {payload.address} by hand.")
        await self.document.apply_filter(payload.address, payload.criteria)
        return {"applied": True, "address": payload.address}

    async def _apply_conditional_formatting(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(CONDITIONAL_FORMATTING):
            return self._advisory(
                CONDITIONAL_FORMATTING,
                f"Add a '{payload.rule_type}' conditional formatting rule to {payload.address} by hand.",
            )
        await self.document.apply_conditional_formatting(
            {
                "range": payload.address,
                "type": payload.rule_type,
                "criteria": payload.criteria,
                "formatting": payload.formatting.changes(),
            }
        )
        return {"applied": True, "address": payload.address, "rule_type": payload.rule_type}

    async def _apply_data_validation(self, action: Action) -> Effect:
        payload = action.payload
        if not self.document.supports(DATA_VALIDATION):
            return self._advisory(
                DATA_VALIDATION, f"Add a data validation rule to {payload.address} by hand."
            )
        await self.document.apply_data_validation(payload.address, payload.validation)
        return {"applied": True, "address": payload.address}

    async def _custom(self, action: Action) -> Effect:
        payload = action.payload
        handler = self._custom_handlers.get(payload.name)
        if handler is None:
            raise CustomHandlerError(f"No handler registered for custom action '{payload.name}'")
        try:
            effect = await handler(self.document, dict(payload.parameters))
        except Exception as e:
            raise CustomHandlerError(f"Custom action '{payload.name}' failed: {e}") from e
        return {"applied": True, "name": payload.name, **(effect or {})}

    # Reporting

    @staticmethod
    def summarize(outcomes: list[ExecutionOutcome]) -> str:
        """
        Human-readable report of a batch, one line per action.

        Advisory acknowledgments include their note so the limitation is
        visible to the user.
        """
        if not outcomes:
            return "No actions were executed."
        lines = []
        for outcome in outcomes:
            label = (
                outcome.action.summary()
                if isinstance(outcome.action, Action)
                else outcome.kind_label
            )
            prefix = f"{outcome.index + 1}. {label}"
            effect = outcome.effect or {}
            if not outcome.ok:
                lines.append(f"{prefix}: failed ({outcome.error.message})")
            elif effect.get("applied") is False and effect.get("note"):
                lines.append(f"{prefix}: not applied. {effect['note']}")
            elif "summary" in effect:
                lines.append(f"{prefix}:\n{effect['summary']}")
            elif "value" in effect and "applied" not in effect:
                lines.append(f"{prefix}: {effect['value']!r}")
            else:
                lines.append(f"{prefix}: done")
            formatting = effect.get("formatting")
            if isinstance(formatting, dict) and formatting.get("note"):
                lines.append(f"   {formatting['note']}")
        return "\n".join(lines)


__all__ = ["ActionExecutor", "CustomHandler", "CustomHandlerError"]
