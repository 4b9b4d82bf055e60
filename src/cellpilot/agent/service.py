"""Caller-facing entry points combining resolution and execution."""

import logging
from typing import Any, Optional, Union

from ..audit import AuditTrail
from ..config import Settings, settings as default_settings
from ..executor import ActionExecutor
from ..intent import ActionBatch, IntentResolver, LocalResponse
from ..output import OutputFormatter
from ..protocol import Action, ExecutionOutcome, ResponseEnvelope
from ..sheets import DocumentPort, InMemoryDocument
from .backend import ReasoningBackend, create_backend

logger = logging.getLogger(__name__)


class SheetAgent:
    """
    Answers free-text commands against one document.

    Requests are handled one at a time by the caller; the agent holds no
    per-request state between calls.
    """

    def __init__(
        self,
        document: DocumentPort,
        resolver: Optional[IntentResolver] = None,
        executor: Optional[ActionExecutor] = None,
        backend: Optional[ReasoningBackend] = None,
    ):
        """
        Initialize the agent.

        Args:
            document: The document all reads and actions target
            resolver: Intent resolver (built over ``document`` if not provided)
            executor: Action executor (built over ``document`` if not provided)
            backend: Optional reasoning backend for unrecognized requests
        """
        self.document = document
        self.resolver = resolver or IntentResolver(document)
        self.executor = executor or ActionExecutor(document)
        self.backend = backend

    @property
    def audit_trail(self) -> Optional[AuditTrail]:
        return self.executor.audit_trail

    async def initialize(self):
        """Start the document's background work and open the audit trail."""
        await self.document.start()
        if self.audit_trail is not None:
            await self.audit_trail.initialize()
        logger.info(f"SheetAgent ready on {type(self.document).__name__}")

    async def shutdown(self):
        """Flush and close owned resources."""
        await self.document.close()
        if self.audit_trail is not None:
            await self.audit_trail.close()

    async def resolve_and_respond(self, text: str) -> ResponseEnvelope:
        """
        Resolve ``text`` and, when it yields actions, execute them.

        Reads are answered locally and never reach the backend. Unrecognized
        requests go to the reasoning backend when one is configured, otherwise
        the help message is returned with ``success=False``.
        """
        resolution = await self.resolver.resolve(text)

        if isinstance(resolution, LocalResponse):
            return resolution.to_envelope()
        if isinstance(resolution, ActionBatch):
            outcomes = await self.execute_all(resolution.actions)
            return self._envelope(resolution.message, outcomes)

        if self.backend is None:
            return resolution.to_envelope()

        try:
            envelope = await self.backend.respond(text)
        except Exception as e:
            logger.error(f"Reasoning backend failed: {e}", exc_info=True)
            return ResponseEnvelope.failed(f"The reasoning backend failed: {e}", [str(e)])
        return await self.execute_envelope(envelope)

    async def execute_all(self, actions: list[Union[Action, dict[str, Any]]]) -> list[ExecutionOutcome]:
        """Execute actions without resolving any text."""
        return await self.executor.execute_all(actions)

    async def execute_envelope(self, envelope: Union[ResponseEnvelope, dict[str, Any]]) -> ResponseEnvelope:
        """
        Execute the actions of a backend-shaped envelope.

        Args:
            envelope: ``{"message": ..., "actions": [...]}`` or a ResponseEnvelope

        Returns:
            ResponseEnvelope carrying the backend's message and the outcomes
        """
        if isinstance(envelope, ResponseEnvelope):
            message, actions = envelope.message, list(envelope.actions)
        elif isinstance(envelope, dict):
            message = str(envelope.get("message") or "")
            actions = envelope.get("actions") or []
        else:
            return ResponseEnvelope.failed(
                "Invalid response envelope",
                [f"Envelope must be an object, got {type(envelope).__name__}"],
            )

        if not isinstance(actions, list):
            return ResponseEnvelope.failed(
                "Invalid response envelope", ["'actions' must be a list"]
            )
        if not actions:
            return ResponseEnvelope.succeeded(message)

        outcomes = await self.execute_all(actions)
        return self._envelope(message, outcomes)

    def _envelope(self, message: str, outcomes: list[ExecutionOutcome]) -> ResponseEnvelope:
        failed = sum(1 for o in outcomes if not o.ok)
        if failed:
            message = f"{failed} of {len(outcomes)} action(s) failed. {message}".strip()
        return ResponseEnvelope.from_outcomes(
            message, outcomes, body=self.executor.summarize(outcomes)
        )


def create_document(config: Optional[Settings] = None) -> DocumentPort:
    """Build the document named by ``DOCUMENT_BACKEND``."""
    config = config or default_settings
    backend = config.document_backend.strip().lower()

    if backend == "memory":
        path = config.workbook_snapshot_path
        if path is not None and path.exists():
            logger.info(f"Loading workbook snapshot from {path}")
            return InMemoryDocument.from_snapshot(path, config.autosave_interval_seconds)
        return InMemoryDocument(
            worksheet_name=config.worksheet_name,
            selection=config.default_selection,
            snapshot_path=path,
            autosave_interval=config.autosave_interval_seconds,
        )

    if backend == "google":
        if not config.spreadsheet_id:
            raise ValueError("SPREADSHEET_ID is required when DOCUMENT_BACKEND is 'google'")
        # Imported lazily so the Google client libraries load only when used
        from ..sheets.client import GoogleSheetsDocument

        return GoogleSheetsDocument(
            spreadsheet_id=config.spreadsheet_id,
            worksheet_name=config.worksheet_name,
            selection=config.default_selection,
            credentials_path=config.google_credentials_path,
            token_path=config.google_token_path,
        )

    raise ValueError(f"Unknown document backend: '{config.document_backend}'")


def create_agent(config: Optional[Settings] = None, document: Optional[DocumentPort] = None) -> SheetAgent:
    """Wire a SheetAgent from configuration."""
    config = config or default_settings
    document = document or create_document(config)
    formatter = OutputFormatter(max_width=config.output_max_line_width)
    audit_trail = AuditTrail(config.database_path) if config.enable_audit_log else None
    return SheetAgent(
        document=document,
        resolver=IntentResolver(document, formatter=formatter),
        executor=ActionExecutor(
            document,
            formatter=formatter,
            audit_trail=audit_trail,
            save_after_write=config.save_after_write,
        ),
        backend=create_backend(config.reasoning_backend),
    )
