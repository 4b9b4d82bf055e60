"""API routes for CellPilot."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from ..agent import SheetAgent

router = APIRouter()


def get_agent(request: Request) -> SheetAgent:
    """Dependency returning the agent owned by the application."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail="Agent is not initialized")
    return agent


class ChatRequest(BaseModel):
    """Request model for chat endpoint."""

    message: str = Field(min_length=1)


class ExecuteActionsRequest(BaseModel):
    """Actions in wire shape; each one is validated individually."""

    actions: list[Any]


class EnvelopeRequest(BaseModel):
    """A response envelope produced by a reasoning backend."""

    message: str = ""
    actions: list[Any] = Field(default_factory=list)


# Chat endpoints


@router.post("/chat")
async def chat(request: ChatRequest, agent: SheetAgent = Depends(get_agent)):
    """Resolve a free-text command and execute any resulting actions."""
    envelope = await agent.resolve_and_respond(request.message)
    return envelope.to_wire()


# Action endpoints


@router.post("/actions/execute")
async def execute_actions(request: ExecuteActionsRequest, agent: SheetAgent = Depends(get_agent)):
    """Execute a batch of actions without resolving any text."""
    return (await agent.execute_envelope({"message": "Executed actions", "actions": request.actions})).to_wire()


@router.post("/envelopes/execute")
async def execute_envelope(request: EnvelopeRequest, agent: SheetAgent = Depends(get_agent)):
    """Execute the actions of a backend-shaped envelope."""
    envelope = await agent.execute_envelope(request.model_dump())
    return envelope.to_wire()


# Document endpoints


@router.get("/worksheet")
async def read_worksheet(
    address: Optional[str] = None,
    selection: bool = False,
    agent: SheetAgent = Depends(get_agent),
):
    """Formatted contents of the used range, an explicit range, or the selection."""
    response = await agent.resolver.read(address, use_selection=selection)
    if not response.success:
        raise HTTPException(status_code=400, detail=response.message)
    return {
        "message": response.message,
        "body": response.body,
        "worksheet": response.data["worksheet"],
        "range": response.data["range"],
    }


# Audit trail


@router.get("/audit")
async def list_audit_entries(limit: int = 50, agent: SheetAgent = Depends(get_agent)):
    """List the most recent executed actions."""
    if agent.audit_trail is None:
        raise HTTPException(status_code=404, detail="Audit trail is disabled")
    entries = await agent.audit_trail.recent(limit)
    return {
        "count": len(entries),
        "entries": [entry.model_dump(mode="json") for entry in entries],
    }


# Health check


@router.get("/health")
async def health_check(agent: SheetAgent = Depends(get_agent)):
    """Health check endpoint with diagnostics."""
    return {
        "status": "ok",
        "service": "cellpilot",
        "config": {
            "document": type(agent.document).__name__,
            "capabilities": sorted(agent.document.capabilities),
            "reasoning_backend": type(agent.backend).__name__ if agent.backend else None,
            "audit_log_enabled": agent.audit_trail is not None,
        },
    }
