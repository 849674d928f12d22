"""
Shared request dependencies.

Identity is not established here: an upstream gateway
authenticates the caller and forwards who they are in the
X-Actor header. The ledger only records it.
"""

from fastapi import Header, HTTPException

from ledger_engine.clock import Clock, SystemClock


def get_actor(x_actor: str | None = Header(default=None)) -> str:
    """Identity of the caller, required for every ledger operation."""
    if not x_actor or not x_actor.strip():
        raise HTTPException(status_code=401, detail="X-Actor header is required")
    return x_actor.strip()


def get_clock() -> Clock:
    return SystemClock()
