"""
FastAPI dependencies.

Routers never build a ledger themselves. They declare

    ledger: Ledger = Depends(get_ledger)

and receive the instance the lifespan in main.py composed at startup (the engine
wrapped in its logging decorator). Tests swap it out through
app.dependency_overrides[get_ledger], the same way they would replace any
other dependency.
"""

from fastapi import Request

from ledger.services.ledger_service import Ledger


def get_ledger(request: Request) -> Ledger:
    """Return the ledger stored on the application state."""
    return request.app.state.ledger
