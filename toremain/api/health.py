"""Health check endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from toremain.db.database import get_db

router = APIRouter()


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)) -> dict[str, str]:
    """Return application, database and upstream client status."""
    state = request.app.state
    blockchain = getattr(state, "blockchain_client", None)
    ai = getattr(state, "ai_client", None)
    clients = {
        "blockchain": blockchain.name if blockchain is not None else "none",
        "ai": ai.name if ai is not None else "none",
    }
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", **clients}
    except Exception:
        return {"status": "error", "database": "disconnected", **clients}
