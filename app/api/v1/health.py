from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.session import get_db

router = APIRouter()


@router.get("/health")
def health(request: Request, db: Session = Depends(get_db)):
    rid = getattr(request.state, "request_id", None)
    db.execute(text("SELECT 1"))
    return {"status": "ok", "database": "ok", "request_id": rid}
