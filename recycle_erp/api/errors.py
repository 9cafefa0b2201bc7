"""
Error mapping for the API layer.

Endpoints catch ValueError (every ERPError is one), roll the session
back and answer with the error's own HTTP status and code.
"""

from fastapi import HTTPException
from sqlalchemy.orm import Session

from recycle_erp.exceptions import ERPError


def to_http_exception(db: Session, e: ValueError) -> HTTPException:
    db.rollback()
    if isinstance(e, ERPError):
        return HTTPException(
            status_code=e.http_status,
            detail={"code": e.code, "message": str(e)},
        )
    return HTTPException(
        status_code=400,
        detail={"code": "INVALID_REQUEST", "message": str(e)},
    )
