"""Building and saving request log rows."""

import getpass
import json
import logging
import os
import platform
import socket
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import SessionLocal
from app.logging.models import Log

load_dotenv()

logger = logging.getLogger(__name__)

APPLICATION_ID = os.environ.get("APPLICATION_ID", "Unknown")

# Building search responses can carry hundreds of details
BODY_LIMIT = int(os.getenv("JREIT_LOG_BODY_LIMIT", "20000"))


def _username() -> str:
    try:
        return os.environ.get("USER") or os.environ.get("USERNAME") or getpass.getuser() or "unknown_user"
    except Exception:
        return "unknown_user"


def _hostname() -> str:
    try:
        return socket.gethostname() or platform.node() or "unknown_host"
    except Exception:
        return "unknown_host"


USERNAME = _username()
HOSTNAME = _hostname()


def truncate_body(body: Optional[str]) -> Optional[str]:
    if body is None or len(body) <= BODY_LIMIT:
        return body
    return f"{body[:BODY_LIMIT]}... [{len(body) - BODY_LIMIT} characters truncated]"


def build_log(
    request: Request,
    status_code: int,
    request_body: Optional[str],
    response_body: Optional[str],
    processing_time: Optional[float] = None,
) -> Log:
    return Log(
        timestamp=datetime.now(),
        method=request.method,
        path=str(request.url.path),
        status_code=status_code,
        client_ip=request.client.host if request.client else None,
        user_roles=request.headers.get("x-user-roles"),
        request_headers=json.dumps(dict(request.headers)),
        request_body=truncate_body(request_body),
        response_body=truncate_body(response_body),
        processing_time=processing_time,
        user_agent=request.headers.get("user-agent"),
        username=USERNAME,
        hostname=HOSTNAME,
        application_id=APPLICATION_ID,
    )


def save_log(log: Log) -> None:
    """Write ``log`` to the config database. A failed write is reported and dropped."""
    with SessionLocal() as session:
        try:
            session.add(log)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Could not write request log for {log.method} {log.path}: {e}")
