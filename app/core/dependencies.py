"""Shared FastAPI dependencies."""

from typing import Annotated, Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.core.database import get_db, get_jreit_db
from app.query.schemas import UserRoles

# Core database dependencies
SessionDep = Annotated[Session, Depends(get_db)]
JReitSessionDep = Annotated[Session, Depends(get_jreit_db)]


def get_user_roles(x_user_roles: Optional[str] = Header(default=None)) -> UserRoles:
    """Read the caller's roles from the comma separated X-User-Roles header."""
    return UserRoles.from_names((x_user_roles or "").split(","))


RolesDep = Annotated[UserRoles, Depends(get_user_roles)]
