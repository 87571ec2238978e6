"""Generic base DAO for read-only lookups."""

import logging
from typing import Generic, TypeVar, List, Dict, Any, Type, Iterable
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select
from sqlalchemy import select
from abc import ABC
from app.core.exceptions import BackendUnavailableError

ModelType = TypeVar("ModelType")

logger = logging.getLogger(__name__)


class BaseDAO(Generic[ModelType], ABC):
    """Generic DAO for batch lookups by primary key."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def get_by_ids(self, ids: Iterable[Any]) -> Dict[Any, ModelType]:
        """Get records keyed by id. Missing ids are simply absent."""
        ids = list(dict.fromkeys(ids))
        if not ids:
            return {}
        records = self._scalars(select(self.model).where(self.model.id.in_(ids)))
        return {record.id: record for record in records}

    def get_by_id(self, id: Any):
        """Get record by ID."""
        return self.get_by_ids([id]).get(id)

    def _scalars(self, stmt: Select) -> List[Any]:
        """Execute ``stmt`` and return its first column, mapping store errors."""
        try:
            result = self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.exception("Lookup on %s failed", getattr(self.model, "__tablename__", self.model))
            raise BackendUnavailableError("J-REIT store is unavailable") from e
