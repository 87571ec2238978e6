# app/query/engine.py
"""Query engine running the composed J-REIT searches against the store."""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from app.core.exceptions import BackendUnavailableError, InvalidSearchConditionError
from .builder import JReitQueryBuilder, QueryContext
from .schemas import (
    BuildingIdWithCorporationId,
    JReitBuildingSearchCondition,
    JReitBuildingSortKey,
    JReitTransactionSortKey,
    PaginateCondition,
    SearchResult,
    SortCondition,
    SortOrder,
    TransactionSearchCondition,
    TransactionSearchResult,
)
from .sorting import apply_building_sort, apply_pagination, apply_transaction_sort

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTION_SORT = SortCondition(JReitTransactionSortKey.TRANSACTION_DATE, SortOrder.DESC)


class JReitQueryEngine:
    """
    Executes building and transaction searches.

    Each search runs two independent reads: a count over the filtered relation
    and the sorted, paginated id projection. Store errors surface as
    ``BackendUnavailableError`` and no partial result is returned.
    """

    def __init__(self, db: Session, builder: Optional[JReitQueryBuilder] = None):
        self.db = db
        self.builder = builder or JReitQueryBuilder()

    # ===== BUILDINGS =====

    def search_buildings(
        self,
        condition: Optional[JReitBuildingSearchCondition] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
        ids: Optional[List[str]] = None,
    ) -> SearchResult:
        """Count and page the (building, corporation) pairs matching ``condition``."""
        self._check_building_sort(sort)
        ctx = self.builder.build_building_search(condition, ids)
        total_count = self._count(ctx.stmt)
        pairs = self._fetch_pairs(ctx, sort, pagination)
        return SearchResult(total_count=total_count, pairs=pairs)

    def list_buildings(
        self,
        ids: Optional[List[str]] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> List[BuildingIdWithCorporationId]:
        """Ordered pairs for an explicit building id set (all buildings when ``ids`` is None)."""
        self._check_building_sort(sort)
        ctx = self.builder.build_building_search(None, ids)
        return self._fetch_pairs(ctx, sort, pagination)

    def list_building_pairs(
        self,
        pairs: List[BuildingIdWithCorporationId],
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> List[BuildingIdWithCorporationId]:
        """Ordered subset of ``pairs`` that exist in the store."""
        self._check_building_sort(sort)
        ctx = self.builder.build_building_pairs(pairs)
        return self._fetch_pairs(ctx, sort, pagination)

    # ===== TRANSACTIONS =====

    def search_transactions(
        self,
        condition: Optional[TransactionSearchCondition] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> TransactionSearchResult:
        """Count and page transaction ids, newest transaction date first by default."""
        sort = sort or DEFAULT_TRANSACTION_SORT
        if not isinstance(sort.key, JReitTransactionSortKey):
            raise InvalidSearchConditionError(f"{sort.key} is not a transaction sort key")

        ctx = self.builder.build_transaction_search(condition)
        total_count = self._count(ctx.stmt)
        apply_transaction_sort(ctx, sort)
        stmt = apply_pagination(ctx.stmt, pagination)
        rows = self._execute(stmt)
        return TransactionSearchResult(
            total_count=total_count,
            transaction_ids=[row.transaction_id for row in rows],
        )

    # ===== EXECUTION =====

    def _check_building_sort(self, sort: Optional[SortCondition]) -> None:
        if sort is not None and not isinstance(sort.key, JReitBuildingSortKey):
            raise InvalidSearchConditionError(f"{sort.key} is not a building sort key")

    def _fetch_pairs(
        self,
        ctx: QueryContext,
        sort: Optional[SortCondition],
        pagination: Optional[PaginateCondition],
    ) -> List[BuildingIdWithCorporationId]:
        apply_building_sort(ctx, sort)
        stmt = apply_pagination(ctx.stmt, pagination)
        rows = self._execute(stmt)
        return [
            BuildingIdWithCorporationId(
                j_reit_building_id=row.j_reit_building_id,
                j_reit_corporation_id=row.j_reit_corporation_id,
            )
            for row in rows
        ]

    def _count(self, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery("matches"))
        try:
            return self.db.execute(count_stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.exception("Count query failed")
            raise BackendUnavailableError("J-REIT store is unavailable") from e

    def _execute(self, stmt: Select):
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Executing J-REIT query: %s", self._compile_query_to_sql(stmt))
        try:
            return self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.exception("J-REIT query failed")
            raise BackendUnavailableError("J-REIT store is unavailable") from e

    def _compile_query_to_sql(self, stmt: Select) -> str:
        """Compile a statement to SQL text for the bound dialect."""
        return str(stmt.compile(dialect=self.db.get_bind().dialect))
