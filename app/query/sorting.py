"""
Sort and pagination compiler.

The requested key is resolved to the relation that owns it, joining that
relation with a LEFT join when no filter has attached it yet. The sort value
and a null flag are added to the projection so ORDER BY only references
selected columns, which keeps DISTINCT queries valid. Nulls always sort last,
whatever the direction, and fixed id keys are appended so equal values come
back in a stable order.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import case
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from app.core.exceptions import InvalidSearchConditionError
from app.jreit.models import Building, Corporation, Transaction, Appraisal
from .schemas import (
    BuildingColumn,
    CorporationColumn,
    FirstAcquisitionColumn,
    LatestAppraisalColumn,
    LatestCapRateColumn,
    LatestTransactionColumn,
    PaginateCondition,
    PlainTransactionColumn,
    SortColumn,
    SortCondition,
    SortOrder,
)

if TYPE_CHECKING:
    from .builder import QueryContext

# Corporation name would collide with the building name, so it always travels under this alias
CORPORATION_NAME_ALIAS = "j_reit_corporations_name"
SORT_VALUE_ALIAS = "sort_value"


def _model_column(model, column: str):
    try:
        return getattr(model, column)
    except AttributeError:
        raise InvalidSearchConditionError(f"Unknown sort column {model.__tablename__}.{column}")


def resolve_sort_expression(ctx: "QueryContext", sort_column: SortColumn) -> ColumnElement:
    """Column expression for ``sort_column``, attaching the relation it lives in."""
    if isinstance(sort_column, BuildingColumn):
        return _model_column(Building, sort_column.column)
    if isinstance(sort_column, CorporationColumn):
        return _model_column(Corporation, sort_column.column)
    if isinstance(sort_column, FirstAcquisitionColumn):
        return ctx.join_first_acquisitions(isouter=True).c[sort_column.column]
    if isinstance(sort_column, LatestTransactionColumn):
        return ctx.join_latest_transactions(isouter=True).c[sort_column.column]
    if isinstance(sort_column, LatestCapRateColumn):
        return ctx.join_latest_cap_rate_histories(isouter=True).c[sort_column.column]
    if isinstance(sort_column, LatestAppraisalColumn):
        return ctx.join_latest_appraisal_histories(isouter=True).c[sort_column.column]
    if isinstance(sort_column, PlainTransactionColumn):
        if sort_column.on_appraisal:
            ctx.join_appraisals()
            return _model_column(Appraisal, sort_column.column)
        return _model_column(Transaction, sort_column.column)
    raise InvalidSearchConditionError(f"Unsupported sort column: {sort_column!r}")


def _sort_alias(sort_column: SortColumn) -> str:
    if isinstance(sort_column, CorporationColumn) and sort_column.column == "name":
        return CORPORATION_NAME_ALIAS
    return SORT_VALUE_ALIAS


def _apply_sort(ctx: "QueryContext", sort: Optional[SortCondition], tie_breakers: List[ColumnElement]) -> None:
    order_by = []
    if sort is not None:
        sort_column = sort.sort_column()
        value = resolve_sort_expression(ctx, sort_column).label(_sort_alias(sort_column))
        is_null = case((value.element.is_(None), 1), else_=0).label(f"{value.name}_is_null")
        ctx.add_columns(value, is_null)
        order_by.append(is_null.asc())
        order_by.append(value.desc() if sort.order == SortOrder.DESC else value.asc())
    order_by.extend(column.asc() for column in tie_breakers)
    ctx.stmt = ctx.stmt.order_by(*order_by)


def apply_building_sort(ctx: "QueryContext", sort: Optional[SortCondition]) -> None:
    """Order building pairs by ``sort`` then building id and corporation id."""
    _apply_sort(ctx, sort, [Building.id, Corporation.id])


def apply_transaction_sort(ctx: "QueryContext", sort: Optional[SortCondition]) -> None:
    """Order transactions by ``sort`` then transaction id."""
    _apply_sort(ctx, sort, [Transaction.id])


def apply_pagination(stmt: Select, pagination: Optional[PaginateCondition]) -> Select:
    if pagination is None:
        return stmt
    if pagination.offset is not None:
        if pagination.offset < 0:
            raise InvalidSearchConditionError("offset must not be negative")
        stmt = stmt.offset(pagination.offset)
    if pagination.limit is not None:
        if pagination.limit < 0:
            raise InvalidSearchConditionError("limit must not be negative")
        stmt = stmt.limit(pagination.limit)
    return stmt
