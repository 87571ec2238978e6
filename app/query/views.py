"""
Derived views over transactions and Mizuho histories.

Every function returns a fresh named subquery and has no side effects. The
builder context caches one instance per view so a query joins each view at
most once. "First" and "latest" rows are chosen with ``ROW_NUMBER()`` so each
key yields exactly one row; equal dates fall back to the record id.
"""

from sqlalchemy import select, func
from sqlalchemy.sql import Subquery

from app.jreit.models import (
    Transaction,
    Appraisal,
    CapRateHistory,
    AppraisalHistory,
    TransactionCategory,
)

ROW_NUMBER = "row_number"


def first_acquisitions() -> Subquery:
    """Earliest initial acquisition per (building, corporation), with its appraisal."""
    ranked = (
        select(
            Transaction.j_reit_building_id,
            Transaction.j_reit_corporation_id,
            Transaction.transaction_date,
            Transaction.transaction_price,
            Transaction.leasable_area,
            Appraisal.cap_rate,
            Appraisal.appraisal_price,
            func.row_number()
            .over(
                partition_by=(Transaction.j_reit_building_id, Transaction.j_reit_corporation_id),
                order_by=(
                    Transaction.transaction_date.is_(None),
                    Transaction.transaction_date.asc(),
                    Transaction.id.asc(),
                ),
            )
            .label(ROW_NUMBER),
        )
        .select_from(Transaction)
        .outerjoin(Appraisal, Transaction.j_reit_appraisal_id == Appraisal.id)
        .where(Transaction.transaction_category == TransactionCategory.INITIAL_ACQUISITION)
        .subquery("ranked_initial_acquisitions")
    )
    return (
        select(
            ranked.c.j_reit_building_id,
            ranked.c.j_reit_corporation_id,
            ranked.c.transaction_date,
            ranked.c.transaction_price,
            ranked.c.leasable_area,
            ranked.c.cap_rate,
            ranked.c.appraisal_price,
        )
        .where(ranked.c[ROW_NUMBER] == 1)
        .subquery("first_acquisitions")
    )


def latest_transactions() -> Subquery:
    """Most recent transaction per (building, corporation)."""
    ranked = select(
        Transaction.j_reit_building_id,
        Transaction.j_reit_corporation_id,
        Transaction.transaction_date,
        Transaction.leasable_area,
        Transaction.total_leasable_area,
        func.row_number()
        .over(
            partition_by=(Transaction.j_reit_building_id, Transaction.j_reit_corporation_id),
            order_by=(
                Transaction.transaction_date.is_(None),
                Transaction.transaction_date.desc(),
                Transaction.id.desc(),
            ),
        )
        .label(ROW_NUMBER),
    ).subquery("ranked_transactions")
    return (
        select(
            ranked.c.j_reit_building_id,
            ranked.c.j_reit_corporation_id,
            ranked.c.transaction_date,
            ranked.c.leasable_area,
            ranked.c.total_leasable_area,
        )
        .where(ranked.c[ROW_NUMBER] == 1)
        .subquery("latest_transactions")
    )


def transferred_transactions() -> Subquery:
    """Full transfers only. A partial transfer leaves the building held."""
    return (
        select(
            Transaction.j_reit_building_id,
            Transaction.j_reit_corporation_id,
            Transaction.transaction_date,
        )
        .where(Transaction.transaction_category == TransactionCategory.FULL_TRANSFER)
        .subquery("transferred_transactions")
    )


def _latest_history(model, date_column: str, value_column: str, name: str) -> Subquery:
    history_date = getattr(model, date_column)
    ranked = select(
        model.j_reit_mizuho_building_id,
        getattr(model, value_column),
        history_date,
        func.row_number()
        .over(
            partition_by=model.j_reit_mizuho_building_id,
            order_by=(history_date.desc(), model.id.desc()),
        )
        .label(ROW_NUMBER),
    ).subquery(f"ranked_{name}")
    return (
        select(
            ranked.c.j_reit_mizuho_building_id,
            ranked.c[value_column],
            ranked.c[date_column],
        )
        .where(ranked.c[ROW_NUMBER] == 1)
        .subquery(name)
    )


def latest_cap_rate_histories() -> Subquery:
    """Cap rate at the latest closing date per Mizuho building."""
    return _latest_history(CapRateHistory, "closing_date", "cap_rate", "latest_cap_rate_histories")


def latest_appraisal_histories() -> Subquery:
    """Appraisal price at the latest appraisal date per Mizuho building."""
    return _latest_history(
        AppraisalHistory, "appraisal_date", "appraisal_price", "latest_appraisal_histories"
    )
