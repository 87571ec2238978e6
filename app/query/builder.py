"""
Query construction for J-REIT building and transaction searches.

``QueryContext`` is the single piece of state shared by the filter and sort
compilers while one statement is being composed. Joins are attached through
``ensure_join`` which records a tag per attached relation, so asking for the
same view twice (a filter and a sort on the same derived column, say) emits
one join.

``JReitQueryBuilder`` produces the base statements and runs the filter
compiler over them. Nothing here executes SQL.
"""

from typing import Callable, Dict, List, Optional, Set

from sqlalchemy import select, and_
from sqlalchemy.sql import Select, Subquery
from sqlalchemy.sql.elements import ColumnElement

from app.jreit.models import (
    Building,
    Corporation,
    Transaction,
    Appraisal,
    City,
    Ward,
    MizuhoIdMapping,
)
from . import views
from .filters import compile_building_filters, compile_transaction_filters
from .schemas import (
    BuildingIdWithCorporationId,
    JReitBuildingSearchCondition,
    TransactionSearchCondition,
)

# Tags of relations a statement can have attached
FIRST_ACQUISITIONS = "first_acquisitions"
LATEST_TRANSACTIONS = "latest_transactions"
TRANSFERRED_TRANSACTIONS = "transferred_transactions"
LATEST_CAP_RATE_HISTORIES = "latest_cap_rate_histories"
LATEST_APPRAISAL_HISTORIES = "latest_appraisal_histories"
MIZUHO_ID_MAPPINGS = "mizuho_id_mappings"
APPRAISALS = "appraisals"
CITIES = "cities"
WARDS = "wards"

VIEW_FACTORIES: Dict[str, Callable[[], Subquery]] = {
    FIRST_ACQUISITIONS: views.first_acquisitions,
    LATEST_TRANSACTIONS: views.latest_transactions,
    TRANSFERRED_TRANSACTIONS: views.transferred_transactions,
    LATEST_CAP_RATE_HISTORIES: views.latest_cap_rate_histories,
    LATEST_APPRAISAL_HISTORIES: views.latest_appraisal_histories,
}


class QueryContext:
    """A statement under construction plus the set of relations already joined."""

    def __init__(self, stmt: Select):
        self.stmt = stmt
        self._attached: Set[str] = set()
        self._views: Dict[str, Subquery] = {}

    @property
    def attached(self) -> Set[str]:
        return set(self._attached)

    def is_attached(self, tag: str) -> bool:
        return tag in self._attached

    def view(self, tag: str) -> Subquery:
        """Return this query's instance of a derived view, building it on first use."""
        if tag not in self._views:
            self._views[tag] = VIEW_FACTORIES[tag]()
        return self._views[tag]

    def ensure_join(self, tag: str, target, onclause, isouter: bool = False) -> bool:
        """Join ``target`` unless ``tag`` is already attached. Returns True if a join was added."""
        if tag in self._attached:
            return False
        self.stmt = self.stmt.join(target, onclause, isouter=isouter)
        self._attached.add(tag)
        return True

    def where(self, conditions: List[ColumnElement]) -> None:
        if conditions:
            self.stmt = self.stmt.where(and_(*conditions))

    def add_columns(self, *columns) -> None:
        self.stmt = self.stmt.add_columns(*columns)

    # ===== RELATION JOINS =====

    def _join_pair_view(self, tag: str, isouter: bool) -> Subquery:
        view = self.view(tag)
        self.ensure_join(
            tag,
            view,
            and_(
                view.c.j_reit_building_id == Building.id,
                view.c.j_reit_corporation_id == Corporation.id,
            ),
            isouter=isouter,
        )
        return view

    def join_first_acquisitions(self, isouter: bool = False) -> Subquery:
        return self._join_pair_view(FIRST_ACQUISITIONS, isouter)

    def join_latest_transactions(self, isouter: bool = False) -> Subquery:
        return self._join_pair_view(LATEST_TRANSACTIONS, isouter)

    def join_transferred_transactions(self) -> Subquery:
        # Always outer: held buildings are the rows without a match
        return self._join_pair_view(TRANSFERRED_TRANSACTIONS, isouter=True)

    def join_mizuho_id_mappings(self, isouter: bool = False) -> None:
        self.ensure_join(
            MIZUHO_ID_MAPPINGS,
            MizuhoIdMapping,
            and_(
                MizuhoIdMapping.j_reit_building_id == Building.id,
                MizuhoIdMapping.j_reit_corporation_id == Corporation.id,
            ),
            isouter=isouter,
        )

    def _join_history_view(self, tag: str, isouter: bool) -> Subquery:
        self.join_mizuho_id_mappings(isouter=isouter)
        view = self.view(tag)
        self.ensure_join(
            tag,
            view,
            view.c.j_reit_mizuho_building_id == MizuhoIdMapping.j_reit_mizuho_building_id,
            isouter=isouter,
        )
        return view

    def join_latest_cap_rate_histories(self, isouter: bool = False) -> Subquery:
        return self._join_history_view(LATEST_CAP_RATE_HISTORIES, isouter)

    def join_latest_appraisal_histories(self, isouter: bool = False) -> Subquery:
        return self._join_history_view(LATEST_APPRAISAL_HISTORIES, isouter)

    def join_appraisals(self) -> None:
        """Left join the appraisal referenced by each transaction."""
        self.ensure_join(APPRAISALS, Appraisal, Transaction.j_reit_appraisal_id == Appraisal.id, isouter=True)

    def join_location(self) -> None:
        """Left join city and ward so buildings without a city id stay in the relation."""
        self.ensure_join(CITIES, City, Building.city_id == City.id, isouter=True)
        self.ensure_join(WARDS, Ward, City.ward_id == Ward.id, isouter=True)


class JReitQueryBuilder:
    """
    Builds unsorted, unpaginated statements for the J-REIT searches.

    Building statements select DISTINCT (building id, corporation id) because a
    pair has one row per transaction in the base join. Transaction statements
    select DISTINCT transaction ids, one row per transaction.
    """

    def building_pairs_query(self) -> QueryContext:
        stmt = (
            select(
                Building.id.label("j_reit_building_id"),
                Corporation.id.label("j_reit_corporation_id"),
            )
            .select_from(Building)
            .join(Transaction, Transaction.j_reit_building_id == Building.id)
            .join(Corporation, Corporation.id == Transaction.j_reit_corporation_id)
            .distinct()
        )
        return QueryContext(stmt)

    def transactions_query(self) -> QueryContext:
        stmt = (
            select(Transaction.id.label("transaction_id"))
            .select_from(Transaction)
            .join(Building, Building.id == Transaction.j_reit_building_id)
            .join(Corporation, Corporation.id == Transaction.j_reit_corporation_id)
            .distinct()
        )
        return QueryContext(stmt)

    def build_building_search(
        self,
        condition: Optional[JReitBuildingSearchCondition] = None,
        ids: Optional[List[str]] = None,
    ) -> QueryContext:
        """Base pair query restricted to ``ids`` (when given) and filtered by ``condition``."""
        ctx = self.building_pairs_query()
        if ids is not None:
            # An explicit empty id list selects nothing
            ctx.where([Building.id.in_(ids)])
        if condition is not None:
            compile_building_filters(ctx, condition)
        return ctx

    def build_building_pairs(self, pairs: List[BuildingIdWithCorporationId]) -> QueryContext:
        ctx = self.building_pairs_query()
        combined_ids = [pair.combined_transaction_id for pair in pairs]
        ctx.where([Transaction.combined_transaction_id.in_(combined_ids)])
        return ctx

    def build_transaction_search(self, condition: Optional[TransactionSearchCondition] = None) -> QueryContext:
        ctx = self.transactions_query()
        compile_transaction_filters(ctx, condition or TransactionSearchCondition())
        return ctx
