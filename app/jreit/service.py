# app/jreit/service.py
"""J-REIT service: capability gate, query execution and result materialization."""

import logging
import math
from datetime import date
from typing import Dict, List, Optional

from app.core.exceptions import InvalidSearchConditionError
from app.jreit.dao import (
    AppraisalDAO,
    BuildingDAO,
    CorporationDAO,
    MizuhoDAO,
    TransactionDAO,
)
from app.jreit.models import Transaction, TransactionCategory
from app.jreit.schemas import (
    AppraisalHistoryRead,
    AppraisalRead,
    AssetTypeRead,
    CapRateHistoryRead,
    CorporationRead,
    FinancialRead,
    JReitBuildingDetail,
    JReitBuildingRead,
    JReitIdMappingRead,
    OffsetPageInfo,
    PressReleaseRead,
    SearchJReitBuildingsResult,
    SearchTransactionsResult,
    TransactionRead,
)
from app.query.engine import JReitQueryEngine
from app.query.schemas import (
    BuildingIdWithCorporationId,
    JReitBuildingSearchCondition,
    PaginateCondition,
    SortCondition,
    TransactionSearchCondition,
    UserRoles,
)

logger = logging.getLogger(__name__)

DEFAULT_TRANSACTION_OFFSET = 0
DEFAULT_TRANSACTION_LIMIT = 10


def slice_first_last(items: list, first: Optional[int] = None, last: Optional[int] = None) -> list:
    """Keep the first ``first`` or last ``last`` items. ``first`` wins when both are given."""
    if first is not None:
        return items[:first]
    if last is not None:
        return items[len(items) - last:] if last < len(items) else items
    return items


# Picks rank like the derived views in app/query/views.py.


def _earliest_first(transaction: TransactionRead):
    return (transaction.transaction_date is None, transaction.transaction_date or date.min, transaction.id)


def _of_category(transactions: List[TransactionRead], category: int) -> List[TransactionRead]:
    return [t for t in transactions if t.transaction_category.code == category]


def pick_initial_acquisition(transactions: List[TransactionRead]) -> Optional[TransactionRead]:
    """Earliest dated initial acquisition; equal dates go to the smallest id."""
    initials = _of_category(transactions, TransactionCategory.INITIAL_ACQUISITION)
    return min(initials, key=_earliest_first) if initials else None


def pick_latest_transaction(transactions: List[TransactionRead]) -> Optional[TransactionRead]:
    """Newest dated transaction; equal dates go to the largest id. Undated rows only win when nothing is dated."""
    if not transactions:
        return None
    return max(
        transactions,
        key=lambda t: (t.transaction_date is not None, t.transaction_date or date.min, t.id),
    )


def pick_transfer_transaction(transactions: List[TransactionRead]) -> Optional[TransactionRead]:
    transfers = _of_category(transactions, TransactionCategory.FULL_TRANSFER)
    return min(transfers, key=_earliest_first) if transfers else None


class JReitService:
    """Runs J-REIT searches for a caller and expands the resulting ids into details.

    Callers without a J-REIT role get empty results rather than an error.
    """

    def __init__(
        self,
        engine: JReitQueryEngine,
        building_dao: BuildingDAO,
        corporation_dao: CorporationDAO,
        transaction_dao: TransactionDAO,
        appraisal_dao: AppraisalDAO,
        mizuho_dao: MizuhoDAO,
    ):
        self.engine = engine
        self.building_dao = building_dao
        self.corporation_dao = corporation_dao
        self.transaction_dao = transaction_dao
        self.appraisal_dao = appraisal_dao
        self.mizuho_dao = mizuho_dao

    # ===== BUILDINGS =====

    def search_buildings(
        self,
        roles: UserRoles,
        condition: Optional[JReitBuildingSearchCondition] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
        ids: Optional[List[str]] = None,
    ) -> SearchJReitBuildingsResult:
        if not roles.can_view_j_reit:
            return SearchJReitBuildingsResult(total_count=0, j_reit_buildings=[])

        result = self.engine.search_buildings(condition, sort, pagination, ids)
        logger.info(f"Building search matched {result.total_count} pairs, returning {len(result.pairs)}")
        return SearchJReitBuildingsResult(
            total_count=result.total_count,
            j_reit_buildings=self.materialize_buildings(result.pairs),
        )

    def get_buildings(
        self,
        roles: UserRoles,
        ids: Optional[List[str]] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> List[JReitBuildingDetail]:
        if not roles.can_view_j_reit:
            return []
        return self.materialize_buildings(self.engine.list_buildings(ids, sort, pagination))

    def get_buildings_per_corporation(
        self,
        roles: UserRoles,
        pairs: List[BuildingIdWithCorporationId],
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> List[JReitBuildingDetail]:
        if not roles.can_view_j_reit or not pairs:
            return []
        return self.materialize_buildings(self.engine.list_building_pairs(pairs, sort, pagination))

    def get_buildings_by_office_building_ids(
        self, roles: UserRoles, office_building_ids: List[int]
    ) -> List[JReitBuildingRead]:
        """J-REIT buildings linked to office buildings; unknown office ids are skipped."""
        if not roles.can_view_j_reit or not office_building_ids:
            return []
        buildings = self.building_dao.get_by_office_building_ids(office_building_ids)
        return [JReitBuildingRead.model_validate(b) for b in buildings]

    def get_id_mapping(self, roles: UserRoles, data_hub_building_id: str) -> Optional[JReitIdMappingRead]:
        """Building and corporation behind a data hub (Mizuho) building id."""
        if not roles.can_view_j_reit:
            return None
        mapping = self.mizuho_dao.get_by_mizuho_building_id(data_hub_building_id)
        return JReitIdMappingRead.model_validate(mapping) if mapping else None

    def materialize_buildings(self, pairs: List[BuildingIdWithCorporationId]) -> List[JReitBuildingDetail]:
        """Batch-load everything shown for each pair, keeping the order of ``pairs``."""
        if not pairs:
            return []
        buildings = self.building_dao.get_by_ids(pair.j_reit_building_id for pair in pairs)
        corporations = self.corporation_dao.get_by_ids(pair.j_reit_corporation_id for pair in pairs)
        transactions_by_pair = self.transaction_dao.get_by_pairs(pairs)
        appraisals = self._appraisals_for(
            [t for transactions in transactions_by_pair.values() for t in transactions]
        )
        mizuho_ids = self.mizuho_dao.get_mizuho_building_ids(pairs)
        cap_rates = self.mizuho_dao.get_cap_rate_histories(mizuho_ids.values())
        financials = self.mizuho_dao.get_financials(mizuho_ids.values())

        details = []
        for pair in pairs:
            building = buildings.get(pair.j_reit_building_id)
            if building is None:
                continue
            corporation = corporations.get(pair.j_reit_corporation_id)
            transactions = [self._to_transaction_read(t, appraisals) for t in transactions_by_pair.get(pair, [])]
            mizuho_id = mizuho_ids.get(pair)
            pair_cap_rates = cap_rates.get(mizuho_id, []) if mizuho_id else []
            pair_financials = financials.get(mizuho_id, []) if mizuho_id else []
            details.append(
                JReitBuildingDetail(
                    j_reit_building_id=pair.j_reit_building_id,
                    j_reit_corporation_id=pair.j_reit_corporation_id,
                    building=JReitBuildingRead.model_validate(building),
                    asset_type=AssetTypeRead.model_validate(building),
                    corporation=CorporationRead.model_validate(corporation) if corporation else None,
                    transactions=transactions,
                    initial_acquisition=pick_initial_acquisition(transactions),
                    latest_transaction=pick_latest_transaction(transactions),
                    transfer_transaction=pick_transfer_transaction(transactions),
                    latest_cap_rate=CapRateHistoryRead.model_validate(pair_cap_rates[-1]) if pair_cap_rates else None,
                    latest_financial=FinancialRead.model_validate(pair_financials[-1]) if pair_financials else None,
                )
            )
        return details

    # ===== TRANSACTIONS =====

    def search_transactions(
        self,
        roles: UserRoles,
        condition: Optional[TransactionSearchCondition] = None,
        sort: Optional[SortCondition] = None,
        pagination: Optional[PaginateCondition] = None,
    ) -> SearchTransactionsResult:
        offset = DEFAULT_TRANSACTION_OFFSET
        limit = DEFAULT_TRANSACTION_LIMIT
        if pagination is not None:
            offset = pagination.offset if pagination.offset is not None else offset
            limit = pagination.limit if pagination.limit is not None else limit
        if limit <= 0:
            raise InvalidSearchConditionError("limit must be positive for transaction search")

        if not roles.can_view_j_reit:
            return SearchTransactionsResult(
                nodes=[], page_info=OffsetPageInfo(page=offset // limit, total_pages=0, total_count=0)
            )

        result = self.engine.search_transactions(condition, sort, PaginateCondition(offset=offset, limit=limit))
        logger.info(f"Transaction search matched {result.total_count} transactions")
        transactions = self.transaction_dao.get_in_order(result.transaction_ids)
        appraisals = self._appraisals_for(transactions)
        return SearchTransactionsResult(
            nodes=[self._to_transaction_read(t, appraisals) for t in transactions],
            page_info=OffsetPageInfo(
                page=offset // limit,
                total_pages=math.ceil(result.total_count / limit),
                total_count=result.total_count,
            ),
        )

    def get_transactions(self, roles: UserRoles, ids: List[str]) -> List[TransactionRead]:
        """Transactions by id in the order requested."""
        if not ids:
            raise InvalidSearchConditionError("ids must not be empty")
        if not roles.can_view_j_reit:
            return []
        transactions = self.transaction_dao.get_in_order(ids)
        appraisals = self._appraisals_for(transactions)
        return [self._to_transaction_read(t, appraisals) for t in transactions]

    def get_transactions_for_pair(self, roles: UserRoles, pair: BuildingIdWithCorporationId) -> List[TransactionRead]:
        """All transactions of a pair, oldest first; initial acquisitions lead on equal dates."""
        if not roles.can_view_j_reit:
            return []
        transactions = self.transaction_dao.get_by_pairs([pair]).get(pair, [])
        appraisals = self._appraisals_for(transactions)
        return [self._to_transaction_read(t, appraisals) for t in transactions]

    # ===== CORPORATIONS =====

    def get_corporations(self, roles: UserRoles, include_delisted: bool = True) -> List[CorporationRead]:
        if not roles.can_view_j_reit:
            return []
        return [CorporationRead.model_validate(c) for c in self.corporation_dao.get_all(include_delisted)]

    # ===== MIZUHO HISTORIES =====

    def get_cap_rate_histories(
        self,
        roles: UserRoles,
        pair: BuildingIdWithCorporationId,
        first: Optional[int] = None,
        last: Optional[int] = None,
    ) -> List[CapRateHistoryRead]:
        histories = self._mizuho_rows(roles, pair, self.mizuho_dao.get_cap_rate_histories)
        return [CapRateHistoryRead.model_validate(h) for h in slice_first_last(histories, first, last)]

    def get_appraisal_histories(self, roles: UserRoles, pair: BuildingIdWithCorporationId) -> List[AppraisalHistoryRead]:
        histories = self._mizuho_rows(roles, pair, self.mizuho_dao.get_appraisal_histories)
        return [AppraisalHistoryRead.model_validate(h) for h in histories]

    def get_financials(
        self,
        roles: UserRoles,
        pair: BuildingIdWithCorporationId,
        first: Optional[int] = None,
        last: Optional[int] = None,
    ) -> List[FinancialRead]:
        financials = self._mizuho_rows(roles, pair, self.mizuho_dao.get_financials)
        return [FinancialRead.model_validate(f) for f in slice_first_last(financials, first, last)]

    def get_press_releases(self, roles: UserRoles, pair: BuildingIdWithCorporationId) -> List[PressReleaseRead]:
        releases = self._mizuho_rows(roles, pair, self.mizuho_dao.get_press_releases)
        return [PressReleaseRead.model_validate(r) for r in releases]

    # ===== HELPERS =====

    def _mizuho_rows(self, roles: UserRoles, pair: BuildingIdWithCorporationId, loader) -> list:
        if not roles.can_view_j_reit:
            return []
        mizuho_id = self.mizuho_dao.get_mizuho_building_id(pair)
        if mizuho_id is None:
            return []
        return loader([mizuho_id]).get(mizuho_id, [])

    def _appraisals_for(self, transactions: List[Transaction]) -> Dict[str, AppraisalRead]:
        appraisal_ids = [t.j_reit_appraisal_id for t in transactions if t.j_reit_appraisal_id]
        return {
            id: AppraisalRead.model_validate(appraisal)
            for id, appraisal in self.appraisal_dao.get_by_ids(appraisal_ids).items()
        }

    @staticmethod
    def _to_transaction_read(transaction: Transaction, appraisals: Dict[str, AppraisalRead]) -> TransactionRead:
        read = TransactionRead.model_validate(transaction)
        # A dangling appraisal id resolves to no appraisal
        read.appraisal = appraisals.get(transaction.j_reit_appraisal_id) if transaction.j_reit_appraisal_id else None
        return read
