"""Batch loaders for materializing J-REIT search results."""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.base_dao import BaseDAO
from app.jreit.models import (
    Building,
    Corporation,
    Transaction,
    Appraisal,
    MizuhoIdMapping,
    CapRateHistory,
    AppraisalHistory,
    Financial,
    PressRelease,
)
from app.query.schemas import BuildingIdWithCorporationId


class BuildingDAO(BaseDAO[Building]):
    def __init__(self, db: Session):
        super().__init__(Building, db)

    def get_by_office_building_ids(self, office_building_ids: Iterable[int]) -> List[Building]:
        """
        Office buildings linked to ``office_building_ids``, in the order requested.

        Rows carrying an office building id without the office flag are skipped,
        as are buildings held only by delisted corporations.
        """
        office_building_ids = list(dict.fromkeys(office_building_ids))
        if not office_building_ids:
            return []
        held_by_listed = (
            select(Transaction.j_reit_building_id)
            .join(Corporation, Transaction.j_reit_corporation_id == Corporation.id)
            .where(Corporation.is_delisted == 0)
        )
        stmt = (
            select(Building)
            .where(Building.office_building_id.in_(office_building_ids))
            .where(Building.is_office == 1)
            .where(Building.id.in_(held_by_listed))
            .order_by(Building.id)
        )
        position = {id: index for index, id in enumerate(office_building_ids)}
        return sorted(self._scalars(stmt), key=lambda building: position[building.office_building_id])


class CorporationDAO(BaseDAO[Corporation]):
    def __init__(self, db: Session):
        super().__init__(Corporation, db)

    def get_all(self, include_delisted: bool = True) -> List[Corporation]:
        """All corporations ordered by id, optionally without delisted ones."""
        stmt = select(Corporation).order_by(Corporation.id)
        if not include_delisted:
            stmt = stmt.where(Corporation.is_delisted == 0)
        return self._scalars(stmt)


class AppraisalDAO(BaseDAO[Appraisal]):
    def __init__(self, db: Session):
        super().__init__(Appraisal, db)


class TransactionDAO(BaseDAO[Transaction]):
    def __init__(self, db: Session):
        super().__init__(Transaction, db)

    def get_in_order(self, ids: List[str]) -> List[Transaction]:
        """Transactions for ``ids`` in the order the ids were given."""
        by_id = self.get_by_ids(ids)
        return [by_id[id] for id in ids if id in by_id]

    def get_by_pairs(
        self, pairs: Iterable[BuildingIdWithCorporationId]
    ) -> Dict[BuildingIdWithCorporationId, List[Transaction]]:
        """
        Transactions per (building, corporation) pair.

        Each list is ordered by transaction date with undated rows first, then
        category, then id, so an initial acquisition precedes an additional one
        made on the same day.
        """
        pairs = list(dict.fromkeys(pairs))
        if not pairs:
            return {}
        stmt = (
            select(Transaction)
            .where(Transaction.combined_transaction_id.in_([pair.combined_transaction_id for pair in pairs]))
            .order_by(
                Transaction.transaction_date.is_not(None),
                Transaction.transaction_date.asc(),
                Transaction.transaction_category.asc(),
                Transaction.id.asc(),
            )
        )
        grouped: Dict[BuildingIdWithCorporationId, List[Transaction]] = {pair: [] for pair in pairs}
        for transaction in self._scalars(stmt):
            pair = BuildingIdWithCorporationId(transaction.j_reit_building_id, transaction.j_reit_corporation_id)
            if pair in grouped:
                grouped[pair].append(transaction)
        return grouped


class MizuhoDAO(BaseDAO[MizuhoIdMapping]):
    """Mizuho id mapping plus the histories keyed by Mizuho building id."""

    def __init__(self, db: Session):
        super().__init__(MizuhoIdMapping, db)

    def get_mizuho_building_ids(
        self, pairs: Iterable[BuildingIdWithCorporationId]
    ) -> Dict[BuildingIdWithCorporationId, str]:
        pairs = list(dict.fromkeys(pairs))
        if not pairs:
            return {}
        building_ids = {pair.j_reit_building_id for pair in pairs}
        stmt = select(MizuhoIdMapping).where(MizuhoIdMapping.j_reit_building_id.in_(building_ids))
        wanted = set(pairs)
        mapping = {}
        for row in self._scalars(stmt):
            pair = BuildingIdWithCorporationId(row.j_reit_building_id, row.j_reit_corporation_id)
            if pair in wanted:
                mapping[pair] = row.j_reit_mizuho_building_id
        return mapping

    def get_mizuho_building_id(self, pair: BuildingIdWithCorporationId) -> Optional[str]:
        return self.get_mizuho_building_ids([pair]).get(pair)

    def get_by_mizuho_building_id(self, mizuho_building_id: str) -> Optional[MizuhoIdMapping]:
        """Mapping row for a data hub (Mizuho) building id; the lowest pair wins if several share it."""
        stmt = (
            select(MizuhoIdMapping)
            .where(MizuhoIdMapping.j_reit_mizuho_building_id == mizuho_building_id)
            .order_by(MizuhoIdMapping.j_reit_building_id, MizuhoIdMapping.j_reit_corporation_id)
            .limit(1)
        )
        rows = self._scalars(stmt)
        return rows[0] if rows else None

    def _grouped(self, model, mizuho_ids: Iterable[str], *order_by) -> Dict[str, list]:
        mizuho_ids = list(dict.fromkeys(mizuho_ids))
        if not mizuho_ids:
            return {}
        stmt = select(model).where(model.j_reit_mizuho_building_id.in_(mizuho_ids)).order_by(*order_by, model.id)
        grouped = defaultdict(list)
        for row in self._scalars(stmt):
            grouped[row.j_reit_mizuho_building_id].append(row)
        return dict(grouped)

    def get_cap_rate_histories(self, mizuho_ids: Iterable[str]) -> Dict[str, List[CapRateHistory]]:
        """Cap-rate histories per Mizuho id, oldest closing date first."""
        return self._grouped(CapRateHistory, mizuho_ids, CapRateHistory.closing_date)

    def get_appraisal_histories(self, mizuho_ids: Iterable[str]) -> Dict[str, List[AppraisalHistory]]:
        return self._grouped(AppraisalHistory, mizuho_ids, AppraisalHistory.appraisal_date)

    def get_financials(self, mizuho_ids: Iterable[str]) -> Dict[str, List[Financial]]:
        """Financials per Mizuho id, ordered by fiscal period end date."""
        return self._grouped(Financial, mizuho_ids, Financial.fiscal_period_end_date)

    def get_press_releases(self, mizuho_ids: Iterable[str]) -> Dict[str, List[PressRelease]]:
        return self._grouped(
            PressRelease, mizuho_ids, PressRelease.release_date.is_(None), PressRelease.release_date
        )
