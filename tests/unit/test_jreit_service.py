"""
Unit tests for the J-REIT service logic.
Tests the role gate, materialization and transaction paging with mocked dependencies.
"""

import pytest
from datetime import date
from types import SimpleNamespace
from unittest.mock import Mock

from app.core.exceptions import InvalidSearchConditionError
from app.jreit.models import TransactionCategory
from app.jreit.schemas import TransactionCategoryName, TransactionRead
from app.jreit.service import (
    JReitService,
    pick_initial_acquisition,
    pick_latest_transaction,
    pick_transfer_transaction,
    slice_first_last,
)
from app.query.schemas import (
    BuildingIdWithCorporationId,
    PaginateCondition,
    SearchResult,
    TransactionSearchResult,
    UserRoles,
)

PAIR = BuildingIdWithCorporationId("B1", "C1")


def _building(id="B1", **fields):
    values = dict(
        id=id, name="Alpha Tower", address=None, city_id=None, latitude=None, longitude=None,
        nearest_station=None, completed_year=2000, completed_month=None, gross_floor_area=None,
        basement=None, groundfloor=None, structure=None, floor_plan=None, land=None,
        building_coverage_ratio=None, floor_area_ratio=None, office_building_id=None,
        residential_building_id=None, is_office=1, is_retail=0, is_hotel=0, is_logistic=0,
        is_residential=0, is_health_care=0, is_other=0,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def _transaction(id, category=TransactionCategory.INITIAL_ACQUISITION, appraisal_id=None, **fields):
    values = dict(
        id=id, j_reit_building_id="B1", j_reit_corporation_id="C1", combined_transaction_id="B1-C1",
        transaction_category=category, transaction_date=date(2020, 1, 1), transaction_price=None,
        apportioned_transaction_price=None, leasable_area=None, total_leasable_area=None,
        leasable_units=None, land_ownership_type=None, land_ownership_ratio=None,
        building_ownership_type=None, building_ownership_ratio=None, transaction_partner=None,
        property_manager=None, pml_assessment_company=None, trustee=None, press_release_date=None,
        is_bulk=0, j_reit_appraisal_id=appraisal_id,
    )
    values.update(fields)
    return SimpleNamespace(**values)


def _appraisal(id, **fields):
    values = dict(
        id=id, appraisal_price=1000, appraisal_date=None, appraisal_company=None, cap_rate=4.0,
        discount_rate=None, terminal_cap_rate=None, net_operating_income=None,
    )
    values.update(fields)
    return SimpleNamespace(**values)


class TestJReitService:
    """Test J-REIT service behaviour"""

    @pytest.fixture
    def mock_engine(self):
        return Mock()

    @pytest.fixture
    def mock_building_dao(self):
        dao = Mock()
        dao.get_by_ids = Mock(return_value={"B1": _building()})
        return dao

    @pytest.fixture
    def mock_corporation_dao(self):
        dao = Mock()
        dao.get_by_ids = Mock(return_value={"C1": SimpleNamespace(id="C1", name="A0", is_delisted=0)})
        dao.get_all = Mock(return_value=[])
        return dao

    @pytest.fixture
    def mock_transaction_dao(self):
        dao = Mock()
        dao.get_by_pairs = Mock(return_value={})
        dao.get_in_order = Mock(return_value=[])
        return dao

    @pytest.fixture
    def mock_appraisal_dao(self):
        dao = Mock()
        dao.get_by_ids = Mock(return_value={})
        return dao

    @pytest.fixture
    def mock_mizuho_dao(self):
        dao = Mock()
        dao.get_mizuho_building_ids = Mock(return_value={})
        dao.get_mizuho_building_id = Mock(return_value=None)
        dao.get_cap_rate_histories = Mock(return_value={})
        dao.get_financials = Mock(return_value={})
        return dao

    @pytest.fixture
    def service(
        self, mock_engine, mock_building_dao, mock_corporation_dao,
        mock_transaction_dao, mock_appraisal_dao, mock_mizuho_dao,
    ):
        return JReitService(
            engine=mock_engine,
            building_dao=mock_building_dao,
            corporation_dao=mock_corporation_dao,
            transaction_dao=mock_transaction_dao,
            appraisal_dao=mock_appraisal_dao,
            mizuho_dao=mock_mizuho_dao,
        )

    # ===== ROLE GATE =====

    def test_unauthorized_search_short_circuits(self, service, mock_engine, unauthorized_roles):
        result = service.search_buildings(unauthorized_roles)
        assert result.total_count == 0
        assert result.j_reit_buildings == []
        mock_engine.search_buildings.assert_not_called()

    def test_unauthorized_transaction_search_keeps_page(self, service, mock_engine, unauthorized_roles):
        result = service.search_transactions(unauthorized_roles, pagination=PaginateCondition(offset=20, limit=10))
        assert result.nodes == []
        assert result.page_info.page == 2
        assert result.page_info.total_count == 0
        mock_engine.search_transactions.assert_not_called()

    def test_unauthorized_lookups_are_empty(self, service, unauthorized_roles, mock_mizuho_dao):
        assert service.get_buildings(unauthorized_roles, ["B1"]) == []
        assert service.get_corporations(unauthorized_roles) == []
        assert service.get_transactions_for_pair(unauthorized_roles, PAIR) == []
        assert service.get_cap_rate_histories(unauthorized_roles, PAIR) == []
        mock_mizuho_dao.get_mizuho_building_id.assert_not_called()

    # ===== BUILDINGS =====

    def test_search_materializes_pairs_in_order(
        self, service, mock_engine, mock_transaction_dao, mock_appraisal_dao, authorized_roles
    ):
        mock_engine.search_buildings.return_value = SearchResult(total_count=7, pairs=[PAIR])
        mock_transaction_dao.get_by_pairs.return_value = {
            PAIR: [
                _transaction("T1", appraisal_id="AP1"),
                _transaction("T2", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=date(2021, 1, 1)),
                _transaction("T3", TransactionCategory.FULL_TRANSFER, transaction_date=date(2022, 1, 1)),
            ]
        }
        mock_appraisal_dao.get_by_ids.return_value = {"AP1": _appraisal("AP1")}

        result = service.search_buildings(authorized_roles)

        assert result.total_count == 7
        detail = result.j_reit_buildings[0]
        assert detail.j_reit_building_id == "B1"
        assert detail.asset_type.is_office is True
        assert detail.corporation.name == "A0"
        assert detail.initial_acquisition.id == "T1"
        assert detail.initial_acquisition.appraisal.id == "AP1"
        assert detail.latest_transaction.id == "T3"
        assert detail.transfer_transaction.transaction_category == TransactionCategoryName.FULL_TRANSFER
        assert detail.latest_cap_rate is None

    def test_materialize_skips_missing_buildings(self, service, mock_building_dao):
        mock_building_dao.get_by_ids.return_value = {}
        assert service.materialize_buildings([PAIR]) == []

    def test_latest_matches_view_ranking(self, service, mock_transaction_dao, authorized_roles):
        # DAO listing order: undated first, initial before additional on the same day
        mock_transaction_dao.get_by_pairs.return_value = {
            PAIR: [
                _transaction("T9", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=None),
                _transaction("T2", transaction_date=date(2020, 4, 1), total_leasable_area=100),
                _transaction(
                    "T1", TransactionCategory.ADDITIONAL_ACQUISITION,
                    transaction_date=date(2020, 4, 1), total_leasable_area=200,
                ),
            ]
        }

        detail = service.materialize_buildings([PAIR])[0]

        assert detail.latest_transaction.id == "T2"
        assert detail.latest_transaction.total_leasable_area == 100.0
        assert detail.initial_acquisition.id == "T2"

    def test_buildings_by_office_building_ids(self, service, mock_building_dao, authorized_roles):
        mock_building_dao.get_by_office_building_ids = Mock(return_value=[_building(office_building_id=1111)])

        buildings = service.get_buildings_by_office_building_ids(authorized_roles, [1111, 4444])

        assert [b.office_building_id for b in buildings] == [1111]
        mock_building_dao.get_by_office_building_ids.assert_called_once_with([1111, 4444])

    def test_buildings_by_no_office_building_ids(self, service, mock_building_dao, authorized_roles):
        mock_building_dao.get_by_office_building_ids = Mock()
        assert service.get_buildings_by_office_building_ids(authorized_roles, []) == []
        mock_building_dao.get_by_office_building_ids.assert_not_called()

    def test_id_mapping(self, service, mock_mizuho_dao, authorized_roles):
        mock_mizuho_dao.get_by_mizuho_building_id = Mock(
            return_value=SimpleNamespace(j_reit_building_id="B1", j_reit_corporation_id="C1")
        )
        mapping = service.get_id_mapping(authorized_roles, "M1")
        assert (mapping.j_reit_building_id, mapping.j_reit_corporation_id) == ("B1", "C1")

        mock_mizuho_dao.get_by_mizuho_building_id.return_value = None
        assert service.get_id_mapping(authorized_roles, "M404") is None

    def test_unauthorized_office_and_mapping_lookups(self, service, mock_mizuho_dao, unauthorized_roles):
        assert service.get_buildings_by_office_building_ids(unauthorized_roles, [1111]) == []
        assert service.get_id_mapping(unauthorized_roles, "M1") is None
        mock_mizuho_dao.get_by_mizuho_building_id.assert_not_called()

    def test_per_corporation_with_no_pairs(self, service, mock_engine, authorized_roles):
        assert service.get_buildings_per_corporation(authorized_roles, []) == []
        mock_engine.list_building_pairs.assert_not_called()

    # ===== TRANSACTIONS =====

    def test_transaction_search_defaults_and_page_info(
        self, service, mock_engine, mock_transaction_dao, authorized_roles
    ):
        mock_engine.search_transactions.return_value = TransactionSearchResult(total_count=21, transaction_ids=["T1"])
        mock_transaction_dao.get_in_order.return_value = [_transaction("T1")]

        result = service.search_transactions(authorized_roles)

        _, _, pagination = mock_engine.search_transactions.call_args.args
        assert pagination == PaginateCondition(offset=0, limit=10)
        assert [node.id for node in result.nodes] == ["T1"]
        assert result.page_info.page == 0
        assert result.page_info.total_pages == 3
        assert result.page_info.total_count == 21

    def test_transaction_search_rejects_zero_limit(self, service, authorized_roles):
        with pytest.raises(InvalidSearchConditionError):
            service.search_transactions(authorized_roles, pagination=PaginateCondition(limit=0))

    def test_get_transactions_requires_ids(self, service, authorized_roles):
        with pytest.raises(InvalidSearchConditionError):
            service.get_transactions(authorized_roles, [])

    def test_dangling_appraisal_resolves_to_none(
        self, service, mock_transaction_dao, mock_appraisal_dao, authorized_roles
    ):
        mock_transaction_dao.get_in_order.return_value = [_transaction("T6", appraisal_id="AP404")]
        mock_appraisal_dao.get_by_ids.return_value = {}

        transactions = service.get_transactions(authorized_roles, ["T6"])

        assert transactions[0].appraisal is None
        mock_appraisal_dao.get_by_ids.assert_called_once_with(["AP404"])

    # ===== MIZUHO HISTORIES =====

    def test_histories_without_mapping_are_empty(self, service, mock_mizuho_dao, authorized_roles):
        assert service.get_financials(authorized_roles, PAIR) == []
        mock_mizuho_dao.get_financials.assert_not_called()

    def test_cap_rate_histories_sliced(self, service, mock_mizuho_dao, authorized_roles):
        mock_mizuho_dao.get_mizuho_building_id.return_value = "M1"
        mock_mizuho_dao.get_cap_rate_histories.return_value = {
            "M1": [
                SimpleNamespace(id=i, j_reit_mizuho_building_id="M1", cap_rate=4.0 + i, closing_date=date(2020 + i, 1, 31))
                for i in range(3)
            ]
        }
        histories = service.get_cap_rate_histories(authorized_roles, PAIR, last=2)
        assert [h.id for h in histories] == [1, 2]


class TestSliceFirstLast:
    """Test first/last slicing of history lists"""

    @pytest.mark.parametrize(
        "first, last, expected",
        [
            (None, None, [1, 2, 3, 4]),
            (2, None, [1, 2]),
            (None, 2, [3, 4]),
            (None, 10, [1, 2, 3, 4]),
            (1, 3, [1]),
            (0, None, []),
            (None, 0, []),
        ],
    )
    def test_slice(self, first, last, expected):
        assert slice_first_last([1, 2, 3, 4], first, last) == expected


def _reads(*transactions):
    return [TransactionRead.model_validate(t) for t in transactions]


class TestMaterializerPicks:
    """Test initial, latest and transfer picks with ties and missing dates"""

    def test_latest_ignores_undated_rows(self):
        transactions = _reads(
            _transaction("T1", transaction_date=date(2020, 1, 1)),
            _transaction("T2", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=None),
        )
        assert pick_latest_transaction(transactions).id == "T1"

    def test_latest_same_day_goes_to_largest_id(self):
        transactions = _reads(
            _transaction("T2", transaction_date=date(2020, 4, 1)),
            _transaction("T1", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=date(2020, 4, 1)),
        )
        assert pick_latest_transaction(transactions).id == "T2"

    def test_latest_when_nothing_is_dated(self):
        transactions = _reads(_transaction("T1", transaction_date=None), _transaction("T3", transaction_date=None))
        assert pick_latest_transaction(transactions).id == "T3"
        assert pick_latest_transaction([]) is None

    def test_initial_acquisition_earliest_dated_then_smallest_id(self):
        transactions = _reads(
            _transaction("T0", transaction_date=None),
            _transaction("T3", transaction_date=date(2019, 1, 1)),
            _transaction("T2", transaction_date=date(2019, 1, 1)),
            _transaction("T1", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=date(2018, 1, 1)),
        )
        assert pick_initial_acquisition(transactions).id == "T2"

    def test_transfer_is_earliest_full_transfer(self):
        transactions = _reads(
            _transaction("T1"),
            _transaction("T2", TransactionCategory.PARTIAL_TRANSFER, transaction_date=date(2020, 6, 1)),
            _transaction("T4", TransactionCategory.FULL_TRANSFER, transaction_date=date(2022, 1, 1)),
            _transaction("T3", TransactionCategory.FULL_TRANSFER, transaction_date=date(2021, 1, 1)),
        )
        assert pick_transfer_transaction(transactions).id == "T3"
        assert pick_transfer_transaction(transactions[:2]) is None
        assert pick_initial_acquisition(transactions[1:2]) is None
