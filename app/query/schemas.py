"""
Search, sort and pagination types for the J-REIT query builder.

Conditions are plain frozen dataclasses with one optional field per filter
dimension. ``None`` (and, for collections, an empty list) always means
"no constraint". Sort keys are closed enums; each maps to exactly one
``SortColumn`` variant telling the sort compiler which relation owns it.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union


# ===== CAPABILITY =====


@dataclass(frozen=True)
class UserRoles:
    """Roles of the caller. Either role grants access to J-REIT data."""

    market_research_login: bool = False
    deal_management_jreit: bool = False

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "UserRoles":
        cleaned = {name.strip() for name in names if name and name.strip()}
        return cls(
            market_research_login="market_research_login" in cleaned,
            deal_management_jreit="deal_management_jreit" in cleaned,
        )

    @property
    def can_view_j_reit(self) -> bool:
        return self.market_research_login or self.deal_management_jreit


# ===== SHARED CONDITION PARTS =====


@dataclass(frozen=True)
class MinMax:
    """Inclusive range; either bound may be absent."""

    min: Optional[Union[int, float, date]] = None
    max: Optional[Union[int, float, date]] = None

    def is_empty(self) -> bool:
        return self.min is None and self.max is None


@dataclass(frozen=True)
class LatLng:
    """Bounding box. All four edges are required."""

    south: float
    north: float
    west: float
    east: float


@dataclass(frozen=True)
class LocationCondition:
    """Any-of match on city, ward or prefecture ids."""

    prefecture_ids: List[int] = field(default_factory=list)
    ward_ids: List[int] = field(default_factory=list)
    city_ids: List[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.prefecture_ids or self.ward_ids or self.city_ids)


@dataclass(frozen=True)
class StationCondition:
    """Buildings within ``min_time``..``max_time`` minutes on foot of any station."""

    station_ids: List[int]
    max_time: int
    min_time: int = 0

    def is_empty(self) -> bool:
        return not self.station_ids


@dataclass(frozen=True)
class AssetTypeCondition:
    """OR over the requested asset types. No requested type means no constraint."""

    is_office: Optional[bool] = None
    is_retail: Optional[bool] = None
    is_hotel: Optional[bool] = None
    is_logistic: Optional[bool] = None
    is_residential: Optional[bool] = None
    is_health_care: Optional[bool] = None
    is_other: Optional[bool] = None

    def requested_columns(self) -> List[str]:
        """Names of the building flag columns requested with ``True``."""
        return [
            name
            for name in (
                "is_office",
                "is_retail",
                "is_hotel",
                "is_logistic",
                "is_residential",
                "is_health_care",
                "is_other",
            )
            if getattr(self, name) is True
        ]


def tri_state(value: Optional[bool]) -> Tuple[bool, bool]:
    """Map an optional flag to (include_true_rows, include_false_rows)."""
    if value is True:
        return True, False
    if value is False:
        return False, True
    return True, True


# ===== SEARCH CONDITIONS =====


@dataclass(frozen=True)
class JReitBuildingSearchCondition:
    name: Optional[str] = None
    j_reit_corporation_ids: Optional[List[str]] = None
    location: Optional[LocationCondition] = None
    station: Optional[StationCondition] = None
    latitude_and_longitude: Optional[LatLng] = None
    completed_year: Optional[MinMax] = None
    land_area: Optional[MinMax] = None
    gross_floor_area: Optional[MinMax] = None
    total_leasable_area: Optional[MinMax] = None
    acquisition_date: Optional[MinMax] = None
    acquisition_price: Optional[MinMax] = None
    appraised_price: Optional[MinMax] = None
    initial_cap_rate: Optional[MinMax] = None
    cap_rate: Optional[MinMax] = None
    transfer_date: Optional[MinMax] = None
    asset_type: Optional[AssetTypeCondition] = None
    # True: transferred only, False: held only, None: both
    is_transferred: Optional[bool] = None
    # True: delisted only, False: listed only, None: both
    is_delisted: Optional[bool] = None


@dataclass(frozen=True)
class TransactionSearchCondition:
    location: Optional[LocationCondition] = None
    station: Optional[StationCondition] = None
    latitude_and_longitude: Optional[LatLng] = None
    asset_type: Optional[AssetTypeCondition] = None
    transaction_date: Optional[MinMax] = None
    transaction_price: Optional[MinMax] = None
    transaction_categories: Optional[List[int]] = None
    completion_year: Optional[MinMax] = None
    gross_floor_area: Optional[MinMax] = None
    press_release_date: Optional[MinMax] = None
    include_bulk: Optional[bool] = None
    appraisal_price: Optional[MinMax] = None
    appraisal_cap_rate: Optional[MinMax] = None
    j_reit_corporation_ids: Optional[List[str]] = None
    include_delisted: Optional[bool] = None
    use_apportioned_price: Optional[bool] = None


# ===== SORT KEYS =====


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class JReitBuildingSortKey(str, Enum):
    COMPLETED_YEAR = "COMPLETED_YEAR"
    LAND_AREA = "LAND_AREA"
    GROSS_FLOOR_AREA = "GROSS_FLOOR_AREA"
    INITIAL_LEASABLE_AREA = "INITIAL_LEASABLE_AREA"
    TOTAL_LEASABLE_AREA = "TOTAL_LEASABLE_AREA"
    CAP_RATE = "CAP_RATE"
    INITIAL_CAP_RATE = "INITIAL_CAP_RATE"
    APPRAISED_PRICE = "APPRAISED_PRICE"
    INITIAL_APPRAISED_PRICE = "INITIAL_APPRAISED_PRICE"
    ACQUISITION_PRICE = "ACQUISITION_PRICE"
    ACQUISITION_DATE = "ACQUISITION_DATE"
    J_REIT_CORPORATION_NAME = "J_REIT_CORPORATION_NAME"


class JReitTransactionSortKey(str, Enum):
    TRANSACTION_DATE = "TRANSACTION_DATE"
    TRANSACTION_CATEGORY = "TRANSACTION_CATEGORY"
    TRANSACTION_PRICE = "TRANSACTION_PRICE"
    PRESS_RELEASE_DATE = "PRESS_RELEASE_DATE"
    APPRAISAL_PRICE = "APPRAISAL_PRICE"
    APPRAISAL_CAP_RATE = "APPRAISAL_CAP_RATE"
    APPORTIONED_TRANSACTION_PRICE = "APPORTIONED_TRANSACTION_PRICE"


@dataclass(frozen=True)
class BuildingColumn:
    column: str


@dataclass(frozen=True)
class CorporationColumn:
    column: str


@dataclass(frozen=True)
class FirstAcquisitionColumn:
    column: str


@dataclass(frozen=True)
class LatestTransactionColumn:
    column: str


@dataclass(frozen=True)
class LatestCapRateColumn:
    column: str


@dataclass(frozen=True)
class LatestAppraisalColumn:
    column: str


@dataclass(frozen=True)
class PlainTransactionColumn:
    """Column of the transaction row itself, or of its referenced appraisal."""

    column: str
    on_appraisal: bool = False


SortColumn = Union[
    BuildingColumn,
    CorporationColumn,
    FirstAcquisitionColumn,
    LatestTransactionColumn,
    LatestCapRateColumn,
    LatestAppraisalColumn,
    PlainTransactionColumn,
]

BUILDING_SORT_COLUMNS: Dict[JReitBuildingSortKey, SortColumn] = {
    JReitBuildingSortKey.COMPLETED_YEAR: BuildingColumn("completed_year"),
    JReitBuildingSortKey.LAND_AREA: BuildingColumn("land"),
    JReitBuildingSortKey.GROSS_FLOOR_AREA: BuildingColumn("gross_floor_area"),
    JReitBuildingSortKey.INITIAL_LEASABLE_AREA: FirstAcquisitionColumn("leasable_area"),
    JReitBuildingSortKey.TOTAL_LEASABLE_AREA: LatestTransactionColumn("total_leasable_area"),
    JReitBuildingSortKey.CAP_RATE: LatestCapRateColumn("cap_rate"),
    JReitBuildingSortKey.INITIAL_CAP_RATE: FirstAcquisitionColumn("cap_rate"),
    JReitBuildingSortKey.APPRAISED_PRICE: LatestAppraisalColumn("appraisal_price"),
    JReitBuildingSortKey.INITIAL_APPRAISED_PRICE: FirstAcquisitionColumn("appraisal_price"),
    JReitBuildingSortKey.ACQUISITION_PRICE: FirstAcquisitionColumn("transaction_price"),
    JReitBuildingSortKey.ACQUISITION_DATE: FirstAcquisitionColumn("transaction_date"),
    JReitBuildingSortKey.J_REIT_CORPORATION_NAME: CorporationColumn("name"),
}

TRANSACTION_SORT_COLUMNS: Dict[JReitTransactionSortKey, SortColumn] = {
    JReitTransactionSortKey.TRANSACTION_DATE: PlainTransactionColumn("transaction_date"),
    JReitTransactionSortKey.TRANSACTION_CATEGORY: PlainTransactionColumn("transaction_category"),
    JReitTransactionSortKey.TRANSACTION_PRICE: PlainTransactionColumn("transaction_price"),
    JReitTransactionSortKey.PRESS_RELEASE_DATE: PlainTransactionColumn("press_release_date"),
    JReitTransactionSortKey.APPRAISAL_PRICE: PlainTransactionColumn("appraisal_price", on_appraisal=True),
    JReitTransactionSortKey.APPRAISAL_CAP_RATE: PlainTransactionColumn("cap_rate", on_appraisal=True),
    JReitTransactionSortKey.APPORTIONED_TRANSACTION_PRICE: PlainTransactionColumn("apportioned_transaction_price"),
}


@dataclass(frozen=True)
class SortCondition:
    key: Union[JReitBuildingSortKey, JReitTransactionSortKey]
    order: SortOrder = SortOrder.ASC

    def sort_column(self) -> SortColumn:
        if isinstance(self.key, JReitBuildingSortKey):
            return BUILDING_SORT_COLUMNS[self.key]
        return TRANSACTION_SORT_COLUMNS[self.key]


@dataclass(frozen=True)
class PaginateCondition:
    """Offset/limit; ``None`` on either axis means unbounded."""

    offset: Optional[int] = None
    limit: Optional[int] = None


# ===== RESULTS =====


@dataclass(frozen=True)
class BuildingIdWithCorporationId:
    j_reit_building_id: str
    j_reit_corporation_id: str

    @property
    def combined_transaction_id(self) -> str:
        return f"{self.j_reit_building_id}-{self.j_reit_corporation_id}"


@dataclass
class SearchResult:
    """Total match count plus the requested page of (building, corporation) pairs."""

    total_count: int
    pairs: List[BuildingIdWithCorporationId]


@dataclass
class TransactionSearchResult:
    total_count: int
    transaction_ids: List[str]
