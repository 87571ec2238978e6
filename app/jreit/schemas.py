"""Pydantic schemas for the J-REIT API."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.jreit.models import TransactionCategory
from app.query.schemas import (
    AssetTypeCondition,
    BuildingIdWithCorporationId,
    JReitBuildingSearchCondition,
    JReitBuildingSortKey,
    JReitTransactionSortKey,
    LatLng,
    LocationCondition,
    MinMax,
    PaginateCondition,
    SortCondition,
    SortOrder,
    StationCondition,
    TransactionSearchCondition,
)


class TransactionCategoryName(str, Enum):
    """Transaction categories as exposed by the API."""

    INITIAL_ACQUISITION = "INITIAL_ACQUISITION"
    ADDITIONAL_ACQUISITION = "ADDITIONAL_ACQUISITION"
    PARTIAL_TRANSFER = "PARTIAL_TRANSFER"
    FULL_TRANSFER = "FULL_TRANSFER"

    @property
    def code(self) -> int:
        return getattr(TransactionCategory, self.value)

    @classmethod
    def from_code(cls, code: int) -> "TransactionCategoryName":
        for member in cls:
            if member.code == code:
                return member
        raise ValueError(f"Unknown transaction category code: {code}")


# ===== CONDITION INPUTS =====


class MinMaxInput(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None

    def to_condition(self) -> MinMax:
        return MinMax(min=self.min, max=self.max)


class MinMaxFloatInput(MinMaxInput):
    min: Optional[float] = None
    max: Optional[float] = None


class MinMaxDateInput(MinMaxInput):
    min: Optional[date] = None
    max: Optional[date] = None


class LatLngInput(BaseModel):
    """All four edges are required when the box is given."""

    south: float
    north: float
    west: float
    east: float

    def to_condition(self) -> LatLng:
        return LatLng(south=self.south, north=self.north, west=self.west, east=self.east)


class LocationInput(BaseModel):
    prefecture_ids: Optional[List[int]] = None
    ward_ids: Optional[List[int]] = None
    city_ids: Optional[List[int]] = None

    def to_condition(self) -> Optional[LocationCondition]:
        location = LocationCondition(
            prefecture_ids=self.prefecture_ids or [],
            ward_ids=self.ward_ids or [],
            city_ids=self.city_ids or [],
        )
        # All lists empty means the location was not specified
        return None if location.is_empty() else location


class StationInput(BaseModel):
    station_ids: List[int]
    max_time: int = Field(ge=0)
    min_time: Optional[int] = Field(default=None, ge=0)

    def to_condition(self) -> Optional[StationCondition]:
        if not self.station_ids:
            return None
        return StationCondition(station_ids=self.station_ids, max_time=self.max_time, min_time=self.min_time or 0)


class AssetTypeInput(BaseModel):
    is_office: Optional[bool] = None
    is_retail: Optional[bool] = None
    is_hotel: Optional[bool] = None
    is_logistic: Optional[bool] = None
    is_residential: Optional[bool] = None
    is_health_care: Optional[bool] = None
    is_other: Optional[bool] = None

    def to_condition(self) -> AssetTypeCondition:
        return AssetTypeCondition(**self.model_dump())


def _convert(value):
    return value.to_condition() if value is not None else None


class SearchJReitBuildingConditionInput(BaseModel):
    name: Optional[str] = None
    j_reit_corporation_ids: Optional[List[str]] = None
    location: Optional[LocationInput] = None
    station: Optional[StationInput] = None
    latitude_and_longitude: Optional[LatLngInput] = None
    completed_year: Optional[MinMaxInput] = None
    land_area: Optional[MinMaxInput] = None
    gross_floor_area: Optional[MinMaxInput] = None
    total_leasable_area: Optional[MinMaxInput] = None
    acquisition_date: Optional[MinMaxDateInput] = None
    acquisition_price: Optional[MinMaxInput] = None
    appraised_price: Optional[MinMaxInput] = None
    initial_cap_rate: Optional[MinMaxFloatInput] = None
    cap_rate: Optional[MinMaxFloatInput] = None
    transfer_date: Optional[MinMaxDateInput] = None
    asset_type: Optional[AssetTypeInput] = None
    is_transferred: Optional[bool] = None
    is_delisted: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def empty_name_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def to_condition(self) -> JReitBuildingSearchCondition:
        return JReitBuildingSearchCondition(
            name=self.name,
            j_reit_corporation_ids=self.j_reit_corporation_ids,
            location=_convert(self.location),
            station=_convert(self.station),
            latitude_and_longitude=_convert(self.latitude_and_longitude),
            completed_year=_convert(self.completed_year),
            land_area=_convert(self.land_area),
            gross_floor_area=_convert(self.gross_floor_area),
            total_leasable_area=_convert(self.total_leasable_area),
            acquisition_date=_convert(self.acquisition_date),
            acquisition_price=_convert(self.acquisition_price),
            appraised_price=_convert(self.appraised_price),
            initial_cap_rate=_convert(self.initial_cap_rate),
            cap_rate=_convert(self.cap_rate),
            transfer_date=_convert(self.transfer_date),
            asset_type=_convert(self.asset_type),
            is_transferred=self.is_transferred,
            is_delisted=self.is_delisted,
        )


class SearchTransactionConditionInput(BaseModel):
    location: Optional[LocationInput] = None
    station: Optional[StationInput] = None
    latitude_and_longitude: Optional[LatLngInput] = None
    asset_type: Optional[AssetTypeInput] = None
    transaction_date: Optional[MinMaxDateInput] = None
    transaction_price: Optional[MinMaxInput] = None
    transaction_categories: Optional[List[TransactionCategoryName]] = None
    completion_year: Optional[MinMaxInput] = None
    gross_floor_area: Optional[MinMaxInput] = None
    press_release_date: Optional[MinMaxDateInput] = None
    include_bulk: Optional[bool] = None
    appraisal_price: Optional[MinMaxInput] = None
    appraisal_cap_rate: Optional[MinMaxFloatInput] = None
    j_reit_corporation_ids: Optional[List[str]] = None
    include_delisted: Optional[bool] = None
    use_apportioned_price: Optional[bool] = None

    def to_condition(self) -> TransactionSearchCondition:
        categories = None
        if self.transaction_categories is not None:
            categories = [category.code for category in self.transaction_categories]
        return TransactionSearchCondition(
            location=_convert(self.location),
            station=_convert(self.station),
            latitude_and_longitude=_convert(self.latitude_and_longitude),
            asset_type=_convert(self.asset_type),
            transaction_date=_convert(self.transaction_date),
            transaction_price=_convert(self.transaction_price),
            transaction_categories=categories,
            completion_year=_convert(self.completion_year),
            gross_floor_area=_convert(self.gross_floor_area),
            press_release_date=_convert(self.press_release_date),
            include_bulk=self.include_bulk,
            appraisal_price=_convert(self.appraisal_price),
            appraisal_cap_rate=_convert(self.appraisal_cap_rate),
            j_reit_corporation_ids=self.j_reit_corporation_ids,
            include_delisted=self.include_delisted,
            use_apportioned_price=self.use_apportioned_price,
        )


# ===== SORT AND PAGINATION INPUTS =====


class JReitBuildingSortInput(BaseModel):
    key: JReitBuildingSortKey
    order: SortOrder = SortOrder.ASC

    def to_condition(self) -> SortCondition:
        return SortCondition(key=self.key, order=self.order)


class JReitTransactionSortInput(BaseModel):
    key: JReitTransactionSortKey
    order: SortOrder = SortOrder.ASC

    def to_condition(self) -> SortCondition:
        return SortCondition(key=self.key, order=self.order)


class PaginationInput(BaseModel):
    offset: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)

    def to_condition(self) -> PaginateCondition:
        return PaginateCondition(offset=self.offset, limit=self.limit)


class BuildingIdWithCorporationIdInput(BaseModel):
    j_reit_building_id: str
    j_reit_corporation_id: str

    def to_condition(self) -> BuildingIdWithCorporationId:
        return BuildingIdWithCorporationId(self.j_reit_building_id, self.j_reit_corporation_id)


# ===== REQUESTS =====


class SearchJReitBuildingsRequest(BaseModel):
    """``ids`` narrows the search to those buildings; an empty list matches none."""

    ids: Optional[List[str]] = None
    condition: Optional[SearchJReitBuildingConditionInput] = None
    sort: Optional[JReitBuildingSortInput] = None
    pagination: Optional[PaginationInput] = None


class GetJReitBuildingsRequest(BaseModel):
    """``ids`` absent lists every building; an empty list lists none."""

    ids: Optional[List[str]] = None
    sort: Optional[JReitBuildingSortInput] = None
    pagination: Optional[PaginationInput] = None


class GetJReitBuildingsPerCorporationRequest(BaseModel):
    pairs: List[BuildingIdWithCorporationIdInput]
    sort: Optional[JReitBuildingSortInput] = None
    pagination: Optional[PaginationInput] = None


class SearchTransactionsRequest(BaseModel):
    condition: Optional[SearchTransactionConditionInput] = None
    sort: Optional[JReitTransactionSortInput] = None
    pagination: Optional[PaginationInput] = None


class GetTransactionsRequest(BaseModel):
    ids: List[str]


class GetJReitBuildingsByOfficeBuildingIdsRequest(BaseModel):
    office_building_ids: List[int]


# ===== RESPONSES =====


class CorporationRead(BaseModel):
    id: str
    name: str
    is_delisted: bool

    model_config = ConfigDict(from_attributes=True)


class AppraisalRead(BaseModel):
    id: str
    appraisal_price: Optional[int] = None
    appraisal_date: Optional[date] = None
    appraisal_company: Optional[str] = None
    cap_rate: Optional[float] = None
    discount_rate: Optional[float] = None
    terminal_cap_rate: Optional[float] = None
    net_operating_income: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class TransactionRead(BaseModel):
    id: str
    j_reit_building_id: str
    j_reit_corporation_id: str
    combined_transaction_id: str
    transaction_category: TransactionCategoryName
    transaction_date: Optional[date] = None
    transaction_price: Optional[int] = None
    apportioned_transaction_price: Optional[int] = None
    leasable_area: Optional[float] = None
    total_leasable_area: Optional[float] = None
    leasable_units: Optional[int] = None
    land_ownership_type: Optional[str] = None
    land_ownership_ratio: Optional[float] = None
    building_ownership_type: Optional[str] = None
    building_ownership_ratio: Optional[float] = None
    transaction_partner: Optional[str] = None
    property_manager: Optional[str] = None
    pml_assessment_company: Optional[str] = None
    trustee: Optional[str] = None
    press_release_date: Optional[date] = None
    is_bulk: bool
    appraisal: Optional[AppraisalRead] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("transaction_category", mode="before")
    @classmethod
    def category_from_code(cls, v):
        if isinstance(v, int):
            return TransactionCategoryName.from_code(v)
        return v


class AssetTypeRead(BaseModel):
    is_office: bool
    is_retail: bool
    is_hotel: bool
    is_logistic: bool
    is_residential: bool
    is_health_care: bool
    is_other: bool

    model_config = ConfigDict(from_attributes=True)


class JReitBuildingRead(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    city_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    nearest_station: Optional[str] = None
    completed_year: Optional[int] = None
    completed_month: Optional[int] = None
    gross_floor_area: Optional[float] = None
    basement: Optional[int] = None
    groundfloor: Optional[int] = None
    structure: Optional[str] = None
    floor_plan: Optional[str] = None
    land: Optional[float] = None
    building_coverage_ratio: Optional[float] = None
    floor_area_ratio: Optional[float] = None
    office_building_id: Optional[int] = None
    residential_building_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class JReitIdMappingRead(BaseModel):
    j_reit_building_id: str
    j_reit_corporation_id: str

    model_config = ConfigDict(from_attributes=True)


class CapRateHistoryRead(BaseModel):
    id: int
    j_reit_mizuho_building_id: str
    cap_rate: Optional[float] = None
    closing_date: date

    model_config = ConfigDict(from_attributes=True)


class AppraisalHistoryRead(BaseModel):
    id: int
    j_reit_mizuho_building_id: str
    appraisal_price: Optional[int] = None
    appraisal_date: date

    model_config = ConfigDict(from_attributes=True)


class FinancialRead(BaseModel):
    id: int
    j_reit_mizuho_building_id: str
    fiscal_period: Optional[str] = None
    fiscal_period_start_date: date
    fiscal_period_end_date: date
    fiscal_period_operating_days: Optional[int] = None
    rent_revenue: Optional[int] = None
    total_revenue: Optional[int] = None
    total_expense: Optional[int] = None
    net_operating_income: Optional[int] = None
    occupancy_rate: Optional[float] = None
    leasable_area: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class PressReleaseRead(BaseModel):
    id: int
    j_reit_mizuho_building_id: str
    title: str
    url: Optional[str] = None
    release_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class JReitBuildingDetail(BaseModel):
    """A building as held by one corporation."""

    j_reit_building_id: str
    j_reit_corporation_id: str
    building: JReitBuildingRead
    asset_type: AssetTypeRead
    corporation: Optional[CorporationRead] = None
    transactions: List[TransactionRead] = []
    initial_acquisition: Optional[TransactionRead] = None
    latest_transaction: Optional[TransactionRead] = None
    transfer_transaction: Optional[TransactionRead] = None
    latest_cap_rate: Optional[CapRateHistoryRead] = None
    latest_financial: Optional[FinancialRead] = None


class SearchJReitBuildingsResult(BaseModel):
    total_count: int
    j_reit_buildings: List[JReitBuildingDetail]


class OffsetPageInfo(BaseModel):
    page: int
    total_pages: int
    total_count: int


class SearchTransactionsResult(BaseModel):
    nodes: List[TransactionRead]
    page_info: OffsetPageInfo
