"""
Filter compilers for building and transaction searches.

Each ``_*_filter`` helper turns one condition field into zero or one
predicate. A ``None`` result means the field imposes no constraint; the
compilers AND the remaining predicates onto the context. Helpers that read a
derived view attach it through the context, which joins it at most once.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement

from app.jreit.models import Building, Corporation, Transaction, Appraisal, City, Ward, Station
from .schemas import (
    AssetTypeCondition,
    JReitBuildingSearchCondition,
    LatLng,
    LocationCondition,
    StationCondition,
    TransactionSearchCondition,
    tri_state,
)
from .utils import contains, range_filter, spherical_distance, walking_radius

if TYPE_CHECKING:
    from .builder import QueryContext


# ===== SHARED FILTERS =====


def _location_filter(ctx: "QueryContext", location: Optional[LocationCondition]) -> Optional[ColumnElement]:
    if location is None or location.is_empty():
        return None
    ctx.join_location()
    # Empty id lists are skipped so no IN () reaches the SQL
    any_of = []
    if location.city_ids:
        any_of.append(Building.city_id.in_(location.city_ids))
    if location.ward_ids:
        any_of.append(City.ward_id.in_(location.ward_ids))
    if location.prefecture_ids:
        any_of.append(Ward.prefecture_id.in_(location.prefecture_ids))
    return or_(*any_of)


def _lat_lng_filter(bounds: Optional[LatLng]) -> Optional[ColumnElement]:
    if bounds is None:
        return None
    return and_(
        Building.latitude >= bounds.south,
        Building.latitude <= bounds.north,
        Building.longitude >= bounds.west,
        Building.longitude <= bounds.east,
    )


def _station_filter(station: Optional[StationCondition]) -> Optional[ColumnElement]:
    if station is None or station.is_empty():
        return None
    nearby = aliased(Building, name="nearby_buildings")
    distance = spherical_distance(nearby.longitude, nearby.latitude, Station.longitude, Station.latitude)
    nearby_ids = (
        select(nearby.id)
        .select_from(nearby)
        .join(
            Station,
            and_(
                Station.id.in_(station.station_ids),
                distance.between(walking_radius(station.min_time), walking_radius(station.max_time)),
            ),
        )
    )
    return Building.id.in_(nearby_ids)


def _asset_type_filter(asset_type: Optional[AssetTypeCondition]) -> Optional[ColumnElement]:
    requested = asset_type.requested_columns() if asset_type is not None else []
    if not requested:
        return None
    return or_(*(getattr(Building, column) == 1 for column in requested))


def _ids_filter(column, ids: Optional[List]) -> Optional[ColumnElement]:
    if not ids:
        return None
    return column.in_(ids)


# ===== BUILDING SEARCH =====


def _name_filter(name: Optional[str]) -> Optional[ColumnElement]:
    if not name:
        return None
    return contains(Building.name, name)


def _total_leasable_area_filter(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> Optional[ColumnElement]:
    if condition.total_leasable_area is None or condition.total_leasable_area.is_empty():
        return None
    latest = ctx.join_latest_transactions()
    return range_filter(latest.c.total_leasable_area, condition.total_leasable_area)


def _first_acquisition_filters(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> List[ColumnElement]:
    ranges = [
        ("transaction_date", condition.acquisition_date),
        ("transaction_price", condition.acquisition_price),
        ("cap_rate", condition.initial_cap_rate),
    ]
    active = [(column, value) for column, value in ranges if value is not None and not value.is_empty()]
    if not active:
        return []
    first = ctx.join_first_acquisitions()
    return [range_filter(first.c[column], value) for column, value in active]


def _cap_rate_filter(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> Optional[ColumnElement]:
    if condition.cap_rate is None or condition.cap_rate.is_empty():
        return None
    latest = ctx.join_latest_cap_rate_histories()
    return range_filter(latest.c.cap_rate, condition.cap_rate)


def _appraised_price_filter(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> Optional[ColumnElement]:
    if condition.appraised_price is None or condition.appraised_price.is_empty():
        return None
    latest = ctx.join_latest_appraisal_histories()
    return range_filter(latest.c.appraisal_price, condition.appraised_price)


def _transfer_filters(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> List[ColumnElement]:
    include_transferred, include_held = tri_state(condition.is_transferred)
    has_date_range = condition.transfer_date is not None and not condition.transfer_date.is_empty()
    status_filtered = not (include_transferred and include_held)
    if not (has_date_range or status_filtered):
        return []

    transferred = ctx.join_transferred_transactions()
    conditions = []
    if status_filtered:
        is_transferred = transferred.c.j_reit_building_id.isnot(None)
        conditions.append(is_transferred if include_transferred else transferred.c.j_reit_building_id.is_(None))
    if has_date_range:
        conditions.append(range_filter(transferred.c.transaction_date, condition.transfer_date))
    return conditions


def _delisted_filter(is_delisted: Optional[bool]) -> Optional[ColumnElement]:
    include_delisted, include_listed = tri_state(is_delisted)
    if include_delisted and include_listed:
        return None
    return Corporation.is_delisted == (1 if include_delisted else 0)


def compile_building_filters(ctx: "QueryContext", condition: JReitBuildingSearchCondition) -> None:
    """AND every active building-search predicate onto ``ctx``."""
    predicates = [
        _name_filter(condition.name),
        _ids_filter(Corporation.id, condition.j_reit_corporation_ids),
        _location_filter(ctx, condition.location),
        _station_filter(condition.station),
        _lat_lng_filter(condition.latitude_and_longitude),
        range_filter(Building.completed_year, condition.completed_year),
        range_filter(Building.land, condition.land_area),
        range_filter(Building.gross_floor_area, condition.gross_floor_area),
        _total_leasable_area_filter(ctx, condition),
        *_first_acquisition_filters(ctx, condition),
        _appraised_price_filter(ctx, condition),
        _cap_rate_filter(ctx, condition),
        *_transfer_filters(ctx, condition),
        _asset_type_filter(condition.asset_type),
        _delisted_filter(condition.is_delisted),
    ]
    ctx.where([predicate for predicate in predicates if predicate is not None])


# ===== TRANSACTION SEARCH =====


def _transaction_price_filter(condition: TransactionSearchCondition) -> Optional[ColumnElement]:
    price = condition.transaction_price
    if price is None or price.is_empty():
        return None
    if condition.include_bulk is True and condition.use_apportioned_price is True:
        # Bulk deals are compared on their apportioned share of the bulk price
        return or_(
            and_(Transaction.is_bulk == 1, range_filter(Transaction.apportioned_transaction_price, price)),
            and_(Transaction.is_bulk == 0, range_filter(Transaction.transaction_price, price)),
        )
    return range_filter(Transaction.transaction_price, price)


def _appraisal_filters(ctx: "QueryContext", condition: TransactionSearchCondition) -> List[ColumnElement]:
    ranges = [
        (Appraisal.appraisal_price, condition.appraisal_price),
        (Appraisal.cap_rate, condition.appraisal_cap_rate),
    ]
    active = [(column, value) for column, value in ranges if value is not None and not value.is_empty()]
    if not active:
        return []
    ctx.join_appraisals()
    return [range_filter(column, value) for column, value in active]


def compile_transaction_filters(ctx: "QueryContext", condition: TransactionSearchCondition) -> None:
    """AND every active transaction-search predicate onto ``ctx``.

    Bulk transactions are included unless ``include_bulk`` is False. Delisted
    corporations are excluded unless ``include_delisted`` is True.
    """
    predicates = [
        _location_filter(ctx, condition.location),
        _lat_lng_filter(condition.latitude_and_longitude),
        _station_filter(condition.station),
        range_filter(Transaction.transaction_date, condition.transaction_date),
        _transaction_price_filter(condition),
        _ids_filter(Transaction.transaction_category, condition.transaction_categories),
        range_filter(Building.completed_year, condition.completion_year),
        range_filter(Building.gross_floor_area, condition.gross_floor_area),
        range_filter(Transaction.press_release_date, condition.press_release_date),
        Transaction.is_bulk == 0 if condition.include_bulk is False else None,
        *_appraisal_filters(ctx, condition),
        _ids_filter(Transaction.j_reit_corporation_id, condition.j_reit_corporation_ids),
        Corporation.is_delisted == 0 if condition.include_delisted is not True else None,
        _asset_type_filter(condition.asset_type),
    ]
    ctx.where([predicate for predicate in predicates if predicate is not None])
