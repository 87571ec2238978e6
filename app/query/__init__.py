"""
Query module for J-REIT searches.

Main Components:
- JReitQueryBuilder / QueryContext: compose filtered statements with
  deduplicated joins of derived views
- JReitQueryEngine: count plus sorted, paginated id projection
- Schemas: conditions, sort keys, pagination and results
"""

from .builder import JReitQueryBuilder, QueryContext
from .engine import JReitQueryEngine
from .schemas import (
    # Conditions
    JReitBuildingSearchCondition,
    TransactionSearchCondition,
    MinMax,
    LatLng,
    LocationCondition,
    StationCondition,
    AssetTypeCondition,
    # Sort and pagination
    JReitBuildingSortKey,
    JReitTransactionSortKey,
    SortCondition,
    SortOrder,
    PaginateCondition,
    # Results
    BuildingIdWithCorporationId,
    SearchResult,
    TransactionSearchResult,
    UserRoles,
)

__all__ = [
    "JReitQueryBuilder",
    "QueryContext",
    "JReitQueryEngine",
    "JReitBuildingSearchCondition",
    "TransactionSearchCondition",
    "MinMax",
    "LatLng",
    "LocationCondition",
    "StationCondition",
    "AssetTypeCondition",
    "JReitBuildingSortKey",
    "JReitTransactionSortKey",
    "SortCondition",
    "SortOrder",
    "PaginateCondition",
    "BuildingIdWithCorporationId",
    "SearchResult",
    "TransactionSearchResult",
    "UserRoles",
]
