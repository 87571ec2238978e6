"""API router for J-REIT building and transaction searches."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.core.dependencies import JReitSessionDep, RolesDep
from app.jreit.dao import AppraisalDAO, BuildingDAO, CorporationDAO, MizuhoDAO, TransactionDAO
from app.jreit.schemas import (
    AppraisalHistoryRead,
    CapRateHistoryRead,
    CorporationRead,
    FinancialRead,
    GetJReitBuildingsByOfficeBuildingIdsRequest,
    GetJReitBuildingsPerCorporationRequest,
    GetJReitBuildingsRequest,
    GetTransactionsRequest,
    JReitBuildingDetail,
    JReitBuildingRead,
    JReitIdMappingRead,
    PressReleaseRead,
    SearchJReitBuildingsRequest,
    SearchJReitBuildingsResult,
    SearchTransactionsRequest,
    SearchTransactionsResult,
    TransactionRead,
)
from app.jreit.service import JReitService
from app.query.engine import JReitQueryEngine
from app.query.schemas import BuildingIdWithCorporationId

router = APIRouter(prefix="/jreit", tags=["jreit"])

PAIR_PATH = "/buildings/{building_id}/corporations/{corporation_id}"


# Dependency functions
def get_jreit_service(db: JReitSessionDep) -> JReitService:
    return JReitService(
        engine=JReitQueryEngine(db),
        building_dao=BuildingDAO(db),
        corporation_dao=CorporationDAO(db),
        transaction_dao=TransactionDAO(db),
        appraisal_dao=AppraisalDAO(db),
        mizuho_dao=MizuhoDAO(db),
    )


def _to_condition(value):
    return value.to_condition() if value is not None else None


# ===== BUILDINGS =====


@router.post("/buildings/search", response_model=SearchJReitBuildingsResult)
def search_buildings(
    request: SearchJReitBuildingsRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> SearchJReitBuildingsResult:
    """Search buildings per holding corporation."""
    return service.search_buildings(
        roles,
        condition=_to_condition(request.condition),
        sort=_to_condition(request.sort),
        pagination=_to_condition(request.pagination),
        ids=request.ids,
    )


@router.post("/buildings", response_model=List[JReitBuildingDetail])
def get_buildings(
    request: GetJReitBuildingsRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[JReitBuildingDetail]:
    """List buildings by id with the search ordering rules."""
    return service.get_buildings(
        roles,
        ids=request.ids,
        sort=_to_condition(request.sort),
        pagination=_to_condition(request.pagination),
    )


@router.post("/buildings/per-corporation", response_model=List[JReitBuildingDetail])
def get_buildings_per_corporation(
    request: GetJReitBuildingsPerCorporationRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[JReitBuildingDetail]:
    return service.get_buildings_per_corporation(
        roles,
        pairs=[pair.to_condition() for pair in request.pairs],
        sort=_to_condition(request.sort),
        pagination=_to_condition(request.pagination),
    )


@router.post("/buildings/by-office-building-ids", response_model=List[JReitBuildingRead])
def get_buildings_by_office_building_ids(
    request: GetJReitBuildingsByOfficeBuildingIdsRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[JReitBuildingRead]:
    """Office buildings only; buildings held solely by delisted corporations are left out."""
    return service.get_buildings_by_office_building_ids(roles, request.office_building_ids)


@router.get("/id-mappings/{data_hub_building_id}", response_model=Optional[JReitIdMappingRead])
def get_id_mapping(
    data_hub_building_id: str,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> Optional[JReitIdMappingRead]:
    return service.get_id_mapping(roles, data_hub_building_id)


# ===== TRANSACTIONS =====


@router.post("/transactions/search", response_model=SearchTransactionsResult)
def search_transactions(
    request: SearchTransactionsRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> SearchTransactionsResult:
    """Search transactions, newest first unless a sort is given."""
    return service.search_transactions(
        roles,
        condition=_to_condition(request.condition),
        sort=_to_condition(request.sort),
        pagination=_to_condition(request.pagination),
    )


@router.post("/transactions", response_model=List[TransactionRead])
def get_transactions(
    request: GetTransactionsRequest,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[TransactionRead]:
    return service.get_transactions(roles, request.ids)


@router.get(PAIR_PATH + "/transactions", response_model=List[TransactionRead])
def get_transactions_for_pair(
    building_id: str,
    corporation_id: str,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[TransactionRead]:
    return service.get_transactions_for_pair(roles, BuildingIdWithCorporationId(building_id, corporation_id))


# ===== MIZUHO HISTORIES =====


@router.get(PAIR_PATH + "/cap-rate-histories", response_model=List[CapRateHistoryRead])
def get_cap_rate_histories(
    building_id: str,
    corporation_id: str,
    roles: RolesDep,
    first: Optional[int] = Query(default=None, ge=0),
    last: Optional[int] = Query(default=None, ge=0),
    service: JReitService = Depends(get_jreit_service),
) -> List[CapRateHistoryRead]:
    """Cap-rate history, oldest first. ``first`` wins over ``last``."""
    return service.get_cap_rate_histories(
        roles, BuildingIdWithCorporationId(building_id, corporation_id), first=first, last=last
    )


@router.get(PAIR_PATH + "/appraisal-histories", response_model=List[AppraisalHistoryRead])
def get_appraisal_histories(
    building_id: str,
    corporation_id: str,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[AppraisalHistoryRead]:
    return service.get_appraisal_histories(roles, BuildingIdWithCorporationId(building_id, corporation_id))


@router.get(PAIR_PATH + "/financials", response_model=List[FinancialRead])
def get_financials(
    building_id: str,
    corporation_id: str,
    roles: RolesDep,
    first: Optional[int] = Query(default=None, ge=0),
    last: Optional[int] = Query(default=None, ge=0),
    service: JReitService = Depends(get_jreit_service),
) -> List[FinancialRead]:
    return service.get_financials(
        roles, BuildingIdWithCorporationId(building_id, corporation_id), first=first, last=last
    )


@router.get(PAIR_PATH + "/press-releases", response_model=List[PressReleaseRead])
def get_press_releases(
    building_id: str,
    corporation_id: str,
    roles: RolesDep,
    service: JReitService = Depends(get_jreit_service),
) -> List[PressReleaseRead]:
    return service.get_press_releases(roles, BuildingIdWithCorporationId(building_id, corporation_id))


# ===== CORPORATIONS =====


@router.get("/corporations", response_model=List[CorporationRead])
def get_corporations(
    roles: RolesDep,
    include_delisted: bool = True,
    service: JReitService = Depends(get_jreit_service),
) -> List[CorporationRead]:
    return service.get_corporations(roles, include_delisted=include_delisted)
