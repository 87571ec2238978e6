"""
Test configuration and shared fixtures for the J-REIT search test suite.
Provides database setup, a sample J-REIT portfolio and an API client.
"""

import os
import tempfile

# Point the application's own engines at throwaway files before app modules load
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'jreit_test_config.db')}")
os.environ.setdefault("JREIT_DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'jreit_test_store.db')}")

import pytest
from datetime import date
from typing import Dict, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.app import create_app
from app.core.database import Base, JReitBase, get_db, get_jreit_db, register_sqlite_functions
from app.jreit.models import (
    Prefecture,
    Ward,
    City,
    Station,
    Building,
    Corporation,
    Transaction,
    Appraisal,
    MizuhoIdMapping,
    CapRateHistory,
    AppraisalHistory,
    Financial,
    PressRelease,
    TransactionCategory,
)
from app.query.schemas import UserRoles


# ===== DATABASE SETUP =====

@pytest.fixture(scope="session")
def config_engine():
    """Create in-memory SQLite engine for config database"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from app.logging.models import Log  # noqa: F401
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="session")
def jreit_engine():
    """Create in-memory SQLite engine for the J-REIT store"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    register_sqlite_functions(engine)
    JReitBase.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def config_db_session(config_engine):
    """Create a database session for config database"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=config_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=config_engine)
        Base.metadata.create_all(bind=config_engine)


@pytest.fixture(scope="function")
def jreit_db_session(jreit_engine):
    """Create a database session for the J-REIT store"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=jreit_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Clean up all data after each test
        JReitBase.metadata.drop_all(bind=jreit_engine)
        JReitBase.metadata.create_all(bind=jreit_engine)


@pytest.fixture
def client(config_db_session, jreit_db_session):
    """Create FastAPI test client with database overrides"""
    app = create_app()

    def override_get_db():
        try:
            yield config_db_session
        finally:
            pass

    def override_get_jreit_db():
        try:
            yield jreit_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_jreit_db] = override_get_jreit_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ===== ROLES =====

@pytest.fixture
def api_headers() -> Dict[str, str]:
    """Headers of a caller allowed to see J-REIT data"""
    return {"X-User-Roles": "market_research_login"}


@pytest.fixture
def authorized_roles() -> UserRoles:
    return UserRoles(market_research_login=True)


@pytest.fixture
def unauthorized_roles() -> UserRoles:
    return UserRoles()


# ===== SAMPLE DATA =====

class JReitFactory:
    """Adds J-REIT rows with sensible defaults."""

    def __init__(self, session):
        self.session = session

    def building(self, id: str, name: Optional[str] = None, **fields) -> Building:
        building = Building(id=id, name=name or f"Building {id}", **fields)
        self.session.add(building)
        return building

    def corporation(self, id: str, name: str, is_delisted: int = 0) -> Corporation:
        corporation = Corporation(id=id, name=name, is_delisted=is_delisted)
        self.session.add(corporation)
        return corporation

    def transaction(
        self,
        id: str,
        building_id: str,
        corporation_id: str,
        category: int = TransactionCategory.INITIAL_ACQUISITION,
        **fields,
    ) -> Transaction:
        transaction = Transaction(
            id=id,
            j_reit_building_id=building_id,
            j_reit_corporation_id=corporation_id,
            combined_transaction_id=f"{building_id}-{corporation_id}",
            transaction_category=category,
            **fields,
        )
        self.session.add(transaction)
        return transaction

    def add(self, *rows) -> None:
        self.session.add_all(rows)

    def commit(self) -> None:
        self.session.commit()


@pytest.fixture
def factory(jreit_db_session) -> JReitFactory:
    return JReitFactory(jreit_db_session)


@pytest.fixture
def sample_portfolio(factory):
    """
    Three buildings held by three corporations through five pairs.

    B1 "Alpha Tower"     office+residential, Chiyoda (Tokyo), next to station 1
    B2 "Beta_Residence"  residential, Yokohama (Kanagawa), transferred by C2
    B3 "Gamma Hotel"     hotel, no city or coordinates

    C1 "A0" and C2 "B0" are listed, C3 "A1" is delisted.
    """
    factory.add(
        Prefecture(id=13, name="Tokyo"),
        Prefecture(id=14, name="Kanagawa"),
        Ward(id=131, prefecture_id=13, name="Chiyoda"),
        Ward(id=141, prefecture_id=14, name="Yokohama"),
        City(id=1001, ward_id=131, name="Marunouchi"),
        City(id=1002, ward_id=141, name="Minatomirai"),
        # About 260 m east of Alpha Tower
        Station(id=1, name="Tokyo", latitude=35.6812, longitude=139.7700),
    )
    factory.building(
        "B1", "Alpha Tower", is_office=1, is_residential=1, city_id=1001,
        latitude=35.6812, longitude=139.7671, completed_year=2000, land=500, gross_floor_area=3000,
    )
    factory.building(
        "B2", "Beta_Residence", is_residential=1, city_id=1002,
        latitude=35.4437, longitude=139.6380, completed_year=2010, land=300,
    )
    factory.building("B3", "Gamma Hotel", is_hotel=1, land=800, gross_floor_area=5000)

    factory.corporation("C1", "A0")
    factory.corporation("C2", "B0")
    factory.corporation("C3", "A1", is_delisted=1)

    factory.add(
        Appraisal(id="AP1", appraisal_price=11000, cap_rate=4.0, appraisal_date=date(2015, 3, 1)),
        Appraisal(id="AP2", appraisal_price=5200, cap_rate=5.0, appraisal_date=date(2016, 1, 1)),
    )

    factory.transaction(
        "T1", "B1", "C1", transaction_date=date(2015, 4, 1), transaction_price=10000,
        leasable_area=100, total_leasable_area=100, press_release_date=date(2015, 3, 20),
        j_reit_appraisal_id="AP1",
    )
    factory.transaction(
        "T2", "B1", "C1", TransactionCategory.ADDITIONAL_ACQUISITION, transaction_date=date(2018, 6, 1),
        transaction_price=2000, leasable_area=20, total_leasable_area=120,
    )
    factory.transaction(
        "T3", "B2", "C2", transaction_date=date(2016, 1, 15), transaction_price=5000,
        apportioned_transaction_price=4500, is_bulk=1, leasable_area=50, total_leasable_area=50,
        j_reit_appraisal_id="AP2",
    )
    factory.transaction(
        "T4", "B2", "C2", TransactionCategory.FULL_TRANSFER, transaction_date=date(2021, 3, 31),
        transaction_price=6000,
    )
    factory.transaction(
        "T5", "B3", "C3", transaction_date=date(2012, 9, 1), transaction_price=20000,
        leasable_area=300, total_leasable_area=300,
    )
    # Refers to an appraisal that does not exist
    factory.transaction(
        "T6", "B1", "C2", transaction_date=date(2019, 1, 1), transaction_price=12000,
        leasable_area=90, total_leasable_area=90, j_reit_appraisal_id="AP404",
    )
    factory.transaction("T7", "B3", "C1", transaction_date=date(2020, 1, 1))

    factory.add(
        MizuhoIdMapping(j_reit_building_id="B1", j_reit_corporation_id="C1", j_reit_mizuho_building_id="M1"),
        MizuhoIdMapping(j_reit_building_id="B2", j_reit_corporation_id="C2", j_reit_mizuho_building_id="M2"),
        MizuhoIdMapping(j_reit_building_id="B3", j_reit_corporation_id="C3", j_reit_mizuho_building_id="M3"),
        CapRateHistory(id=1, j_reit_mizuho_building_id="M1", cap_rate=4.2, closing_date=date(2020, 1, 31)),
        CapRateHistory(id=2, j_reit_mizuho_building_id="M1", cap_rate=3.9, closing_date=date(2022, 1, 31)),
        CapRateHistory(id=3, j_reit_mizuho_building_id="M2", cap_rate=4.8, closing_date=date(2021, 1, 31)),
        CapRateHistory(id=4, j_reit_mizuho_building_id="M1", cap_rate=4.0, closing_date=date(2021, 1, 31)),
        # Same date twice for M1; the higher id is the latest
        AppraisalHistory(id=1, j_reit_mizuho_building_id="M1", appraisal_price=12000, appraisal_date=date(2021, 12, 31)),
        AppraisalHistory(id=2, j_reit_mizuho_building_id="M1", appraisal_price=12500, appraisal_date=date(2021, 12, 31)),
        AppraisalHistory(id=3, j_reit_mizuho_building_id="M1", appraisal_price=11500, appraisal_date=date(2020, 12, 31)),
        AppraisalHistory(id=4, j_reit_mizuho_building_id="M2", appraisal_price=5500, appraisal_date=date(2020, 12, 31)),
        Financial(
            id=1, j_reit_mizuho_building_id="M1", fiscal_period="Period 2",
            fiscal_period_start_date=date(2021, 7, 1), fiscal_period_end_date=date(2021, 12, 31),
            net_operating_income=310,
        ),
        Financial(
            id=2, j_reit_mizuho_building_id="M1", fiscal_period="Period 1",
            fiscal_period_start_date=date(2021, 1, 1), fiscal_period_end_date=date(2021, 6, 30),
            net_operating_income=300,
        ),
        Financial(
            id=3, j_reit_mizuho_building_id="M1", fiscal_period="Period 3",
            fiscal_period_start_date=date(2022, 1, 1), fiscal_period_end_date=date(2022, 6, 30),
            net_operating_income=320,
        ),
        PressRelease(id=1, j_reit_mizuho_building_id="M1", title="Acquisition of Alpha Tower", release_date=date(2015, 3, 20)),
    )
    factory.commit()
    return factory
