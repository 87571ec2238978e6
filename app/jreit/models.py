"""Database models for the J-REIT store (J-REIT database)."""

from sqlalchemy import Column, Integer, String, Float, Date, BigInteger, Index
from app.core.database import JReitBase as Base


class TransactionCategory:
    """Integer codes stored in ``j_reit_transactions.transaction_category``."""

    INITIAL_ACQUISITION = 0
    ADDITIONAL_ACQUISITION = 1
    PARTIAL_TRANSFER = 2
    FULL_TRANSFER = 3


# ===== LOCATION =====


class Prefecture(Base):
    __tablename__ = "prefectures"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), nullable=False)


class Ward(Base):
    __tablename__ = "wards"

    id = Column(Integer, primary_key=True)
    prefecture_id = Column(Integer, nullable=False, index=True)
    name = Column(String(64), nullable=False)


class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True)
    ward_id = Column(Integer, nullable=False, index=True)
    name = Column(String(64), nullable=False)


class Station(Base):
    __tablename__ = "stations"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)


# ===== BUILDINGS AND CORPORATIONS =====


class Building(Base):
    """J-REIT building. Asset-type flags are stored as 0/1 and may overlap."""

    __tablename__ = "j_reit_buildings"

    id = Column(String(64), primary_key=True)
    is_office = Column(Integer, nullable=False, default=0)
    is_retail = Column(Integer, nullable=False, default=0)
    is_hotel = Column(Integer, nullable=False, default=0)
    is_logistic = Column(Integer, nullable=False, default=0)
    is_residential = Column(Integer, nullable=False, default=0)
    is_health_care = Column(Integer, nullable=False, default=0)
    is_other = Column(Integer, nullable=False, default=0)
    office_building_id = Column(BigInteger, nullable=True)
    residential_building_id = Column(BigInteger, nullable=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=True)
    city_id = Column(Integer, nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    nearest_station = Column(String(255), nullable=True)
    completed_year = Column(Integer, nullable=True)
    completed_month = Column(Integer, nullable=True)
    gross_floor_area = Column(Float, nullable=True)
    basement = Column(Integer, nullable=True)
    groundfloor = Column(Integer, nullable=True)
    structure = Column(String(64), nullable=True)
    floor_plan = Column(String(255), nullable=True)
    land = Column(Float, nullable=True)
    building_coverage_ratio = Column(Float, nullable=True)
    floor_area_ratio = Column(Float, nullable=True)


class Corporation(Base):
    __tablename__ = "j_reit_corporations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    is_delisted = Column(Integer, nullable=False, default=0)


# ===== TRANSACTIONS AND APPRAISALS =====


class Transaction(Base):
    """Acquisition or transfer of a building by a corporation.

    ``combined_transaction_id`` is ``"{building_id}-{corporation_id}"`` and is
    shared by every transaction of the same pair.
    """

    __tablename__ = "j_reit_transactions"

    id = Column(String(64), primary_key=True)
    j_reit_building_id = Column(String(64), nullable=False, index=True)
    j_reit_corporation_id = Column(String(64), nullable=False, index=True)
    combined_transaction_id = Column(String(130), nullable=False, index=True)
    transaction_category = Column(Integer, nullable=False)
    transaction_date = Column(Date, nullable=True)
    transaction_price = Column(BigInteger, nullable=True)
    apportioned_transaction_price = Column(BigInteger, nullable=True)
    leasable_area = Column(Float, nullable=True)
    total_leasable_area = Column(Float, nullable=True)
    leasable_units = Column(Integer, nullable=True)
    land_ownership_type = Column(String(64), nullable=True)
    land_ownership_ratio = Column(Float, nullable=True)
    building_ownership_type = Column(String(64), nullable=True)
    building_ownership_ratio = Column(Float, nullable=True)
    transaction_partner = Column(String(255), nullable=True)
    property_manager = Column(String(255), nullable=True)
    pml_assessment_company = Column(String(255), nullable=True)
    trustee = Column(String(255), nullable=True)
    press_release_date = Column(Date, nullable=True)
    is_bulk = Column(Integer, nullable=False, default=0)
    j_reit_appraisal_id = Column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_j_reit_transactions_pair", "j_reit_building_id", "j_reit_corporation_id"),
    )


class Appraisal(Base):
    __tablename__ = "j_reit_appraisals"

    id = Column(String(64), primary_key=True)
    appraisal_price = Column(BigInteger, nullable=True)
    appraisal_date = Column(Date, nullable=True)
    appraisal_company = Column(String(255), nullable=True)
    cap_rate = Column(Float, nullable=True)
    discount_rate = Column(Float, nullable=True)
    terminal_cap_rate = Column(Float, nullable=True)
    net_operating_income = Column(BigInteger, nullable=True)


# ===== MIZUHO MAPPING AND HISTORIES =====


class MizuhoIdMapping(Base):
    """Maps a (building, corporation) pair to the Mizuho building id."""

    __tablename__ = "j_reit_mizuho_id_mappings"

    j_reit_building_id = Column(String(64), primary_key=True)
    j_reit_corporation_id = Column(String(64), primary_key=True)
    j_reit_mizuho_building_id = Column(String(64), nullable=False, index=True)


class CapRateHistory(Base):
    __tablename__ = "j_reit_mizuho_cap_rate_histories"

    id = Column(Integer, primary_key=True)
    j_reit_mizuho_building_id = Column(String(64), nullable=False, index=True)
    cap_rate = Column(Float, nullable=True)
    closing_date = Column(Date, nullable=False)


class AppraisalHistory(Base):
    __tablename__ = "j_reit_mizuho_appraisal_histories"

    id = Column(Integer, primary_key=True)
    j_reit_mizuho_building_id = Column(String(64), nullable=False, index=True)
    appraisal_price = Column(BigInteger, nullable=True)
    appraisal_date = Column(Date, nullable=False)


class Financial(Base):
    """Fiscal-period results of a Mizuho building."""

    __tablename__ = "j_reit_mizuho_financials"

    id = Column(Integer, primary_key=True)
    j_reit_mizuho_building_id = Column(String(64), nullable=False, index=True)
    fiscal_period = Column(String(64), nullable=True)
    fiscal_period_start_date = Column(Date, nullable=False)
    fiscal_period_end_date = Column(Date, nullable=False)
    fiscal_period_operating_days = Column(Integer, nullable=True)
    rent_revenue = Column(BigInteger, nullable=True)
    total_revenue = Column(BigInteger, nullable=True)
    total_expense = Column(BigInteger, nullable=True)
    net_operating_income = Column(BigInteger, nullable=True)
    occupancy_rate = Column(Float, nullable=True)
    leasable_area = Column(Float, nullable=True)


class PressRelease(Base):
    __tablename__ = "j_reit_mizuho_press_releases"

    id = Column(Integer, primary_key=True)
    j_reit_mizuho_building_id = Column(String(64), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    url = Column(String(512), nullable=True)
    release_date = Column(Date, nullable=True)
