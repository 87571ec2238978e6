"""Request log stored in the config database."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from app.core.database import Base


class Log(Base):
    """One row per J-REIT API request, or per error response."""

    __tablename__ = "request_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    method = Column(String(10), nullable=False)
    path = Column(String(255), nullable=False, index=True)
    status_code = Column(Integer, nullable=False)
    client_ip = Column(String(64), nullable=True)
    # Raw X-User-Roles header; search results depend on it
    user_roles = Column(String(255), nullable=True)
    request_headers = Column(Text, nullable=True)
    request_body = Column(Text, nullable=True)
    response_body = Column(Text, nullable=True)
    processing_time = Column(Float, nullable=True)
    user_agent = Column(String(255), nullable=True)
    username = Column(String(64), nullable=True)
    hostname = Column(String(255), nullable=True)
    application_id = Column(String(64), nullable=True)
