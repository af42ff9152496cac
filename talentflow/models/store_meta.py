# store_meta.py
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func
from talentflow.database import Base


class StoreMeta(Base):
    __tablename__ = "store_meta"

    store_name = Column(String(64), primary_key=True)
    schema_version = Column(Integer, nullable=False)
    upgraded_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
