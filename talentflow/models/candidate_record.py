# candidate_record.py
from sqlalchemy import JSON, Column, Integer, String
from talentflow.database import Base


class CandidateRecord(Base):
    __tablename__ = "candidates"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(64), unique=True, index=True, nullable=False)
    payload = Column(JSON, nullable=False)
