# assessment_record.py
from sqlalchemy import JSON, Column, Integer, String
from talentflow.database import Base


class AssessmentRecord(Base):
    __tablename__ = "assessments"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    # Keyed by job id: one assessment per job.
    key = Column(String(64), unique=True, index=True, nullable=False)
    payload = Column(JSON, nullable=False)
