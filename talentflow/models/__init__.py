# __init__.py
from talentflow.models.assessment_record import AssessmentRecord
from talentflow.models.candidate_record import CandidateRecord
from talentflow.models.job_record import JobRecord
from talentflow.models.store_meta import StoreMeta

__all__ = [
	"AssessmentRecord",
	"CandidateRecord",
	"JobRecord",
	"StoreMeta",
]
