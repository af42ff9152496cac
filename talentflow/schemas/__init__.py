from talentflow.schemas.assessment import (
	Assessment,
	AssessmentUpsert,
	FileUploadQuestion,
	LongTextQuestion,
	MultiChoiceQuestion,
	NumericQuestion,
	Question,
	Section,
	ShortTextQuestion,
	SingleChoiceQuestion,
)
from talentflow.schemas.candidate import Candidate, CandidateCreate, CandidateFilter, CandidateUpdate
from talentflow.schemas.job import Job, JobCreate, JobFilter, JobUpdate
from talentflow.schemas.pagination import PageInfo, PageResult, Pagination

__all__ = [
	"Assessment",
	"AssessmentUpsert",
	"FileUploadQuestion",
	"LongTextQuestion",
	"MultiChoiceQuestion",
	"NumericQuestion",
	"Question",
	"Section",
	"ShortTextQuestion",
	"SingleChoiceQuestion",
	"Candidate",
	"CandidateCreate",
	"CandidateFilter",
	"CandidateUpdate",
	"Job",
	"JobCreate",
	"JobFilter",
	"JobUpdate",
	"PageInfo",
	"PageResult",
	"Pagination",
]
