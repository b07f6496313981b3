from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator


class ExperienceLevel(int, Enum):
    """Ordinal experience levels, comparable with < and >="""
    FRESHER = 1
    JUNIOR = 2
    MID = 3
    SENIOR = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Any) -> Optional["ExperienceLevel"]:
        """Case-insensitive lookup by name; anything unrecognised is unknown (None)."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, ExperienceLevel):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        key = str(value).strip().upper()
        return cls.__members__.get(key)


class DocType(str, Enum):
    CANDIDATE = "candidate"
    JOB = "job"


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, (list, tuple, set)):
        return [str(t).strip() for t in x if t is not None and str(t).strip()]
    return []


class CandidateProfile(BaseModel):
    candidate_id: str
    name: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    preferred_track: Optional[str] = None
    career_interests: List[str] = Field(default_factory=list)
    education_level: Optional[str] = None

    @validator("skills", "career_interests", pre=True)
    def _coerce_list(cls, v):
        return _as_list(v)

    @validator("experience_level", pre=True)
    def _coerce_level(cls, v):
        return ExperienceLevel.parse(v)


class JobPosting(BaseModel):
    job_id: str
    title: str = ""
    company: Optional[str] = None
    required_skills: List[str] = Field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None
    track: Optional[str] = None
    job_type: Optional[str] = None
    location: Optional[str] = None
    source: Optional[str] = None
    source_url: Optional[str] = None

    @validator("required_skills", pre=True)
    def _coerce_list(cls, v):
        return _as_list(v)

    @validator("experience_level", pre=True)
    def _coerce_level(cls, v):
        return ExperienceLevel.parse(v)


class EmbeddedDocument(BaseModel):
    """Disposable vector-store projection of a candidate or a posting."""
    id: str
    text: str
    doc_type: DocType
    metadata: Dict[str, str] = Field(default_factory=dict)


class StoreQueryResult(BaseModel):
    ids: List[str] = Field(default_factory=list)
    distances: List[float] = Field(default_factory=list)
    metadatas: List[Dict[str, Any]] = Field(default_factory=list)
    available: bool = True

    @classmethod
    def unavailable(cls) -> "StoreQueryResult":
        return cls(available=False)

    def distance_for(self, doc_id: str) -> Optional[float]:
        try:
            idx = self.ids.index(doc_id)
        except ValueError:
            return None
        if idx >= len(self.distances):
            return None
        return self.distances[idx]


class SimilarityStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class SimilarityOutcome(BaseModel):
    """Result of the bidirectional similarity stage.

    ``similarity`` is only ever non-zero when ``status`` is FOUND, so callers can
    read it unconditionally and get the "no embedding signal" value otherwise.
    """
    status: SimilarityStatus
    similarity: float = 0.0
    candidate_to_job: Optional[float] = None
    job_to_candidate: Optional[float] = None
    reason: Optional[str] = None

    @classmethod
    def found(cls, similarity: float, candidate_to_job: Optional[float] = None,
              job_to_candidate: Optional[float] = None) -> "SimilarityOutcome":
        return cls(status=SimilarityStatus.FOUND, similarity=similarity,
                   candidate_to_job=candidate_to_job, job_to_candidate=job_to_candidate)

    @classmethod
    def not_found(cls) -> "SimilarityOutcome":
        return cls(status=SimilarityStatus.NOT_FOUND)

    @classmethod
    def unavailable(cls, reason: str = "store_unavailable") -> "SimilarityOutcome":
        return cls(status=SimilarityStatus.UNAVAILABLE, reason=reason)

    @property
    def has_signal(self) -> bool:
        return self.status == SimilarityStatus.FOUND and self.similarity > 0


class SkillOverlap(BaseModel):
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    required_count: int = 0

    @property
    def matched_count(self) -> int:
        return len(self.matched_skills)


class ScoreComponents(BaseModel):
    similarity: float
    skill_overlap_score: float
    experience_score: float
    experience_status: str
    track_score: float
    blended_skill_score: float
    final_score: float
    match_percentage: int


class FactorScore(BaseModel):
    score: float
    weight: float
    contribution: int


class SkillFactor(FactorScore):
    blended_score: float
    matched_skills: int
    total_required_skills: int
    matched_skills_list: List[str] = Field(default_factory=list)
    missing_skills_list: List[str] = Field(default_factory=list)


class ExperienceFactor(FactorScore):
    candidate_level: Optional[str] = None
    job_level: Optional[str] = None
    status: str


class TrackFactor(FactorScore):
    candidate_track: Optional[str] = None
    job_track: Optional[str] = None
    matched: bool


class FactorBreakdown(BaseModel):
    skill_overlap: SkillFactor
    experience_alignment: ExperienceFactor
    track_alignment: TrackFactor


class MatchBreakdown(BaseModel):
    match_percentage: int
    factors: FactorBreakdown
    embedding_similarity: Optional[int] = None


class ApplicationPlatform(BaseModel):
    name: str
    url: str
    description: str


class MatchResult(BaseModel):
    job_id: str
    job: JobPosting
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    match_percentage: int = Field(ge=0, le=100)
    match_score: float = Field(ge=0.0, le=1.0)
    embedding_similarity: Optional[int] = Field(default=None, ge=0, le=100)
    embedding_based: bool = False
    track_match: bool = False
    experience_match: bool = False
    factor_breakdown: FactorBreakdown
    key_reasons: List[str] = Field(default_factory=list)
    application_platforms: List[ApplicationPlatform] = Field(default_factory=list)
