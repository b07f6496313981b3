import re
from typing import Any, Dict, List, Optional

from jobmatch.models.models import (
    CandidateProfile, DocType, EmbeddedDocument, ExperienceLevel, JobPosting,
)

EMPTY = "None"


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x).strip()
    return x


def _field(value: Any) -> str:
    if value is None:
        return EMPTY
    if isinstance(value, ExperienceLevel):
        return value.label
    if isinstance(value, (list, tuple)):
        joined = ", ".join(clean_text(str(v)) for v in value if str(v).strip())
        return joined or EMPTY
    text = clean_text(str(value))
    return text or EMPTY


def _join(parts: List[str]) -> str:
    return ". ".join(parts)


def candidate_doc_id(candidate_id: str) -> str:
    return f"candidate_{candidate_id}"


def job_doc_id(job_id: str) -> str:
    return f"job_{job_id}"


def create_job_text(job: JobPosting) -> str:
    return _join([
        f"Job Title: {_field(job.title)}",
        f"Company: {_field(job.company)}",
        f"Required Skills: {_field(job.required_skills)}",
        f"Experience Level: {_field(job.experience_level)}",
        f"Career Track: {_field(job.track)}",
        f"Job Type: {_field(job.job_type)}",
        f"Location: {_field(job.location)}",
    ])


def create_candidate_text(candidate: CandidateProfile) -> str:
    return _join([
        f"Skills: {_field(candidate.skills)}",
        f"Experience Level: {_field(candidate.experience_level)}",
        f"Preferred Career Track: {_field(candidate.preferred_track)}",
        f"Career Interests: {_field(candidate.career_interests)}",
        f"Education Level: {_field(candidate.education_level)}",
    ])


def _metadata(doc_type: DocType, values: Dict[str, Optional[Any]]) -> Dict[str, str]:
    # vector stores only accept flat scalar metadata
    meta = {"type": doc_type.value}
    for key, value in values.items():
        if isinstance(value, (list, tuple)):
            meta[key] = ",".join(str(v) for v in value)
        elif isinstance(value, ExperienceLevel):
            meta[key] = value.label
        else:
            meta[key] = "" if value is None else str(value)
    return meta


def job_document(job: JobPosting) -> EmbeddedDocument:
    return EmbeddedDocument(
        id=job_doc_id(job.job_id),
        text=create_job_text(job),
        doc_type=DocType.JOB,
        metadata=_metadata(DocType.JOB, {
            "jobId": job.job_id,
            "title": job.title,
            "company": job.company,
            "track": job.track,
            "experienceLevel": job.experience_level,
            "jobType": job.job_type,
            "location": job.location,
            "requiredSkills": job.required_skills,
        }),
    )


def candidate_document(candidate: CandidateProfile) -> EmbeddedDocument:
    return EmbeddedDocument(
        id=candidate_doc_id(candidate.candidate_id),
        text=create_candidate_text(candidate),
        doc_type=DocType.CANDIDATE,
        metadata=_metadata(DocType.CANDIDATE, {
            "candidateId": candidate.candidate_id,
            "experienceLevel": candidate.experience_level,
            "preferredTrack": candidate.preferred_track,
            "skills": candidate.skills,
            "careerInterests": candidate.career_interests,
            "educationLevel": candidate.education_level,
        }),
    )
