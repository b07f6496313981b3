"""
Read-only access to candidate profiles and job postings.

Both collections are owned by other subsystems; documents are stored in their
camelCase shape and converted to engine models here, at the edge.
"""
import os
from typing import Any, Dict, Iterable, List, Optional

import motor.motor_asyncio
from bson import ObjectId
from dotenv import load_dotenv

from jobmatch.models.models import CandidateProfile, JobPosting
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "jobmatch")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

# motor connects lazily, so this does no I/O at import time
client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
db = client[DB_NAME]

candidates_coll = db[os.getenv("CANDIDATES_COLLECTION", "users")]
jobs_coll = db[os.getenv("JOBS_COLLECTION", "jobs")]

CANDIDATE_PROJECTION = {
    "fullName": 1, "skills": 1, "experienceLevel": 1, "preferredTrack": 1,
    "careerInterests": 1, "educationLevel": 1,
}
JOB_PROJECTION = {
    "title": 1, "company": 1, "location": 1, "requiredSkills": 1, "experienceLevel": 1,
    "jobType": 1, "track": 1, "source": 1, "sourceUrl": 1,
}


def _id_filter(entity_id: str) -> Dict[str, Any]:
    if ObjectId.is_valid(entity_id):
        return {"_id": ObjectId(entity_id)}
    return {"_id": entity_id}


def _ids_filter(entity_ids: Iterable[str]) -> Dict[str, Any]:
    keys = [ObjectId(i) if ObjectId.is_valid(i) else i for i in entity_ids]
    return {"_id": {"$in": keys}}


def candidate_from_doc(doc: Dict[str, Any]) -> CandidateProfile:
    return CandidateProfile(
        candidate_id=str(doc["_id"]),
        name=doc.get("fullName"),
        skills=doc.get("skills") or [],
        experience_level=doc.get("experienceLevel"),
        preferred_track=doc.get("preferredTrack") or None,
        career_interests=doc.get("careerInterests") or [],
        education_level=doc.get("educationLevel") or None,
    )


def job_from_doc(doc: Dict[str, Any]) -> JobPosting:
    return JobPosting(
        job_id=str(doc["_id"]),
        title=doc.get("title") or "",
        company=doc.get("company"),
        required_skills=doc.get("requiredSkills") or [],
        experience_level=doc.get("experienceLevel"),
        track=doc.get("track"),
        job_type=doc.get("jobType"),
        location=doc.get("location"),
        source=doc.get("source"),
        source_url=doc.get("sourceUrl"),
    )


async def get_candidate(candidate_id: str) -> Optional[CandidateProfile]:
    doc = await candidates_coll.find_one(_id_filter(candidate_id), CANDIDATE_PROJECTION)
    if not doc:
        logger.debug(f"Candidate {candidate_id} not found")
        return None
    return candidate_from_doc(doc)


async def get_candidates(candidate_ids: Iterable[str]) -> List[CandidateProfile]:
    ids = list(candidate_ids)
    if not ids:
        return []
    docs = await candidates_coll.find(_ids_filter(ids), CANDIDATE_PROJECTION).to_list(length=None)
    return [candidate_from_doc(d) for d in docs]


async def get_job(job_id: str) -> Optional[JobPosting]:
    doc = await jobs_coll.find_one(_id_filter(job_id), JOB_PROJECTION)
    if not doc:
        logger.debug(f"Job {job_id} not found")
        return None
    return job_from_doc(doc)


async def get_jobs(job_ids: Iterable[str]) -> List[JobPosting]:
    ids = list(job_ids)
    if not ids:
        return []
    docs = await jobs_coll.find(_ids_filter(ids), JOB_PROJECTION).to_list(length=None)
    return [job_from_doc(d) for d in docs]


async def find_jobs(query: Dict[str, Any] = None, limit: int = 50) -> List[JobPosting]:
    docs = await jobs_coll.find(query or {}, JOB_PROJECTION).limit(limit).to_list(length=None)
    return [job_from_doc(d) for d in docs]
