"""
Repository-backed entry points: fetch entities by id, then hand them to the engine.
"""
from typing import Any, Dict, List, Optional

from jobmatch.models.models import MatchResult
from jobmatch.services import db
from jobmatch.services.engine import MatchEngine
from jobmatch.utils.exceptions import EntityNotFoundError
from jobmatch.utils.logging_config import get_logger, log_function_call

logger = get_logger(__name__)


@log_function_call
async def match_candidate_to_job(
    engine: MatchEngine,
    candidate_id: str,
    job_id: str,
    ai_reasons: bool = False,
) -> Optional[MatchResult]:
    candidate = await db.get_candidate(candidate_id)
    if candidate is None:
        raise EntityNotFoundError(f"Candidate {candidate_id} not found", entity_type="candidate", entity_id=candidate_id)
    job = await db.get_job(job_id)
    if job is None:
        raise EntityNotFoundError(f"Job {job_id} not found", entity_type="job", entity_id=job_id)
    return await engine.compute_match(candidate, job, ai_reasons=ai_reasons)


@log_function_call
async def recommend_jobs(
    engine: MatchEngine,
    candidate_id: str,
    query: Dict[str, Any] = None,
    limit: int = 50,
) -> List[MatchResult]:
    """Top postings for a candidate from a (filtered) slice of the job pool.

    A missing candidate or an empty pool yields an empty list.
    """
    candidate = await db.get_candidate(candidate_id)
    if candidate is None:
        logger.warning(f"Candidate {candidate_id} not found for recommendations")
        return []

    jobs = await db.find_jobs(query, limit=limit)
    if not jobs:
        logger.info("No postings available for recommendations")
        return []

    logger.info(f"Fetched {len(jobs)} postings for candidate {candidate_id}")
    return await engine.rank_batch(candidate, jobs)
