import asyncio
import math
from typing import Optional

from jobmatch.helpers.text import (
    candidate_doc_id, create_candidate_text, create_job_text, job_doc_id,
)
from jobmatch.models.models import (
    CandidateProfile, DocType, JobPosting, SimilarityOutcome, StoreQueryResult,
)
from jobmatch.services.vector_store import VectorStore
from jobmatch.utils.logging_config import get_logger, PerformanceMonitor
from jobmatch.utils.utils import clamp

logger = get_logger(__name__)

DEFAULT_QUERY_K = 50


def distance_to_similarity(distance: float) -> float:
    if not math.isfinite(distance):
        return 0.0
    return clamp(1.0 - distance, 0.0, 1.0)


def _directional(result: StoreQueryResult, target_id: str) -> Optional[float]:
    distance = result.distance_for(target_id)
    if distance is None:
        return None
    return distance_to_similarity(distance)


async def calculate_similarity(
    store: VectorStore,
    candidate: CandidateProfile,
    job: JobPosting,
    k: int = DEFAULT_QUERY_K,
) -> SimilarityOutcome:
    """Bidirectional nearest-neighbour similarity between an embedded candidate and job.

    The candidate text is matched against job documents and the job text against
    candidate documents; both queries run concurrently. The two directional
    similarities are averaged when both find their target, otherwise whichever
    one did is used.
    """
    with PerformanceMonitor(f"similarity {candidate.candidate_id}->{job.job_id}", logger, threshold_ms=2000):
        forward, backward = await asyncio.gather(
            store.query(create_candidate_text(candidate), k, DocType.JOB),
            store.query(create_job_text(job), k, DocType.CANDIDATE),
        )

    if not forward.available and not backward.available:
        return SimilarityOutcome.unavailable()

    s1 = _directional(forward, job_doc_id(job.job_id))
    s2 = _directional(backward, candidate_doc_id(candidate.candidate_id))

    if s1 is not None and s2 is not None:
        return SimilarityOutcome.found((s1 + s2) / 2, candidate_to_job=s1, job_to_candidate=s2)
    if s1 is not None:
        return SimilarityOutcome.found(s1, candidate_to_job=s1)
    if s2 is not None:
        return SimilarityOutcome.found(s2, job_to_candidate=s2)

    logger.debug(f"Job {job.job_id} and candidate {candidate.candidate_id} not within top-{k} of each other")
    return SimilarityOutcome.not_found()


async def similarity_with_deadline(
    store: VectorStore,
    candidate: CandidateProfile,
    job: JobPosting,
    k: int = DEFAULT_QUERY_K,
    timeout: Optional[float] = None,
) -> SimilarityOutcome:
    """Race the similarity stage against ``timeout`` seconds; expiry degrades to no signal."""
    if timeout is None:
        return await calculate_similarity(store, candidate, job, k)
    try:
        return await asyncio.wait_for(calculate_similarity(store, candidate, job, k), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Similarity stage exceeded {timeout}s for job {job.job_id}, using exact matching only")
        return SimilarityOutcome.unavailable(reason="timeout")
