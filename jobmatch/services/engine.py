"""
Match engine facade: single-pair matching with embedding similarity, and batch
ranking. The vector store is injected and is the only shared state.
"""
import asyncio
from typing import Iterable, List, Optional

from jobmatch.helpers.text import candidate_document, job_document
from jobmatch.models.models import (
    CandidateProfile, JobPosting, MatchBreakdown, MatchResult, SimilarityOutcome,
)
from jobmatch.models.settings import EngineSettings
from jobmatch.services import breakdown
from jobmatch.services.matching import combine_scores
from jobmatch.services.ranking import build_ranking_graph, rank_batch
from jobmatch.services.similarity import similarity_with_deadline
from jobmatch.services.skills import extract_skill_overlap
from jobmatch.services.vector_store import VectorStore, create_vector_store
from jobmatch.utils.logging_config import configure_for_environment, get_logger

logger = get_logger(__name__)


class MatchEngine:
    """Scores candidates against postings.

    Usage::

        async with MatchEngine(store) as engine:
            result = await engine.compute_match(candidate, job)
            top = await engine.rank_batch(candidate, postings)
    """

    def __init__(self, store: VectorStore, settings: EngineSettings = None):
        self.store = store
        self.settings = settings or EngineSettings()
        self._ranking_graph = build_ranking_graph(self.settings)

    @classmethod
    def from_env(cls, configure_logging: bool = True) -> "MatchEngine":
        if configure_logging:
            configure_for_environment()
        settings = EngineSettings.from_env()
        return cls(create_vector_store(settings.vector_store, settings.embedding), settings)

    async def __aenter__(self) -> "MatchEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def initialize(self) -> bool:
        ready = await self.store.initialize()
        if not ready:
            logger.info("Match engine running without embeddings (exact matching only)")
        return ready

    async def close(self) -> None:
        await self.store.close()

    # --- embeddings ---

    async def embed_candidate(self, candidate: CandidateProfile) -> bool:
        ok = await self.store.upsert_document(candidate_document(candidate))
        if not ok:
            logger.warning(f"Candidate {candidate.candidate_id} not embedded, using fallback matching")
        return ok

    async def embed_job(self, job: JobPosting) -> bool:
        ok = await self.store.upsert_document(job_document(job))
        if not ok:
            logger.warning(f"Job {job.job_id} not embedded, using fallback matching")
        return ok

    async def calculate_similarity(self, candidate: CandidateProfile, job: JobPosting) -> SimilarityOutcome:
        return await similarity_with_deadline(
            self.store, candidate, job,
            k=self.settings.similarity.query_k,
            timeout=self.settings.similarity.timeout_seconds,
        )

    # --- engine API ---

    async def compute_match(
        self,
        candidate: CandidateProfile,
        job: JobPosting,
        embed: bool = True,
        ai_reasons: bool = False,
    ) -> Optional[MatchResult]:
        """Score one candidate against one posting.

        Returns None when there is no plausible match: zero exact skill overlap
        and an embedding similarity under the no-match threshold. An unavailable
        or slow store only removes the embedding signal from the score.
        """
        logger.info(f"Matching candidate {candidate.candidate_id} against job {job.job_id} ({job.title})")

        if embed:
            await asyncio.gather(self.embed_job(job), self.embed_candidate(candidate))

        outcome = await self.calculate_similarity(candidate, job)
        if outcome.has_signal:
            logger.debug(f"Embedding similarity {outcome.similarity:.3f} for job {job.job_id}")
        else:
            logger.debug(f"No embedding signal for job {job.job_id} ({outcome.status.value})")

        overlap = extract_skill_overlap(candidate.skills, job.required_skills)
        if overlap.matched_count == 0 and outcome.similarity < self.settings.similarity.no_match_threshold:
            logger.info(f"No plausible match between candidate {candidate.candidate_id} and job {job.job_id}")
            return None

        components = combine_scores(
            outcome.similarity, overlap, candidate, job,
            self.settings.weights, self.settings.experience_scores,
        )

        reasons = None
        if ai_reasons:
            reasons = await breakdown.generate_ai_key_reasons(
                overlap, candidate, job, components, self.settings.llm
            )

        result = breakdown.build_match_result(
            candidate, job, overlap, components, self.settings.weights, key_reasons=reasons
        )
        logger.info(
            f"Match {candidate.candidate_id}/{job.job_id}: {result.match_percentage}% "
            f"(embedding_based={result.embedding_based})"
        )
        return result

    async def rank_batch(self, candidate: CandidateProfile, postings: Iterable[JobPosting]) -> List[MatchResult]:
        return await rank_batch(candidate, postings, self.settings, graph=self._ranking_graph)

    def get_match_breakdown(self, similarity: float, candidate: CandidateProfile, job: JobPosting) -> MatchBreakdown:
        return breakdown.get_match_breakdown(
            similarity, candidate, job, self.settings.weights, self.settings.experience_scores
        )
