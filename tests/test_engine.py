import pytest

from jobmatch.models.models import CandidateProfile, JobPosting
from jobmatch.models.settings import EngineSettings, SimilaritySettings
from jobmatch.services.engine import MatchEngine
from jobmatch.services.vector_store import ChromaVectorStore


class TestComputeMatchWithoutStore:
    """Test cases for single-pair matching when the store is unreachable"""

    async def test_exact_only_result(self, offline_engine, frontend_candidate, frontend_job):
        """Test the exact-only score when the store is unreachable"""
        result = await offline_engine.compute_match(frontend_candidate, frontend_job)

        assert result.match_percentage == 80
        assert result.match_score == pytest.approx(0.8)
        assert result.embedding_based is False
        assert result.embedding_similarity is None
        assert result.matched_skills == ["React", "JS"]
        assert result.missing_skills == ["Redux"]
        assert result.track_match is True
        assert result.experience_match is True
        assert result.job == frontend_job

    async def test_deterministic(self, offline_engine, frontend_candidate, frontend_job):
        """Test repeated calls give identical results"""
        first = await offline_engine.compute_match(frontend_candidate, frontend_job)
        second = await offline_engine.compute_match(frontend_candidate, frontend_job)

        assert first == second

    async def test_no_plausible_match(self, offline_engine, frontend_candidate):
        """Test zero overlap without embedding signal is no match"""
        job = JobPosting(job_id="j5", title="Mainframe Engineer", required_skills=["Cobol"],
                         experience_level="Mid", track="Web Development")

        assert await offline_engine.compute_match(frontend_candidate, job) is None

    async def test_monotonic_in_skills(self, offline_engine, frontend_candidate, frontend_job):
        """Test gaining a required skill never lowers the match"""
        before = await offline_engine.compute_match(frontend_candidate, frontend_job)
        richer = frontend_candidate.copy(update={"skills": ["React", "JS", "Redux"]})
        after = await offline_engine.compute_match(richer, frontend_job)

        assert after.match_percentage >= before.match_percentage

    async def test_key_reasons_and_platforms(self, offline_engine, frontend_candidate, frontend_job):
        """Test explanation fields are filled"""
        result = await offline_engine.compute_match(frontend_candidate, frontend_job)

        assert result.key_reasons[0] == "Matches React, JS; missing Redux"
        assert [p.name for p in result.application_platforms][:3] == ["LinkedIn", "BDjobs", "Glassdoor"]


class TestComputeMatchWithStore:
    """Test cases for single-pair matching with embeddings"""

    async def test_embedding_signal(self, memory_engine, memory_store, frontend_candidate, frontend_job):
        """Test an embedded pair carries an embedding similarity"""
        result = await memory_engine.compute_match(frontend_candidate, frontend_job)

        assert len(memory_store) == 2
        assert result.embedding_based is True
        assert 0 < result.embedding_similarity <= 100
        assert 0 <= result.match_percentage <= 100

    async def test_semantic_only_match_kept(self, memory_engine):
        """Test zero overlap with a strong embedding signal still produces a result"""
        candidate = CandidateProfile(candidate_id="c7", skills=["Haskell"])
        job = JobPosting(job_id="j7", required_skills=["Cobol"])

        result = await memory_engine.compute_match(candidate, job)

        assert result is not None
        assert result.matched_skills == []
        assert result.embedding_based is True

    async def test_slow_store_degrades(self, slow_store, frontend_candidate, frontend_job):
        """Test a store slower than the deadline scores as exact-only"""
        engine = MatchEngine(slow_store, EngineSettings(similarity=SimilaritySettings(timeout_seconds=0.05)))

        result = await engine.compute_match(frontend_candidate, frontend_job)

        assert result.embedding_based is False
        assert result.match_percentage == 80

    async def test_embedding_failure_is_not_fatal(self, offline_engine, frontend_candidate):
        """Test embedding against an unreachable store reports failure"""
        assert await offline_engine.embed_candidate(frontend_candidate) is False

    async def test_context_manager(self, memory_store):
        """Test the engine opens and closes its store"""
        async with MatchEngine(memory_store) as engine:
            assert engine.store.ready

        assert not memory_store.ready


class TestEngineBatchAndBreakdown:
    """Test cases for the engine's batch and breakdown entry points"""

    async def test_rank_batch(self, offline_engine, frontend_candidate, posting_pool):
        """Test batch ranking ignores the store"""
        results = await offline_engine.rank_batch(frontend_candidate, posting_pool)

        assert [r.job_id for r in results] == ["j-10", "j-70", "j-40"]
        assert offline_engine.store.connect_attempts == 0

    def test_breakdown_matches_compute(self, offline_engine, frontend_candidate, frontend_job):
        """Test the breakdown reproduces the exact-only percentage"""
        b = offline_engine.get_match_breakdown(0.0, frontend_candidate, frontend_job)

        assert b.match_percentage == 80


def test_from_env(monkeypatch):
    """Test the engine is assembled from the environment without connecting"""
    monkeypatch.setenv("CHROMA_COLLECTION", "test_collection")

    engine = MatchEngine.from_env(configure_logging=False)

    assert isinstance(engine.store, ChromaVectorStore)
    assert engine.store.settings.collection_name == "test_collection"
    assert not engine.store.ready
