from unittest.mock import patch

import pytest

from jobmatch.models.models import CandidateProfile, JobPosting
from jobmatch.models.settings import BatchSettings, EngineSettings
from jobmatch.services import matching
from jobmatch.services.ranking import prefilter_postings, rank_batch


class TestPrefilter:
    """Test cases for the overlap pre-filter"""

    def test_drops_zero_overlap(self, frontend_candidate, posting_pool):
        """Test postings without a shared skill never survive"""
        survivors = prefilter_postings(frontend_candidate, posting_pool, window=20)

        assert [job.job_id for job, _ in survivors] == ["j-10", "j-40", "j-70"]

    def test_window_keeps_highest_overlap(self, frontend_candidate, posting_pool):
        """Test the window keeps the largest overlaps, stable on ties"""
        survivors = prefilter_postings(frontend_candidate, posting_pool, window=2)

        assert [job.job_id for job, _ in survivors] == ["j-10", "j-40"]


class TestRankBatch:
    """Test cases for batch ranking"""

    async def test_large_pool(self, frontend_candidate, posting_pool):
        """Test only overlapping postings are ranked, best first"""
        results = await rank_batch(frontend_candidate, posting_pool)

        assert [r.job_id for r in results] == ["j-10", "j-70", "j-40"]
        assert [r.match_percentage for r in results] == [80, 70, 55]
        assert all(not r.embedding_based for r in results)
        assert all(r.embedding_similarity is None for r in results)

    async def test_result_window(self, frontend_candidate, posting_pool):
        """Test no more than the result window is returned"""
        settings = EngineSettings(batch=BatchSettings(prefilter_window=3, result_window=2))

        results = await rank_batch(frontend_candidate, posting_pool, settings)

        assert [r.job_id for r in results] == ["j-10", "j-70"]

    async def test_empty_pool(self, frontend_candidate):
        """Test an empty pool ranks to an empty list"""
        assert await rank_batch(frontend_candidate, []) == []

    async def test_no_overlap(self, posting_pool):
        """Test a candidate sharing no skill gets no results"""
        candidate = CandidateProfile(candidate_id="c", skills=["Haskell"], experience_level="Senior")

        assert await rank_batch(candidate, posting_pool) == []

    async def test_tie_breaks(self, frontend_candidate):
        """Test equal scores order by matched count, then input order"""
        postings = [
            JobPosting(job_id="a", required_skills=["React", "Go"], experience_level="Mid", track="Data"),
            JobPosting(job_id="b", required_skills=["React", "JS", "Go", "Rust"], experience_level="Mid", track="Data"),
            JobPosting(job_id="c", required_skills=["React", "Go"], experience_level="Mid", track="Data"),
        ]

        results = await rank_batch(frontend_candidate, postings)

        assert [r.match_score for r in results] == pytest.approx([0.5, 0.5, 0.5])
        assert [r.job_id for r in results] == ["b", "a", "c"]

    async def test_failure_isolated(self, frontend_candidate, posting_pool):
        """Test one failing posting is excluded without aborting the batch"""
        real = matching.combine_scores

        def flaky(similarity, overlap, candidate, job, *args):
            if job.job_id == "j-70":
                raise RuntimeError("corrupt posting")
            return real(similarity, overlap, candidate, job, *args)

        with patch("jobmatch.services.ranking.combine_scores", side_effect=flaky):
            results = await rank_batch(frontend_candidate, posting_pool)

        assert [r.job_id for r in results] == ["j-10", "j-40"]

    async def test_pool_order_does_not_change_scores(self, frontend_candidate, posting_pool):
        """Test reversing the pool keeps the same scores"""
        forward = await rank_batch(frontend_candidate, posting_pool)
        backward = await rank_batch(frontend_candidate, list(reversed(posting_pool)))

        assert [(r.job_id, r.match_percentage) for r in forward] == \
            [(r.job_id, r.match_percentage) for r in backward]
