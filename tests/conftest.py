"""
Pytest configuration and shared fixtures.
"""
import asyncio
import hashlib
import os
import re

os.environ.setdefault("ENVIRONMENT", "testing")

import numpy as np
import pytest

from jobmatch.models.models import CandidateProfile, JobPosting, StoreQueryResult
from jobmatch.models.settings import EngineSettings, SimilaritySettings
from jobmatch.services.engine import MatchEngine
from jobmatch.services.vector_store import InMemoryVectorStore, VectorStore

EMBED_DIM = 64


def hash_embed(text: str) -> np.ndarray:
    """Deterministic bag-of-words embedding: each token bumps one md5 bucket."""
    vec = np.zeros(EMBED_DIM, dtype=np.float32)
    for token in re.findall(r"[a-z0-9+#]+", text.lower()):
        bucket = int(hashlib.md5(token.encode()).hexdigest(), 16) % EMBED_DIM
        vec[bucket] += 1.0
    return vec


class UnavailableStore(VectorStore):
    """Store whose backend can never be reached."""

    name = "unavailable"

    def __init__(self):
        super().__init__(request_timeout=1.0)
        self.connect_attempts = 0

    def _connect(self):
        self.connect_attempts += 1
        raise ConnectionError("Failed to connect to vector store")

    def _upsert(self, doc_id, text, metadata):
        raise AssertionError("upsert must not reach an unavailable backend")

    def _query(self, text, k, doc_type):
        raise AssertionError("query must not reach an unavailable backend")


class SlowStore(InMemoryVectorStore):
    """In-memory store whose queries take ``delay`` seconds."""

    name = "slow"

    def __init__(self, delay: float):
        super().__init__(embed_fn=hash_embed)
        self.delay = delay

    async def query(self, text, k, doc_type=None) -> StoreQueryResult:
        await asyncio.sleep(self.delay)
        return await super().query(text, k, doc_type)


@pytest.fixture
def memory_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(embed_fn=hash_embed)


@pytest.fixture
def offline_store() -> UnavailableStore:
    return UnavailableStore()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(similarity=SimilaritySettings(timeout_seconds=5.0))


@pytest.fixture
def offline_engine(offline_store, settings) -> MatchEngine:
    return MatchEngine(offline_store, settings)


@pytest.fixture
def memory_engine(memory_store, settings) -> MatchEngine:
    return MatchEngine(memory_store, settings)


@pytest.fixture
def frontend_candidate() -> CandidateProfile:
    return CandidateProfile(
        candidate_id="u1",
        name="Nadia Rahman",
        skills=["React", "JS"],
        experience_level="Mid",
        preferred_track="Web Development",
        career_interests=["Frontend", "UI engineering"],
        education_level="BSc",
    )


@pytest.fixture
def frontend_job() -> JobPosting:
    return JobPosting(
        job_id="j1",
        title="Frontend Developer",
        company="Acme",
        required_skills=["react", "JS", "Redux"],
        experience_level="Mid",
        track="web development",
        job_type="Full-time",
        location="Dhaka",
    )


@pytest.fixture
def posting_pool():
    """100 postings of which only j-10, j-40 and j-70 share a skill with the frontend candidate."""
    pool = []
    for i in range(100):
        skills = ["Cobol", "Fortran", f"Skill{i}"]
        if i == 10:
            skills = ["React", "JS", "Redux"]
        elif i == 40:
            skills = ["React", "Figma", "Sketch", "CSS"]
        elif i == 70:
            skills = ["JS", "Node.js"]
        pool.append(JobPosting(
            job_id=f"j-{i}",
            title=f"Role {i}",
            company="Pool Co",
            required_skills=skills,
            experience_level="Junior",
            track="Web Development" if i % 2 == 0 else "Data",
            job_type="Full-time",
            location="Remote",
        ))
    return pool


@pytest.fixture
def slow_store() -> SlowStore:
    return SlowStore(delay=0.5)
