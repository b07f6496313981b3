"""
Batch ranking: cheap overlap pre-filter, concurrent exact scoring, top-K selection.

Batch scoring never queries the vector store; every survivor is scored with
similarity 0. Postings outside the pre-filter window are never scored.

Scoring is pure CPU work, so the fan-out over survivors is cooperative:
``asyncio.gather`` runs the items one after another on the event loop and
only isolates their failures.
"""
import asyncio
from typing import Iterable, List, Optional, Tuple, TypedDict

from langgraph.graph import StateGraph, END

from jobmatch.models.models import CandidateProfile, JobPosting, MatchResult, SkillOverlap
from jobmatch.models.settings import EngineSettings
from jobmatch.services.breakdown import build_match_result
from jobmatch.services.matching import combine_scores
from jobmatch.services.skills import extract_skill_overlap
from jobmatch.utils.exceptions import ExceptionContext, MatchEngineBaseException
from jobmatch.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)


class RankState(TypedDict, total=False):
    candidate: CandidateProfile
    postings: List[JobPosting]
    survivors: List[Tuple[JobPosting, SkillOverlap]]
    scored: List[MatchResult]
    results: List[MatchResult]


def prefilter_postings(
    candidate: CandidateProfile,
    postings: Iterable[JobPosting],
    window: int,
) -> List[Tuple[JobPosting, SkillOverlap]]:
    survivors = []
    for job in postings:
        overlap = extract_skill_overlap(candidate.skills, job.required_skills)
        if overlap.matched_count > 0:
            survivors.append((job, overlap))
    # sort is stable: equal counts keep pool order
    survivors.sort(key=lambda item: item[1].matched_count, reverse=True)
    return survivors[:window]


async def score_posting(
    candidate: CandidateProfile,
    job: JobPosting,
    overlap: SkillOverlap,
    settings: EngineSettings,
) -> Optional[MatchResult]:
    """Exact-only score for one survivor; a failure excludes the posting."""
    try:
        with ExceptionContext("score_posting", logger, job_id=job.job_id, candidate_id=candidate.candidate_id):
            components = combine_scores(
                0.0, overlap, candidate, job, settings.weights, settings.experience_scores
            )
            return build_match_result(candidate, job, overlap, components, settings.weights)
    except MatchEngineBaseException as e:
        logger.warning(f"Excluding job {job.job_id} from ranking: {e.message}")
        return None


def select_top(results: List[MatchResult], window: int) -> List[MatchResult]:
    ordered = sorted(
        enumerate(results),
        key=lambda item: (-item[1].match_score, -len(item[1].matched_skills), item[0]),
    )
    return [r for _, r in ordered[:window]]


def build_ranking_graph(settings: EngineSettings):
    batch = settings.batch

    def node_prefilter(state: RankState):
        postings = state.get("postings", [])
        survivors = prefilter_postings(state["candidate"], postings, batch.prefilter_window)
        logger.info(f"Pre-filtered to {len(survivors)} relevant postings (from {len(postings)} total)")
        return {"survivors": survivors}

    async def node_score(state: RankState):
        candidate = state["candidate"]
        scored = await asyncio.gather(*(
            score_posting(candidate, job, overlap, settings)
            for job, overlap in state.get("survivors", [])
        ))
        return {"scored": [r for r in scored if r is not None]}

    def node_select(state: RankState):
        return {"results": select_top(state.get("scored", []), batch.result_window)}

    g = StateGraph(RankState)
    g.add_node("prefilter", node_prefilter)
    g.add_node("score", node_score)
    g.add_node("select", node_select)
    g.set_entry_point("prefilter")
    g.add_edge("prefilter", "score")
    g.add_edge("score", "select")
    g.add_edge("select", END)
    return g.compile()


async def rank_batch(
    candidate: CandidateProfile,
    postings: Iterable[JobPosting],
    settings: EngineSettings = None,
    graph=None,
) -> List[MatchResult]:
    settings = settings or EngineSettings()
    graph = graph or build_ranking_graph(settings)
    postings = list(postings)

    with PerformanceMonitor(f"rank_batch {candidate.candidate_id} over {len(postings)} postings", logger):
        out = await graph.ainvoke({"candidate": candidate, "postings": postings})

    results = out.get("results", [])
    logger.info(f"Ranked {len(results)} postings for candidate {candidate.candidate_id}")
    return results
