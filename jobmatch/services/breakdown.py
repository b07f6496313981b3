"""
Explainability helpers: factor breakdown, key reasons, application platforms
and tabular ranking reports. Nothing here can change a match outcome.
"""
import asyncio
import os
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd
import requests

from jobmatch.helpers.prompts import KEY_REASONS_PROMPT
from jobmatch.models.models import (
    ApplicationPlatform, CandidateProfile, ExperienceFactor, FactorBreakdown,
    JobPosting, MatchBreakdown, MatchResult, ScoreComponents, SkillFactor,
    SkillOverlap, TrackFactor,
)
from jobmatch.models.settings import ExperienceScores, LLMSettings, ScoringWeights
from jobmatch.services.matching import combine_scores, is_track_match, MEETS_REQUIREMENT
from jobmatch.services.skills import extract_skill_overlap
from jobmatch.utils.logging_config import get_logger
from jobmatch.utils.utils import ollama_generate, round_half_up, safe_json

logger = get_logger(__name__)


def _level_label(level) -> Optional[str]:
    return level.label if level is not None else None


def _contribution(weight: float, score: float) -> int:
    return round_half_up(weight * score * 100)


def build_factor_breakdown(
    components: ScoreComponents,
    overlap: SkillOverlap,
    candidate: CandidateProfile,
    job: JobPosting,
    weights: ScoringWeights = None,
) -> FactorBreakdown:
    weights = weights or ScoringWeights()
    return FactorBreakdown(
        skill_overlap=SkillFactor(
            score=components.skill_overlap_score,
            blended_score=components.blended_skill_score,
            weight=weights.skill_weight,
            contribution=_contribution(weights.skill_weight, components.blended_skill_score),
            matched_skills=overlap.matched_count,
            total_required_skills=overlap.required_count,
            matched_skills_list=list(overlap.matched_skills),
            missing_skills_list=list(overlap.missing_skills),
        ),
        experience_alignment=ExperienceFactor(
            score=components.experience_score,
            weight=weights.experience_weight,
            contribution=_contribution(weights.experience_weight, components.experience_score),
            candidate_level=_level_label(candidate.experience_level),
            job_level=_level_label(job.experience_level),
            status=components.experience_status,
        ),
        track_alignment=TrackFactor(
            score=components.track_score,
            weight=weights.track_weight,
            contribution=_contribution(weights.track_weight, components.track_score),
            candidate_track=candidate.preferred_track,
            job_track=job.track,
            matched=components.track_score > 0,
        ),
    )


def embedding_percentage(similarity: float) -> Optional[int]:
    return round_half_up(similarity * 100) if similarity > 0 else None


def get_match_breakdown(
    similarity: float,
    candidate: CandidateProfile,
    job: JobPosting,
    weights: ScoringWeights = None,
    experience_scores: ExperienceScores = None,
) -> MatchBreakdown:
    """Recompute the combiner's intermediate values for display."""
    overlap = extract_skill_overlap(candidate.skills, job.required_skills)
    components = combine_scores(similarity, overlap, candidate, job, weights, experience_scores)
    return MatchBreakdown(
        match_percentage=components.match_percentage,
        factors=build_factor_breakdown(components, overlap, candidate, job, weights),
        embedding_similarity=embedding_percentage(components.similarity),
    )


def generate_key_reasons(
    overlap: SkillOverlap,
    candidate: CandidateProfile,
    job: JobPosting,
    experience_status: str,
) -> List[str]:
    reasons = []

    primary = ""
    if overlap.matched_skills:
        primary = f"Matches {', '.join(overlap.matched_skills[:5])}"
    if overlap.missing_skills:
        missing = " and ".join(overlap.missing_skills[:3])
        primary = f"{primary}; missing {missing}" if primary else f"Missing {missing}"
    if primary:
        reasons.append(primary)

    if is_track_match(candidate.preferred_track, job.track):
        reasons.append("Perfect alignment with your preferred career track")

    cand_level = _level_label(candidate.experience_level)
    job_level = _level_label(job.experience_level)
    if experience_status == MEETS_REQUIREMENT:
        reasons.append(f"Your {cand_level} experience level meets the {job_level} requirement")
    elif cand_level and job_level:
        reasons.append(f"Experience level: {cand_level} (job requires {job_level})")

    return reasons


async def generate_ai_key_reasons(
    overlap: SkillOverlap,
    candidate: CandidateProfile,
    job: JobPosting,
    components: ScoreComponents,
    settings: LLMSettings = None,
) -> List[str]:
    """LLM-written reasons; falls back to the rule-based ones on any failure."""
    settings = settings or LLMSettings()
    fallback = generate_key_reasons(overlap, candidate, job, components.experience_status)
    prompt = KEY_REASONS_PROMPT.format(
        match_percentage=components.match_percentage,
        matched_skills=", ".join(overlap.matched_skills) or "None",
        missing_skills=", ".join(overlap.missing_skills) or "None",
        track_match="Yes" if components.track_score > 0 else "No",
        experience_match="Yes" if components.experience_status == MEETS_REQUIREMENT else "No",
        candidate_level=_level_label(candidate.experience_level) or "None",
        job_level=_level_label(job.experience_level) or "None",
    )
    try:
        resp = await asyncio.to_thread(
            ollama_generate, prompt,
            model=settings.model_name, temperature=settings.temperature,
            base_url=settings.base_url, timeout=settings.timeout,
        )
    except requests.RequestException as e:
        logger.warning(f"AI key reasons unavailable for job {job.job_id}: {e}")
        return fallback

    data = safe_json(resp, {})
    reasons = data.get("keyReasons") if isinstance(data, dict) else None
    if isinstance(reasons, list):
        reasons = [str(r).strip() for r in reasons if str(r).strip()]
        if reasons:
            return reasons
    logger.debug(f"AI key reasons unparseable for job {job.job_id}, using rule-based reasons")
    return fallback


BASE_PLATFORMS: Tuple[ApplicationPlatform, ...] = (
    ApplicationPlatform(name="LinkedIn", url="https://www.linkedin.com/jobs",
                        description="Professional networking and job search"),
    ApplicationPlatform(name="BDjobs", url="https://www.bdjobs.com",
                        description="Bangladesh's leading job portal"),
    ApplicationPlatform(name="Glassdoor", url="https://www.glassdoor.com/Job",
                        description="Company reviews and job listings"),
)

SOFTWARE_PLATFORMS: Tuple[ApplicationPlatform, ...] = (
    ApplicationPlatform(name="Stack Overflow Jobs", url="https://stackoverflow.com/jobs",
                        description="Tech-focused job board"),
    ApplicationPlatform(name="GitHub Jobs", url="https://jobs.github.com",
                        description="Developer job opportunities"),
)

DESIGN_PLATFORMS: Tuple[ApplicationPlatform, ...] = (
    ApplicationPlatform(name="Dribbble Jobs", url="https://dribbble.com/jobs",
                        description="Design job board"),
)

REMOTE_PLATFORMS: Tuple[ApplicationPlatform, ...] = (
    ApplicationPlatform(name="Remote.co", url="https://remote.co",
                        description="Remote job opportunities"),
    ApplicationPlatform(name="We Work Remotely", url="https://weworkremotely.com",
                        description="Remote work jobs"),
)


def get_application_platforms(track: Optional[str], job_type: Optional[str]) -> List[ApplicationPlatform]:
    platforms = list(BASE_PLATFORMS)
    t = (track or "").lower()
    if "software" in t or "development" in t:
        platforms.extend(SOFTWARE_PLATFORMS)
    if "design" in t or "ui" in t:
        platforms.extend(DESIGN_PLATFORMS)
    if (job_type or "").strip().lower() == "remote":
        platforms.extend(REMOTE_PLATFORMS)
    return platforms


REPORT_COLUMNS = [
    "job_id", "title", "company", "match_percentage", "match_score",
    "skill_overlap", "experience", "track", "embedding_similarity",
    "matched_skills", "missing_skills",
]


def ranking_to_dataframe(results: List[MatchResult]) -> pd.DataFrame:
    data = [{
        "job_id": r.job_id,
        "title": r.job.title,
        "company": r.job.company,
        "match_percentage": r.match_percentage,
        "match_score": round(r.match_score, 4),
        "skill_overlap": round(r.factor_breakdown.skill_overlap.score, 4),
        "experience": r.factor_breakdown.experience_alignment.score,
        "track": r.factor_breakdown.track_alignment.score,
        "embedding_similarity": r.embedding_similarity,
        "matched_skills": ", ".join(r.matched_skills),
        "missing_skills": ", ".join(r.missing_skills),
    } for r in results]
    df = pd.DataFrame(data, columns=REPORT_COLUMNS)
    if len(df):
        df = df.sort_values("match_score", ascending=False, kind="stable").reset_index(drop=True)
    return df


def write_ranking_report(candidate_id: str, results: List[MatchResult], report_dir: str) -> Tuple[str, str]:
    Path(report_dir).mkdir(parents=True, exist_ok=True)
    df = ranking_to_dataframe(results)

    csv_path = os.path.join(report_dir, f"{candidate_id}_ranking.csv")
    df.to_csv(csv_path, index=False)

    md_lines = [f"# Candidate {candidate_id} - Top Matches", ""]
    if len(df):
        md_lines += [
            "| Rank | Job ID | Title | Match % | Skills | Experience | Track |",
            "|---:|---|---|---:|---:|---:|---:|",
        ]
        for i, r in enumerate(df.head(10).itertuples(), start=1):
            md_lines.append(
                f"| {i} | {r.job_id} | {r.title} | {r.match_percentage} | "
                f"{r.skill_overlap:.3f} | {r.experience:.1f} | {r.track:.1f} |"
            )
    else:
        md_lines.append("> No postings matched this candidate.")

    md_path = os.path.join(report_dir, f"{candidate_id}_top.md")
    Path(md_path).write_text("\n".join(md_lines), encoding="utf-8")
    return csv_path, md_path


def build_match_result(
    candidate: CandidateProfile,
    job: JobPosting,
    overlap: SkillOverlap,
    components: ScoreComponents,
    weights: ScoringWeights = None,
    key_reasons: List[str] = None,
) -> MatchResult:
    similarity = components.similarity
    return MatchResult(
        job_id=job.job_id,
        job=job,
        matched_skills=list(overlap.matched_skills),
        missing_skills=list(overlap.missing_skills),
        match_percentage=components.match_percentage,
        match_score=components.final_score,
        embedding_similarity=embedding_percentage(similarity),
        embedding_based=similarity > 0,
        track_match=components.track_score > 0,
        experience_match=components.experience_status == MEETS_REQUIREMENT,
        factor_breakdown=build_factor_breakdown(components, overlap, candidate, job, weights),
        key_reasons=key_reasons if key_reasons is not None
        else generate_key_reasons(overlap, candidate, job, components.experience_status),
        application_platforms=get_application_platforms(job.track, job.job_type),
    )
