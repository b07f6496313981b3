from typing import Optional, Tuple

from jobmatch.models.models import (
    CandidateProfile, ExperienceLevel, JobPosting, ScoreComponents, SkillOverlap,
)
from jobmatch.models.settings import ExperienceScores, ScoringWeights
from jobmatch.services.skills import canonical, skill_overlap_score
from jobmatch.utils.utils import clamp, round_half_up

MEETS_REQUIREMENT = "meets_requirement"
ONE_LEVEL_BELOW = "one_level_below"
TWO_LEVELS_BELOW = "two_levels_below"
TOO_FAR_BELOW = "too_far_below"


def experience_alignment(
    candidate_level: Optional[ExperienceLevel],
    job_level: Optional[ExperienceLevel],
    scores: ExperienceScores = None,
) -> Tuple[float, str]:
    scores = scores or ExperienceScores()
    if candidate_level is None or job_level is None:
        # unknown on either side never counts as aligned
        return scores.too_far_below, TOO_FAR_BELOW
    gap = int(job_level) - int(candidate_level)
    if gap <= 0:
        return scores.meets_requirement, MEETS_REQUIREMENT
    if gap == 1:
        return scores.one_level_below, ONE_LEVEL_BELOW
    if gap == 2:
        return scores.two_levels_below, TWO_LEVELS_BELOW
    return scores.too_far_below, TOO_FAR_BELOW


def is_track_match(candidate_track: Optional[str], job_track: Optional[str]) -> bool:
    if not candidate_track or not job_track:
        return False
    a, b = canonical(candidate_track), canonical(job_track)
    return bool(a) and a == b


def track_score(candidate_track: Optional[str], job_track: Optional[str]) -> float:
    return 1.0 if is_track_match(candidate_track, job_track) else 0.0


def blend_skill_score(similarity: float, overlap_score: float, weights: ScoringWeights = None) -> float:
    weights = weights or ScoringWeights()
    if similarity > 0:
        return weights.embedding_blend * similarity + weights.overlap_blend * overlap_score
    return overlap_score


def combine_scores(
    similarity: float,
    overlap: SkillOverlap,
    candidate: CandidateProfile,
    job: JobPosting,
    weights: ScoringWeights = None,
    experience_scores: ExperienceScores = None,
) -> ScoreComponents:
    """Merge the skill, experience and track signals into one bounded score.

    ``similarity`` of 0 means "no embedding signal": the skill score is then the
    exact overlap alone rather than a blend.
    """
    weights = weights or ScoringWeights()
    similarity = clamp(similarity, 0.0, 1.0)

    overlap_score = skill_overlap_score(overlap)
    exp_score, exp_status = experience_alignment(
        candidate.experience_level, job.experience_level, experience_scores
    )
    trk_score = track_score(candidate.preferred_track, job.track)
    blended = blend_skill_score(similarity, overlap_score, weights)

    final = clamp(
        weights.skill_weight * blended
        + weights.experience_weight * exp_score
        + weights.track_weight * trk_score,
        0.0, 1.0,
    )

    return ScoreComponents(
        similarity=similarity,
        skill_overlap_score=overlap_score,
        experience_score=exp_score,
        experience_status=exp_status,
        track_score=trk_score,
        blended_skill_score=blended,
        final_score=final,
        match_percentage=round_half_up(final * 100),
    )
