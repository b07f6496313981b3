from typing import Iterable, List

from jobmatch.models.models import SkillOverlap


def canonical(skill: str) -> str:
    return str(skill).strip().casefold()


def _unique(skills: Iterable[str]) -> List[str]:
    # first spelling of each canonical form wins, blanks dropped
    seen = set()
    out = []
    for s in skills or []:
        if s is None:
            continue
        c = canonical(s)
        if not c or c in seen:
            continue
        seen.add(c)
        out.append(str(s).strip())
    return out


def extract_skill_overlap(candidate_skills: Iterable[str], required_skills: Iterable[str]) -> SkillOverlap:
    """Exact, case-insensitive intersection of candidate skills and required skills.

    ``matched_skills`` keeps the candidate's spelling, ``missing_skills`` the
    posting's. Canonically the two partition the required set.
    """
    required = _unique(required_skills)
    required_set = {canonical(r) for r in required}

    matched = [s for s in _unique(candidate_skills) if canonical(s) in required_set]
    matched_set = {canonical(s) for s in matched}
    missing = [r for r in required if canonical(r) not in matched_set]

    return SkillOverlap(matched_skills=matched, missing_skills=missing, required_count=len(required))


def skill_overlap_score(overlap: SkillOverlap) -> float:
    if overlap.required_count == 0:
        return 0.0
    return overlap.matched_count / overlap.required_count
