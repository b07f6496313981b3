from unittest.mock import patch

import pandas as pd
import pytest
import requests

from jobmatch.models.models import CandidateProfile
from jobmatch.services.breakdown import (
    build_match_result, generate_ai_key_reasons, generate_key_reasons,
    get_application_platforms, get_match_breakdown, ranking_to_dataframe,
    write_ranking_report,
)
from jobmatch.services.matching import combine_scores
from jobmatch.services.skills import extract_skill_overlap


def _result(candidate, job, similarity=0.0):
    overlap = extract_skill_overlap(candidate.skills, job.required_skills)
    components = combine_scores(similarity, overlap, candidate, job)
    return build_match_result(candidate, job, overlap, components)


class TestMatchBreakdown:
    """Test cases for the factor breakdown"""

    def test_exact_only_breakdown(self, frontend_candidate, frontend_job):
        """Test factor scores and contributions without embedding signal"""
        b = get_match_breakdown(0.0, frontend_candidate, frontend_job)

        assert b.match_percentage == 80
        assert b.embedding_similarity is None
        assert b.factors.skill_overlap.score == pytest.approx(2 / 3)
        assert b.factors.skill_overlap.contribution == 40
        assert b.factors.skill_overlap.matched_skills == 2
        assert b.factors.skill_overlap.total_required_skills == 3
        assert b.factors.skill_overlap.missing_skills_list == ["Redux"]
        assert b.factors.experience_alignment.contribution == 20
        assert b.factors.experience_alignment.candidate_level == "Mid"
        assert b.factors.track_alignment.matched is True
        assert b.factors.track_alignment.contribution == 20

    def test_breakdown_with_similarity(self, frontend_candidate, frontend_job):
        """Test the skill factor reflects the blended score"""
        b = get_match_breakdown(0.9, frontend_candidate, frontend_job)

        assert b.embedding_similarity == 90
        assert b.factors.skill_overlap.blended_score == pytest.approx(0.4 * 0.9 + 0.6 * 2 / 3)
        assert b.factors.skill_overlap.score == pytest.approx(2 / 3)

    def test_breakdown_agrees_with_result(self, frontend_candidate, frontend_job):
        """Test the breakdown and the match result report the same percentage"""
        b = get_match_breakdown(0.55, frontend_candidate, frontend_job)
        r = _result(frontend_candidate, frontend_job, similarity=0.55)

        assert b.match_percentage == r.match_percentage
        assert b.factors == r.factor_breakdown


class TestKeyReasons:
    """Test cases for rule-based key reasons"""

    def test_full_alignment_reasons(self, frontend_candidate, frontend_job):
        """Test skills, track and experience reasons"""
        overlap = extract_skill_overlap(frontend_candidate.skills, frontend_job.required_skills)

        reasons = generate_key_reasons(overlap, frontend_candidate, frontend_job, "meets_requirement")

        assert reasons == [
            "Matches React, JS; missing Redux",
            "Perfect alignment with your preferred career track",
            "Your Mid experience level meets the Mid requirement",
        ]

    def test_experience_gap_reason(self, frontend_job):
        """Test a level gap is described, not praised"""
        candidate = CandidateProfile(candidate_id="c", skills=["Redux"], experience_level="Junior")
        overlap = extract_skill_overlap(candidate.skills, frontend_job.required_skills)

        reasons = generate_key_reasons(overlap, candidate, frontend_job, "one_level_below")

        assert reasons[0] == "Matches Redux; missing react and JS"
        assert reasons[-1] == "Experience level: Junior (job requires Mid)"

    async def test_ai_reasons(self, frontend_candidate, frontend_job):
        """Test LLM reasons are used when parseable"""
        overlap = extract_skill_overlap(frontend_candidate.skills, frontend_job.required_skills)
        components = combine_scores(0.0, overlap, frontend_candidate, frontend_job)

        with patch("jobmatch.services.breakdown.ollama_generate",
                   return_value='Sure! {"keyReasons": ["Strong React background", " "]}'):
            reasons = await generate_ai_key_reasons(overlap, frontend_candidate, frontend_job, components)

        assert reasons == ["Strong React background"]

    async def test_ai_reasons_fallback_on_error(self, frontend_candidate, frontend_job):
        """Test an unreachable LLM falls back to rule-based reasons"""
        overlap = extract_skill_overlap(frontend_candidate.skills, frontend_job.required_skills)
        components = combine_scores(0.0, overlap, frontend_candidate, frontend_job)

        with patch("jobmatch.services.breakdown.ollama_generate",
                   side_effect=requests.ConnectionError("refused")):
            reasons = await generate_ai_key_reasons(overlap, frontend_candidate, frontend_job, components)

        assert reasons == generate_key_reasons(overlap, frontend_candidate, frontend_job, components.experience_status)

    async def test_ai_reasons_fallback_on_garbage(self, frontend_candidate, frontend_job):
        """Test unparseable LLM output falls back to rule-based reasons"""
        overlap = extract_skill_overlap(frontend_candidate.skills, frontend_job.required_skills)
        components = combine_scores(0.0, overlap, frontend_candidate, frontend_job)

        with patch("jobmatch.services.breakdown.ollama_generate", return_value="no json here"):
            reasons = await generate_ai_key_reasons(overlap, frontend_candidate, frontend_job, components)

        assert reasons[0] == "Matches React, JS; missing Redux"


class TestApplicationPlatforms:
    """Test cases for application platform suggestions"""

    def test_development_track(self):
        """Test development tracks add developer job boards"""
        names = [p.name for p in get_application_platforms("Web Development", "Full-time")]

        assert names == ["LinkedIn", "BDjobs", "Glassdoor", "Stack Overflow Jobs", "GitHub Jobs"]

    def test_design_remote(self):
        """Test design tracks and remote postings add their boards"""
        names = [p.name for p in get_application_platforms("UI/UX Design", "Remote")]

        assert "Dribbble Jobs" in names
        assert "We Work Remotely" in names
        assert "GitHub Jobs" not in names

    def test_unknown_track(self):
        """Test missing track and type fall back to the base boards"""
        assert len(get_application_platforms(None, None)) == 3


class TestRankingReport:
    """Test cases for tabular ranking reports"""

    def test_dataframe_sorted(self, frontend_candidate, frontend_job):
        """Test rows are ordered by match score"""
        weak = frontend_job.copy(update={"job_id": "j2", "required_skills": ["React", "Go", "Rust", "C"]})
        df = ranking_to_dataframe([_result(frontend_candidate, weak), _result(frontend_candidate, frontend_job)])

        assert list(df["job_id"]) == ["j1", "j2"]
        assert df.loc[0, "match_percentage"] == 80

    def test_write_report(self, tmp_path, frontend_candidate, frontend_job):
        """Test CSV and markdown reports are written"""
        csv_path, md_path = write_ranking_report(
            "u1", [_result(frontend_candidate, frontend_job)], str(tmp_path / "reports")
        )

        df = pd.read_csv(csv_path)
        assert df.loc[0, "job_id"] == "j1"
        assert df.loc[0, "matched_skills"] == "React, JS"
        md = open(md_path, encoding="utf-8").read()
        assert md.startswith("# Candidate u1 - Top Matches")
        assert "| 1 | j1 | Frontend Developer | 80 |" in md

    def test_write_empty_report(self, tmp_path):
        """Test an empty ranking still produces both files"""
        csv_path, md_path = write_ranking_report("u9", [], str(tmp_path))

        assert "No postings matched" in open(md_path, encoding="utf-8").read()
        assert list(pd.read_csv(csv_path).columns)[0] == "job_id"
