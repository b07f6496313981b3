KEY_REASONS_PROMPT = """You are a career assistant. Generate 2-4 concise key reasons for a job match with a {match_percentage}% match score.

Matched Skills: {matched_skills}
Missing Skills: {missing_skills}
Track Match: {track_match}
Experience Match: {experience_match}
Candidate Experience: {candidate_level}
Job Requires: {job_level}

Write reasons like:
- "Matches React, JS, HTML; missing Redux and TypeScript"
- "Perfect alignment with your preferred career track"
- "Your Mid experience level meets the Mid requirement"

Return strict JSON: {{"keyReasons": ["reason1", "reason2"]}}
"""
