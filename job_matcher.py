"""
Candidate-to-job scoring.

A job posting and a candidate are rendered into a prompt for the completion
service, which answers with a score and the skills that do and do not line
up.  The reply is validated and the score is clamped to 0-100.
"""

import logging
from typing import List, Optional
from flask import current_app
from pydantic import BaseModel, Field, ValidationError as SchemaError

from ai_client import complete_json
from exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

NOT_SPECIFIED = 'Not specified'

SYSTEM_PROMPT = """You are an expert recruiter. Analyze the match between a candidate and a job posting. Return JSON with this format:
{
  "match_score": number (0-100),
  "explanation": "Brief explanation of the match quality and key factors",
  "matching_skills": ["skill1", "skill2"],
  "missing_skills": ["skill1", "skill2"]
}

Scoring criteria:
- 90-100: Excellent match, candidate exceeds requirements
- 80-89: Very good match, candidate meets most requirements with some strengths
- 70-79: Good match, candidate meets basic requirements
- 60-69: Fair match, candidate partially meets requirements
- 50-59: Weak match, candidate has some relevant experience
- 0-49: Poor match, candidate lacks key requirements"""


class MatchInfo(BaseModel):
    """Shape the recruiter prompt must reply with"""

    match_score: float = Field(allow_inf_nan=False)
    explanation: Optional[str] = None
    matching_skills: Optional[List[str]] = None
    missing_skills: Optional[List[str]] = None


def clamp_score(value) -> int:
    """Round a score and force it into 0-100"""
    return int(min(100, max(0, round(value))))


def _join_skills(skills) -> str:
    return ', '.join(skills) if skills else NOT_SPECIFIED


def build_match_prompt(job, candidate) -> str:
    """Render the user prompt for one (job, candidate) pair"""
    return f"""
Job Posting:
Title: {job.title}
Description: {job.description or NOT_SPECIFIED}
Requirements: {job.requirements or NOT_SPECIFIED}
Skills Required: {_join_skills(job.skills)}

Candidate:
Name: {candidate.name}
Experience: {candidate.experience_years or 0} years
Skills: {_join_skills(candidate.skills)}
Education: {candidate.education or NOT_SPECIFIED}
Summary: {candidate.summary or NOT_SPECIFIED}

Please analyze the match quality and provide a detailed assessment."""


def restrict_to(reply_skills: List[str], allowed: Optional[List[str]]) -> List[str]:
    """Keep only reply skills present in ``allowed`` (case-insensitive), using the allowed spelling.

    When ``allowed`` is empty there is nothing to check against and the reply
    list is returned unchanged.
    """
    if not allowed:
        return list(reply_skills)

    lookup = {}
    for skill in allowed:
        lookup.setdefault(skill.strip().lower(), skill)

    result = []
    for skill in reply_skills:
        match = lookup.get(skill.strip().lower())
        if match is not None and match not in result:
            result.append(match)
    return result


def parse_match_reply(reply, job, candidate):
    try:
        info = MatchInfo.model_validate(reply)
    except SchemaError as e:
        logger.error(f"Match reply failed validation: {e}")
        raise UpstreamServiceError("Malformed reply from AI service") from e

    return {
        'match_score': clamp_score(info.match_score),
        'explanation': info.explanation or '',
        'matching_skills': restrict_to(info.matching_skills or [], candidate.skills),
        'missing_skills': restrict_to(info.missing_skills or [], job.skills),
    }


def score_match(job, candidate):
    """Score one candidate against one job posting.

    Args:
        job: a JobPosting (title, description, requirements, skills).
        candidate: a Candidate (name, experience_years, skills, education, summary).

    Returns:
        dict with match_score (int, 0-100), explanation, matching_skills and
        missing_skills.

    Raises:
        UpstreamServiceError: the service failed or its reply did not validate.
    """
    reply = complete_json(
        SYSTEM_PROMPT,
        build_match_prompt(job, candidate),
        current_app.config["SCORING_MAX_TOKENS"]
    )
    return parse_match_reply(reply, job, candidate)
