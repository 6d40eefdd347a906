import logging
import math
import re
from typing import List, Optional
from flask import current_app
from pydantic import BaseModel, Field, ValidationError as SchemaError, field_validator

from ai_client import complete_json
from exceptions import UpstreamServiceError, ValidationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert resume parser. Extract structured information from the resume text and return it as JSON with the following format:
{
  "name": "Full Name",
  "email": "email@example.com",
  "phone": "phone number",
  "experience_years": number,
  "skills": ["skill1", "skill2", "skill3"],
  "education": "Highest education degree and institution",
  "summary": "Brief professional summary"
}

Rules:
- Extract only information that is explicitly mentioned in the resume
- For experience_years, calculate total years of professional experience
- Include only technical and professional skills in the skills array
- Keep the summary under 200 characters
- If information is not available, use null for strings and 0 for numbers"""


class CandidateInfo(BaseModel):
    """Shape the resume parser must reply with"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    skills: Optional[List[str]] = None
    education: Optional[str] = None
    summary: Optional[str] = None

    @field_validator('phone', mode='before')
    @classmethod
    def phone_as_text(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator('experience_years', mode='before')
    @classmethod
    def clean_experience_years(cls, value):
        # Models sometimes answer "5+ years" or 4.5
        if isinstance(value, str):
            exp_match = re.search(r'-?\d+', value)
            return int(exp_match.group()) if exp_match else None
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError("experience_years must be a finite number")
            return int(value)
        return value


def parse_candidate_reply(reply):
    """Validate a parser reply and apply defaults for missing fields"""
    try:
        info = CandidateInfo.model_validate(reply)
    except SchemaError as e:
        logger.error(f"Resume parser reply failed validation: {e}")
        raise UpstreamServiceError("Malformed reply from AI service") from e

    return {
        'name': info.name or 'Unknown',
        'email': info.email,
        'phone': info.phone,
        'experience_years': info.experience_years or 0,
        'skills': info.skills or [],
        'education': info.education,
        'summary': info.summary,
    }


def extract_candidate(resume_text):
    """Turn raw resume text into a candidate record using the completion service.

    Any failure is fatal: there is no retry and no partial record.
    """
    if not resume_text or not resume_text.strip():
        raise ValidationError("Resume text is required")

    user_prompt = f"Please extract information from this resume:\n\n{resume_text}"
    reply = complete_json(SYSTEM_PROMPT, user_prompt, current_app.config["EXTRACTION_MAX_TOKENS"])

    candidate_info = parse_candidate_reply(reply)
    logger.info(f"Extracted candidate info: {candidate_info['name']} ({len(candidate_info['skills'])} skills)")
    return candidate_info
