import os
import logging
from datetime import datetime
from typing import Dict, List, Optional
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

def clean_filename(filename: str) -> str:
    """Clean and secure filename"""
    if not filename:
        return "unnamed_file"

    # Remove path components
    filename = os.path.basename(filename)

    # Secure the filename
    secure_name = secure_filename(filename)

    # If secure_filename returns empty string, provide default
    if not secure_name:
        ext = os.path.splitext(filename)[1]
        secure_name = f"file_{datetime.now().strftime('%Y%m%d_%H%M%S')}{secure_filename(ext)}"

    return secure_name

def parse_skills(value) -> Optional[List[str]]:
    """Normalise a skills field from a request body.

    Accepts a list of strings or a comma separated string; blank entries are
    dropped.  Returns None when nothing usable was given.
    """
    if value is None:
        return None

    if isinstance(value, str):
        value = value.split(',')

    if not isinstance(value, list) or not all(isinstance(skill, str) for skill in value):
        raise ValueError("skills must be a list of strings")

    skills = [skill.strip() for skill in value if skill.strip()]
    return skills or None

def _iso(value):
    return value.isoformat() if value else None

def serialize_job(job) -> Dict:
    return {
        'id': job.id,
        'user_id': job.user_id,
        'title': job.title,
        'description': job.description,
        'requirements': job.requirements,
        'skills': job.skills or [],
        'status': job.status.value,
        'matched_candidates': job.matched_candidates,
        'created_at': _iso(job.created_at),
        'updated_at': _iso(job.updated_at)
    }

def serialize_candidate(candidate) -> Dict:
    return {
        'id': candidate.id,
        'user_id': candidate.user_id,
        'name': candidate.name,
        'email': candidate.email,
        'phone': candidate.phone,
        'experience_years': candidate.experience_years,
        'skills': candidate.skills or [],
        'education': candidate.education,
        'summary': candidate.summary,
        'created_at': _iso(candidate.created_at)
    }

def serialize_match(match, candidate=None) -> Dict:
    data = {
        'id': match.id,
        'job_posting_id': match.job_posting_id,
        'candidate_id': match.candidate_id,
        'match_score': match.match_score,
        'explanation': match.explanation,
        'matching_skills': match.matching_skills or [],
        'missing_skills': match.missing_skills or [],
        'created_at': _iso(match.created_at)
    }

    if candidate is not None:
        data['candidate_name'] = candidate.name
        data['experience'] = f"{candidate.experience_years} years"

    return data

def serialize_pending_match(pending) -> Dict:
    return {
        'id': pending.id,
        'candidate_id': pending.candidate_id,
        'status': pending.status.value,
        'attempts': pending.attempts,
        'matches_created': pending.matches_created,
        'last_error': pending.last_error,
        'created_at': _iso(pending.created_at),
        'completed_at': _iso(pending.completed_at)
    }
