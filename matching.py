"""
Matching orchestration.

Two paths lead to scored JobMatch rows:

* job-triggered: ``generate_matches_for_job`` scores one job posting against
  every candidate of the user, inside the request.
* candidate-triggered: ``process_resume`` stores the candidate together with a
  PendingMatch work item; the background worker later calls
  ``process_pending_matches`` which scores the candidate against the user's
  active job postings.

Both paths skip pairs that already have a match, and the unique constraint on
job_matches backs that up.  ``matched_candidates`` on a job posting is always
recomputed from the job_matches table.
"""

import logging
import time
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from database import db
from models import (Candidate, JobMatch, JobPosting, JobStatus, PendingMatch,
                    PendingMatchStatus, ResumeFile, ResumeFileStatus)
from cv_parser import extract_candidate
from job_matcher import score_match
from exceptions import NotFoundError, PersistenceError, UpstreamServiceError
from utils import clean_filename

logger = logging.getLogger(__name__)


def _pause():
    delay = current_app.config.get("MATCH_REQUEST_DELAY", 0)
    if delay > 0:
        time.sleep(delay)


def match_exists(user_id, job_posting_id, candidate_id):
    return db.session.query(JobMatch.id).filter_by(
        user_id=user_id,
        job_posting_id=job_posting_id,
        candidate_id=candidate_id
    ).first() is not None


def refresh_matched_count(job_posting_id):
    """Set matched_candidates to the number of stored matches for the job"""
    live_count = db.session.query(func.count(JobMatch.id))\
        .filter(JobMatch.job_posting_id == job_posting_id)\
        .scalar_subquery()

    JobPosting.query.filter_by(id=job_posting_id).update(
        {JobPosting.matched_candidates: live_count},
        synchronize_session=False
    )
    db.session.commit()

    job = db.session.get(JobPosting, job_posting_id)
    return job.matched_candidates if job else 0


def create_match(user_id, job, candidate):
    """Score one pair and store the result. Returns True when a row was written.

    Scoring and insert failures are logged and reported as False so that the
    caller can move on to the next pair.
    """
    job_id, candidate_id = job.id, candidate.id

    try:
        match_info = score_match(job, candidate)
    except UpstreamServiceError as e:
        logger.error(f"Scoring failed for job {job_id} / candidate {candidate_id}: {e}")
        return False

    db.session.add(JobMatch(
        user_id=user_id,
        job_posting_id=job_id,
        candidate_id=candidate_id,
        match_score=match_info['match_score'],
        explanation=match_info['explanation'],
        matching_skills=match_info['matching_skills'],
        missing_skills=match_info['missing_skills']
    ))

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning(f"Match already exists for job {job_id} / candidate {candidate_id}")
        return False
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating match for job {job_id} / candidate {candidate_id}: {e}")
        return False

    logger.info(f"Created match for job {job_id} / candidate {candidate_id} with score {match_info['match_score']}")
    return True


def generate_matches_for_job(user_id, job_posting_id):
    """Score a job posting against every candidate the user owns.

    Pairs that already have a match are skipped, so running this twice does
    not duplicate rows.  Failures are isolated per candidate.

    Raises:
        NotFoundError: the job posting does not exist or belongs to someone else.
    """
    logger.info(f"Generating matches for job posting: {job_posting_id}")

    job = JobPosting.query.filter_by(id=job_posting_id, user_id=user_id).first()
    if not job:
        raise NotFoundError("Job posting not found")

    candidates = Candidate.query.filter_by(user_id=user_id).order_by(Candidate.id).all()

    if not candidates:
        return {
            'success': True,
            'message': 'No candidates found to match',
            'matches_created': 0,
            'total_candidates': 0
        }

    matches_created = 0

    for candidate in candidates:
        if match_exists(user_id, job.id, candidate.id):
            logger.info(f"Match already exists for candidate {candidate.id}")
            continue

        if create_match(user_id, job, candidate):
            matches_created += 1

        # Small delay to avoid rate limiting
        _pause()

    refresh_matched_count(job.id)

    return {
        'success': True,
        'message': f'Generated {matches_created} matches successfully',
        'matches_created': matches_created,
        'total_candidates': len(candidates)
    }


def process_resume(user_id, resume_text, filename, file_size=None, file_type=None):
    """Extract a candidate from resume text and queue it for matching.

    The candidate, its resume file record and the PendingMatch work item are
    written in one transaction.  Extraction failures abort before anything is
    stored.

    Returns:
        (candidate, pending_match)
    """
    logger.info(f"Processing resume: {filename}")

    candidate_info = extract_candidate(resume_text)

    try:
        candidate = Candidate(
            user_id=user_id,
            resume_text=resume_text,
            **candidate_info
        )
        db.session.add(candidate)
        db.session.flush()

        db.session.add(ResumeFile(
            user_id=user_id,
            candidate_id=candidate.id,
            filename=clean_filename(filename),
            file_size=file_size,
            file_type=file_type,
            status=ResumeFileStatus.COMPLETED
        ))

        pending = PendingMatch(user_id=user_id, candidate_id=candidate.id)
        db.session.add(pending)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error creating candidate: {e}")
        raise PersistenceError("Could not save candidate") from e

    return candidate, pending


def match_candidate_to_jobs(user_id, candidate_id):
    """Score a candidate against the user's active job postings.

    Returns:
        (matches_created, failures)
    """
    candidate = Candidate.query.filter_by(id=candidate_id, user_id=user_id).first()
    if not candidate:
        raise NotFoundError("Candidate not found")

    jobs = JobPosting.query.filter_by(user_id=user_id, status=JobStatus.ACTIVE)\
        .order_by(JobPosting.id).all()

    if not jobs:
        logger.info("No active job postings found for matching")
        return 0, 0

    matches_created = 0
    failures = 0

    for job in jobs:
        if match_exists(user_id, job.id, candidate.id):
            continue

        if create_match(user_id, job, candidate):
            matches_created += 1
            refresh_matched_count(job.id)
        else:
            failures += 1

        _pause()

    return matches_created, failures


def _claim(pending_id):
    """Move a pending item to processing. False when another worker got there first."""
    claimed = PendingMatch.query.filter_by(
        id=pending_id,
        status=PendingMatchStatus.PENDING
    ).update({
        PendingMatch.status: PendingMatchStatus.PROCESSING,
        PendingMatch.attempts: PendingMatch.attempts + 1,
        PendingMatch.updated_at: datetime.utcnow()
    }, synchronize_session=False)
    db.session.commit()
    return claimed == 1


def process_pending_match(pending_id):
    """Run one work item. Returns the item, or None if it could not be claimed."""
    if not _claim(pending_id):
        return None

    pending = db.session.get(PendingMatch, pending_id)
    max_attempts = current_app.config.get("MATCH_MAX_ATTEMPTS", 3)
    error = None

    try:
        _, failures = match_candidate_to_jobs(pending.user_id, pending.candidate_id)
        if failures:
            error = f"{failures} job(s) could not be matched"
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Error in background matching for pending match {pending_id}")
        error = str(e) or type(e).__name__

    # Counted from stored rows so matches committed before a failure are included
    pending.matches_created = JobMatch.query.filter_by(
        user_id=pending.user_id,
        candidate_id=pending.candidate_id
    ).count()

    if error is None:
        pending.status = PendingMatchStatus.COMPLETED
        pending.last_error = None
        pending.completed_at = datetime.utcnow()
    elif pending.attempts >= max_attempts:
        pending.status = PendingMatchStatus.FAILED
        pending.last_error = error
        logger.error(f"Pending match {pending_id} failed after {pending.attempts} attempts: {error}")
    else:
        pending.status = PendingMatchStatus.PENDING
        pending.last_error = error
        logger.warning(f"Pending match {pending_id} will be retried: {error}")

    db.session.commit()
    return pending


def process_pending_matches(limit=None):
    """Process up to ``limit`` of the oldest pending work items. Returns how many ran."""
    if limit is None:
        limit = current_app.config.get("MATCH_WORKER_BATCH", 5)

    pending_ids = [row.id for row in db.session.query(PendingMatch.id)
                   .filter(PendingMatch.status == PendingMatchStatus.PENDING)
                   .order_by(PendingMatch.created_at, PendingMatch.id)
                   .limit(limit).all()]

    processed = 0
    for pending_id in pending_ids:
        if process_pending_match(pending_id) is not None:
            processed += 1

    if processed:
        logger.info(f"Processed {processed} pending match(es)")
    return processed


def requeue_stale_matches(older_than_minutes=30):
    """Return items stuck in processing (e.g. after a crash) to the queue"""
    cutoff = datetime.utcnow() - timedelta(minutes=older_than_minutes)
    requeued = PendingMatch.query.filter(
        PendingMatch.status == PendingMatchStatus.PROCESSING,
        PendingMatch.updated_at < cutoff
    ).update({PendingMatch.status: PendingMatchStatus.PENDING}, synchronize_session=False)
    db.session.commit()

    if requeued:
        logger.warning(f"Requeued {requeued} stale pending match(es)")
    return requeued
