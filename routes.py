import logging
from flask import request, jsonify
from flask_login import login_required, current_user
from werkzeug.exceptions import HTTPException
from database import db
from models import Candidate, JobMatch, JobPosting, JobStatus, PendingMatch
from exceptions import RecruitError, ValidationError
from matching import generate_matches_for_job, process_resume
from utils import (parse_skills, serialize_candidate, serialize_job,
                   serialize_match, serialize_pending_match)

logger = logging.getLogger(__name__)

def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No data provided')
    return data

def _optional_int(value, field):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid value for {field}')

def _optional_text(data, field):
    value = data.get(field)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'Invalid value for {field}')
    return value

def register_routes(app):
    @app.errorhandler(RecruitError)
    def handle_recruit_error(error):
        db.session.rollback()
        logger.error(f"{type(error).__name__}: {error.message}")
        return jsonify({'error': error.message}), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return jsonify({'error': error.description}), error.code

        db.session.rollback()
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({'error': 'Internal server error'}), 500

    @app.route('/api/generate-job-matches', methods=['POST'])
    @login_required
    def api_generate_job_matches():
        """Score one of the caller's job postings against all of their candidates"""
        data = _json_body()
        job_posting_id = _optional_int(data.get('jobPostingId'), 'jobPostingId')
        if job_posting_id is None:
            raise ValidationError('Missing required field: jobPostingId')

        result = generate_matches_for_job(current_user.id, job_posting_id)
        return jsonify(result)

    @app.route('/api/process-resume', methods=['POST'])
    @login_required
    def api_process_resume():
        """Create a candidate from resume text and queue it for matching"""
        data = _json_body()
        resume_text = data.get('resumeText')
        if not isinstance(resume_text, str) or not resume_text.strip():
            raise ValidationError('Missing required field: resumeText')

        candidate, pending = process_resume(
            current_user.id,
            resume_text,
            _optional_text(data, 'filename') or '',
            file_size=_optional_int(data.get('fileSize'), 'fileSize'),
            file_type=_optional_text(data, 'fileType')
        )

        return jsonify({
            'success': True,
            'candidate': serialize_candidate(candidate),
            'pending_match_id': pending.id,
            'message': 'Resume processed successfully. Job matching in progress.'
        })

    @app.route('/api/pending-matches/<int:pending_id>', methods=['GET'])
    @login_required
    def api_pending_match(pending_id):
        """Report progress of background matching for one uploaded resume"""
        pending = PendingMatch.query.filter_by(id=pending_id, user_id=current_user.id).first()
        if not pending:
            return jsonify({'error': 'Pending match not found'}), 404

        return jsonify({'success': True, 'pending_match': serialize_pending_match(pending)})

    @app.route('/api/jobs', methods=['GET'])
    @login_required
    def api_jobs():
        """List the caller's job postings, newest first"""
        query = JobPosting.query.filter_by(user_id=current_user.id)

        status_filter = request.args.get('status', '')
        if status_filter and status_filter != 'all':
            try:
                query = query.filter(JobPosting.status == JobStatus(status_filter))
            except ValueError:
                raise ValidationError(f'Invalid status: {status_filter}')

        jobs = query.order_by(JobPosting.created_at.desc(), JobPosting.id.desc()).all()

        return jsonify({
            'success': True,
            'jobs': [serialize_job(job) for job in jobs],
            'count': len(jobs)
        })

    @app.route('/api/jobs', methods=['POST'])
    @login_required
    def api_create_job():
        """Create a job posting; active postings are matched right away"""
        data = _json_body()

        title = data.get('title')
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('Missing required field: title')

        try:
            skills = parse_skills(data.get('skills'))
        except ValueError as e:
            raise ValidationError(str(e))

        try:
            status = JobStatus(data.get('status') or JobStatus.ACTIVE.value)
        except ValueError:
            raise ValidationError(f"Invalid status: {data.get('status')}")

        job = JobPosting(
            user_id=current_user.id,
            title=title.strip(),
            description=_optional_text(data, 'description'),
            requirements=_optional_text(data, 'requirements'),
            skills=skills,
            status=status
        )
        db.session.add(job)
        db.session.commit()
        logger.info(f"Created job posting {job.id}: {job.title}")

        response = {'success': True, 'job': serialize_job(job)}

        if job.status == JobStatus.ACTIVE:
            response['matching'] = generate_matches_for_job(current_user.id, job.id)
            job = db.session.get(JobPosting, job.id)
            response['job'] = serialize_job(job)

        return jsonify(response), 201

    @app.route('/api/jobs/<int:job_id>/matches', methods=['GET'])
    @login_required
    def api_job_matches(job_id):
        """Shortlist for a job: its matches with candidate details, best first"""
        job = JobPosting.query.filter_by(id=job_id, user_id=current_user.id).first()
        if not job:
            return jsonify({'error': 'Job posting not found'}), 404

        min_score = request.args.get('min_score', type=int)

        query = db.session.query(JobMatch, Candidate)\
            .join(Candidate, JobMatch.candidate_id == Candidate.id)\
            .filter(JobMatch.job_posting_id == job.id, JobMatch.user_id == current_user.id)
        if min_score is not None:
            query = query.filter(JobMatch.match_score >= min_score)

        rows = query.order_by(JobMatch.match_score.desc()).all()

        return jsonify({
            'success': True,
            'job': serialize_job(job),
            'matches': [serialize_match(match, candidate) for match, candidate in rows],
            'count': len(rows)
        })

    @app.route('/api/candidates', methods=['GET'])
    @login_required
    def api_candidates():
        """List the caller's candidates, newest first"""
        candidates = Candidate.query.filter_by(user_id=current_user.id)\
            .order_by(Candidate.created_at.desc(), Candidate.id.desc()).all()

        return jsonify({
            'success': True,
            'candidates': [serialize_candidate(candidate) for candidate in candidates],
            'count': len(candidates)
        })

