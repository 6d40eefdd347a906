from datetime import datetime
from database import db
from flask_login import UserMixin
from sqlalchemy import Enum
import enum

class JobStatus(enum.Enum):
    ACTIVE = "Active"
    DRAFT = "Draft"
    CLOSED = "Closed"

class ResumeFileStatus(enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class PendingMatchStatus(enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    # Bearer credential presented in the Authorization header
    api_token = db.Column(db.String(128), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class JobPosting(db.Model):
    __tablename__ = 'job_postings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    requirements = db.Column(db.Text)
    skills = db.Column(db.JSON)  # List of skill strings
    status = db.Column(Enum(JobStatus), default=JobStatus.ACTIVE, nullable=False)

    # Derived from the job_matches table, see matching.refresh_matched_count
    matched_candidates = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    matches = db.relationship('JobMatch', backref='job_posting', lazy=True, cascade='all, delete-orphan')

class Candidate(db.Model):
    __tablename__ = 'candidates'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False, default='Unknown')
    email = db.Column(db.String(120))
    phone = db.Column(db.String(50))
    experience_years = db.Column(db.Integer, nullable=False, default=0)
    skills = db.Column(db.JSON)  # Kept as extracted, duplicates included
    education = db.Column(db.Text)
    summary = db.Column(db.Text)
    resume_text = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    matches = db.relationship('JobMatch', backref='candidate', lazy=True, cascade='all, delete-orphan')
    resume_files = db.relationship('ResumeFile', backref='candidate', lazy=True, cascade='all, delete-orphan')

class ResumeFile(db.Model):
    __tablename__ = 'resume_files'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidates.id'), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    file_size = db.Column(db.Integer)
    file_type = db.Column(db.String(100))
    status = db.Column(Enum(ResumeFileStatus), default=ResumeFileStatus.COMPLETED, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

class JobMatch(db.Model):
    __tablename__ = 'job_matches'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    job_posting_id = db.Column(db.Integer, db.ForeignKey('job_postings.id'), nullable=False)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidates.id'), nullable=False)

    # AI-generated match information
    match_score = db.Column(db.Integer, nullable=False)  # 0-100
    explanation = db.Column(db.Text)
    matching_skills = db.Column(db.JSON)
    missing_skills = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # One match per pair
    __table_args__ = (db.UniqueConstraint('user_id', 'job_posting_id', 'candidate_id'),)

class PendingMatch(db.Model):
    """Work item asking the worker to match one candidate against active jobs"""
    __tablename__ = 'pending_matches'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    candidate_id = db.Column(db.Integer, db.ForeignKey('candidates.id'), nullable=False)
    status = db.Column(Enum(PendingMatchStatus), default=PendingMatchStatus.PENDING, nullable=False, index=True)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    matches_created = db.Column(db.Integer, default=0, nullable=False)
    last_error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = db.Column(db.DateTime)

    candidate = db.relationship('Candidate')
