"""
Shared fixtures for the test suite: an in-memory application and a fake
OpenAI client.
"""

import json
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from openai import OpenAIError

from app import create_app
from database import db
from models import Candidate, JobPosting, JobStatus, User

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_ENGINE_OPTIONS': {},
    'OPENAI_API_KEY': 'test-key',
    'MATCH_REQUEST_DELAY': 0,
    'MATCH_MAX_ATTEMPTS': 3,
    'START_MATCH_WORKER': False,
}


def completion(payload):
    """Build an object shaped like an OpenAI chat completion response"""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def match_reply(score=80, matching=None, missing=None, explanation='Solid fit'):
    return completion({
        'match_score': score,
        'explanation': explanation,
        'matching_skills': matching or [],
        'missing_skills': missing or []
    })


def upstream_failure(message='Service unavailable'):
    return OpenAIError(message)


class AppTestCase(unittest.TestCase):
    """Runs each test against a fresh database with the OpenAI client mocked"""

    def setUp(self):
        self.app = create_app(TEST_CONFIG)
        self.ctx = self.app.app_context()
        self.ctx.push()

        self.openai = MagicMock()
        self.create_completion = self.openai.chat.completions.create
        patcher = patch('ai_client.get_client', return_value=self.openai)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.user = self.make_user('alice')
        self.client = self.app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def make_user(self, username):
        user = User(username=username, email=f'{username}@example.com', api_token=f'token-{username}')
        db.session.add(user)
        db.session.commit()
        return user

    def make_job(self, user=None, title='Backend Engineer', skills=None, status=JobStatus.ACTIVE, **kwargs):
        job = JobPosting(
            user_id=(user or self.user).id,
            title=title,
            description=kwargs.get('description', 'Build APIs'),
            requirements=kwargs.get('requirements', '3+ years'),
            skills=skills,
            status=status
        )
        db.session.add(job)
        db.session.commit()
        return job

    def make_candidate(self, user=None, name='Jane Doe', skills=None, experience_years=4):
        candidate = Candidate(
            user_id=(user or self.user).id,
            name=name,
            experience_years=experience_years,
            skills=skills if skills is not None else ['Python'],
            education='BSc Computer Science',
            summary='Backend developer',
            resume_text=f'{name} resume'
        )
        db.session.add(candidate)
        db.session.commit()
        return candidate

    def auth_headers(self, user=None):
        return {'Authorization': f'Bearer {(user or self.user).api_token}'}
