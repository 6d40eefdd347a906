"""
Tests for job-triggered matching and the matched_candidates aggregate.
"""

import unittest
from unittest.mock import patch

from database import db
from exceptions import NotFoundError, PersistenceError, UpstreamServiceError
from matching import (generate_matches_for_job, process_resume,
                      refresh_matched_count)
from models import (Candidate, JobMatch, JobPosting, PendingMatch,
                    PendingMatchStatus, ResumeFile)
from support import AppTestCase, completion, match_reply, upstream_failure


class TestGenerateMatchesForJob(AppTestCase):

    def test_zero_candidates(self):
        job = self.make_job()

        result = generate_matches_for_job(self.user.id, job.id)

        self.assertTrue(result['success'])
        self.assertEqual(result['matches_created'], 0)
        self.assertEqual(result['total_candidates'], 0)
        self.assertEqual(JobMatch.query.count(), 0)
        self.create_completion.assert_not_called()

    def test_creates_one_match_per_candidate(self):
        job = self.make_job(skills=['React', 'Node'])
        candidate = self.make_candidate(skills=['React', 'Python'])
        self.create_completion.return_value = match_reply(85, matching=['React'], missing=['Node'])

        result = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(result['matches_created'], 1)
        self.assertEqual(result['total_candidates'], 1)
        self.assertEqual(result['message'], 'Generated 1 matches successfully')

        match = JobMatch.query.one()
        self.assertEqual(match.candidate_id, candidate.id)
        self.assertEqual(match.match_score, 85)
        self.assertEqual(match.matching_skills, ['React'])
        self.assertEqual(match.missing_skills, ['Node'])
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 1)

    def test_upstream_failures_are_skipped(self):
        job = self.make_job()
        for i in range(5):
            self.make_candidate(name=f'Candidate {i}')

        self.create_completion.side_effect = [
            match_reply(90),
            upstream_failure(),
            match_reply(70),
            completion('garbage'),
            match_reply(60),
        ]

        result = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(result['matches_created'], 3)
        self.assertEqual(result['total_candidates'], 5)
        self.assertEqual(JobMatch.query.filter_by(job_posting_id=job.id).count(), 3)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 3)

    def test_rerun_does_not_duplicate_matches(self):
        job = self.make_job()
        self.make_candidate(name='A')
        self.make_candidate(name='B')
        self.create_completion.return_value = match_reply(75)

        generate_matches_for_job(self.user.id, job.id)
        second = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(second['matches_created'], 0)
        self.assertEqual(JobMatch.query.count(), 2)
        self.assertEqual(self.create_completion.call_count, 2)

    def test_rerun_keeps_matched_candidates_count(self):
        # Regression: a run that creates nothing must not reset the aggregate to 0
        job = self.make_job()
        self.make_candidate(name='A')
        self.make_candidate(name='B')
        self.create_completion.return_value = match_reply(75)

        generate_matches_for_job(self.user.id, job.id)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 2)

        generate_matches_for_job(self.user.id, job.id)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 2)

    def test_retry_picks_up_previously_failed_pairs(self):
        job = self.make_job()
        self.make_candidate(name='A')
        self.make_candidate(name='B')
        self.create_completion.side_effect = [match_reply(80), upstream_failure()]

        first = generate_matches_for_job(self.user.id, job.id)
        self.assertEqual(first['matches_created'], 1)

        self.create_completion.side_effect = [match_reply(65)]
        second = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(second['matches_created'], 1)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 2)

    def test_only_own_candidates_are_scored(self):
        other = self.make_user('bob')
        job = self.make_job()
        self.make_candidate(name='Mine')
        self.make_candidate(user=other, name='Not mine')
        self.create_completion.return_value = match_reply(75)

        result = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(result['total_candidates'], 1)
        self.assertEqual(self.create_completion.call_count, 1)

    def test_other_users_job_not_found(self):
        other = self.make_user('bob')
        job = self.make_job(user=other)

        with self.assertRaises(NotFoundError):
            generate_matches_for_job(self.user.id, job.id)

    def test_missing_job_not_found(self):
        with self.assertRaises(NotFoundError):
            generate_matches_for_job(self.user.id, 9999)

    def test_failed_insert_skips_only_that_candidate(self):
        from sqlalchemy.exc import OperationalError

        job = self.make_job()
        self.make_candidate(name='A')
        self.make_candidate(name='B')
        self.create_completion.return_value = match_reply(75)

        real_commit = db.session.commit
        commits = []

        def commit_failing_once():
            commits.append(1)
            if len(commits) == 1:
                raise OperationalError('INSERT', {}, Exception('database is locked'))
            return real_commit()

        with patch.object(db.session, 'commit', side_effect=commit_failing_once):
            result = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(result['matches_created'], 1)
        self.assertEqual(result['total_candidates'], 2)
        self.assertEqual(JobMatch.query.count(), 1)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 1)

    def test_duplicate_insert_counted_as_no_match(self):
        job = self.make_job()
        first = self.make_candidate(name='A')
        self.make_candidate(name='B')
        db.session.add(JobMatch(user_id=self.user.id, job_posting_id=job.id,
                                candidate_id=first.id, match_score=50))
        db.session.commit()
        self.create_completion.return_value = match_reply(75)

        # Let both pairs through to the insert so the unique constraint decides
        with patch('matching.match_exists', return_value=False):
            result = generate_matches_for_job(self.user.id, job.id)

        self.assertEqual(result['matches_created'], 1)
        self.assertEqual(JobMatch.query.count(), 2)
        self.assertEqual(JobMatch.query.filter_by(candidate_id=first.id).one().match_score, 50)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 2)


class TestRefreshMatchedCount(AppTestCase):

    def test_count_derived_from_rows(self):
        job = self.make_job()
        job.matched_candidates = 42
        db.session.commit()

        candidate = self.make_candidate()
        db.session.add(JobMatch(user_id=self.user.id, job_posting_id=job.id,
                                candidate_id=candidate.id, match_score=50))
        db.session.commit()

        self.assertEqual(refresh_matched_count(job.id), 1)
        self.assertEqual(db.session.get(JobPosting, job.id).matched_candidates, 1)


class TestProcessResume(AppTestCase):

    def setUp(self):
        super().setUp()
        self.create_completion.return_value = completion({
            'name': 'Jane Doe',
            'email': 'jane@example.com',
            'phone': None,
            'experience_years': 5,
            'skills': ['Python', 'Flask'],
            'education': 'MSc',
            'summary': 'Backend engineer'
        })

    def test_persists_candidate_file_and_work_item(self):
        candidate, pending = process_resume(self.user.id, 'resume text', '../My Resume.pdf', 2048, 'application/pdf')

        self.assertEqual(candidate.name, 'Jane Doe')
        self.assertEqual(candidate.resume_text, 'resume text')
        self.assertEqual(candidate.user_id, self.user.id)

        resume_file = ResumeFile.query.one()
        self.assertEqual(resume_file.candidate_id, candidate.id)
        self.assertEqual(resume_file.filename, 'My_Resume.pdf')
        self.assertEqual(resume_file.file_size, 2048)
        self.assertEqual(resume_file.status.value, 'completed')

        self.assertEqual(pending.candidate_id, candidate.id)
        self.assertEqual(pending.status, PendingMatchStatus.PENDING)
        self.assertEqual(pending.attempts, 0)

    def test_does_not_match_inline(self):
        self.make_job()

        process_resume(self.user.id, 'resume text', 'cv.txt')

        self.assertEqual(self.create_completion.call_count, 1)
        self.assertEqual(JobMatch.query.count(), 0)

    def test_extraction_failure_stores_nothing(self):
        self.create_completion.return_value = None
        self.create_completion.side_effect = upstream_failure()

        with self.assertRaises(UpstreamServiceError):
            process_resume(self.user.id, 'resume text', 'cv.txt')

        self.assertEqual(Candidate.query.count(), 0)
        self.assertEqual(ResumeFile.query.count(), 0)
        self.assertEqual(PendingMatch.query.count(), 0)

    def test_database_failure_rolls_back(self):
        from sqlalchemy.exc import OperationalError

        with patch.object(db.session, 'commit', side_effect=OperationalError('INSERT', {}, Exception('disk full'))):
            with self.assertRaises(PersistenceError):
                process_resume(self.user.id, 'resume text', 'cv.txt')

        self.assertEqual(Candidate.query.count(), 0)
        self.assertEqual(PendingMatch.query.count(), 0)


if __name__ == '__main__':
    unittest.main()
