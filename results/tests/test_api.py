import json

from django.test import TestCase
from django.urls import reverse

from exams.models import Exam
from results.models import ExamAttempt
from results.services.attempt_service import AttemptService
from results.tests.mixins import ExamFixtureMixin

Status = ExamAttempt.Status

class AttemptApiTests(ExamFixtureMixin, TestCase):
    def setUp(self):
        self.create_users()
        self.create_exam()
        self.client.login(username='student', password='password')

    def put_json(self, url, payload):
        return self.client.put(url, data=json.dumps(payload), content_type='application/json')

    def post_json(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def start(self):
        return self.client.post(reverse('start-attempt', args=[self.exam.id]))

    # --- Feature: Taking an exam ---
    def test_full_flow(self):
        """Start, answer, submit, resubmit"""
        response = self.start()
        self.assertEqual(response.status_code, 201)
        attempt_id = response.json()['id']
        self.assertEqual(response.json()['status'], Status.IN_PROGRESS)
        self.assertEqual(len(response.json()['answers']), 4)
        self.assertEqual(response.json()['student_name'], "John Doe")
        self.assertGreater(response.json()['remaining_seconds'], 0)

        response = self.put_json(reverse('record-answer', args=[attempt_id]), {
            'question_id': self.q_mcq.id,
            'selected_answer': self.opt_paris.id,
            'time_spent_seconds': 25,
        })
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['answer']['is_answered'])

        response = self.client.post(reverse('submit-attempt', args=[attempt_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], Status.SUBMITTED)
        self.assertEqual(response.json()['obtained_marks'], 4)
        self.assertTrue(response.json()['answers'][0]['is_correct'])
        self.assertEqual(response.json()['remaining_seconds'], 0)
        first = response.json()

        response = self.client.post(reverse('submit-attempt', args=[attempt_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['submitted_at'], first['submitted_at'])
        self.assertEqual(response.json()['obtained_marks'], first['obtained_marks'])

        response = self.put_json(reverse('record-answer', args=[attempt_id]), {
            'question_id': self.q_mcq.id, 'selected_answer': self.opt_london.id,
        })
        self.assertEqual(response.status_code, 409)

    def test_second_start_resumes(self):
        first = self.start()
        second = self.start()
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()['id'], first.json()['id'])

    def test_attempt_limit(self):
        Exam.objects.filter(pk=self.exam.pk).update(allowed_attempts=1)
        attempt_id = self.start().json()['id']
        self.client.post(reverse('submit-attempt', args=[attempt_id]))

        response = self.start()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['detail'], "Maximum attempts reached for this exam.")

    def test_start_errors(self):
        self.assertEqual(self.client.post(reverse('start-attempt', args=[99999])).status_code, 404)
        Exam.objects.filter(pk=self.exam.pk).update(status=Exam.Status.DRAFT)
        self.assertEqual(self.start().status_code, 403)

    def test_answer_validation(self):
        attempt_id = self.start().json()['id']
        response = self.put_json(reverse('record-answer', args=[attempt_id]), {'selected_answer': 1})
        self.assertEqual(response.status_code, 400)

        response = self.put_json(reverse('record-answer', args=[attempt_id]), {
            'question_id': 99999, 'selected_answer': True,
        })
        self.assertEqual(response.status_code, 404)

    def test_auto_submit_endpoint(self):
        attempt_id = self.start().json()['id']
        response = self.client.post(reverse('auto-submit-attempt', args=[attempt_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], Status.AUTO_SUBMITTED)

    def test_anonymous_is_rejected(self):
        self.client.logout()
        self.assertIn(self.start().status_code, (401, 403))

    # --- Feature: Ownership and visibility ---
    def test_other_student_cannot_read_or_submit(self):
        attempt_id = self.start().json()['id']
        self.client.logout()
        self.client.login(username='student2', password='password')

        self.assertEqual(self.client.get(reverse('attempt-detail', args=[attempt_id])).status_code, 403)
        self.assertEqual(self.client.post(reverse('submit-attempt', args=[attempt_id])).status_code, 403)

    def test_teacher_can_read_any_attempt(self):
        attempt_id = self.start().json()['id']
        self.client.logout()
        self.client.login(username='teacher', password='password')
        response = self.client.get(reverse('attempt-detail', args=[attempt_id]))
        self.assertEqual(response.status_code, 200)
        self.assertIn('percentage', response.json())

    def test_held_results_are_hidden_until_review(self):
        Exam.objects.filter(pk=self.exam.pk).update(show_results_immediately=False, show_correct_answers=False)
        attempt_id = self.start().json()['id']
        self.put_json(reverse('record-answer', args=[attempt_id]), {
            'question_id': self.q_mcq.id, 'selected_answer': self.opt_paris.id,
        })
        response = self.client.post(reverse('submit-attempt', args=[attempt_id]))
        self.assertNotIn('percentage', response.json())
        self.assertNotIn('grade', response.json())
        self.assertNotIn('is_correct', response.json()['answers'][0])

        AttemptService.review(attempt_id=attempt_id, reviewer=self.teacher)
        response = self.client.get(reverse('attempt-detail', args=[attempt_id]))
        self.assertEqual(response.json()['percentage'], 40)
        self.assertNotIn('is_correct', response.json()['answers'][0])

    def test_open_attempt_reveals_nothing(self):
        attempt_id = self.start().json()['id']
        url = reverse('record-answer', args=[attempt_id])

        for option in (self.opt_london, self.opt_paris):
            response = self.put_json(url, {'question_id': self.q_mcq.id, 'selected_answer': option.id})
            self.assertEqual(response.status_code, 200)
            self.assertNotIn('is_correct', response.json()['answer'])
            self.assertNotIn('marks_obtained', response.json()['answer'])
            self.assertNotIn('obtained_marks', response.json()['attempt'])
            self.assertNotIn('analytics', response.json()['attempt'])

        response = self.client.get(reverse('attempt-detail', args=[attempt_id]))
        self.assertNotIn('percentage', response.json())
        self.assertNotIn('marks_obtained', response.json()['answers'][0])

    def test_held_scores_hide_answer_marks(self):
        Exam.objects.filter(pk=self.exam.pk).update(show_results_immediately=False, show_correct_answers=True)
        attempt_id = self.start().json()['id']
        self.put_json(reverse('record-answer', args=[attempt_id]), {
            'question_id': self.q_mcq.id, 'selected_answer': self.opt_paris.id,
        })
        self.client.post(reverse('submit-attempt', args=[attempt_id]))

        response = self.client.get(reverse('attempt-detail', args=[attempt_id]))
        self.assertNotIn('obtained_marks', response.json())
        for answer in response.json()['answers']:
            self.assertNotIn('marks_obtained', answer)
            self.assertNotIn('is_correct', answer)

        AttemptService.review(attempt_id=attempt_id, reviewer=self.teacher)
        response = self.client.get(reverse('attempt-detail', args=[attempt_id]))
        self.assertEqual(response.json()['answers'][0]['marks_obtained'], 4)
        self.assertTrue(response.json()['answers'][0]['is_correct'])

    def test_null_answer_clears_the_slot(self):
        attempt_id = self.start().json()['id']
        url = reverse('record-answer', args=[attempt_id])
        self.put_json(url, {'question_id': self.q_mcq.id, 'selected_answer': self.opt_paris.id})
        response = self.put_json(url, {'question_id': self.q_mcq.id, 'selected_answer': None})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['answer']['is_answered'])
        self.assertIsNone(response.json()['answer']['selected_answer'])

    # --- Feature: Proctoring and review ---
    def test_proctoring_events(self):
        attempt_id = self.start().json()['id']
        url = reverse('proctoring-event', args=[attempt_id])

        self.post_json(url, {'event': 'tab-switch'})
        response = self.post_json(url, {'event': 'fullscreen-exit', 'description': 'esc'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'tab_switches': 1, 'fullscreen_exits': 1})

        self.assertEqual(self.post_json(url, {'event': 'webcam-off'}).status_code, 400)

    def test_review_is_for_teachers(self):
        attempt_id = self.start().json()['id']
        url = reverse('review-attempt', args=[attempt_id])
        self.assertEqual(self.put_json(url, {'review_comments': 'me'}).status_code, 403)

        self.client.logout()
        self.client.login(username='teacher', password='password')
        response = self.put_json(url, {'is_disqualified': True, 'disqualification_reason': 'Phone on desk'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['is_reviewed'])
        self.assertEqual(response.json()['status'], Status.ABANDONED)

class AnalyticsApiTests(ExamFixtureMixin, TestCase):
    def setUp(self):
        self.create_users()
        self.create_exam()
        self.finalized_attempt(self.student, 9)
        self.finalized_attempt(self.student2, 3)

    def test_teacher_endpoints(self):
        self.client.login(username='teacher', password='password')

        response = self.client.get(reverse('exam-statistics', args=[self.exam.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['analytics']['total_attempts'], 2)

        self.assertEqual(self.client.get(reverse('exam-statistics', args=[99999])).status_code, 404)

        response = self.client.get(reverse('subject-performance'))
        self.assertEqual(response.json()['subjects'][0]['subject'], "Geography")

        response = self.client.get(reverse('trends'), {'timeframe': '7d'})
        self.assertEqual(response.json()['trends'][0]['total_attempts'], 2)

        response = self.client.get(reverse('question-statistics', args=[self.q_mcq.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(reverse('question-statistics', args=[99999])).status_code, 404)

        response = self.client.get(reverse('student-statistics', args=[self.student.id]))
        self.assertEqual(response.json()['analytics']['total_exams'], 1)

    def test_students_are_kept_out_of_teacher_endpoints(self):
        self.client.login(username='student', password='password')
        self.assertEqual(self.client.get(reverse('exam-statistics', args=[self.exam.id])).status_code, 403)
        self.assertEqual(self.client.get(reverse('trends')).status_code, 403)
        self.assertEqual(self.client.get(reverse('subject-performance')).status_code, 403)

    def test_student_sees_only_own_statistics(self):
        self.client.login(username='student', password='password')
        response = self.client.get(reverse('student-statistics', args=[self.student.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['analytics']['strengths'], ["Geography"])

        response = self.client.get(reverse('student-statistics', args=[self.student2.id]))
        self.assertEqual(response.status_code, 403)

    def test_leaderboard(self):
        self.client.login(username='student', password='password')
        response = self.client.get(reverse('leaderboard'), {'exam_id': self.exam.id, 'limit': 1})
        self.assertEqual(response.status_code, 200)
        rows = response.json()['leaderboard']
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['student_name'], "John Doe")
        self.assertEqual(rows[0]['rank'], 1)

    def test_student_progress(self):
        self.client.login(username='student', password='password')
        response = self.client.get(reverse('student-progress', args=[self.student.id]), {'timeframe': '7d'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['progress'][0]['average_percentage'], 90)

        response = self.client.get(reverse('student-progress', args=[self.student2.id]))
        self.assertEqual(response.status_code, 403)

    def test_question_difficulty(self):
        self.client.login(username='student', password='password')
        self.assertEqual(self.client.get(reverse('question-difficulty')).status_code, 403)

        self.client.login(username='teacher', password='password')
        response = self.client.get(reverse('question-difficulty'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['analysis'][0]['difficulty'], "medium")
        self.assertEqual(response.json()['analysis'][0]['total_questions'], 4)

class AttemptListApiTests(ExamFixtureMixin, TestCase):
    def setUp(self):
        self.create_users()
        self.create_exam()
        self.mine = [self.finalized_attempt(self.student, obtained, number=number)
                     for number, obtained in ((1, 3), (2, 9))]
        self.theirs = self.finalized_attempt(self.student2, 5)

    def test_my_attempts_are_paginated(self):
        self.client.login(username='student', password='password')
        response = self.client.get(reverse('my-attempts'), {'page_size': 1})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 2)
        self.assertEqual(len(response.json()['results']), 1)
        self.assertIsNotNone(response.json()['next'])
        self.assertNotIn('answers', response.json()['results'][0])

        response = self.client.get(reverse('my-attempts'), {'exam_id': self.exam.id, 'ordering': 'obtained_marks'})
        self.assertEqual([row['id'] for row in response.json()['results']], [a.id for a in self.mine])

    def test_bad_query_params(self):
        self.client.login(username='student', password='password')
        self.assertEqual(self.client.get(reverse('my-attempts'), {'status': 'paused'}).status_code, 400)
        self.assertEqual(self.client.get(reverse('my-attempts'), {'ordering': 'student'}).status_code, 400)

    def test_list_rows_follow_result_visibility(self):
        Exam.objects.filter(pk=self.exam.pk).update(show_results_immediately=False)
        self.client.login(username='student', password='password')
        row = self.client.get(reverse('my-attempts')).json()['results'][0]
        self.assertNotIn('percentage', row)

        self.client.login(username='teacher', password='password')
        row = self.client.get(reverse('student-attempts', args=[self.student.id])).json()['results'][0]
        self.assertIn('percentage', row)

    def test_exam_attempts_for_teachers_only(self):
        url = reverse('exam-attempts', args=[self.exam.id])
        self.client.login(username='student', password='password')
        self.assertEqual(self.client.get(url).status_code, 403)

        self.client.login(username='teacher', password='password')
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 3)
        self.assertEqual(self.client.get(reverse('exam-attempts', args=[99999])).status_code, 404)

    def test_student_attempts(self):
        self.client.login(username='student', password='password')
        response = self.client.get(reverse('student-attempts', args=[self.student.id]))
        self.assertEqual(response.json()['count'], 2)
        self.assertEqual(self.client.get(reverse('student-attempts', args=[self.student2.id])).status_code, 403)
