import time
import unittest
from datetime import datetime, timedelta, timezone

from coursework.core.enums import QuestionType, QuizSubmissionStatus
from coursework.core.exceptions import (
    AlreadyStartedError, CannotAutoSubmitBeforeExpiryError, CannotUpdateQuizError,
    DueDateNotFutureError, NotInProgressError, PastDueDateError, TimeExpiredError, ValidationError
)
from coursework.core.quizzes import (
    EssayQuestion, InvalidQuizUpdateError, MCQQuestion, Quiz, QuizAnswer, QuizSubmission,
    question_from_dict
)
from tests.fakes import FakeClock


def sample_questions():
    return [MCQQuestion("2 + 2?", ("3", "4"), 1), EssayQuestion("Why?")]


class QuestionTests(unittest.TestCase):
    def test_tagged_union(self):
        mcq, essay = sample_questions()
        self.assertEqual(mcq.question_type, QuestionType.MCQ)
        self.assertEqual(essay.question_type, QuestionType.ESSAY)
        self.assertTrue(mcq.is_correct_answer(1))
        self.assertFalse(mcq.is_correct_answer(0))

    def test_from_dict(self):
        mcq = question_from_dict({'type': 'MCQ', 'question_text': 'Pick', 'options': ['a', 'b'],
                                  'correct_answer': 0})
        self.assertIsInstance(mcq, MCQQuestion)
        self.assertEqual(mcq.options, ('a', 'b'))
        essay = question_from_dict({'type': 'ESSAY', 'question_text': 'Discuss'})
        self.assertIsInstance(essay, EssayQuestion)
        self.assertEqual(question_from_dict(mcq.to_dict()), mcq)
        with self.assertRaises(ValidationError):
            question_from_dict({'type': 'TRUE_FALSE', 'question_text': 'x'})


class QuizTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.quiz = Quiz.create("course-1", "Quiz 1", "Basics", self.clock.later(hours=1), 30,
                                sample_questions(), clock=self.clock)

    def make(self, **overrides):
        props = dict(course_id="course-1", title="Quiz", description="D",
                     due_date=self.clock.later(hours=1), time_limit=10, questions=sample_questions(),
                     clock=self.clock)
        props.update(overrides)
        return Quiz.create(**props)

    def test_validation(self):
        invalid = [
            dict(title=""),
            dict(description=" "),
            dict(time_limit=0),
            dict(time_limit=1.5),
            dict(time_limit=True),
            dict(questions=[]),
            dict(questions=[MCQQuestion("Only one", ("a",), 0)]),
            dict(questions=[MCQQuestion("Bad index", ("a", "b"), 2)]),
            dict(questions=[MCQQuestion("Blank option", ("a", " "), 0)]),
            dict(questions=[EssayQuestion("")]),
        ]
        for overrides in invalid:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    self.make(**overrides)

    def test_question_errors_name_the_question(self):
        with self.assertRaises(ValidationError) as ctx:
            self.make(questions=[EssayQuestion("fine"), MCQQuestion("bad", ("a", "b"), -1)])
        self.assertTrue(ctx.exception.message.startswith("Question 2:"))

    def test_due_date_must_be_future(self):
        with self.assertRaises(DueDateNotFutureError):
            self.make(due_date=self.clock())

    def test_can_edit(self):
        self.assertTrue(self.quiz.can_edit(False))
        self.assertFalse(self.quiz.can_edit(True))
        self.clock.advance(hours=1)
        self.assertFalse(self.quiz.can_edit(False))
        self.assertTrue(self.quiz.is_past_due_date())

    def test_updates(self):
        self.quiz.update_title("Renamed", has_submissions=False)
        self.quiz.update_time_limit(45, has_submissions=False)
        self.quiz.update_questions([{'type': 'ESSAY', 'question_text': 'New'}], has_submissions=False)
        self.assertEqual(self.quiz.title, "Renamed")
        self.assertEqual(self.quiz.time_limit, 45)
        self.assertEqual(len(self.quiz.questions), 1)

    def test_updates_refused_with_submissions(self):
        with self.assertRaises(CannotUpdateQuizError):
            self.quiz.update_title("Renamed", has_submissions=True)
        self.assertEqual(self.quiz.title, "Quiz 1")

    def test_invalid_update_values(self):
        cases = [
            (self.quiz.update_time_limit, 0),
            (self.quiz.update_due_date, self.clock.earlier(minutes=1)),
            (self.quiz.update_questions, []),
            (self.quiz.update_description, ""),
        ]
        for update, value in cases:
            with self.subTest(update=update.__name__):
                with self.assertRaises(InvalidQuizUpdateError) as ctx:
                    update(value, False)
                self.assertIsInstance(ctx.exception, CannotUpdateQuizError)
                self.assertIsInstance(ctx.exception, ValidationError)

    def test_due_date_passes_in_real_time(self):
        quiz = Quiz.create("course-1", "Quick", "Short", datetime.now(timezone.utc) + timedelta(milliseconds=100),
                           5, sample_questions())
        time.sleep(0.15)
        self.assertFalse(quiz.can_edit(False))
        self.assertTrue(quiz.is_past_due_date())


class QuizSubmissionTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.due = self.clock.later(hours=2)
        self.submission = QuizSubmission.create("quiz-1", "student-1", clock=self.clock)

    def test_start(self):
        self.submission.start(self.due)
        self.assertTrue(self.submission.is_in_progress())
        self.assertEqual(self.submission.started_at, self.clock())
        with self.assertRaises(AlreadyStartedError):
            self.submission.start(self.due)

    def test_start_refused_at_or_after_due_date(self):
        with self.assertRaises(PastDueDateError):
            self.submission.start(self.clock())
        self.assertEqual(self.submission.status, QuizSubmissionStatus.NOT_STARTED)

    def test_remaining_time(self):
        self.assertEqual(self.submission.get_remaining_time_seconds(10), 600)
        self.assertFalse(self.submission.is_time_expired(10))
        self.submission.start(self.due)
        self.clock.advance(seconds=90)
        self.assertEqual(self.submission.get_remaining_time_seconds(10), 510)
        self.clock.advance(minutes=30)
        self.assertEqual(self.submission.get_remaining_time_seconds(10), 0)
        self.assertTrue(self.submission.is_time_expired(10))

    def test_remaining_time_is_exactly_zero_at_limit(self):
        self.submission.start(self.due)
        self.clock.advance(minutes=10)
        self.assertEqual(self.submission.get_remaining_time_seconds(10), 0)
        self.assertTrue(self.submission.is_time_expired(10))

    def test_invalid_time_limit(self):
        for limit in (0, -5, "10", None):
            with self.subTest(limit=limit):
                with self.assertRaises(ValidationError):
                    self.submission.get_remaining_time_seconds(limit)

    def test_manual_submit_before_expiry(self):
        self.submission.start(self.due)
        self.clock.advance(minutes=5)
        self.submission.submit([QuizAnswer(0, 1), {'question_index': 1, 'answer': 'Because'}], 10)
        self.assertTrue(self.submission.is_submitted())
        self.assertEqual(self.submission.submitted_at, self.clock())
        self.assertEqual([a.answer for a in self.submission.answers], [1, 'Because'])

    def test_manual_submit_refused_after_expiry(self):
        self.submission.start(self.due)
        self.clock.advance(minutes=11)
        with self.assertRaises(TimeExpiredError):
            self.submission.submit([], 10)
        self.assertTrue(self.submission.is_in_progress())

    def test_auto_submit_only_after_expiry(self):
        self.submission.start(self.due)
        with self.assertRaises(CannotAutoSubmitBeforeExpiryError):
            self.submission.auto_submit(10)
        with self.assertRaises(CannotAutoSubmitBeforeExpiryError):
            self.submission.submit([], 10, is_auto_submit=True)
        self.clock.advance(minutes=10)
        self.submission.auto_submit(10)
        self.assertEqual(self.submission.status, QuizSubmissionStatus.SUBMITTED)

    def test_auto_submit_path_keeps_answers(self):
        self.submission.start(self.due)
        self.clock.advance(minutes=20)
        self.submission.submit([QuizAnswer(0, 0)], 10, is_auto_submit=True)
        self.assertTrue(self.submission.is_submitted())
        self.assertEqual(len(self.submission.answers), 1)

    def test_submit_requires_in_progress(self):
        with self.assertRaises(NotInProgressError):
            self.submission.submit([], 10)
        with self.assertRaises(NotInProgressError):
            self.submission.auto_submit(10)
        with self.assertRaises(NotInProgressError):
            self.submission.update_answers([])
        self.submission.start(self.due)
        self.submission.submit([], 10)
        with self.assertRaises(NotInProgressError):
            self.submission.submit([], 10)
        with self.assertRaises(AlreadyStartedError):
            self.submission.start(self.due)

    def test_autosave(self):
        self.submission.start(self.due)
        self.submission.update_answers([{'question_index': 0, 'answer': 1}])
        self.assertEqual(self.submission.answers, [QuizAnswer(0, 1)])

    def test_reconstitute_requires_timestamps(self):
        with self.assertRaises(ValidationError):
            QuizSubmission.reconstitute(quiz_id="q", student_id="s", status="IN_PROGRESS")
        with self.assertRaises(ValidationError):
            QuizSubmission.reconstitute(quiz_id="q", student_id="s", status="SUBMITTED",
                                        started_at=self.clock())

    def test_expires_in_real_time(self):
        submission = QuizSubmission.create("quiz-1", "student-1")
        submission.start(datetime.now(timezone.utc) + timedelta(seconds=60))
        self.assertFalse(submission.is_time_expired(0.01))
        time.sleep(0.7)
        self.assertTrue(submission.is_time_expired(0.01))
        self.assertEqual(submission.get_remaining_time_seconds(0.01), 0)
        submission.auto_submit(0.01)
        self.assertEqual(submission.status, QuizSubmissionStatus.SUBMITTED)


if __name__ == '__main__':
    unittest.main()
