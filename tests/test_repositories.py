import threading
import unittest

from coursework.core.assignments import AssignmentSubmission
from coursework.core.entities import Course, Enrollment
from coursework.core.exceptions import DuplicateEntityError, ResourceNotFoundError, VersionConflictError
from coursework.core.quizzes import QuizSubmission
from coursework.persistence.repositories import (
    CourseRepository, EnrollmentRepository, QuizSubmissionRepository, SubmissionRepository
)
from tests.fakes import FakeClock


class InMemoryRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.courses = CourseRepository()

    def test_missing_entity_is_none(self):
        self.assertIsNone(self.courses.find_by_id("nope"))
        self.assertFalse(self.courses.delete("nope"))

    def test_stored_copy_is_isolated(self):
        course = Course.create("Algorithms", "Desc", "ABC123", "teacher-1", clock=self.clock)
        self.courses.save(course)
        course.archive()
        stored = self.courses.find_by_id(course.id)
        self.assertTrue(stored.is_active())
        stored.update_name("Changed")
        self.assertEqual(self.courses.find_by_id(course.id).name, "Algorithms")

    def test_find_all_filters_and_orders(self):
        first = Course.create("A", "Desc", "AAA111", "teacher-1", clock=self.clock)
        self.clock.advance(minutes=1)
        second = Course.create("B", "Desc", "BBB222", "teacher-2", clock=self.clock)
        self.courses.save(second)
        self.courses.save(first)
        self.assertEqual([c.id for c in self.courses.find_all()], [first.id, second.id])
        self.assertEqual([c.id for c in self.courses.find_all({'teacher_id': 'teacher-2'})], [second.id])

    def test_course_code_lookup(self):
        course = Course.create("A", "Desc", "ABC123", "teacher-1")
        self.courses.save(course)
        self.assertFalse(self.courses.is_unique("ABC123"))
        self.assertTrue(self.courses.is_unique("ZZZ999"))
        self.assertEqual(self.courses.find_by_course_code("abc123").id, course.id)


class EnrollmentRepositoryTests(unittest.TestCase):
    def test_one_enrollment_per_pair(self):
        enrollments = EnrollmentRepository()
        enrollments.save(Enrollment("course-1", "student-1"))
        with self.assertRaises(DuplicateEntityError):
            enrollments.save(Enrollment("course-1", "student-1"))
        enrollments.save(Enrollment("course-2", "student-1"))
        self.assertTrue(enrollments.exists_for_course_and_student("course-1", "student-1"))
        self.assertFalse(enrollments.exists_for_course_and_student("course-1", "student-2"))
        self.assertEqual(len(enrollments.find_by_student_id("student-1")), 2)


class SubmissionRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.submissions = SubmissionRepository()
        submission = AssignmentSubmission.create("assignment-1", "student-1")
        submission.submit(False)
        self.submissions.save(submission)
        self.submission_id = submission.id

    def test_update_compares_version(self):
        mine = self.submissions.find_by_id(self.submission_id)
        theirs = self.submissions.find_by_id(self.submission_id)

        theirs.assign_grade(70)
        self.submissions.update(theirs, expected_version=1)

        mine.assign_grade(90)
        with self.assertRaises(VersionConflictError):
            self.submissions.update(mine, expected_version=1)
        self.assertEqual(self.submissions.find_by_id(self.submission_id).grade, 70)

    def test_update_unknown_submission(self):
        with self.assertRaises(ResourceNotFoundError):
            self.submissions.update(AssignmentSubmission.create("a", "s"), expected_version=0)

    def test_concurrent_writers_only_one_wins(self):
        barrier = threading.Barrier(5)
        outcomes = []

        def grade(value):
            submission = self.submissions.find_by_id(self.submission_id)
            read_version = submission.version
            submission.assign_grade(value)
            barrier.wait()
            try:
                self.submissions.update(submission, expected_version=read_version)
                outcomes.append('ok')
            except VersionConflictError:
                outcomes.append('conflict')

        threads = [threading.Thread(target=grade, args=(60 + i,)) for i in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(outcomes.count('ok'), 1)
        self.assertEqual(outcomes.count('conflict'), 4)

    def test_lookup_by_assignment_and_student(self):
        found = self.submissions.find_by_assignment_and_student("assignment-1", "student-1")
        self.assertEqual(found.id, self.submission_id)
        self.assertIsNone(self.submissions.find_by_assignment_and_student("assignment-1", "student-2"))


class QuizSubmissionRepositoryTests(unittest.TestCase):
    def test_one_attempt_per_student_and_quiz(self):
        clock = FakeClock()
        repository = QuizSubmissionRepository()
        attempt = QuizSubmission.create("quiz-1", "student-1", clock=clock)
        repository.save(attempt)
        self.assertFalse(repository.has_submissions("quiz-1"))
        attempt.start(clock.later(hours=1))
        repository.save(attempt)
        self.assertTrue(repository.has_submissions("quiz-1"))
        self.assertEqual(len(repository.find_in_progress()), 1)
        with self.assertRaises(DuplicateEntityError):
            repository.save(QuizSubmission.create("quiz-1", "student-1"))


if __name__ == '__main__':
    unittest.main()
