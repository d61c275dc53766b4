import threading
import unittest

from coursework.core.enums import MaterialType, Role, SubmissionType
from coursework.core.exceptions import (
    AlreadyArchivedError, ConcurrencyError, CourseArchivedError, DuplicateEntityError, ForbiddenError,
    GradingStartedError, InvalidGradeRangeError, MustArchiveFirstError, ResourceNotFoundError,
    VersionConflictError
)
from coursework.core.quizzes import EssayQuestion
from coursework.main import CourseworkPlatform
from tests.fakes import FakeClock


class ServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.platform = CourseworkPlatform({'log_level': 'WARNING'}, clock=self.clock)
        self.teacher = self.platform.register_user("teacher@school.edu", "Teacher", Role.TEACHER)
        self.other_teacher = self.platform.register_user("other@school.edu", "Other", Role.TEACHER)
        self.student = self.platform.register_user("student@school.edu", "Student", Role.STUDENT)
        self.outsider = self.platform.register_user("outsider@school.edu", "Outsider", Role.STUDENT)
        self.course = self.platform.course_service.create_course(self.teacher.id, "Algorithms", "Sorting")
        self.platform.enrollment_service.enroll(self.student.id, self.course.course_code)


class CourseServiceTests(ServiceTestCase):
    def test_create_course_generates_code(self):
        self.assertEqual(len(self.course.course_code), 6)
        self.assertTrue(self.course.course_code.isalnum())
        with self.assertRaises(ForbiddenError):
            self.platform.course_service.create_course(self.student.id, "Nope", "Nope")

    def test_duplicate_email_rejected(self):
        with self.assertRaises(DuplicateEntityError):
            self.platform.register_user("TEACHER@school.edu", "Again", Role.TEACHER)

    def test_only_owner_updates(self):
        service = self.platform.course_service
        with self.assertRaises(ForbiddenError):
            service.update_course(self.other_teacher.id, self.course.id, name="Hijacked")
        updated = service.update_course(self.teacher.id, self.course.id, name="Data Structures")
        self.assertEqual(updated.name, "Data Structures")
        self.assertEqual(self.platform.courses.find_by_id(self.course.id).name, "Data Structures")

    def test_archive_lifecycle(self):
        service = self.platform.course_service
        with self.assertRaises(MustArchiveFirstError):
            service.delete_course(self.teacher.id, self.course.id)
        with self.assertRaises(ForbiddenError):
            service.archive_course(self.other_teacher.id, self.course.id)
        service.archive_course(self.teacher.id, self.course.id)
        with self.assertRaises(AlreadyArchivedError):
            service.archive_course(self.teacher.id, self.course.id)
        with self.assertRaises(CourseArchivedError):
            service.update_course(self.teacher.id, self.course.id, name="Too late")

    def test_delete_cascades(self):
        assignment = self.platform.assignment_service.create_assignment(
            self.teacher.id, self.course.id, "Essay", "Write", self.clock.later(days=1))
        self.platform.assignment_service.submit(self.student.id, assignment.id, content="Done")
        self.platform.material_service.add_material(
            self.teacher.id, self.course.id, "Notes", MaterialType.TEXT, content="Read this")

        self.platform.course_service.archive_course(self.teacher.id, self.course.id)
        self.platform.course_service.delete_course(self.teacher.id, self.course.id)

        self.assertIsNone(self.platform.courses.find_by_id(self.course.id))
        self.assertEqual(self.platform.assignments.count(), 0)
        self.assertEqual(self.platform.submissions.count(), 0)
        self.assertEqual(self.platform.materials.count(), 0)
        self.assertEqual(self.platform.enrollments.count(), 0)
        self.assertEqual(len(self.platform.locks), 0)

    def test_list_and_access(self):
        self.assertEqual([c.id for c in self.platform.course_service.list_courses(self.student.id)],
                         [self.course.id])
        self.platform.course_service.get_course(self.student.id, self.course.id)
        with self.assertRaises(ForbiddenError):
            self.platform.course_service.get_course(self.outsider.id, self.course.id)
        with self.assertRaises(ResourceNotFoundError):
            self.platform.course_service.get_course(self.student.id, "missing")


class EnrollmentServiceTests(ServiceTestCase):
    def test_enroll_rules(self):
        service = self.platform.enrollment_service
        self.assertTrue(service.is_enrolled(self.course.id, self.student.id))
        with self.assertRaises(DuplicateEntityError):
            service.enroll(self.student.id, self.course.course_code)
        with self.assertRaises(ForbiddenError):
            service.enroll(self.teacher.id, self.course.course_code)
        with self.assertRaises(ResourceNotFoundError):
            service.enroll(self.outsider.id, "ZZZZZZ")

    def test_cannot_enroll_in_archived_course(self):
        self.platform.course_service.archive_course(self.teacher.id, self.course.id)
        with self.assertRaises(CourseArchivedError):
            self.platform.enrollment_service.enroll(self.outsider.id, self.course.course_code)

    def test_owner_lists_and_removes(self):
        service = self.platform.enrollment_service
        self.assertEqual(len(service.list_enrollments(self.teacher.id, self.course.id)), 1)
        with self.assertRaises(ForbiddenError):
            service.list_enrollments(self.student.id, self.course.id)
        self.assertEqual(service.unenroll_students(self.teacher.id, self.course.id, [self.student.id]), 1)
        self.assertFalse(service.is_enrolled(self.course.id, self.student.id))


class MaterialServiceTests(ServiceTestCase):
    def test_manage_and_view(self):
        service = self.platform.material_service
        material = service.add_material(self.teacher.id, self.course.id, "Video", MaterialType.VIDEO_LINK,
                                        content="https://vimeo.com/123")
        service.update_material_title(self.teacher.id, material.id, "Lecture 1")
        titles = [m.title for m in service.list_materials(self.student.id, self.course.id)]
        self.assertEqual(titles, ["Lecture 1"])
        with self.assertRaises(ForbiddenError):
            service.add_material(self.student.id, self.course.id, "Mine", MaterialType.TEXT, content="x")
        with self.assertRaises(ForbiddenError):
            service.list_materials(self.outsider.id, self.course.id)

    def test_delete_material(self):
        service = self.platform.material_service
        material = service.add_material(self.teacher.id, self.course.id, "Notes", MaterialType.TEXT, content="x")
        service.update_material_title(self.teacher.id, material.id, "Old notes")
        locks_before = len(self.platform.locks)
        with self.assertRaises(ForbiddenError):
            service.delete_material(self.other_teacher.id, material.id)
        service.delete_material(self.teacher.id, material.id)
        self.assertEqual(service.list_materials(self.student.id, self.course.id), [])
        self.assertEqual(len(self.platform.locks), locks_before - 1)
        with self.assertRaises(ResourceNotFoundError):
            service.delete_material(self.teacher.id, material.id)


class AssignmentServiceTests(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.service = self.platform.assignment_service
        self.assignment = self.service.create_assignment(
            self.teacher.id, self.course.id, "Essay", "Write", self.clock.later(days=1),
            SubmissionType.TEXT)

    def test_only_owner_creates(self):
        with self.assertRaises(ForbiddenError):
            self.service.create_assignment(self.other_teacher.id, self.course.id, "X", "Y",
                                           self.clock.later(days=1))

    def test_submit_requires_enrollment(self):
        with self.assertRaises(ForbiddenError):
            self.service.submit(self.outsider.id, self.assignment.id, content="Hi")

    def test_resubmission_and_lateness(self):
        first = self.service.submit(self.student.id, self.assignment.id, content="Draft")
        self.assertFalse(first.is_late)
        self.clock.advance(days=2)
        second = self.service.submit(self.student.id, self.assignment.id, content="Final")
        self.assertEqual(second.id, first.id)
        self.assertTrue(second.is_late)
        self.assertGreater(second.version, first.version)
        self.assertEqual(self.platform.submissions.find_by_id(first.id).content, "Final")

    def test_grading_locks_assignment(self):
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        graded = self.service.grade_submission(self.teacher.id, submission.id, 88, "Nice",
                                               expected_version=submission.version)
        self.assertEqual(graded.grade, 88)
        self.assertTrue(self.platform.assignments.find_by_id(self.assignment.id).has_grading_started())
        with self.assertRaises(GradingStartedError):
            self.service.submit(self.student.id, self.assignment.id, content="Again")
        with self.assertRaises(GradingStartedError):
            self.service.update_assignment(self.teacher.id, self.assignment.id, title="Renamed")

    def test_stale_version_is_a_conflict(self):
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        self.service.grade_submission(self.teacher.id, submission.id, 70)
        with self.assertRaises(VersionConflictError):
            self.service.update_grade(self.teacher.id, submission.id, 75,
                                      expected_version=submission.version)
        regraded = self.service.grade_submission(self.teacher.id, submission.id, 75)
        self.assertEqual(regraded.grade, 75)

    def test_invalid_grade_does_not_lock_assignment(self):
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        with self.assertRaises(InvalidGradeRangeError):
            self.service.grade_submission(self.teacher.id, submission.id, 101)
        self.assertFalse(self.platform.assignments.find_by_id(self.assignment.id).has_grading_started())

    def test_grading_is_owner_only(self):
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        with self.assertRaises(ForbiddenError):
            self.service.grade_submission(self.other_teacher.id, submission.id, 90)
        with self.assertRaises(ForbiddenError):
            self.service.start_grading(self.student.id, self.assignment.id)

    def test_view_submission(self):
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        self.assertEqual(self.service.get_submission(self.student.id, submission.id).id, submission.id)
        self.assertEqual(self.service.get_submission(self.teacher.id, submission.id).id, submission.id)
        with self.assertRaises(ForbiddenError):
            self.service.get_submission(self.outsider.id, submission.id)
        self.assertEqual(len(self.service.list_submissions(self.teacher.id, self.assignment.id)), 1)

    def test_delete_assignment_removes_submissions_and_locks(self):
        locks_before = len(self.platform.locks)
        submission = self.service.submit(self.student.id, self.assignment.id, content="Answer")
        self.service.grade_submission(self.teacher.id, submission.id, 80)
        self.assertEqual(len(self.platform.locks), locks_before + 2)

        with self.assertRaises(ForbiddenError):
            self.service.delete_assignment(self.student.id, self.assignment.id)
        self.assertEqual(self.service.delete_assignment(self.teacher.id, self.assignment.id), 1)
        self.assertIsNone(self.platform.assignments.find_by_id(self.assignment.id))
        self.assertIsNone(self.platform.submissions.find_by_id(submission.id))
        self.assertEqual(len(self.platform.locks), locks_before)

    def test_delete_assignment_needs_active_course(self):
        self.platform.course_service.archive_course(self.teacher.id, self.course.id)
        with self.assertRaises(CourseArchivedError):
            self.service.delete_assignment(self.teacher.id, self.assignment.id)


class CourseLockTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.platform = CourseworkPlatform({'log_level': 'WARNING', 'lock_timeout_seconds': 0.2},
                                           clock=self.clock)
        self.teacher = self.platform.register_user("teacher@school.edu", "Teacher", Role.TEACHER)
        self.student = self.platform.register_user("student@school.edu", "Student", Role.STUDENT)
        self.course = self.platform.course_service.create_course(self.teacher.id, "Algorithms", "Sorting")
        self.platform.enrollment_service.enroll(self.student.id, self.course.course_code)
        self.assignment = self.platform.assignment_service.create_assignment(
            self.teacher.id, self.course.id, "Essay", "Write", self.clock.later(days=1))
        self.material = self.platform.material_service.add_material(
            self.teacher.id, self.course.id, "Notes", MaterialType.TEXT, content="Read this")

    def test_child_content_waits_for_course_lock(self):
        held = threading.Event()
        release = threading.Event()

        def hold_course():
            with self.platform.locks.lock(self.course.id):
                held.set()
                release.wait(5)

        writes = {
            'create_assignment': lambda: self.platform.assignment_service.create_assignment(
                self.teacher.id, self.course.id, "Lab", "Code", self.clock.later(days=2)),
            'update_assignment': lambda: self.platform.assignment_service.update_assignment(
                self.teacher.id, self.assignment.id, title="Renamed"),
            'submit': lambda: self.platform.assignment_service.submit(
                self.student.id, self.assignment.id, content="Answer"),
            'add_material': lambda: self.platform.material_service.add_material(
                self.teacher.id, self.course.id, "Slides", MaterialType.TEXT, content="x"),
            'rename_material': lambda: self.platform.material_service.update_material_title(
                self.teacher.id, self.material.id, "Renamed"),
            'create_quiz': lambda: self.platform.quiz_service.create_quiz(
                self.teacher.id, self.course.id, "Quiz", "Warm-up", self.clock.later(hours=1), 10,
                [EssayQuestion("Explain.")]),
        }
        thread = threading.Thread(target=hold_course)
        thread.start()
        held.wait(1)
        try:
            for name, write in writes.items():
                with self.subTest(write=name):
                    with self.assertRaises(ConcurrencyError):
                        write()
        finally:
            release.set()
            thread.join()

        self.assertEqual(len(self.platform.assignments.find_by_course_id(self.course.id)), 1)
        self.assertEqual(self.platform.assignments.find_by_id(self.assignment.id).title, "Essay")
        self.assertEqual(self.platform.submissions.count(), 0)
        self.assertEqual(self.platform.materials.count(), 1)
        self.assertEqual(self.platform.quizzes.count(), 0)

    def test_archive_then_write_is_refused(self):
        self.platform.course_service.archive_course(self.teacher.id, self.course.id)
        with self.assertRaises(CourseArchivedError):
            self.platform.assignment_service.create_assignment(
                self.teacher.id, self.course.id, "Lab", "Code", self.clock.later(days=2))



if __name__ == '__main__':
    unittest.main()
