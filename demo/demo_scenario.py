#!/usr/bin/env python3
"""
Demo scenario for the Coursework platform.
"""

import sys
import os
import time
from datetime import datetime, timedelta, timezone

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coursework.main import CourseworkPlatform
from coursework.core.enums import MaterialType, Role, SubmissionType
from coursework.core.exceptions import CourseworkError
from coursework.core.quizzes import EssayQuestion, MCQQuestion


def run_demo(platform=None):
    """Run a walkthrough of a course from creation to deletion."""
    print("=" * 60)
    print("COURSEWORK PLATFORM - DEMO")
    print("=" * 60)

    platform = platform or CourseworkPlatform({'log_level': 'WARNING'})

    try:
        print("\n1. Registering users and creating a course...")
        people = create_sample_data(platform)

        print("\n2. Demonstrating assignments and grading...")
        demonstrate_assignments(platform, people)

        print("\n3. Demonstrating timed quizzes...")
        demonstrate_quizzes(platform, people)

        print("\n4. Demonstrating progress and grade reports...")
        demonstrate_reports(platform, people)

        print("\n5. Demonstrating the course lifecycle...")
        demonstrate_lifecycle(platform, people)

        print("\n" + "=" * 60)
        print("DEMO COMPLETED SUCCESSFULLY!")
        print("=" * 60)

    except CourseworkError as e:
        print(f"\nDemo failed with error [{e.error_code}]: {e.message}")
        raise


def create_sample_data(platform):
    teacher = platform.register_user("ada@university.edu", "Ada Lovelace", Role.TEACHER)
    alice = platform.register_user("alice@university.edu", "Alice Johnson", Role.STUDENT)
    bob = platform.register_user("bob@university.edu", "Bob Smith", Role.STUDENT)
    print(f"  ✓ Teacher {teacher.name}, students {alice.name} and {bob.name}")

    course = platform.course_service.create_course(
        teacher.id, "Introduction to Computer Science", "Basic concepts of programming"
    )
    print(f"  ✓ Course '{course.name}' created with code {course.course_code}")

    for student in (alice, bob):
        platform.enrollment_service.enroll(student.id, course.course_code)
    print(f"  ✓ {len(platform.enrollments.find_by_course_id(course.id))} students enrolled")

    platform.material_service.add_material(
        teacher.id, course.id, "Welcome lecture", MaterialType.VIDEO_LINK,
        content="https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    )
    print("  ✓ Video material added")

    return {'teacher': teacher, 'alice': alice, 'bob': bob, 'course': course}


def demonstrate_assignments(platform, people):
    teacher, alice, bob, course = people['teacher'], people['alice'], people['bob'], people['course']
    service = platform.assignment_service

    assignment = service.create_assignment(
        teacher.id, course.id, "Essay on algorithms", "Write about sorting",
        datetime.now(timezone.utc) + timedelta(days=7), SubmissionType.TEXT
    )
    print(f"  ✓ Assignment '{assignment.title}' due {assignment.due_date:%Y-%m-%d}")

    first = service.submit(alice.id, assignment.id, content="Bubble sort is slow.")
    second = service.submit(alice.id, assignment.id, content="Merge sort is O(n log n).")
    print(f"  ✓ Alice submitted twice, version {first.version} -> {second.version}")

    graded = service.grade_submission(teacher.id, second.id, 92, "Well argued",
                                      expected_version=second.version)
    print(f"  ✓ Graded {graded.grade} (version {graded.version})")

    try:
        service.update_grade(teacher.id, second.id, 95, expected_version=second.version)
    except CourseworkError as e:
        print(f"  ✓ Stale regrade rejected: {e.error_code}")

    try:
        service.submit(bob.id, assignment.id, content="Late work")
    except CourseworkError as e:
        print(f"  ✓ Submission after grading started rejected: {e.error_code}")


def demonstrate_quizzes(platform, people):
    teacher, alice, course = people['teacher'], people['alice'], people['course']
    service = platform.quiz_service

    quiz = service.create_quiz(
        teacher.id, course.id, "Pop quiz", "Very short", datetime.now(timezone.utc) + timedelta(hours=1),
        time_limit=1,
        questions=[
            MCQQuestion("2 + 2 = ?", ("3", "4", "5"), 1),
            EssayQuestion("Explain recursion."),
        ],
    )
    print(f"  ✓ Quiz '{quiz.title}' with {len(quiz.questions)} questions")

    attempt = service.start_quiz(alice.id, quiz.id)
    service.save_answers(alice.id, quiz.id, [{'question_index': 0, 'answer': 1}])
    timer = service.remaining_time(alice.id, quiz.id)
    print(f"  ✓ Alice started attempt {attempt.id[:8]}, {timer.display} left")

    time.sleep(0.1)
    result = service.auto_submit_expired()
    print(f"  ✓ Auto-submit sweep: {result.checked} checked, {len(result.submitted)} submitted")

    submitted = service.submit_quiz(alice.id, quiz.id, [
        {'question_index': 0, 'answer': 1},
        {'question_index': 1, 'answer': "A function calling itself."},
    ])
    print(f"  ✓ Alice submitted manually: {submitted.status.value}")


def demonstrate_reports(platform, people):
    teacher, alice, course = people['teacher'], people['alice'], people['course']
    service = platform.reporting_service

    progress = service.student_progress(alice.id, course.id)
    average = "n/a" if progress.average_grade is None else f"{progress.average_grade:.1f}"
    print(f"  ✓ Alice: {progress.total_graded_items}/{progress.total_items} items graded, average {average}")

    export = service.export_grades(teacher.id, course.id)
    print(f"  ✓ Grade export: {len(export.rows)} rows, {len(export.to_csv().splitlines())} CSV lines")


def demonstrate_lifecycle(platform, people):
    teacher, course = people['teacher'], people['course']
    service = platform.course_service

    try:
        service.delete_course(teacher.id, course.id)
    except CourseworkError as e:
        print(f"  ✓ Deleting an active course rejected: {e.error_code}")

    service.archive_course(teacher.id, course.id)
    print("  ✓ Course archived")

    try:
        service.update_course(teacher.id, course.id, name="Renamed")
    except CourseworkError as e:
        print(f"  ✓ Editing an archived course rejected: {e.error_code}")

    service.delete_course(teacher.id, course.id)
    print(f"  ✓ Course deleted, {platform.assignments.count()} assignments and "
          f"{platform.enrollments.count()} enrollments left")


if __name__ == "__main__":
    run_demo()
