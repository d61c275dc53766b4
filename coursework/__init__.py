"""
Coursework: domain core of a course-management backend.

Courses, materials, assignments, quizzes, enrollments and grading, with the
lifecycle rules, one-way latches and authorization decisions that every
mutation must pass through.
"""

__version__ = "1.0.0"
__author__ = "Coursework Development Team"
__description__ = "Domain invariant engine for a course-management backend"
