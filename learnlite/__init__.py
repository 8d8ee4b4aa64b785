"""
learnlite
E-learning backend: courses, lessons, enrollments, quizzes and certificates.
"""

__version__ = "1.2.0"
