from .base import Base

from .user import User, UserRole
from .course import Course
from .lesson import Lesson
from .enrollment import Enrollment, EnrollmentStatus
from .lesson_progress import LessonProgress
from .quiz import Quiz, QuizQuestion, QuizSubmission
from .certificate import Certificate
from .outbox_event import OutboxEvent

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Course",
    "Lesson",
    "Enrollment",
    "EnrollmentStatus",
    "LessonProgress",
    "Quiz",
    "QuizQuestion",
    "QuizSubmission",
    "Certificate",
    "OutboxEvent",
]
