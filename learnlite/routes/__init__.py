"""
learnlite/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from learnlite.routes import (
    auth, users, courses, lessons, enrollments, progress, quizzes, certificates, notifications,
)

router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
router.include_router(courses.router)
router.include_router(lessons.router)
router.include_router(enrollments.router)
router.include_router(progress.router)
router.include_router(quizzes.router)
router.include_router(certificates.router)
router.include_router(notifications.router)
