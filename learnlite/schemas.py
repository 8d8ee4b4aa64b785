"""
learnlite/schemas.py
Pydantic models for request bodies and for the payloads that are not plain ORM rows

Request models reject bad input before a route runs; FastAPI raises
RequestValidationError and errors.validation_exception_handler turns it
into the {field, message} list of a VALIDATION_ERROR response. Rules that
depend on stored rows (answer count, lesson ownership, the full lesson set
of a reorder) stay in the services.
"""
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    StrictBool,
    StrictInt,
    StringConstraints,
    ValidationInfo,
    field_validator,
    model_validator,
)

from learnlite.orm.enrollment import EnrollmentStatus
from learnlite.orm.user import UserRole
from learnlite.validators import (
    MAX_PRICE_CENTS,
    NAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    normalize_price,
)

# ================= FIELD TYPES =================

PositiveId = Annotated[StrictInt, Field(gt=0)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=NAME_MAX_LENGTH)]
Password = Annotated[str, Field(min_length=PASSWORD_MIN_LENGTH)]
NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _price_cents(value: Any) -> Optional[int]:
    if value is None:
        return None
    price = normalize_price(value)
    if price is None:
        raise ValueError("Price must be a valid number")
    if price < 0:
        raise ValueError("Price cannot be negative")
    if price > MAX_PRICE_CENTS:
        raise ValueError(f"Price cannot exceed {MAX_PRICE_CENTS} cents")
    return price


def _check_correct_index(correct_index: Optional[int], choices: Optional[List[str]]) -> None:
    if correct_index is not None and choices is not None and correct_index >= len(choices):
        raise ValueError(f"Correct index must be between 0 and {len(choices) - 1}")


class CamelModel(BaseModel):
    """Bodies with camelCase keys; snake_case names are accepted as well."""
    model_config = ConfigDict(populate_by_name=True)


# ================= AUTH / USERS =================

class UserRegister(BaseModel):
    email: EmailStr
    password: Password
    name: Name
    role: Optional[UserRole] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserCreate(UserRegister):
    role: UserRole


class UserUpdate(BaseModel):
    name: Optional[Name] = None
    email: Optional[EmailStr] = None
    password: Optional[Password] = None
    role: Optional[Any] = None

    @field_validator("role")
    @classmethod
    def role_is_immutable(cls, value):
        raise ValueError("Role cannot be changed")

    @model_validator(mode="after")
    def has_changes(self):
        if not self.model_fields_set & {"name", "email", "password"}:
            raise ValueError("Provide at least one of: email, password, name")
        return self


# ================= COURSES =================

class CourseCreate(BaseModel):
    title: Title
    description: Optional[str] = None
    price_cents: int
    instructor_id: Optional[PositiveId] = None

    @field_validator("price_cents", mode="before")
    @classmethod
    def normalize_price_cents(cls, value):
        if value is None:
            raise ValueError("Price is required")
        return _price_cents(value)


class CourseUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[str] = None
    price_cents: Optional[int] = None
    instructor_id: Optional[PositiveId] = None
    published: Optional[Any] = None

    @field_validator("price_cents", mode="before")
    @classmethod
    def normalize_price_cents(cls, value):
        return _price_cents(value)

    @field_validator("published")
    @classmethod
    def publish_has_its_own_endpoint(cls, value):
        raise ValueError("Use the publish endpoint to publish a course")


# ================= LESSONS =================

class LessonCreate(BaseModel):
    title: Title
    video_url: Optional[HttpUrl] = None
    content_md: Optional[str] = None
    position: Optional[PositiveId] = None

    @field_validator("video_url", mode="before")
    @classmethod
    def blank_url_is_none(cls, value):
        return None if value == "" else value


class LessonUpdate(LessonCreate):
    title: Optional[Title] = None


class LessonReorder(CamelModel):
    lesson_ids: List[PositiveId] = Field(..., alias="lessonIds")

    @field_validator("lesson_ids")
    @classmethod
    def no_duplicates(cls, value):
        if len(set(value)) != len(value):
            raise ValueError("Duplicate lesson IDs are not allowed")
        return value


# ================= ENROLLMENTS / PROGRESS =================

class EnrollmentCreate(CamelModel):
    course_id: PositiveId = Field(..., alias="courseId")


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus


class ProgressUpdate(CamelModel):
    enrollment_id: PositiveId = Field(..., alias="enrollmentId")
    lesson_id: PositiveId = Field(..., alias="lessonId")
    completed: StrictBool


# ================= QUIZZES =================

class QuizCreate(BaseModel):
    title: Title


class QuestionCreate(BaseModel):
    prompt: NonEmptyText
    choices: List[NonEmptyText] = Field(..., min_length=2)
    correct_index: Annotated[StrictInt, Field(ge=0)]

    @field_validator("correct_index")
    @classmethod
    def correct_index_in_range(cls, value, info: ValidationInfo):
        _check_correct_index(value, info.data.get("choices"))
        return value


class QuestionUpdate(BaseModel):
    prompt: Optional[NonEmptyText] = None
    choices: Optional[Annotated[List[NonEmptyText], Field(min_length=2)]] = None
    correct_index: Optional[Annotated[StrictInt, Field(ge=0)]] = None

    @field_validator("correct_index")
    @classmethod
    def correct_index_in_range(cls, value, info: ValidationInfo):
        _check_correct_index(value, info.data.get("choices"))
        return value


class QuizSubmission(BaseModel):
    answers: List[Annotated[StrictInt, Field(ge=0)]]


# ================= CERTIFICATES =================

class CertificateIssue(CamelModel):
    user_id: PositiveId = Field(..., alias="userId")
    course_id: PositiveId = Field(..., alias="courseId")


class CertificateClaim(CamelModel):
    course_id: PositiveId = Field(..., alias="courseId")


# ================= RESPONSES =================

class AuthResult(BaseModel):
    """Returned by register and login"""
    token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


class ServiceInfo(BaseModel):
    name: str
    version: str
    environment: str
    modules: list = Field(default_factory=list)
    docs: Optional[str] = None


class ReadinessStatus(BaseModel):
    status: str
    database: Dict[str, Any]


class NotificationsStatus(BaseModel):
    """Snapshot of the outbox worker for the health endpoint"""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool
    running: bool
    interval: int
    batch_size: int = Field(alias="batchSize")
    last_run_at: Optional[str] = Field(default=None, alias="lastRunAt")
    pending_estimate: int = Field(alias="pendingEstimate")
    sink: str
