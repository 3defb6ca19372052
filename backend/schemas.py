from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from time_utils import ensure_timezone
from models import UserRole, EventStatus, AttendeeStatus, TaskStatus, ProgressStatus, QuestionType


def _strip_required(value: str) -> str:
    stripped = str(value or "").strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _strip_patch(value: Optional[str]) -> Optional[str]:
    # None is left for the router to reject where the column is required
    if value is None:
        return None
    return _strip_required(value)


# Auth Schemas
class UserRegister(BaseModel):
    username: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=255)
    role: Optional[UserRole] = None

    @field_validator('username', 'name')
    @classmethod
    def validate_required_text(cls, v):
        return _strip_required(v)


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: UserRole
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class MessageResponse(BaseModel):
    message: str


# Event Schemas
class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = Field(None, max_length=255)
    status: EventStatus = EventStatus.ACTIVE

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v)

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v):
        return ensure_timezone(v)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    status: Optional[EventStatus] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_patch(v)

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v):
        return ensure_timezone(v)


class EventResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    start_date: datetime
    end_date: datetime
    location: Optional[str]
    status: EventStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Attendee Schemas
class AttendeeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    company: Optional[str] = Field(None, max_length=255)
    position: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    status: AttendeeStatus = AttendeeStatus.REGISTERED
    username: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, min_length=6)
    mentor_id: Optional[int] = None
    generate_credentials: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v)

    @field_validator('company', 'position', 'phone', 'username')
    @classmethod
    def validate_optional_text(cls, v):
        return _strip_optional(v)


class AttendeeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    company: Optional[str] = Field(None, max_length=255)
    position: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    status: Optional[AttendeeStatus] = None
    username: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, min_length=6)
    mentor_id: Optional[int] = None
    score: Optional[int] = Field(None, ge=0)
    completion_time: Optional[str] = Field(None, max_length=20)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_patch(v)

    @field_validator('company', 'position', 'phone', 'username')
    @classmethod
    def validate_optional_text(cls, v):
        return _strip_optional(v)


class AttendeeResponse(BaseModel):
    id: int
    event_id: int
    name: str
    initials: str
    email: str
    company: Optional[str]
    position: Optional[str]
    phone: Optional[str]
    status: AttendeeStatus
    registration_date: Optional[datetime]
    username: Optional[str]
    has_credentials: bool
    mentor_id: Optional[int]
    score: int
    completion_time: Optional[str]
    generated_password: Optional[str] = None


class ImportCredential(BaseModel):
    attendee_id: int
    name: str
    email: str
    username: str
    password: str


class ImportResult(BaseModel):
    imported: int
    skipped: int
    errors: List[str]
    attendees: List[AttendeeResponse]
    credentials: List[ImportCredential]


class ManualImportRow(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None


class ManualImportRequest(BaseModel):
    rows: List[ManualImportRow] = Field(..., min_length=1)
    generate_credentials: bool = False
    send_invitations: bool = False
    skip_duplicates: bool = True


# Mentor Schemas
class MentorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    expertise: str = Field(..., min_length=1, max_length=255)
    bio: Optional[str] = None

    @field_validator('name', 'expertise')
    @classmethod
    def validate_required_text(cls, v):
        return _strip_required(v)


class MentorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    expertise: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = None

    @field_validator('name', 'expertise')
    @classmethod
    def validate_required_text(cls, v):
        return _strip_patch(v)


class MentorResponse(BaseModel):
    id: int
    event_id: int
    name: str
    initials: str
    email: str
    expertise: str
    bio: Optional[str]
    assigned_count: int


class MentorAssignRequest(BaseModel):
    mentor_id: int
    attendee_ids: List[int] = Field(..., min_length=1)
    send_notification: bool = False


class MentorUnassignRequest(BaseModel):
    attendee_ids: List[int] = Field(..., min_length=1)


# Feedback Schemas
class FeedbackQuestionCreate(BaseModel):
    question: str = Field(..., min_length=1)
    type: QuestionType
    order: Optional[int] = Field(None, ge=0)

    @field_validator('question')
    @classmethod
    def validate_question(cls, v):
        return _strip_required(v)


class FeedbackQuestionUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1)
    type: Optional[QuestionType] = None
    order: Optional[int] = Field(None, ge=0)

    @field_validator('question')
    @classmethod
    def validate_question(cls, v):
        return _strip_patch(v)


class FeedbackQuestionResponse(BaseModel):
    id: int
    event_id: int
    question: str
    type: QuestionType
    order: int

    class Config:
        from_attributes = True


class FeedbackResponseCreate(BaseModel):
    attendee_id: int
    response: str = Field(..., min_length=1)

    @field_validator('response', mode='before')
    @classmethod
    def coerce_response(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class FeedbackResponseOut(BaseModel):
    id: int
    question_id: int
    attendee_id: int
    response: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Task Schemas
class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: TaskStatus = TaskStatus.ACTIVE

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_required(v)

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v):
        return ensure_timezone(v)


class TaskUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: Optional[TaskStatus] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return _strip_patch(v)

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v):
        return ensure_timezone(v)


class TaskResponse(BaseModel):
    id: int
    event_id: int
    name: str
    description: Optional[str]
    due_date: Optional[datetime]
    status: TaskStatus

    class Config:
        from_attributes = True


class TaskProgressCreate(BaseModel):
    attendee_id: int
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    mentor_review: Optional[str] = None
    mentor_rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_times(cls, v):
        return ensure_timezone(v)


class TaskProgressUpdate(BaseModel):
    status: Optional[ProgressStatus] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    mentor_review: Optional[str] = None
    mentor_rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_times(cls, v):
        return ensure_timezone(v)


class TaskProgressResponse(BaseModel):
    id: int
    task_id: int
    attendee_id: int
    status: ProgressStatus
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    mentor_review: Optional[str]
    mentor_rating: Optional[int]

    class Config:
        from_attributes = True


# Dashboard & Reports
class DashboardStats(BaseModel):
    total_applications: int
    started_count: int
    completed_count: int
    completion_rate: float
    status_distribution: Dict[str, int]
    mentor_count: int
    assigned_count: int
    unassigned_count: int
    application_trend: float
    started_trend: float
    completed_trend: float


class TopPerformer(BaseModel):
    rank: int
    attendee_id: int
    name: str
    initials: str
    company: Optional[str]
    mentor: Optional[str]
    score: int
    completion_time: Optional[str]


class ReportRow(BaseModel):
    name: str
    email: str
    company: Optional[str]
    status: AttendeeStatus
    registration_date: Optional[datetime]
    mentor: str
    score: Optional[int]
    completion_time: Optional[str]


class FeedbackSummary(BaseModel):
    question_id: int
    question: str
    type: QuestionType
    response_count: int
    average_rating: Optional[float] = None


class AdminLogResponse(BaseModel):
    id: int
    user_id: Optional[int]
    user_email: str
    action: str
    method: Optional[str]
    path: Optional[str]
    meta: Optional[Dict[str, Any]]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
