"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. JSON field names are camelCase
(`imageUrl`, `correctAnswer`, `createdAt`); snake_case is accepted on
input as well. User payloads never include the password hash.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, model_validator
from pydantic.alias_generators import to_camel

from .models import Role


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RegisterIn(ApiModel):
    """Payload for user registration."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    role: Role = Role.STUDENT


class LoginIn(ApiModel):
    username: str
    password: str


class RoleUpdateIn(ApiModel):
    # checked by AdminService so that any bad value reports "Invalid role"
    role: Any = None


class SubjectIn(ApiModel):
    name: str = Field(min_length=1)
    description: str
    image_url: str


class TopicIn(ApiModel):
    name: str = Field(min_length=1)
    content: str


class TopicPatchIn(ApiModel):
    """Fields a teacher may change on an existing topic; anything else is rejected."""
    model_config = ConfigDict(extra="forbid")

    subject_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = None


class QuestionIn(ApiModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_answer: StrictInt = Field(ge=0)

    @model_validator(mode="after")
    def _answer_in_range(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correctAnswer must be an index into options")
        return self


class ProgressIn(ApiModel):
    score: StrictInt = Field(ge=0, le=100)
    completed: StrictBool = False


class QuizSubmission(ApiModel):
    """Selected option index for every question of a topic, in question order."""
    answers: List[int]


class UserOut(ApiModel):
    id: int
    username: str
    role: Role
    created_at: datetime


class SubjectOut(ApiModel):
    id: int
    name: str
    description: str
    image_url: str
    teacher_id: int
    created_at: datetime


class TopicOut(ApiModel):
    id: int
    subject_id: int
    teacher_id: int
    name: str
    content: str
    created_at: datetime


class QuestionOut(ApiModel):
    id: int
    topic_id: int
    question: str
    options: List[str]
    correct_answer: int


class ProgressOut(ApiModel):
    id: int
    user_id: int
    topic_id: int
    score: int
    completed: bool
    completed_at: Optional[datetime] = None


class NoProgressOut(ApiModel):
    """Returned when a user has no progress on a topic yet."""
    completed: bool = False
    score: int = 0


class GradeOut(ApiModel):
    score: int
    correct: int
    total: int
    progress: ProgressOut


class MessageOut(ApiModel):
    message: str
