"""SQLModel data models.

This module defines the domain entities held by the in-memory store.
Each entity has a draft class holding the caller supplied fields and an
entity class adding the `id` (and timestamps) assigned by the store.
None of the classes are tables: nothing here is persisted.
"""

import enum
from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, SQLModel


class Role(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserDraft(SQLModel):
    """Fields needed to create a user.

    `password` must already be hashed by the caller; the store never
    sees plaintext.
    """
    username: str = Field(min_length=1)
    password: str
    role: Role = Role.STUDENT


class User(UserDraft):
    id: int
    created_at: datetime


class SubjectDraft(SQLModel):
    name: str
    description: str
    image_url: str
    teacher_id: int


class Subject(SubjectDraft):
    id: int
    created_at: datetime


class TopicDraft(SQLModel):
    subject_id: int
    teacher_id: int
    name: str
    content: str


class Topic(TopicDraft):
    id: int
    created_at: datetime


class TopicPatch(SQLModel):
    """The fields of a topic that may change after creation.

    Unset (`None`) fields are left untouched by the merge.
    """
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None
    name: Optional[str] = None
    content: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


class QuestionDraft(SQLModel):
    topic_id: int
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0)


class Question(QuestionDraft):
    id: int


class ProgressDraft(SQLModel):
    user_id: int
    topic_id: int
    score: int = Field(ge=0, le=100)
    completed: bool = False


class Progress(ProgressDraft):
    """One quiz attempt outcome for a (user, topic) pair.

    `completed_at` is only stamped for completed attempts.
    """
    id: int
    completed_at: Optional[datetime] = None
