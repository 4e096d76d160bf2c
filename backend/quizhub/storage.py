"""In-memory entity store.

`MemoryStorage` is the system of record for users, subjects, topics,
questions and progress records for the lifetime of the process. It is
constructed once by the application factory and handed to services;
nothing here is module-global.

Lookups return `None` (or an empty list) for unknown ids instead of
raising. The one exception is `update_topic`, which raises
`NotFoundError`. All collections share a single id counter, so ids are
strictly increasing across entity types. Callers get copies of the
stored entities and can only change state through the store methods.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, TypeVar

from sqlmodel import SQLModel

from . import models
from .errors import NotFoundError

logger = logging.getLogger("quizhub.storage")

E = TypeVar("E", bound=SQLModel)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _copy(entity: Optional[E]) -> Optional[E]:
    return entity.model_copy(deep=True) if entity is not None else None


class MemoryStorage:
    """Thread-safe in-memory collections keyed by id."""

    def __init__(self):
        self._users: Dict[int, models.User] = {}
        self._subjects: Dict[int, models.Subject] = {}
        self._topics: Dict[int, models.Topic] = {}
        self._questions: Dict[int, models.Question] = {}
        self._progress: Dict[int, models.Progress] = {}
        self._current_id = 1
        # FastAPI runs sync handlers on a thread pool, so every read and write goes through this lock
        self._lock = threading.Lock()

    def _next_id(self) -> int:
        # caller holds self._lock
        ident = self._current_id
        self._current_id += 1
        return ident

    # Users

    def create_user(self, draft: models.UserDraft) -> models.User:
        """Insert a user. Username uniqueness is the caller's job."""
        with self._lock:
            user = models.User(**draft.model_dump(), id=self._next_id(), created_at=_now())
            self._users[user.id] = user
            logger.debug("user_created id=%s role=%s", user.id, user.role.value)
            return _copy(user)

    def create_user_if_absent(self, draft: models.UserDraft) -> Optional[models.User]:
        """Insert a user unless the username is taken; None on a duplicate."""
        with self._lock:
            if any(u.username == draft.username for u in self._users.values()):
                return None
            user = models.User(**draft.model_dump(), id=self._next_id(), created_at=_now())
            self._users[user.id] = user
            logger.debug("user_created id=%s role=%s", user.id, user.role.value)
            return _copy(user)

    def get_user(self, user_id: int) -> Optional[models.User]:
        with self._lock:
            return _copy(self._users.get(user_id))

    def get_user_by_username(self, username: str) -> Optional[models.User]:
        """Exact, case-sensitive match."""
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return _copy(user)
        return None

    def list_users(self) -> List[models.User]:
        with self._lock:
            return [_copy(u) for u in self._users.values()]

    def update_user_role(self, user_id: int, role: models.Role) -> Optional[models.User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update={"role": models.Role(role)})
            self._users[user_id] = updated
            return _copy(updated)

    def set_user_password(self, user_id: int, password_hash: str) -> Optional[models.User]:
        """Replace a stored password hash (used when re-hashing legacy hashes)."""
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            updated = user.model_copy(update={"password": password_hash})
            self._users[user_id] = updated
            return _copy(updated)

    # Subjects

    def create_subject(self, draft: models.SubjectDraft) -> models.Subject:
        with self._lock:
            subject = models.Subject(**draft.model_dump(), id=self._next_id(), created_at=_now())
            self._subjects[subject.id] = subject
            return _copy(subject)

    def get_subject(self, subject_id: int) -> Optional[models.Subject]:
        with self._lock:
            return _copy(self._subjects.get(subject_id))

    def get_subjects(self) -> List[models.Subject]:
        with self._lock:
            return [_copy(s) for s in self._subjects.values()]

    def get_teacher_subjects(self, teacher_id: int) -> List[models.Subject]:
        with self._lock:
            return [_copy(s) for s in self._subjects.values() if s.teacher_id == teacher_id]

    # Topics

    def create_topic(self, draft: models.TopicDraft) -> models.Topic:
        with self._lock:
            topic = models.Topic(**draft.model_dump(), id=self._next_id(), created_at=_now())
            self._topics[topic.id] = topic
            return _copy(topic)

    def get_topic(self, topic_id: int) -> Optional[models.Topic]:
        with self._lock:
            return _copy(self._topics.get(topic_id))

    def get_topics(self, subject_id: int) -> List[models.Topic]:
        with self._lock:
            return [_copy(t) for t in self._topics.values() if t.subject_id == subject_id]

    def update_topic(self, topic_id: int, patch: models.TopicPatch) -> models.Topic:
        """Shallow-merge the set fields of `patch` over the stored topic.

        Raises `NotFoundError` for an unknown id.
        """
        with self._lock:
            topic = self._topics.get(topic_id)
            if topic is None:
                raise NotFoundError("Topic not found")
            updated = topic.model_copy(update=patch.changes())
            self._topics[topic_id] = updated
            return _copy(updated)

    # Questions

    def create_question(self, draft: models.QuestionDraft) -> models.Question:
        with self._lock:
            question = models.Question(**draft.model_dump(), id=self._next_id())
            self._questions[question.id] = question
            return _copy(question)

    def get_questions(self, topic_id: int) -> List[models.Question]:
        """Questions of a topic in creation order."""
        with self._lock:
            return [_copy(q) for q in self._questions.values() if q.topic_id == topic_id]

    # Progress

    def get_progress(self, user_id: int, topic_id: int) -> Optional[models.Progress]:
        """Return the most recently created record for the pair, if any."""
        with self._lock:
            latest = None
            for record in self._progress.values():
                if record.user_id == user_id and record.topic_id == topic_id:
                    if latest is None or record.id > latest.id:
                        latest = record
            return _copy(latest)

    def list_progress(self, user_id: int, topic_id: int) -> List[models.Progress]:
        """Every record for the pair, oldest first."""
        with self._lock:
            return [
                _copy(r) for r in self._progress.values()
                if r.user_id == user_id and r.topic_id == topic_id
            ]

    def update_progress(self, draft: models.ProgressDraft) -> models.Progress:
        """Append a new progress record; existing records are never touched."""
        with self._lock:
            record = models.Progress(
                **draft.model_dump(),
                id=self._next_id(),
                completed_at=_now() if draft.completed else None,
            )
            self._progress[record.id] = record
            return _copy(record)
