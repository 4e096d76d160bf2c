"""Business logic services used by HTTP controllers.

Services are thin: they validate what the schemas cannot express
(uniqueness, references between entities, role rules), call the store
and translate absence into the error taxonomy. Controllers never touch
the store directly.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from . import models, schemas
from .errors import AuthorizationError, InternalError, NotFoundError, ValidationError
from .security import PasswordHasher
from .sessions import SessionStore
from .storage import MemoryStorage

logger = logging.getLogger("quizhub.services")

ASSIGNABLE_ROLES = (models.Role.STUDENT.value, models.Role.TEACHER.value)


class AuthService:
    """Registration, credential checks and session lifecycle."""
    def __init__(self, storage: MemoryStorage, hasher: PasswordHasher, sessions: SessionStore):
        self.storage = storage
        self.hasher = hasher
        self.sessions = sessions

    def register(self, payload: schemas.RegisterIn) -> models.User:
        """Create a user with a hashed password.

        Raises `ValidationError` if the username is taken.
        """
        if self.storage.get_user_by_username(payload.username):
            raise ValidationError("Username already exists")
        user = self.storage.create_user_if_absent(models.UserDraft(
            username=payload.username,
            password=self.hasher.hash(payload.password),
            role=payload.role,
        ))
        if user is None:
            raise ValidationError("Username already exists")
        logger.info("user_registered id=%s role=%s", user.id, user.role.value)
        return user

    def authenticate(self, username: str, password: str) -> Optional[models.User]:
        """Return the user if the credentials match, else None.

        Hashes stored in a deprecated format are upgraded on success.
        """
        user = self.storage.get_user_by_username(username)
        if not user or not self.hasher.verify(password, user.password):
            logger.info("login_failed username=%r", username)
            return None
        if self.hasher.needs_update(user.password):
            user = self.storage.set_user_password(user.id, self.hasher.hash(password))
            logger.info("password_rehashed id=%s scheme=%s", user.id, self.hasher.scheme)
        return user

    def start_session(self, user: models.User) -> str:
        return self.sessions.create(user.id)

    def logout(self, token: Optional[str]) -> None:
        try:
            self.sessions.destroy(token)
        except Exception as exc:
            logger.exception("logout_failed")
            raise InternalError("Could not log out") from exc

    def current_user(self, user_id: int) -> models.User:
        user = self.storage.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


class AdminService:
    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    def list_users(self) -> List[models.User]:
        return self.storage.list_users()

    def change_role(self, actor_id: int, user_id: int, role) -> models.User:
        """Set a user's role to student or teacher.

        Admins cannot change their own role, so the last admin can't
        lock everyone out by accident.
        """
        if role not in ASSIGNABLE_ROLES:
            raise ValidationError("Invalid role")
        if user_id == actor_id:
            raise AuthorizationError("Admins cannot change their own role")
        user = self.storage.update_user_role(user_id, models.Role(role))
        if not user:
            raise NotFoundError("User not found")
        logger.info("role_updated id=%s role=%s by=%s", user.id, user.role.value, actor_id)
        return user


class CatalogService:
    """Subjects, topics and questions."""
    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    def list_subjects(self) -> List[models.Subject]:
        return self.storage.get_subjects()

    def get_subject(self, subject_id: int) -> models.Subject:
        subject = self.storage.get_subject(subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        return subject

    def teacher_subjects(self, teacher_id: int) -> List[models.Subject]:
        return self.storage.get_teacher_subjects(teacher_id)

    def create_subject(self, teacher_id: int, payload: schemas.SubjectIn) -> models.Subject:
        subject = self.storage.create_subject(models.SubjectDraft(
            name=payload.name,
            description=payload.description,
            image_url=payload.image_url,
            teacher_id=teacher_id,
        ))
        logger.info("subject_created id=%s teacher=%s", subject.id, teacher_id)
        return subject

    def list_topics(self, subject_id: int) -> List[models.Topic]:
        return self.storage.get_topics(subject_id)

    def get_topic(self, topic_id: int) -> models.Topic:
        topic = self.storage.get_topic(topic_id)
        if not topic:
            raise NotFoundError("Topic not found")
        return topic

    def create_topic(self, teacher_id: int, subject_id: int, payload: schemas.TopicIn) -> models.Topic:
        self.get_subject(subject_id)
        topic = self.storage.create_topic(models.TopicDraft(
            subject_id=subject_id,
            teacher_id=teacher_id,
            name=payload.name,
            content=payload.content,
        ))
        logger.info("topic_created id=%s subject=%s", topic.id, subject_id)
        return topic

    def update_topic(self, teacher_id: int, topic_id: int, payload: schemas.TopicPatchIn) -> models.Topic:
        """Apply a partial update; the editing teacher becomes the topic's teacher."""
        if payload.subject_id is not None and not self.storage.get_subject(payload.subject_id):
            raise ValidationError("subjectId does not reference an existing subject")
        patch = models.TopicPatch(
            subject_id=payload.subject_id,
            teacher_id=teacher_id,
            name=payload.name,
            content=payload.content,
        )
        return self.storage.update_topic(topic_id, patch)

    def list_questions(self, topic_id: int) -> List[models.Question]:
        return self.storage.get_questions(topic_id)

    def create_question(self, topic_id: int, payload: schemas.QuestionIn) -> models.Question:
        self.get_topic(topic_id)
        question = self.storage.create_question(models.QuestionDraft(
            topic_id=topic_id,
            question=payload.question,
            options=payload.options,
            correct_answer=payload.correct_answer,
        ))
        logger.info("question_created id=%s topic=%s", question.id, topic_id)
        return question


class ProgressService:
    """Read and append quiz progress records."""
    def __init__(self, storage: MemoryStorage):
        self.storage = storage

    def current(self, user_id: int, topic_id: int) -> Optional[models.Progress]:
        return self.storage.get_progress(user_id, topic_id)

    def history(self, user_id: int, topic_id: int) -> List[models.Progress]:
        return self.storage.list_progress(user_id, topic_id)

    def record(self, user_id: int, topic_id: int, score: int, completed: bool) -> models.Progress:
        if not self.storage.get_topic(topic_id):
            raise NotFoundError("Topic not found")
        progress = self.storage.update_progress(models.ProgressDraft(
            user_id=user_id,
            topic_id=topic_id,
            score=score,
            completed=completed,
        ))
        logger.info(
            "progress_recorded id=%s user=%s topic=%s score=%s completed=%s",
            progress.id, user_id, topic_id, score, completed,
        )
        return progress


def compute_score(questions: Sequence[models.Question], answers: Sequence[int]) -> Tuple[int, int]:
    """Return `(correct_count, score)` for answers given in question order.

    The score is the percentage of correct answers rounded half up, and 0
    for a topic without questions.
    """
    total = len(questions)
    correct = sum(1 for q, a in zip(questions, answers) if a == q.correct_answer)
    if total == 0:
        return correct, 0
    # integer form of floor(100 * correct / total + 0.5)
    return correct, (200 * correct + total) // (2 * total)


class GradingService:
    """Grade a submitted quiz and record it as completed progress."""
    def __init__(self, storage: MemoryStorage):
        self.storage = storage
        self.progress = ProgressService(storage)

    def grade(self, user_id: int, topic_id: int, answers: List[int]) -> dict:
        if not self.storage.get_topic(topic_id):
            raise NotFoundError("Topic not found")
        questions = self.storage.get_questions(topic_id)
        if len(answers) != len(questions):
            raise ValidationError(f"Expected {len(questions)} answers, got {len(answers)}")
        correct, score = compute_score(questions, answers)
        progress = self.progress.record(user_id, topic_id, score, completed=True)
        return {
            'score': score,
            'correct': correct,
            'total': len(questions),
            'progress': progress,
        }
