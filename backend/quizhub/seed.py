"""Demo catalogue loaded into a fresh store when SEED_DEMO_DATA is on."""

import logging

from . import models
from .security import PasswordHasher
from .storage import MemoryStorage

logger = logging.getLogger("quizhub.seed")

DEMO_ACCOUNTS = (
    ("admin", "admin123", models.Role.ADMIN),
    ("demo_teacher", "password123", models.Role.TEACHER),
)

DEMO_SUBJECTS = (
    ("Physics", "Study of matter, energy, and their interactions",
     "https://images.unsplash.com/photo-1507413245164-6160d8298b31"),
    ("Chemistry", "Study of substances, their properties, and reactions",
     "https://images.unsplash.com/photo-1532094349884-543bc11b234d"),
    ("Biology", "Study of living organisms and their processes",
     "https://images.unsplash.com/photo-1475906089153-644d9452ce87"),
)

PHYSICS_TOPICS = (
    ("Mechanics", "Study of motion, forces, and energy..."),
    ("Thermodynamics", "Study of heat, temperature, and energy transfer..."),
)

PHYSICS_QUESTIONS = (
    ("What is Newton's First Law?",
     ["An object at rest stays at rest...",
      "Force equals mass times acceleration",
      "For every action there is an equal reaction",
      "None of the above"],
     0),
    ("What is the unit of force?", ["Newton", "Joule", "Watt", "Pascal"], 0),
)


def seed_demo_data(storage: MemoryStorage, hasher: PasswordHasher) -> None:
    """Create the demo admin and teacher, three subjects and the Physics topics.

    Both Physics topics get the same two questions.
    """
    users = {}
    for username, password, role in DEMO_ACCOUNTS:
        users[role] = storage.create_user(models.UserDraft(
            username=username, password=hasher.hash(password), role=role,
        ))
    teacher = users[models.Role.TEACHER]

    subjects = [
        storage.create_subject(models.SubjectDraft(
            name=name, description=description, image_url=image_url, teacher_id=teacher.id,
        ))
        for name, description, image_url in DEMO_SUBJECTS
    ]
    physics = subjects[0]

    for name, content in PHYSICS_TOPICS:
        topic = storage.create_topic(models.TopicDraft(
            subject_id=physics.id, teacher_id=teacher.id, name=name, content=content,
        ))
        for text, options, correct in PHYSICS_QUESTIONS:
            storage.create_question(models.QuestionDraft(
                topic_id=topic.id, question=text, options=list(options), correct_answer=correct,
            ))
    logger.info("demo_data_seeded subjects=%s topics=%s", len(subjects), len(PHYSICS_TOPICS))
