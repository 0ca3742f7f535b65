from datetime import datetime, timezone
import enum
from typing import Optional
from passlib.hash import bcrypt
from extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Role(str, enum.Enum):
    ADMIN = "admin"
    INTERN = "intern"

    @classmethod
    def parse(cls, raw) -> "Role":
        """Return the member for ``raw``; unknown strings raise ``ValueError``."""
        if isinstance(raw, cls):
            return raw
        return cls(raw)


class SubmissionStatus(str, enum.Enum):
    PENDING_REVIEW = "Pending Review"
    APPROVED = "Approved"
    DENIED = "Denied"


# Shown for an assignment without any submission yet
NOT_STARTED = "Not Started"

# integer primary keys are signed 64-bit in storage
MAX_ID = 2**63 - 1


def _enum_column(enum_cls, name):
    return db.Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(_enum_column(Role, "user_role"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    intern = db.relationship(
        "Intern",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    tasks_created = db.relationship("Task", back_populates="creator")

    def set_password(self, raw, rounds: int = 10):
        if raw is None:
            raise ValueError("Password is required")
        try:
            raw.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError("Invalid password") from exc
        self.password_hash = bcrypt.using(rounds=rounds).hash(raw)

    def check_password(self, raw):
        if raw is None:
            return False
        try:
            raw.encode("utf-8")
        except UnicodeEncodeError:
            return False
        try:
            return bcrypt.verify(raw, self.password_hash)
        except ValueError:
            return False

    def to_dict(self):
        return {"id": self.id, "email": self.email, "role": self.role.value}


class Intern(db.Model):
    __tablename__ = "interns"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(50))
    referring_source = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    user = db.relationship("User", back_populates="intern")
    assignments = db.relationship(
        "InternTask",
        back_populates="intern",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "phone": self.phone,
            "referring_source": self.referring_source,
            "created_at": to_iso(self.created_at),
        }


class Task(db.Model):
    __tablename__ = "tasks"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    due_date = db.Column(db.Date)
    assigned_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    creator = db.relationship("User", back_populates="tasks_created")
    assignments = db.relationship(
        "InternTask",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due_date": to_iso(self.due_date),
            "assigned_by": self.assigned_by,
            "created_at": to_iso(self.created_at),
        }


class InternTask(db.Model):
    """Assignment of one task to one intern."""

    __tablename__ = "intern_tasks"
    id = db.Column(db.Integer, primary_key=True)
    intern_id = db.Column(db.Integer, db.ForeignKey("interns.id"), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    intern = db.relationship("Intern", back_populates="assignments")
    task = db.relationship("Task", back_populates="assignments")
    submissions = db.relationship(
        "Submission",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="Submission.attempt",
    )

    __table_args__ = (
        db.UniqueConstraint("intern_id", "task_id", name="uq_intern_task_assignment"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "intern_id": self.intern_id,
            "task_id": self.task_id,
            "assigned_at": to_iso(self.assigned_at),
        }


class Submission(db.Model):
    __tablename__ = "submissions"
    id = db.Column(db.Integer, primary_key=True)
    intern_task_id = db.Column(db.Integer, db.ForeignKey("intern_tasks.id"), nullable=False)
    attempt = db.Column(db.Integer, nullable=False, default=1)
    submission_link = db.Column(db.String(2048), nullable=False)
    comments = db.Column(db.Text)
    status = db.Column(
        _enum_column(SubmissionStatus, "submission_status"),
        nullable=False,
        default=SubmissionStatus.PENDING_REVIEW,
    )
    feedback = db.Column(db.Text)
    submitted_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    reviewed_at = db.Column(db.DateTime(timezone=True))
    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id"))

    assignment = db.relationship("InternTask", back_populates="submissions")
    reviewer = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("intern_task_id", "attempt", name="uq_submission_attempt"),
        db.Index("ix_submission_status", "status"),
    )

    def mark_reviewed(self, status: SubmissionStatus, feedback: Optional[str], reviewer_id: int):
        self.status = status
        self.feedback = feedback.strip() if feedback else None
        self.reviewed_by = reviewer_id
        self.reviewed_at = utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "intern_task_id": self.intern_task_id,
            "submission_attempt": self.attempt,
            "submission_link": self.submission_link,
            "comments": self.comments,
            "status": self.status.value,
            "feedback": self.feedback,
            "submitted_at": to_iso(self.submitted_at),
            "reviewed_at": to_iso(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
        }
