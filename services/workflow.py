"""Tasks, assignments and the submission review cycle.

A submission starts as ``Pending Review`` and is either approved (final) or
denied. After a denial the intern may submit again for the same assignment;
each submission records its attempt number, and the highest attempt is the
assignment's latest submission.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import Conflict, Forbidden, NotFound, ValidationError
from extensions import db
from models import (
    MAX_ID,
    NOT_STARTED,
    Intern,
    InternTask,
    Submission,
    SubmissionStatus,
    Task,
    User,
    to_iso,
)

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (SubmissionStatus.APPROVED, SubmissionStatus.DENIED)


# ----- Lookups -----
def _get(model, ident: int, message: str):
    # drivers raise OverflowError for ids the column cannot hold
    if not -MAX_ID - 1 <= ident <= MAX_ID:
        raise NotFound(message)
    row = db.session.get(model, ident)
    if row is None:
        raise NotFound(message)
    return row


def get_task(task_id: int) -> Task:
    return _get(Task, task_id, "Task not found")


def get_intern(intern_id: int) -> Intern:
    return _get(Intern, intern_id, "Intern not found")


def get_intern_for_user(user_id: int) -> Intern:
    intern = db.session.query(Intern).filter_by(user_id=user_id).first()
    if intern is None:
        raise NotFound("Intern profile not found for this user")
    return intern


def get_assignment(assignment_id: int) -> InternTask:
    return _get(InternTask, assignment_id, "Task assignment not found")


def _latest_submission(assignment_id: int) -> Optional[Submission]:
    return (
        db.session.query(Submission)
        .filter_by(intern_task_id=assignment_id)
        .order_by(Submission.attempt.desc())
        .first()
    )


# ----- Tasks -----
def create_task(
    title: str,
    created_by: int,
    description: Optional[str] = None,
    due_date: Optional[date] = None,
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required")
    task = Task(
        title=title,
        description=description or None,
        due_date=due_date,
        assigned_by=created_by,
    )
    db.session.add(task)
    db.session.commit()
    logger.info("Task %s created by user %s", task.id, created_by)
    return task


def list_tasks():
    return (
        db.session.query(Task)
        .order_by(Task.due_date.asc().nulls_last(), Task.id.asc())
        .all()
    )


# ----- Interns -----
def list_interns():
    completed = func.count(Submission.id).label("tasks_completed_count")
    rows = (
        db.session.query(Intern, User.email, completed)
        .join(User, Intern.user_id == User.id)
        .outerjoin(InternTask, InternTask.intern_id == Intern.id)
        .outerjoin(
            Submission,
            and_(
                Submission.intern_task_id == InternTask.id,
                Submission.status == SubmissionStatus.APPROVED,
            ),
        )
        .group_by(Intern.id, User.email)
        .order_by(Intern.created_at.desc(), Intern.id.desc())
        .all()
    )
    result = []
    for intern, email, count in rows:
        item = intern.to_dict()
        item["email"] = email
        item["tasks_completed_count"] = int(count or 0)
        result.append(item)
    return result


# ----- Assignments -----
def create_assignment(intern_id: int, task_id: int) -> InternTask:
    get_task(task_id)
    get_intern(intern_id)
    exists = (
        db.session.query(InternTask.id)
        .filter_by(intern_id=intern_id, task_id=task_id)
        .first()
    )
    if exists:
        raise Conflict("Assignment already exists for this intern and task")
    assignment = InternTask(intern_id=intern_id, task_id=task_id)
    db.session.add(assignment)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # a concurrent request inserted the same pair first
        db.session.rollback()
        raise Conflict("Assignment already exists for this intern and task") from exc
    logger.info("Task %s assigned to intern %s", task_id, intern_id)
    return assignment


def assign_task(task_id: int, intern_ids: Iterable[int]):
    """Assign one task to several interns.

    Each intern is attempted on its own. Returns ``(assignments, errors)``;
    raises ``ValidationError`` only when no assignment could be created.
    """
    get_task(task_id)
    created, errors = [], []
    for intern_id in intern_ids:
        try:
            created.append(create_assignment(intern_id, task_id))
        except (Conflict, NotFound) as exc:
            errors.append({"intern_id": intern_id, "message": exc.message})
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Assigning task %s to intern %s failed", task_id, intern_id)
            errors.append({"intern_id": intern_id, "message": "Failed to create assignment"})
    if not created:
        raise ValidationError("Failed to create any assignments", details=errors)
    return created, errors


def tasks_for_intern(intern_id: int):
    """Assignments of an intern with task details and latest submission status."""
    latest = (
        db.session.query(
            Submission.intern_task_id.label("intern_task_id"),
            func.max(Submission.attempt).label("attempt"),
        )
        .group_by(Submission.intern_task_id)
        .subquery()
    )
    rows = (
        db.session.query(InternTask, Task, Submission)
        .join(Task, InternTask.task_id == Task.id)
        .outerjoin(latest, latest.c.intern_task_id == InternTask.id)
        .outerjoin(
            Submission,
            and_(
                Submission.intern_task_id == InternTask.id,
                Submission.attempt == latest.c.attempt,
            ),
        )
        .filter(InternTask.intern_id == intern_id)
        .order_by(Task.due_date.asc().nulls_last(), InternTask.id.asc())
        .all()
    )
    return [
        {
            "assignment_id": assignment.id,
            "intern_id": assignment.intern_id,
            "task_id": task.id,
            "assigned_at": to_iso(assignment.assigned_at),
            "title": task.title,
            "description": task.description,
            "due_date": to_iso(task.due_date),
            "latest_submission_id": submission.id if submission else None,
            "latest_submission_status": submission.status.value if submission else NOT_STARTED,
            "latest_submission_date": to_iso(submission.submitted_at) if submission else None,
        }
        for assignment, task, submission in rows
    ]


# ----- Submissions -----
def submit_work(
    assignment_id: int,
    intern_id: int,
    submission_link: str,
    comments: Optional[str] = None,
) -> Submission:
    submission_link = (submission_link or "").strip()
    if not submission_link:
        raise ValidationError("Submission link is required")
    assignment = get_assignment(assignment_id)
    if assignment.intern_id != intern_id:
        raise Forbidden("You do not have permission to submit for this task")

    latest = _latest_submission(assignment.id)
    if latest is not None and latest.status == SubmissionStatus.PENDING_REVIEW:
        raise Conflict("A submission already exists for this task")
    if latest is not None and latest.status == SubmissionStatus.APPROVED:
        raise Conflict("This task has already been approved")

    submission = Submission(
        intern_task_id=assignment.id,
        attempt=(latest.attempt + 1) if latest else 1,
        submission_link=submission_link,
        comments=comments or None,
        status=SubmissionStatus.PENDING_REVIEW,
    )
    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # same attempt number taken by a concurrent submission
        db.session.rollback()
        raise Conflict("A submission already exists for this task") from exc
    logger.info(
        "Submission %s (attempt %s) created for assignment %s",
        submission.id, submission.attempt, assignment.id,
    )
    return submission


def review_submission(
    submission_id: int,
    decision,
    reviewer_id: int,
    feedback: Optional[str] = None,
) -> Submission:
    """Approve or deny a submission.

    Repeating the decision already recorded overwrites feedback, reviewer and
    review time. Switching an approved submission to denied (or back) is a
    conflict.
    """
    try:
        decision = SubmissionStatus(decision)
    except ValueError as exc:
        raise ValidationError("Unknown review decision") from exc
    if decision not in REVIEW_DECISIONS:
        raise ValidationError("Unknown review decision")
    feedback = (feedback or "").strip() or None
    if decision == SubmissionStatus.DENIED and not feedback:
        raise ValidationError("Feedback is required when denying a submission")

    submission = _get(Submission, submission_id, "Submission not found")
    if submission.status not in (SubmissionStatus.PENDING_REVIEW, decision):
        raise Conflict(f"Submission has already been reviewed as {submission.status.value}")

    submission.mark_reviewed(decision, feedback, reviewer_id)
    db.session.commit()
    logger.info(
        "Submission %s marked %s by user %s",
        submission.id, decision.value, reviewer_id,
    )
    return submission


def _submission_rows(query):
    return (
        query.join(InternTask, Submission.intern_task_id == InternTask.id)
        .join(Intern, InternTask.intern_id == Intern.id)
        .join(Task, InternTask.task_id == Task.id)
    )


def _detailed(submission: Submission, intern: Intern, task: Task):
    item = submission.to_dict()
    item.update(
        {
            "intern_id": intern.id,
            "intern_name": intern.name,
            "task_id": task.id,
            "task_title": task.title,
            "task_description": task.description,
        }
    )
    return item


def pending_submissions():
    rows = (
        _submission_rows(db.session.query(Submission, Intern, Task))
        .filter(Submission.status == SubmissionStatus.PENDING_REVIEW)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .all()
    )
    return [_detailed(*row) for row in rows]


def submission_history(assignment_id: int, intern_id: Optional[int] = None):
    """All attempts for one assignment, oldest first.

    When ``intern_id`` is given the assignment must belong to that intern.
    """
    assignment = get_assignment(assignment_id)
    if intern_id is not None and assignment.intern_id != intern_id:
        raise Forbidden("You do not have permission to view this task")
    rows = (
        _submission_rows(db.session.query(Submission, Intern, Task))
        .filter(Submission.intern_task_id == assignment.id)
        .order_by(Submission.attempt.asc())
        .all()
    )
    return [_detailed(*row) for row in rows]


def intern_submissions(intern_id: int):
    rows = (
        _submission_rows(db.session.query(Submission, Intern, Task))
        .filter(InternTask.intern_id == intern_id)
        .order_by(Submission.intern_task_id.asc(), Submission.attempt.desc())
        .all()
    )
    return [_detailed(*row) for row in rows]


# ----- Dashboards -----
def admin_dashboard():
    by_status = dict(
        db.session.query(Submission.status, func.count(Submission.id))
        .group_by(Submission.status)
        .all()
    )
    return {
        "interns": db.session.query(func.count(Intern.id)).scalar(),
        "tasks": db.session.query(func.count(Task.id)).scalar(),
        "assignments": db.session.query(func.count(InternTask.id)).scalar(),
        "submissions": {
            "pending_review": by_status.get(SubmissionStatus.PENDING_REVIEW, 0),
            "approved": by_status.get(SubmissionStatus.APPROVED, 0),
            "denied": by_status.get(SubmissionStatus.DENIED, 0),
        },
    }


def intern_dashboard(intern_id: int):
    counts = {
        NOT_STARTED: 0,
        SubmissionStatus.PENDING_REVIEW.value: 0,
        SubmissionStatus.APPROVED.value: 0,
        SubmissionStatus.DENIED.value: 0,
    }
    tasks = tasks_for_intern(intern_id)
    for item in tasks:
        counts[item["latest_submission_status"]] += 1
    return {
        "assigned_tasks": len(tasks),
        "not_started": counts[NOT_STARTED],
        "pending_review": counts[SubmissionStatus.PENDING_REVIEW.value],
        "approved": counts[SubmissionStatus.APPROVED.value],
        "denied": counts[SubmissionStatus.DENIED.value],
    }
