from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from wtforms import DateField, IntegerField, PasswordField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, InputRequired, Length, Optional

from forms import ApiForm, IntegerListField, strip
from models import Role, SubmissionStatus
from role_required import role_required
from services import workflow
from services.credentials import create_intern_with_user

bp = Blueprint("admin", __name__, url_prefix="/api")

ASSIGNMENT_REQUIRED = "Task ID and at least one intern ID are required"


# ----- Forms -----
class InternForm(ApiForm):
    name = StringField("Name", filters=[strip], validators=[DataRequired(message="Intern name is required"), Length(max=200)])
    email = StringField("Email", filters=[strip], validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password",
        validators=[DataRequired(), Length(min=8, max=128, message="Password must be 8 to 128 characters")],
    )
    phone = StringField("Phone", filters=[strip], validators=[Optional(), Length(max=50)])
    referring_source = StringField("Referring source", filters=[strip], validators=[Optional(), Length(max=255)])


class TaskForm(ApiForm):
    title = StringField("Title", filters=[strip], validators=[DataRequired(message="Task title is required"), Length(max=200)])
    description = TextAreaField("Description", filters=[strip], validators=[Optional(), Length(max=5000)])
    due_date = DateField("Due date", format="%Y-%m-%d", validators=[Optional()])


class AssignmentForm(ApiForm):
    task_id = IntegerField("Task", validators=[InputRequired(message=ASSIGNMENT_REQUIRED)])
    intern_ids = IntegerListField("Interns", validators=[DataRequired(message=ASSIGNMENT_REQUIRED)])


class ReviewForm(ApiForm):
    feedback = TextAreaField("Feedback", filters=[strip], validators=[Optional(), Length(max=5000)])


# ----- Views -----
@bp.route("/interns", methods=["POST"])
@login_required
@role_required(Role.ADMIN)
def create_intern():
    form = InternForm().validate_or_raise()
    intern = create_intern_with_user(
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
        phone=form.phone.data or None,
        referring_source=form.referring_source.data or None,
    )
    return jsonify({"intern": intern.to_dict(), "user": intern.user.to_dict()}), 201


@bp.route("/interns", methods=["GET"])
@login_required
@role_required(Role.ADMIN)
def interns():
    return jsonify(workflow.list_interns())


@bp.route("/tasks", methods=["POST"])
@login_required
@role_required(Role.ADMIN)
def create_task():
    form = TaskForm().validate_or_raise()
    task = workflow.create_task(
        title=form.title.data,
        created_by=current_user.id,
        description=form.description.data,
        due_date=form.due_date.data,
    )
    return jsonify(task.to_dict()), 201


@bp.route("/tasks", methods=["GET"])
@login_required
@role_required(Role.ADMIN)
def tasks():
    return jsonify([task.to_dict() for task in workflow.list_tasks()])


@bp.route("/assignments", methods=["POST"])
@login_required
@role_required(Role.ADMIN)
def create_assignments():
    form = AssignmentForm().validate_or_raise()
    created, errors = workflow.assign_task(form.task_id.data, form.intern_ids.data)
    body = {"assignments": [a.to_dict() for a in created]}
    if errors:
        body["errors"] = errors
    return jsonify(body), 201


@bp.route("/submissions/pending", methods=["GET"])
@login_required
@role_required(Role.ADMIN)
def pending_submissions():
    return jsonify(workflow.pending_submissions())


@bp.route("/submissions/<int:submission_id>/approve", methods=["PUT"])
@login_required
@role_required(Role.ADMIN)
def approve_submission(submission_id):
    form = ReviewForm().validate_or_raise()
    submission = workflow.review_submission(
        submission_id,
        SubmissionStatus.APPROVED,
        reviewer_id=current_user.id,
        feedback=form.feedback.data,
    )
    return jsonify(submission.to_dict())


@bp.route("/submissions/<int:submission_id>/deny", methods=["PUT"])
@login_required
@role_required(Role.ADMIN)
def deny_submission(submission_id):
    form = ReviewForm().validate_or_raise()
    submission = workflow.review_submission(
        submission_id,
        SubmissionStatus.DENIED,
        reviewer_id=current_user.id,
        feedback=form.feedback.data,
    )
    return jsonify(submission.to_dict())


@bp.route("/dashboard/admin", methods=["GET"])
@login_required
@role_required(Role.ADMIN)
def dashboard():
    return jsonify(workflow.admin_dashboard())
