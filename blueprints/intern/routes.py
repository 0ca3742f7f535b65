from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from forms import ApiForm, strip
from models import Role
from role_required import role_required
from services import workflow

bp = Blueprint("intern", __name__, url_prefix="/api")


class SubmitWorkForm(ApiForm):
    submission_link = StringField(
        "Submission link",
        filters=[strip],
        validators=[DataRequired(message="Submission link is required"), Length(max=2048)],
    )
    comments = TextAreaField("Comments", filters=[strip], validators=[Optional(), Length(max=5000)])


def _current_intern():
    return workflow.get_intern_for_user(current_user.id)


@bp.route("/interns/me/tasks", methods=["GET"])
@login_required
@role_required(Role.INTERN)
def my_tasks():
    return jsonify(workflow.tasks_for_intern(_current_intern().id))


@bp.route("/intern_tasks/<int:assignment_id>/submit", methods=["POST"])
@login_required
@role_required(Role.INTERN)
def submit(assignment_id):
    form = SubmitWorkForm().validate_or_raise()
    submission = workflow.submit_work(
        assignment_id,
        _current_intern().id,
        form.submission_link.data,
        comments=form.comments.data,
    )
    return jsonify(submission.to_dict()), 201


@bp.route("/interns/me/submissions", methods=["GET"])
@login_required
@role_required(Role.INTERN)
def my_submissions():
    return jsonify(workflow.intern_submissions(_current_intern().id))


@bp.route("/intern_tasks/<int:assignment_id>/submissions", methods=["GET"])
@login_required
@role_required(Role.ADMIN, Role.INTERN)
def assignment_history(assignment_id):
    if current_user.role is Role.ADMIN:
        owner_id = None
    elif current_user.role is Role.INTERN:
        owner_id = _current_intern().id
    else:
        raise AssertionError(f"unhandled role {current_user.role!r}")
    return jsonify(workflow.submission_history(assignment_id, intern_id=owner_id))


@bp.route("/dashboard/intern", methods=["GET"])
@login_required
@role_required(Role.INTERN)
def dashboard():
    return jsonify(workflow.intern_dashboard(_current_intern().id))
