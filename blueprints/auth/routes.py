import logging

from flask import Blueprint, current_app, g, jsonify
from flask_login import current_user, login_required
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional

from errors import NotFound, Unauthorized
from extensions import login_manager
from forms import ApiForm, strip
from services.credentials import create_intern_with_user, verify_credentials
from services.tokens import issue_token, verify_token

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

BEARER_PREFIX = "Bearer "


class MissingToken(Unauthorized):
    message = "Authentication required. Missing or invalid token format."


class LoginForm(ApiForm):
    email = StringField("Email", filters=[strip], validators=[DataRequired()])
    password = PasswordField("Password", validators=[DataRequired(), Length(max=128)])


class SignupForm(ApiForm):
    name = StringField("Name", filters=[strip], validators=[DataRequired(message="Intern name is required")])
    email = StringField("Email", filters=[strip], validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password",
        validators=[DataRequired(), Length(min=8, max=128, message="Password must be 8 to 128 characters")],
    )
    phone = StringField("Phone", filters=[strip], validators=[Optional(), Length(max=50)])
    referring_source = StringField("Referring source", filters=[strip], validators=[Optional(), Length(max=255)])


@login_manager.request_loader
def load_user_from_request(request):
    header = request.headers.get("Authorization", "")
    # reject before any token parsing
    if not header.startswith(BEARER_PREFIX):
        g.auth_error = MissingToken()
        return None
    try:
        return verify_token(header[len(BEARER_PREFIX):].strip())
    except Unauthorized as exc:
        g.auth_error = exc
        return None


@login_manager.unauthorized_handler
def unauthorized():
    raise g.get("auth_error") or MissingToken()


@bp.route("/login", methods=["POST"])
def login():
    form = LoginForm().validate_or_raise(required_message="Email and password are required")
    user = verify_credentials(form.email.data, form.password.data)
    token = issue_token(user.id, user.email, user.role)
    logger.info("User %s logged in", user.email)
    return jsonify({"token": token, "user": user.to_dict()})


@bp.route("/signup", methods=["POST"])
def signup():
    if not current_app.config.get("SIGNUP_ENABLED"):
        raise NotFound("Signup is disabled")
    form = SignupForm().validate_or_raise()
    intern = create_intern_with_user(
        name=form.name.data,
        email=form.email.data,
        password=form.password.data,
        phone=form.phone.data or None,
        referring_source=form.referring_source.data or None,
    )
    return jsonify({"intern": intern.to_dict(), "user": intern.user.to_dict()}), 201


@bp.route("/api/me")
@login_required
def me():
    return jsonify(current_user.to_dict())
