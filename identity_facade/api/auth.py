"""Registration and login routes.

Routes only parse and validate the JSON body; the orchestrators in
``identity_facade.core`` do the work and raise typed errors that the
handlers in ``errors.py`` turn into JSON responses.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from identity_facade.core.errors import ValidationError
from identity_facade.core.validators import parse_login_request, parse_registration_request

bp = Blueprint("auth", __name__)

EXTENSION_KEY = "identity_facade"


def _services() -> dict:
    services = current_app.extensions.get(EXTENSION_KEY)
    if services is None:
        raise RuntimeError("Identity facade services not initialized. Call create_app first.")
    return services


def _json_body():
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError("Request body must be a JSON object")
    return payload


@bp.route("/register/admin", methods=["POST"])
def register():
    """Create a user in the identity provider and the local profile store."""
    try:
        registration = parse_registration_request(_json_body())
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    result = _services()["registration"].register(registration)
    return jsonify(result.to_dict()), 201


@bp.route("/login", methods=["POST"])
def login():
    """Exchange email/password for provider tokens."""
    try:
        credentials = parse_login_request(_json_body())
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    result = _services()["login"].login(credentials)
    current_app.logger.info(f"[Auth] Login succeeded for {credentials.username}")
    return jsonify(result.to_dict()), 200
