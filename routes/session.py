# routes/session.py
from flask import Blueprint, jsonify

from store import current_store

bp = Blueprint("session", __name__)


@bp.post("/session")
def create_session():
    """Issue a new token with an empty, freshly created session directory."""
    token = current_store().create_session()
    return jsonify(token=token), 201


@bp.get("/new-token")
def new_token():
    # QR pages fetch a token with a plain GET
    token = current_store().create_session()
    return jsonify(token=token)


@bp.get("/session/<token>")
def get_session(token: str):
    """Liveness and remaining lifetime for a token."""
    return jsonify(current_store().info(token))
