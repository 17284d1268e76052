# routes/files.py
from flask import Blueprint, jsonify, request, send_from_directory

from store import current_store
from uploads import receive_files

bp = Blueprint("files", __name__)


@bp.post("/session/<token>/files")
def upload(token: str):
    store = current_store()
    # check before the multipart body is parsed so nothing is staged for a bad token
    store.require_registered(token)
    try:
        entries = receive_files(store, token, request.files.getlist("files"))
    finally:
        request.discard_staged()
    return jsonify(ok=True, files=[e.to_dict() for e in entries])


@bp.get("/session/<token>/files")
def list_files(token: str):
    entries = current_store().list_files(token)
    return jsonify(files=[e.to_dict() for e in entries])


@bp.get("/session/<token>/files/<path:filename>")
def download(token: str, filename: str):
    target = current_store().file_path(token, filename)
    return send_from_directory(target.parent, target.name, as_attachment=True)
