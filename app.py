# app.py
import logging

from flask import Flask, jsonify

import config
from routes import register_routes
from store import EXTENSION_KEY, SessionStore
from sweeper import Sweeper
from uploads import StagingRequest

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """Build the Flask app with its own session store (and sweeper unless disabled)."""
    app = Flask(__name__)
    app.request_class = StagingRequest
    app.config.from_mapping(config.defaults())
    if overrides:
        app.config.update(overrides)
    app.config.update(MAX_CONTENT_LENGTH=app.config["MAX_REQUEST_SIZE"] or None)

    store = SessionStore(
        root=app.config["STORAGE_ROOT"],
        staging_dir=app.config["STAGING_DIR"],
        ttl=app.config["SESSION_TTL"],
        max_file_size=app.config["MAX_FILE_SIZE"],
    )
    store.root.mkdir(parents=True, exist_ok=True)
    store.staging_dir.mkdir(parents=True, exist_ok=True)
    store.purge_trash()
    app.extensions[EXTENSION_KEY] = store

    register_routes(app)

    @app.get("/health")
    def health():
        return jsonify(status="ok", sessions=len(store.registry))

    if app.config["START_SWEEPER"]:
        sweeper = Sweeper(store, app.config["SWEEP_INTERVAL"])
        sweeper.start()
        app.extensions["tempshare.sweeper"] = sweeper

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = create_app()
    logger.info("Starting %s on http://%s:%s", config.APP_TITLE, config.HOST, config.PORT)
    app.run(host=config.HOST, port=config.PORT, threaded=True)
