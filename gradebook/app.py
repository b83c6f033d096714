"""Flask application entry point for the gradebook dashboard."""

from __future__ import annotations

import atexit

from flask import Flask

from .api import create_blueprint
from .bootstrap import BootstrapContext, bootstrap


def create_app(ctx: BootstrapContext | None = None) -> Flask:
    owned = ctx is None
    ctx = ctx or bootstrap()
    app = Flask(__name__)
    app.config["GRADEBOOK_CONFIG"] = ctx.config
    app.extensions["gradebook"] = ctx
    app.register_blueprint(create_blueprint(ctx), url_prefix="/api")
    if owned:
        atexit.register(ctx.shutdown, 2.0)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=8351)
