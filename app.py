"""blueblue - live BLE beacon registry served over HTTP."""

from __future__ import annotations

from typing import Optional

from flask import Flask

import config
from routes import register_blueprints
from utils.bluetooth import ScanContext, create_scan_context
from utils.logging import app_logger as logger


def create_app(context: Optional[ScanContext] = None) -> Flask:
    """
    Create the Flask application.

    Args:
        context: Registry and controller to serve. Built from config if omitted.

    Returns:
        Configured Flask app with blueprints registered.
    """
    app = Flask(__name__)
    app.extensions['blueblue'] = context or create_scan_context()
    register_blueprints(app)
    return app


def main() -> None:
    config.configure_logging()
    app = create_app()

    if config.AUTO_START:
        app.extensions['blueblue'].controller.start()

    logger.info(f"Started blueblue {config.VERSION} server at {config.HOST}:{config.PORT}")
    app.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG,
        threaded=config.THREADED,
        use_reloader=False,
    )


if __name__ == '__main__':
    main()
