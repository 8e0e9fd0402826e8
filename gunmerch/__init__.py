import logging

from flask import Flask, jsonify

from .config import Config
from .errors import GunmerchError
from .extensions import EXTENSION_KEY, build_pipeline, cors


def _configure_logging(app: Flask):
    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    pkg_logger = logging.getLogger("gunmerch")
    pkg_logger.setLevel(level)
    app.logger.setLevel(level)
    if not logging.getLogger().handlers and not pkg_logger.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    log_file = app.config.get("LOG_FILE")
    if log_file and not any(getattr(h, "baseFilename", None) == str(log_file) for h in pkg_logger.handlers):
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        pkg_logger.addHandler(handler)


def create_app(config_class: type[Config] = Config, overrides: dict | None = None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    _configure_logging(app)

    # Extensions
    cors.init_app(app)
    app.extensions[EXTENSION_KEY] = build_pipeline(app.config)

    # Blueprints
    from .routes.designs import bp as designs_pages
    from .routes.designs_api import bp as designs_api
    from .routes.trends_api import bp as trends_api
    from .routes.pipeline_api import bp as pipeline_api

    app.register_blueprint(designs_pages)
    app.register_blueprint(designs_api, url_prefix="/api")
    app.register_blueprint(trends_api, url_prefix="/api")
    app.register_blueprint(pipeline_api, url_prefix="/api")

    # CLI
    from .cli import gunmerch_cli
    app.cli.add_command(gunmerch_cli)

    @app.errorhandler(GunmerchError)
    def handle_pipeline_error(err: GunmerchError):
        app.logger.warning("Unhandled pipeline error: %s", err)
        return jsonify({"success": False, "message": str(err), "code": err.code}), 400

    return app
