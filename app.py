import logging
import os
from flask import Flask
from dotenv import load_dotenv
from utils.db_conn import init_database_with_app

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _env_float(name):
    value = os.getenv(name)
    return float(value) if value not in (None, "") else None


def create_app(config=None) -> Flask:
    """Create the reporting API app.

    ``config`` overrides settings read from the environment; tests pass an
    in-memory SQLALCHEMY_DATABASE_URI here.
    """
    load_dotenv()
    app = Flask(__name__)
    app.config["REPORT_MAX_WORKERS"] = int(os.getenv("REPORT_MAX_WORKERS", "1"))
    app.config["REPORT_DEADLINE_SECONDS"] = _env_float("REPORT_DEADLINE_SECONDS")
    if config:
        app.config.update(config)

    app.extensions["db_conn"] = init_database_with_app(app)

    from blueprints.report_routes import reports_bp

    app.register_blueprint(reports_bp)

    @app.route("/health")
    def health():
        return {"status": "ok"}

    logger.info(
        f"Report API ready (workers={app.config['REPORT_MAX_WORKERS']}, "
        f"deadline={app.config['REPORT_DEADLINE_SECONDS']})"
    )
    return app


if __name__ == "__main__":
    logger.info("Application startup initiated")
    app = create_app()
    if not app.extensions["db_conn"].test_connection():
        logger.warning("Starting without a reachable database; report requests will fail")
    debug = os.getenv("FLASK_DEBUG", "0") == "1"
    app.run(host="127.0.0.1", port=int(os.getenv("PORT", "5000")), debug=debug)
