import os
import logging
from typing import Optional
from flask import Flask
from dotenv import load_dotenv
from models import db

# Configure logging for database operations
logger = logging.getLogger(__name__)

# Connection pool settings for server databases (MySQL)
MYSQL_ENGINE_OPTIONS = {
    "pool_size": 10,  # Number of connections to maintain
    "max_overflow": 20,  # Additional connections beyond pool_size
    "pool_recycle": 3600,  # Recycle connections after 1 hour
    "pool_pre_ping": True,  # Test connections before use
    "pool_timeout": 30,  # Connection timeout in seconds
    "connect_args": {
        "connect_timeout": 30,
        "read_timeout": 60,
        "write_timeout": 30,
    },
}


def _mask(uri: str, password: Optional[str]) -> str:
    return uri.replace(password, "***") if password else uri


def build_database_uri() -> str:
    """Resolve the database URI from the environment.

    DATABASE_URL wins; otherwise ENVIRONMENT picks the local or online
    MySQL settings.
    """
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    environment = os.getenv("ENVIRONMENT", "local").lower()
    logger.info(f"Database environment: {environment}")

    if environment == "local":
        db_host = os.getenv("LOCAL_DB_HOST", "localhost")
        db_port = os.getenv("LOCAL_DB_PORT", "3306")
        db_user = os.getenv("LOCAL_DB_USER", "root")
        db_password = os.getenv("LOCAL_DB_PASSWORD", "")
        db_name = os.getenv("LOCAL_DB_NAME", "training_center")
    elif environment == "production" or environment == "online":
        db_host = os.getenv("ONLINE_DB_HOST")
        db_port = os.getenv("ONLINE_DB_PORT", "3306")
        db_user = os.getenv("ONLINE_DB_USER")
        db_password = os.getenv("ONLINE_DB_PASSWORD")
        db_name = os.getenv("ONLINE_DB_NAME")
    else:
        raise ValueError(
            f"Invalid ENVIRONMENT value: {environment}. Must be 'local' or 'production'/'online'"
        )

    return f"mysql+pymysql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


class DatabaseConnection:
    """Handles database configuration and connectivity checks for the app."""

    def __init__(self, app: Optional[Flask] = None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """Initialize database connection with Flask app."""
        self.app = app
        load_dotenv()
        logger.info("Environment variables loaded from .env file")

        # A URI set on the app (e.g. by tests) takes precedence over the environment
        db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or build_database_uri()
        app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
        app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
        if db_uri.startswith("mysql"):
            app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", MYSQL_ENGINE_OPTIONS)
        logger.info(
            f"Database URI configured: {_mask(db_uri, os.getenv('LOCAL_DB_PASSWORD') or os.getenv('ONLINE_DB_PASSWORD'))}"
        )

        # Check if SQLAlchemy is already registered with this app
        if "sqlalchemy" not in app.extensions:
            db.init_app(app)
            logger.info("Database initialized with Flask app")
        else:
            logger.info(
                "Database already initialized with Flask app - skipping re-initialization"
            )

    def test_connection(self) -> bool:
        """Test database connection with retry mechanism."""
        if self.app is None:
            logger.error("Database connection not initialized with Flask app")
            return False

        max_retries = 3
        retry_delay = 1

        for attempt in range(max_retries):
            try:
                logger.info(
                    f"Testing database connection... (attempt {attempt + 1}/{max_retries})"
                )
                with self.app.app_context():
                    with db.engine.connect() as connection:
                        connection.execute(db.text("SELECT 1"))
                logger.info("✅ Database connection successful!")
                return True
            except Exception as e:
                logger.warning(
                    f"❌ Database connection failed (attempt {attempt + 1}): {str(e)}"
                )
                if attempt < max_retries - 1:
                    import time

                    time.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    logger.error(
                        f"❌ Database connection failed after {max_retries} attempts: {str(e)}"
                    )
        return False


# Global database connection instance
db_conn = DatabaseConnection()


def init_database_with_app(app: Flask) -> DatabaseConnection:
    """Configure the database for a Flask app and return the connection helper."""
    global db_conn
    db_conn = DatabaseConnection(app)
    return db_conn
