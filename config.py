import os
import secrets
from dotenv import load_dotenv
from typing import Optional

# Find the absolute path of the root directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load the .env file from the root directory
load_dotenv(os.path.join(basedir, '.env'))


def _env_flag(key: str, default: str = 'true') -> bool:
    return os.environ.get(key, default).strip().lower() in ('1', 'true', 'yes', 'on')


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid"""
    pass


class Config:
    """
    Settings shared by every environment.

    Celery reads its broker from CELERY_BROKER_URL / REDIS_URL directly,
    see celery_config.py.
    """
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
    FLASK_ENV = os.environ.get('FLASK_ENV')

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('POSTGRES_URI') or \
        'sqlite:///' + os.path.join(basedir, 'parcel_crm.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Geocoding
    GOOGLE_MAPS_API_KEY = os.environ.get('GOOGLE_MAPS_API_KEY')
    GEOCODING_PROVIDER = os.environ.get('GEOCODING_PROVIDER', 'google')
    GEOCODING_ENABLED = _env_flag('GEOCODING_ENABLED')
    GEOCODING_REQUEST_DELAY = float(os.environ.get('GEOCODING_REQUEST_DELAY', '0.1'))  # seconds

    # CSV uploads run inside the request, so keep them small
    CSV_UPLOAD_MAX_ROWS = int(os.environ.get('CSV_UPLOAD_MAX_ROWS', '100'))
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB max file upload

    # Matching thresholds
    ADDRESS_MATCH_FLOOR = float(os.environ.get('ADDRESS_MATCH_FLOOR', '0.7'))  # exclusive
    NAME_MATCH_FLOOR = float(os.environ.get('NAME_MATCH_FLOOR', '0.8'))
    PHONE_MATCH_CONFIDENCE = float(os.environ.get('PHONE_MATCH_CONFIDENCE', '0.9'))
    MERGE_CONFIDENCE = float(os.environ.get('MERGE_CONFIDENCE', '0.95'))

    @classmethod
    def validate_required_config(cls) -> None:
        """Validate that all required configuration is present"""
        # Skip validation in testing environment or during migrations
        if os.environ.get('FLASK_ENV') == 'testing' or os.environ.get('SKIP_ENV_VALIDATION'):
            return

        missing_vars = []
        if not (os.environ.get('DATABASE_URL') or os.environ.get('POSTGRES_URI')):
            missing_vars.append('DATABASE_URL')

        # Without a key geocoding is only switched off; production wants it set
        if _env_flag('GEOCODING_ENABLED') and os.environ.get('GEOCODING_PROVIDER', 'google') == 'google':
            if not os.environ.get('GOOGLE_MAPS_API_KEY'):
                missing_vars.append('GOOGLE_MAPS_API_KEY')

        if missing_vars:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing_vars)}"
            )

    @staticmethod
    def get_required_env(key: str) -> str:
        """Get required environment variable or raise error"""
        value = os.environ.get(key)
        if not value:
            raise ConfigurationError(f"Required environment variable {key} is not set")
        return value

    @classmethod
    def init_app(cls, app):
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        Config.SQLALCHEMY_DATABASE_URI

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        import logging
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(stream_handler)


class TestingConfig(Config):
    """In-memory database, geocoding off, no pacing delays"""
    TESTING = True
    DEBUG = True

    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    GEOCODING_ENABLED = False
    GOOGLE_MAPS_API_KEY = None
    GEOCODING_REQUEST_DELAY = 0.0

    @classmethod
    def init_app(cls, app):
        # Foreign keys are not enforced on SQLite so fixtures can insert rows in any order
        from sqlalchemy import event
        from sqlalchemy.engine import Engine

        @event.listens_for(Engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            if 'sqlite' in str(dbapi_connection):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=OFF")
                cursor.close()


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', '')

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        if not cls.SQLALCHEMY_DATABASE_URI:
            cls.SQLALCHEMY_DATABASE_URI = cls.get_required_env('POSTGRES_URI')
            app.config['SQLALCHEMY_DATABASE_URI'] = cls.SQLALCHEMY_DATABASE_URI

        cls.validate_required_config()

        # Geocoding misses and row failures are warnings; ship them to syslog
        import logging
        from logging.handlers import SysLogHandler
        syslog_handler = SysLogHandler()
        syslog_handler.setLevel(logging.WARNING)
        app.logger.addHandler(syslog_handler)


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> type:
    """Get configuration class based on environment"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    return config.get(config_name, DevelopmentConfig)
