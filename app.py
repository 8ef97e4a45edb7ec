# app.py

from flask import Flask, g, request, jsonify
from config import get_config
from extensions import db, migrate
import os
import uuid
from werkzeug.middleware.proxy_fix import ProxyFix
from logging_config import setup_logging, get_logger

# Configure logging as early as possible
setup_logging(app_name="parcel-crm", log_level=os.environ.get('LOG_LEVEL', 'INFO'))
logger = get_logger(__name__)


# Configure Sentry for production error tracking
def init_sentry():
    """Initialize Sentry error tracking in production."""
    sentry_dsn = os.environ.get('SENTRY_DSN')
    if sentry_dsn and os.environ.get('FLASK_ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
        from sentry_sdk.integrations.celery import CeleryIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FlaskIntegration(transaction_style='endpoint'),
                SqlalchemyIntegration(),
                CeleryIntegration()
            ],
            traces_sample_rate=0.1,
            environment=os.environ.get('FLASK_ENV', 'development'),
            release=os.environ.get('GIT_SHA', 'unknown')
        )
        logger.info("Sentry error tracking initialized")


init_sentry()


def create_app(config_name=None, test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize app with config
    config_class.init_app(app)

    if test_config:
        app.config.update(test_config)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    db.init_app(app)
    migrate.init_app(app, db)

    # Service registry with lazy loading
    from services.service_registry_enhanced import create_enhanced_registry, ServiceLifecycle
    registry = create_enhanced_registry()

    # Use a factory for db_session so tests can swap the session
    registry.register_factory(
        'db_session',
        lambda: _get_current_db_session(),
        lifecycle=ServiceLifecycle.SCOPED
    )

    # Repositories
    registry.register_factory(
        'owner_repository',
        lambda db_session: _create_owner_repository(db_session),
        dependencies=['db_session']
    )

    registry.register_factory(
        'contact_repository',
        lambda db_session: _create_contact_repository(db_session),
        dependencies=['db_session']
    )

    registry.register_factory(
        'property_repository',
        lambda db_session: _create_property_repository(db_session),
        dependencies=['db_session']
    )

    registry.register_factory(
        'coordinate_repository',
        lambda db_session: _create_coordinate_repository(db_session),
        dependencies=['db_session']
    )

    registry.register_factory(
        'property_note_repository',
        lambda db_session: _create_property_note_repository(db_session),
        dependencies=['db_session']
    )

    # External services (expensive, lazy loaded)
    registry.register_factory(
        'geocoding',
        lambda: _create_geocoding_service(app.config)
    )

    # Geocoding orchestration
    registry.register_factory(
        'coordinate',
        lambda coordinate_repository, geocoding: _create_coordinate_service(
            coordinate_repository, geocoding, app.config
        ),
        dependencies=['coordinate_repository', 'geocoding']
    )

    registry.register_factory(
        'batch_geocoding',
        lambda property_repository, coordinate_repository, coordinate: _create_batch_geocoding_service(
            property_repository, coordinate_repository, coordinate
        ),
        dependencies=['property_repository', 'coordinate_repository', 'coordinate']
    )

    # Reconciliation
    registry.register_factory(
        'owner_deduplication',
        lambda owner_repository, contact_repository: _create_owner_deduplication_service(
            owner_repository, contact_repository, app.config
        ),
        dependencies=['owner_repository', 'contact_repository']
    )

    registry.register_factory(
        'property_reconciliation',
        lambda property_repository, owner_repository: _create_property_reconciliation_service(
            property_repository, owner_repository, app.config
        ),
        dependencies=['property_repository', 'owner_repository']
    )

    registry.register_factory(
        'csv_upload',
        lambda owner_deduplication, property_reconciliation, coordinate: _create_csv_upload_service(
            owner_deduplication, property_reconciliation, coordinate, app.config
        ),
        dependencies=['owner_deduplication', 'property_reconciliation', 'coordinate']
    )

    # Property and contact management
    registry.register_factory(
        'contact',
        lambda contact_repository: _create_contact_service(contact_repository),
        dependencies=['contact_repository']
    )

    registry.register_factory(
        'property',
        lambda property_repository, property_note_repository, contact: _create_property_service(
            property_repository, property_note_repository, contact
        ),
        dependencies=['property_repository', 'property_note_repository', 'contact']
    )

    registry.register_factory(
        'owner',
        lambda owner_repository: _create_owner_service(owner_repository),
        dependencies=['owner_repository']
    )

    # Validate all dependencies are registered
    errors = registry.validate_dependencies()
    if errors:
        for error in errors:
            logger.error(f"Service dependency error: {error}")
        if app.config.get('FLASK_ENV') == 'production':
            raise RuntimeError(f"Service dependency errors: {errors}")

    # Log initialization order for debugging
    if app.debug:
        try:
            order = registry.get_initialization_order()
            logger.debug(f"Service initialization order: {order}")
        except RuntimeError as e:
            logger.error(f"Circular dependency detected: {e}")
            raise

    # Attach registry to app
    app.services = registry

    # Add request tracking middleware
    @app.before_request
    def before_request():
        g.request_id = str(uuid.uuid4())
        logger.info("Request started",
                    request_id=g.request_id,
                    method=request.method,
                    path=request.path)

    @app.after_request
    def after_request(response):
        logger.info("Request completed",
                    request_id=getattr(g, 'request_id', None),
                    status_code=response.status_code)
        return response

    # Global error handlers
    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Internal server error",
                     request_id=getattr(g, 'request_id', None),
                     error=str(error))
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(404)
    def not_found_error(error):
        logger.warning("Resource not found",
                       request_id=getattr(g, 'request_id', None),
                       path=request.path)
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(413)
    def request_too_large(error):
        logger.warning("Upload too large",
                       request_id=getattr(g, 'request_id', None),
                       max_bytes=app.config.get('MAX_CONTENT_LENGTH'))
        return jsonify({'error': 'File too large'}), 413

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        from sqlalchemy import text
        health_status = {
            'status': 'healthy',
            'service': 'parcel-crm'
        }

        try:
            # Quick database check
            db.session.execute(text('SELECT 1'))
            health_status['database'] = 'connected'
        except Exception as e:
            health_status['database'] = 'error'
            health_status['status'] = 'degraded'
            logger.error(f"Health check database error: {e}")

        return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503

    # Register blueprints for routes
    from routes.csv_upload_routes import csv_upload_bp
    from routes.geocoding_routes import geocoding_bp
    from routes.property_routes import property_bp

    app.register_blueprint(csv_upload_bp, url_prefix='/api/csv-upload')
    app.register_blueprint(geocoding_bp, url_prefix='/api/geocoding')
    app.register_blueprint(property_bp, url_prefix='/api')

    # Register CLI commands
    from scripts import commands
    commands.init_app(app)

    return app


# Service creation functions

def _create_geocoding_service(config):
    """Create GeocodingService instance, or None when geocoding is off"""
    from services.geocoding_service import create_geocoding_service, GeocodingConfigurationError
    if not config.get('GEOCODING_ENABLED'):
        logger.info("Geocoding disabled by configuration")
        return None
    try:
        service = create_geocoding_service(
            provider=config.get('GEOCODING_PROVIDER', 'google'),
            api_key=config.get('GOOGLE_MAPS_API_KEY')
        )
    except GeocodingConfigurationError as e:
        logger.warning(f"Geocoding unavailable: {e}")
        return None
    logger.info("Initializing GeocodingService")
    return service


def _create_coordinate_service(coordinate_repository, geocoding, config):
    """Create CoordinateService instance"""
    from services.coordinate_service import CoordinateService
    logger.info("Initializing CoordinateService")
    return CoordinateService(
        coordinate_repository=coordinate_repository,
        geocoding_service=geocoding,
        request_delay=config.get('GEOCODING_REQUEST_DELAY', 0.1)
    )


def _create_batch_geocoding_service(property_repository, coordinate_repository, coordinate):
    """Create BatchGeocodingService instance"""
    from services.batch_geocoding_service import BatchGeocodingService
    logger.info("Initializing BatchGeocodingService")
    return BatchGeocodingService(
        property_repository=property_repository,
        coordinate_repository=coordinate_repository,
        coordinate_service=coordinate
    )


def _create_owner_deduplication_service(owner_repository, contact_repository, config):
    """Create OwnerDeduplicationService instance with configured thresholds"""
    from services.owner_deduplication_service import OwnerDeduplicationService
    logger.info("Initializing OwnerDeduplicationService")
    return OwnerDeduplicationService(
        owner_repository=owner_repository,
        contact_repository=contact_repository,
        name_match_floor=config.get('NAME_MATCH_FLOOR', 0.8),
        phone_match_confidence=config.get('PHONE_MATCH_CONFIDENCE', 0.9),
        merge_confidence=config.get('MERGE_CONFIDENCE', 0.95)
    )


def _create_property_reconciliation_service(property_repository, owner_repository, config):
    """Create PropertyReconciliationService instance with configured thresholds"""
    from services.property_reconciliation_service import PropertyReconciliationService
    logger.info("Initializing PropertyReconciliationService")
    return PropertyReconciliationService(
        property_repository=property_repository,
        owner_repository=owner_repository,
        match_floor=config.get('ADDRESS_MATCH_FLOOR', 0.7),
        merge_confidence=config.get('MERGE_CONFIDENCE', 0.95)
    )


def _create_csv_upload_service(owner_deduplication, property_reconciliation, coordinate, config):
    """Create CSVUploadService instance; geocoding is skipped when it is disabled"""
    from services.csv_upload_service import CSVUploadService
    logger.info("Initializing CSVUploadService")
    geocoding_ready = coordinate is not None and coordinate.geocoding_service is not None
    return CSVUploadService(
        owner_deduplication_service=owner_deduplication,
        property_reconciliation_service=property_reconciliation,
        coordinate_service=coordinate if geocoding_ready else None,
        max_rows=config.get('CSV_UPLOAD_MAX_ROWS')
    )


def _create_contact_service(contact_repository):
    """Create ContactService instance"""
    from services.contact_service import ContactService
    logger.info("Initializing ContactService")
    return ContactService(contact_repository=contact_repository)


def _create_property_service(property_repository, property_note_repository, contact):
    """Create PropertyService instance"""
    from services.property_service import PropertyService
    logger.info("Initializing PropertyService")
    return PropertyService(
        property_repository=property_repository,
        property_note_repository=property_note_repository,
        contact_service=contact
    )


def _create_owner_service(owner_repository):
    """Create OwnerService instance"""
    from services.owner_service import OwnerService
    logger.info("Initializing OwnerService")
    return OwnerService(owner_repository=owner_repository)


# Repository creation functions
def _create_owner_repository(db_session):
    """Create OwnerRepository instance"""
    from repositories.owner_repository import OwnerRepository
    return OwnerRepository(session=db_session)


def _create_contact_repository(db_session):
    """Create ContactRepository instance"""
    from repositories.contact_repository import ContactRepository
    return ContactRepository(session=db_session)


def _create_property_repository(db_session):
    """Create PropertyRepository instance"""
    from repositories.property_repository import PropertyRepository
    return PropertyRepository(session=db_session)


def _create_coordinate_repository(db_session):
    """Create CoordinateRepository instance"""
    from repositories.coordinate_repository import CoordinateRepository
    return CoordinateRepository(session=db_session)


def _create_property_note_repository(db_session):
    """Create PropertyNoteRepository instance"""
    from repositories.property_note_repository import PropertyNoteRepository
    return PropertyNoteRepository(session=db_session)


def _get_current_db_session():
    """Get the current database session.

    Looked up on every (re)build so that a session swapped in by the test
    fixtures is the one handed to repositories.
    """
    return db.session


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
