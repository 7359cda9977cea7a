# app.py

from flask import Flask, g, request, jsonify
from flask_migrate import Migrate
from config import get_config
from extensions import db
import uuid
from werkzeug.middleware.proxy_fix import ProxyFix
from logging_config import setup_logging, get_logger

# Configure logging as early as possible
setup_logging(app_name="street-contacts", log_level="INFO")
logger = get_logger(__name__)


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
    Migrate(app, db)

    from services.registry import ServiceRegistry
    registry = ServiceRegistry()

    # Anything holding a session is rebuilt per lookup so it always sees
    # the current scoped session
    registry.register_factory('db_session', lambda: db.session, singleton=False)

    registry.register_factory(
        'contact_repository',
        _create_contact_repository,
        dependencies=['db_session'],
        singleton=False
    )
    registry.register_factory(
        'property_repository',
        _create_property_repository,
        dependencies=['db_session'],
        singleton=False
    )
    registry.register_factory(
        'contact_import_repository',
        _create_contact_import_repository,
        dependencies=['db_session'],
        singleton=False
    )

    registry.register_factory(
        'spreadsheet_reader',
        lambda: _create_spreadsheet_reader(app.config)
    )
    registry.register_factory(
        'contact_import',
        lambda contact_repository, property_repository, contact_import_repository, spreadsheet_reader:
            _create_contact_import_service(
                app.config,
                contact_repository=contact_repository,
                property_repository=property_repository,
                contact_import_repository=contact_import_repository,
                spreadsheet_reader=spreadsheet_reader,
            ),
        dependencies=['contact_repository', 'property_repository',
                      'contact_import_repository', 'spreadsheet_reader'],
        singleton=False
    )

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

    @app.errorhandler(413)
    def too_large_error(error):
        logger.warning("Upload too large",
                       request_id=getattr(g, 'request_id', None))
        return jsonify({'success': False, 'error': 'File is too large', 'code': 'UNSUPPORTED_FILE'}), 413

    @app.errorhandler(500)
    def internal_error(error):
        logger.error("Internal server error",
                     request_id=getattr(g, 'request_id', None),
                     error=str(error))
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    @app.errorhandler(404)
    def not_found_error(error):
        logger.warning("Page not found",
                       request_id=getattr(g, 'request_id', None),
                       path=request.path)
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.route('/health')
    def health_check():
        """Health check endpoint for monitoring"""
        from sqlalchemy import text
        from sqlalchemy.exc import SQLAlchemyError
        health_status = {
            'status': 'healthy',
            'service': 'street-contacts'
        }

        try:
            # Quick database check
            db.session.execute(text('SELECT 1'))
            health_status['database'] = 'connected'
        except SQLAlchemyError as e:
            health_status['database'] = 'error'
            health_status['status'] = 'degraded'
            logger.error(f"Health check database error: {e}")

        return jsonify(health_status), 200 if health_status['status'] == 'healthy' else 503

    from routes.contact_import_routes import contact_import_bp
    app.register_blueprint(contact_import_bp, url_prefix='/contacts')

    return app


# Service Factory Functions
# These are only called when the service is first requested

def _create_contact_repository(db_session):
    """Create ContactRepository instance"""
    from repositories.contact_repository import ContactRepository
    return ContactRepository(session=db_session)


def _create_property_repository(db_session):
    """Create PropertyRepository instance"""
    from repositories.property_repository import PropertyRepository
    return PropertyRepository(session=db_session)


def _create_contact_import_repository(db_session):
    """Create ContactImportRepository instance"""
    from repositories.contact_import_repository import ContactImportRepository
    return ContactImportRepository(session=db_session)


def _create_spreadsheet_reader(config):
    from services.spreadsheet_reader_service import SpreadsheetReaderService
    return SpreadsheetReaderService(
        allowed_extensions=config.get('CONTACT_IMPORT_ALLOWED_EXTENSIONS', ('csv', 'xlsx'))
    )


def _create_contact_import_service(config, contact_repository, property_repository,
                                   contact_import_repository, spreadsheet_reader):
    """Create ContactImportService with import settings from config"""
    from services.contact_import_service import ContactImportService
    return ContactImportService(
        contact_repository=contact_repository,
        property_repository=property_repository,
        contact_import_repository=contact_import_repository,
        spreadsheet_reader=spreadsheet_reader,
        strict_parsing=config.get('CONTACT_IMPORT_STRICT_PARSING', False),
        default_status=config.get('CONTACT_IMPORT_DEFAULT_STATUS', 'Inprogress'),
        preview_limit=config.get('CONTACT_IMPORT_PREVIEW_LIMIT', 5),
    )


if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
