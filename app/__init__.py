"""
Loyalty Portal
Flask application factory
"""
import os
import time
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded

from .extensions import db, migrate, limiter
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()
    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize caching (Redis with graceful fallback)
    from .utils.cache import init_cache
    init_cache(app)

    # Rate limiting (disabled under testing via RATELIMIT_ENABLED)
    from .middleware import init_rate_limiter
    init_rate_limiter(app)

    # Configure CORS - allow the portal frontend
    cors_origins = [o.strip() for o in os.getenv('CORS_ORIGINS', '').split(',') if o.strip()]
    if app.config.get('SITE_URL'):
        cors_origins.append(app.config['SITE_URL'].rstrip('/'))
    if config_name != 'production':
        cors_origins += ['http://localhost:3000', 'http://localhost:5173', 'http://127.0.0.1:5173']
    CORS(app, origins=cors_origins, supports_credentials=True, allow_headers=['Content-Type', 'Authorization'])

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Background scheduler (points expiry)
    from .utils.scheduler import init_scheduler
    init_scheduler(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'loyalty-portal'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.auth import auth_bp
    from .api.dashboard import dashboard_bp
    from .api.points import points_bp
    from .api.referrals import referrals_bp
    from .api.trips import trips_bp
    from .api.profile import profile_bp
    from .api.notifications import notifications_bp
    from .api.search import search_bp
    from .api.currency import currency_bp

    # Accounts and sessions
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Client portal
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
    app.register_blueprint(points_bp, url_prefix='/api/points')
    app.register_blueprint(referrals_bp, url_prefix='/api/referrals')
    app.register_blueprint(trips_bp, url_prefix='/api/trips')
    app.register_blueprint(profile_bp, url_prefix='/api/profile')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')

    # Lookups
    app.register_blueprint(search_bp, url_prefix='/api')
    app.register_blueprint(currency_bp, url_prefix='/api/currency')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import ErrorCode, error_response, too_many_requests
    from .utils.exceptions import PortalError

    @app.errorhandler(PortalError)
    def portal_error(error):
        if error.status_code >= 500:
            db.session.rollback()
        return error_response(
            error.message,
            error.code,
            error.status_code,
            log_error=error.status_code >= 500,
            errors=getattr(error, 'errors', None) or None
        )

    @app.errorhandler(RateLimitExceeded)
    def rate_limited(error):
        current = limiter.current_limit
        retry_after = max(1, int(current.reset_at - time.time())) if current else 60
        response, status = too_many_requests(retry_after)
        response.headers['Retry-After'] = str(retry_after)
        return response, status

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': {'message': 'Method not allowed', 'code': 'METHOD_NOT_ALLOWED'}}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('An unexpected error occurred', ErrorCode.INTERNAL_ERROR, 500)
