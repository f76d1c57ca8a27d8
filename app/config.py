"""
Configuration management for the loyalty portal.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    ENV_NAME = 'development'
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Public site URL used for referral links
    SITE_URL = os.getenv('SITE_URL', '')

    # Base currency when loyalty settings have not been configured
    DEFAULT_CURRENCY = os.getenv('DEFAULT_CURRENCY', 'GBP')

    # Exchange rates (exchangerate-api.com v6)
    EXCHANGE_RATE_API_KEY = os.getenv('EXCHANGE_RATE_API_KEY', '')
    EXCHANGE_RATE_API_BASE = os.getenv('EXCHANGE_RATE_API_BASE', 'https://v6.exchangerate-api.com/v6')
    FX_MARKUP = float(os.getenv('FX_MARKUP', '0.025'))  # 2.5% spread on converted amounts
    FX_CACHE_SECONDS = int(os.getenv('FX_CACHE_SECONDS', str(40 * 60)))

    # Rate limiting (Flask-Limiter)
    RATELIMIT_STORAGE_URI = os.getenv('REDIS_URL', 'memory://')
    RATELIMIT_SWALLOW_ERRORS = True  # Storage failures let the request through
    RATELIMIT_HEADERS_ENABLED = True
    RATE_LIMITS = {
        'signup': '5 per hour',
        'login': '10 per 15 minutes',
        'referral_invite': '10 per hour',
        'api': '100 per minute',
    }

    # Points expiry warning window
    POINTS_EXPIRY_WARNING_DAYS = int(os.getenv('POINTS_EXPIRY_WARNING_DAYS', '30'))


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    ENV_NAME = 'development'
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///portal_dev.db'  # SQLite fallback for local dev
    )
    SITE_URL = os.getenv('SITE_URL', 'http://localhost:5000')


class ProductionConfig(BaseConfig):
    """Production configuration."""
    ENV_NAME = 'production'
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', _secret_key)


class TestingConfig(BaseConfig):
    """Testing configuration."""
    ENV_NAME = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SITE_URL = 'http://portal.test'
    EXCHANGE_RATE_API_KEY = 'test-key'
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
