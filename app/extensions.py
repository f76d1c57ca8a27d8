"""
Flask extensions initialization.
"""
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter

from .utils.request_ip import get_client_ip

# Database
db = SQLAlchemy()

# Migrations
migrate = Migrate()

# Rate limiting (storage configured from app config in create_app)
limiter = Limiter(key_func=get_client_ip)
