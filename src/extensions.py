"""Flask extensions and database setup."""
from flask_sqlalchemy import SQLAlchemy
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# SQLAlchemy instance
db = SQLAlchemy()

# Rate limiter - storage comes from RATELIMIT_STORAGE_URI (Redis outside tests)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    strategy="fixed-window",
)
