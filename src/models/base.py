"""Base model with shared columns."""
import uuid
from datetime import datetime
from sqlalchemy import Uuid
from src.extensions import db


class BaseModel(db.Model):
    """
    Abstract base for domain models.

    Provides a UUID primary key and creation/update timestamps.
    """

    __abstract__ = True

    id = db.Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
