"""Profile model (owned by the account flow, read-only here)."""
from src.extensions import db
from src.models.base import BaseModel


class Profile(BaseModel):
    """Customer profile holding the contact email address."""

    __tablename__ = "profiles"

    email = db.Column(db.String(255), nullable=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email='{self.email}')>"
