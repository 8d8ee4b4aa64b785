"""
learnlite/orm/user.py
User accounts and the closed set of platform roles
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum

from learnlite.orm.base import Base, utcnow, isoformat


class UserRole(str, Enum):
    """Platform roles. A user's role is fixed at creation."""
    admin = "admin"
    instructor = "instructor"
    student = "student"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(200), nullable=False)
    role = Column(
        SQLEnum(UserRole, name="user_role", create_constraint=True),
        nullable=False,
        default=UserRole.student,
        index=True
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    def to_dict(self):
        """Public profile. Never includes the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value if self.role else None,
            "created_at": isoformat(self.created_at),
        }

    def to_summary(self):
        return {"id": self.id, "name": self.name, "email": self.email}
