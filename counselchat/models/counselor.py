"""
Counselor relationship tables

A counselor account (provisioned elsewhere) and the ordered list of
students who have messaged that counselor at least once.
"""
from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from counselchat.core.database import Base


class Counselor(Base):
    """Counselor account, keyed for the relay by its email identity"""

    __tablename__ = "counselors"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    students = relationship(
        "CounselorStudent",
        back_populates="counselor",
        order_by="CounselorStudent.id",
        cascade="all, delete-orphan",
    )

    def __init__(self, **kwargs):
        if "email" in kwargs and kwargs["email"]:
            kwargs["email"] = normalize_email(kwargs["email"])
        if "name" in kwargs and kwargs["name"]:
            kwargs["name"] = kwargs["name"].strip()
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Counselor(id={self.id}, email='{self.email}')>"


class CounselorStudent(Base):
    """A student that has messaged a counselor; one row per pairing"""

    __tablename__ = "counselor_students"
    __table_args__ = (
        UniqueConstraint("counselor_id", "student_id", name="uq_counselor_student"),
    )

    # Autoincrement id preserves insertion order
    id = Column(Integer, primary_key=True, autoincrement=True)
    counselor_id = Column(String(36), ForeignKey("counselors.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(255), nullable=False)
    last_message_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    counselor = relationship("Counselor", back_populates="students")

    def __repr__(self) -> str:
        return f"<CounselorStudent(counselor_id={self.counselor_id}, student_id='{self.student_id}')>"


def normalize_email(email: str) -> str:
    """Counselor emails are stored trimmed and lower-cased"""
    return email.strip().lower()
