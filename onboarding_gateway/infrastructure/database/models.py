"""SQLAlchemy ORM models for the submission audit trail"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SubmissionAttempt(Base):
    """One run of the submission sequence; never stores draft values"""

    __tablename__ = "onboarding_submission_attempt"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Text, nullable=False, index=True)
    account_type = Column(Text, nullable=False)
    profile_branch = Column(Text, nullable=False)
    outcome = Column(Text, nullable=False)  # succeeded | partial | failed
    failed_step = Column(Text, nullable=True)
    account_id = Column(Text, nullable=True)
    partial = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
