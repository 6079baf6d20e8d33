import secrets
import uuid
from sqlalchemy import Column, String, Date, Boolean, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from engage.core.database import Base

# IMPORTANT: registers companies in the metadata for the FK below
from engage.models.company import Company  # noqa: F401


def new_nfc_token() -> str:
    return secrets.token_urlsafe(16)


class Employee(Base):
    __tablename__ = "employees"

    employee_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    department = Column(String, nullable=True)

    # Printed on the NFC tag / QR code; opens the personal timeline
    nfc_token = Column(String, nullable=False, unique=True, default=new_nfc_token)

    birthday = Column(Date, nullable=True)  # year is not significant
    hire_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    birthday_notifications_enabled = Column(Boolean, nullable=False, default=True)
    anniversary_notifications_enabled = Column(Boolean, nullable=False, default=True)

    last_active = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
