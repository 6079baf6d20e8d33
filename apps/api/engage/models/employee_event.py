import uuid
from sqlalchemy import Column, String, Text, Date, Boolean, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from engage.core.database import Base

from engage.models.employee import Employee  # noqa: F401
from engage.models.template import Template  # noqa: F401

class EmployeeEvent(Base):
    __tablename__ = "employee_events"

    event_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("companies.company_id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    name = Column(String, nullable=False)  # "5 years of service", "Promoted to manager"
    description = Column(Text, nullable=True)

    event_date = Column(Date, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=True)
    reminder_days_before = Column(Integer, nullable=False, default=0)

    template_id = Column(
        UUID(as_uuid=True),
        ForeignKey("templates.template_id", ondelete="SET NULL"),
        nullable=True,
    )

    # soft delete: rows are never removed
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
