import uuid
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from engage.core.database import Base

from engage.models.employee import Employee  # noqa: F401
from engage.models.template import Template  # noqa: F401
from engage.models.timeline_item import TimelineItem  # noqa: F401

class AutomationMarker(Base):
    """One row per timeline item the automation engine has produced.

    The unique key is the idempotency key of a run: an employee gets at most
    one item per template, trigger and calendar day.
    """

    __tablename__ = "automation_markers"
    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "template_id",
            "trigger_type",
            "occurrence_date",
            name="uq_automation_marker_occurrence",
        ),
    )

    marker_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    template_id = Column(
        UUID(as_uuid=True),
        ForeignKey("templates.template_id", ondelete="CASCADE"),
        nullable=False,
    )

    # "birthday", "anniversary" or "custom:<event_id>"
    trigger_type = Column(String, nullable=False)
    occurrence_date = Column(Date, nullable=False)

    timeline_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("timeline_items.item_id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
