import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.sql import func

from engage.core.database import Base

from engage.models.employee import Employee  # noqa: F401
from engage.models.template import Template  # noqa: F401

class TimelineItem(Base):
    __tablename__ = "timeline_items"

    item_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # NULL for compliments and media shares
    template_id = Column(
        UUID(as_uuid=True),
        ForeignKey("templates.template_id", ondelete="SET NULL"),
        nullable=True,
    )

    type = Column(String, nullable=False)  # birthday | anniversary | custom | compliment | general
    title = Column(String, nullable=True)
    content = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True)

    # "metadata" is reserved on declarative classes, hence the attribute name
    meta = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
