from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from caseload.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkItem(Base):
    __tablename__ = "caseload_work_item"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False, default="")
    category = Column(String, nullable=False)
    priority = Column(String, nullable=False, default="medium")
    status = Column(String, nullable=False, default="pending")
    assigned_to = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_caseload_work_item_status", "status"),
        Index("ix_caseload_work_item_assigned_to", "assigned_to"),
    )


class StaffMember(Base):
    __tablename__ = "caseload_staff_member"

    id = Column(String, primary_key=True)
    role = Column(String, nullable=False, index=True)
    display_name = Column(String, nullable=False, default="")
    joined_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Escalation(Base):
    __tablename__ = "caseload_escalation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workitem_id = Column(String, ForeignKey(f"{WorkItem.__table__.fullname}.id"), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    escalated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
