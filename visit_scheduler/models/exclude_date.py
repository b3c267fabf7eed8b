from sqlalchemy import Column, String, Date, DateTime, func, Integer, ForeignKey, UniqueConstraint
from visit_scheduler.db.base_class import Base


class PrisonExcludeDate(Base):
    """A date on which no session at the prison can be booked."""

    __tablename__ = "prison_exclude_dates"
    __table_args__ = (
        UniqueConstraint("prison_code", "exclude_date", name="uq_prison_exclude_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    prison_code = Column(String(6), nullable=False, index=True)
    exclude_date = Column(Date, nullable=False)
    actioned_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SessionTemplateExcludeDate(Base):
    """A date on which one session template does not run."""

    __tablename__ = "session_template_exclude_dates"
    __table_args__ = (
        UniqueConstraint("session_template_id", "exclude_date", name="uq_session_template_exclude_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_template_id = Column(Integer, ForeignKey("session_templates.id"), nullable=False, index=True)
    exclude_date = Column(Date, nullable=False)
    actioned_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
