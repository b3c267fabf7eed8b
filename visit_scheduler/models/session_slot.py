from sqlalchemy import Column, String, Date, DateTime, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from visit_scheduler.db.base_class import Base


class SessionSlot(Base):
    """One dated occurrence of a session template. Capacity is counted per slot."""

    __tablename__ = "session_slots"
    __table_args__ = (
        UniqueConstraint("session_template_id", "slot_date", name="uq_session_slot_template_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    session_template_id = Column(Integer, ForeignKey("session_templates.id"), nullable=False, index=True)
    prison_code = Column(String(6), nullable=False)
    slot_date = Column(Date, nullable=False, index=True)
    slot_start = Column(DateTime, nullable=False)
    slot_end = Column(DateTime, nullable=False)

    session_template = relationship("SessionTemplate")
