from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, Enum, ForeignKey, Text, BigInteger
from sqlalchemy.orm import relationship
from visit_scheduler.db.base_class import Base
from visit_scheduler.models.enums import VisitRestriction, VisitStatus


class Visit(Base):
    """A confirmed booking, created by completing an application."""

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    prisoner_id = Column(String(20), nullable=False, index=True)
    prison_code = Column(String(6), nullable=False, index=True)
    session_slot_id = Column(Integer, ForeignKey("session_slots.id"), nullable=False, index=True)
    restriction = Column(Enum(VisitRestriction, name="visit_restriction"), nullable=False)
    visit_status = Column(Enum(VisitStatus, name="visit_status"), nullable=False, default=VisitStatus.BOOKED, index=True)
    visit_room = Column(String(255), nullable=False)
    contact_name = Column(String(100), nullable=True)
    contact_telephone = Column(String(40), nullable=True)
    contact_email = Column(String(255), nullable=True)
    support_description = Column(Text, nullable=True)
    migrated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    modified_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(Text, nullable=True)

    session_slot = relationship("SessionSlot")
    visitors = relationship("VisitVisitor", cascade="all, delete-orphan")


class VisitVisitor(Base):
    __tablename__ = "visit_visitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    visit_id = Column(Integer, ForeignKey("visits.id"), nullable=False, index=True)
    nomis_person_id = Column(BigInteger, nullable=False)
    contact = Column(Boolean, nullable=True)
