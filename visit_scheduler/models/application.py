from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, Enum, ForeignKey, Text, BigInteger
from sqlalchemy.orm import relationship
from visit_scheduler.db.base_class import Base
from visit_scheduler.models.enums import VisitRestriction


class Application(Base):
    """A tentative hold on one session slot for one prisoner."""

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    prisoner_id = Column(String(20), nullable=False, index=True)
    prison_code = Column(String(6), nullable=False)
    session_slot_id = Column(Integer, ForeignKey("session_slots.id"), nullable=False, index=True)
    restriction = Column(Enum(VisitRestriction, name="visit_restriction"), nullable=False)
    # False when the application re-uses the capacity unit its booking already holds
    reserved_slot = Column(Boolean, nullable=False, default=True)
    completed = Column(Boolean, nullable=False, default=False, index=True)
    visit_id = Column(Integer, ForeignKey("visits.id"), nullable=True, index=True)
    contact_name = Column(String(100), nullable=True)
    contact_telephone = Column(String(40), nullable=True)
    contact_email = Column(String(255), nullable=True)
    support_description = Column(Text, nullable=True)
    created_by = Column(String(60), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    modified_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), index=True)

    session_slot = relationship("SessionSlot")
    visitors = relationship("ApplicationVisitor", cascade="all, delete-orphan")


class ApplicationVisitor(Base):
    __tablename__ = "application_visitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    nomis_person_id = Column(BigInteger, nullable=False)
    contact = Column(Boolean, nullable=True)
