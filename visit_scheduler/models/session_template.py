from sqlalchemy import (
    Column, String, Boolean, Date, Time, DateTime, func, Integer, Enum, ForeignKey, Table,
)
from sqlalchemy.orm import relationship
from visit_scheduler.db.base_class import Base
from visit_scheduler.models.enums import DayOfWeek

# Templates reference groups; groups never point back at templates.
session_template_location_groups = Table(
    "session_template_location_groups",
    Base.metadata,
    Column("session_template_id", Integer, ForeignKey("session_templates.id"), primary_key=True),
    Column("group_id", Integer, ForeignKey("session_location_groups.id"), primary_key=True),
)

session_template_category_groups = Table(
    "session_template_category_groups",
    Base.metadata,
    Column("session_template_id", Integer, ForeignKey("session_templates.id"), primary_key=True),
    Column("group_id", Integer, ForeignKey("session_category_groups.id"), primary_key=True),
)

session_template_incentive_groups = Table(
    "session_template_incentive_groups",
    Base.metadata,
    Column("session_template_id", Integer, ForeignKey("session_templates.id"), primary_key=True),
    Column("group_id", Integer, ForeignKey("session_incentive_groups.id"), primary_key=True),
)


class SessionTemplate(Base):
    __tablename__ = "session_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    name = Column(String(100), nullable=False)
    prison_code = Column(String(6), nullable=False, index=True)
    day_of_week = Column(Enum(DayOfWeek, name="day_of_week"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    valid_from_date = Column(Date, nullable=False)
    valid_to_date = Column(Date, nullable=True)
    weekly_frequency = Column(Integer, nullable=False, default=1)
    open_capacity = Column(Integer, nullable=False, default=0)
    closed_capacity = Column(Integer, nullable=False, default=0)
    visit_room = Column(String(255), nullable=False)
    include_location_group_type = Column(Boolean, nullable=False, default=True)
    include_category_group_type = Column(Boolean, nullable=False, default=True)
    include_incentive_group_type = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    modified_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    location_groups = relationship("SessionLocationGroup", secondary=session_template_location_groups)
    category_groups = relationship("SessionCategoryGroup", secondary=session_template_category_groups)
    incentive_groups = relationship("SessionIncentiveGroup", secondary=session_template_incentive_groups)


class SessionLocationGroup(Base):
    __tablename__ = "session_location_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    prison_code = Column(String(6), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    locations = relationship("PermittedSessionLocation", cascade="all, delete-orphan")


class PermittedSessionLocation(Base):
    __tablename__ = "permitted_session_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("session_location_groups.id"), nullable=False, index=True)
    level_one_code = Column(String(10), nullable=False)
    level_two_code = Column(String(10), nullable=True)
    level_three_code = Column(String(10), nullable=True)
    level_four_code = Column(String(10), nullable=True)


class SessionCategoryGroup(Base):
    __tablename__ = "session_category_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    prison_code = Column(String(6), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    categories = relationship("SessionCategory", cascade="all, delete-orphan")


class SessionCategory(Base):
    __tablename__ = "session_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("session_category_groups.id"), nullable=False, index=True)
    code = Column(String(20), nullable=False)


class SessionIncentiveGroup(Base):
    __tablename__ = "session_incentive_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(40), unique=True, nullable=True, index=True)
    prison_code = Column(String(6), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    incentive_levels = relationship("SessionIncentiveLevel", cascade="all, delete-orphan")


class SessionIncentiveLevel(Base):
    __tablename__ = "session_incentive_levels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("session_incentive_groups.id"), nullable=False, index=True)
    code = Column(String(20), nullable=False)
