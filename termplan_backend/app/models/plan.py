from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    academic_system = Column(String, nullable=False, default="quarter")
    graduation_years = Column(Integer, nullable=False, default=4)

    # Threshold overrides; NULL means "derive from the catalog"
    min_units = Column(Integer, nullable=True)
    target_units = Column(Integer, nullable=True)
    max_units = Column(Integer, nullable=True)
    target_difficulty = Column(Integer, nullable=True)
    max_difficulty = Column(Integer, nullable=True)
    top_up_attempts = Column(Integer, nullable=True)
    max_unit_top_up = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    courses = relationship("PlanCourse", back_populates="plan", cascade="all, delete-orphan")
    terms = relationship("PlanTerm", back_populates="plan", cascade="all, delete-orphan")


class PlanCourse(Base):
    __tablename__ = "plan_courses"

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    course_id = Column(String, nullable=False)
    name = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    units = Column(Integer, nullable=False)
    difficulty = Column(Integer, default=1)
    category = Column(String, default="required")
    prerequisites = Column(JSON, default=list)
    corequisites = Column(JSON, default=list)
    taken = Column(String, nullable=True)
    original_order = Column(Integer, nullable=False)
    unassigned_reason = Column(String, nullable=True)

    plan = relationship("Plan", back_populates="courses")


class PlanTerm(Base):
    __tablename__ = "plan_terms"

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=False, index=True)
    term_key = Column(String, nullable=False)
    locked = Column(Boolean, default=False)

    plan = relationship("Plan", back_populates="terms")
    items = relationship("PlanItem", back_populates="term", cascade="all, delete-orphan")


class PlanItem(Base):
    __tablename__ = "plan_items"

    id = Column(Integer, primary_key=True, index=True)
    term_id = Column(Integer, ForeignKey("plan_terms.id"), nullable=False)
    course_id = Column(String, nullable=False)
    pinned = Column(Boolean, default=False)
    position = Column(Integer, default=0)

    term = relationship("PlanTerm", back_populates="items")
