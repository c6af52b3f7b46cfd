from datetime import datetime
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, String, Text, Uuid
)
from sqlalchemy import orm
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base

class CareerProfile(Base):
    __tablename__ = "career_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, unique=True, index=True, nullable=False)
    role_title = Column(String, nullable=False)
    company = Column(String, nullable=True)
    department = Column(String, nullable=True)
    years_experience = Column(Integer, nullable=True)
    industry = Column(String, nullable=True)
    responsibilities = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class Skill(Base):
    __tablename__ = "skills"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    category = Column(String, nullable=True)
    # beginner / intermediate / advanced / expert
    proficiency_level = Column(String, nullable=True)
    last_used = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class Goal(Base):
    __tablename__ = "goals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    status = Column(String, default="active")  # active, completed, abandoned
    target_date = Column(Date, nullable=True)
    milestones = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class Project(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # active, ongoing, completed, on-hold, cancelled
    status = Column(String, default="active")
    priority = Column(String, nullable=True)
    category = Column(String, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    completion_percentage = Column(Integer, default=0)

    technologies = Column(JSON, default=list)
    team_members = Column(JSON, default=list)
    stakeholders = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    risks = Column(JSON, default=list)
    dependencies = Column(JSON, default=list)
    deliverables = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    current_issues = Column(JSON, default=list)
    archived = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    milestones = relationship("ProjectMilestone", back_populates="project", cascade="all, delete-orphan")
    tasks = relationship("ProjectTask", back_populates="project", cascade="all, delete-orphan")
    issues = relationship("ProjectIssue", back_populates="project", cascade="all, delete-orphan")
    updates = relationship("ProjectUpdate", back_populates="project", cascade="all, delete-orphan")

class ProjectMilestone(Base):
    __tablename__ = "project_milestones"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    due_date = Column(Date, nullable=True)
    completed = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="milestones")

class ProjectTask(Base):
    __tablename__ = "project_tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    status = Column(String, default="todo")
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="tasks")

class ProjectIssue(Base):
    __tablename__ = "project_issues"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String, default="medium")
    status = Column(String, default="open")
    category = Column(String, nullable=True)
    impact_on_timeline = Column(String, nullable=True)
    related_tasks = Column(JSON, default=list)
    reported_date = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="issues")

class ProjectUpdate(Base):
    """Append-only audit log of project changes"""
    __tablename__ = "project_updates"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, index=True, nullable=False)
    update_type = Column(String, nullable=False)  # status_change, progress, issue
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    previous_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)
    impact = Column(String, default="neutral")
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="updates")

class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    impact = Column(JSON, default=dict)
    achieved_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

class Challenge(Base):
    __tablename__ = "challenges"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    status = Column(String, default="active")  # active, resolved, ongoing
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class Coworker(Base):
    __tablename__ = "coworkers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=True)
    department = Column(String, nullable=True)
    # junior, mid, senior, lead, manager, director, vp, executive
    seniority_level = Column(String, nullable=True)
    relationship = Column(String, nullable=True)
    communication_style = Column(String, nullable=True)

    # 1-10 scales, independent of each other
    influence_score = Column(Integer, nullable=True)
    relationship_quality = Column(Integer, nullable=True)
    trust_level = Column(Integer, nullable=True)

    career_impact = Column(String, nullable=True)  # positive, negative, neutral
    interaction_frequency = Column(String, nullable=True)
    last_interaction_date = Column(DateTime, nullable=True)

    personality_traits = Column(JSON, default=dict)
    working_style = Column(JSON, default=dict)
    notes = Column(JSON, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # "relationship" is a column on this table
    interactions = orm.relationship("CoworkerInteraction", back_populates="coworker", cascade="all, delete-orphan")

class CoworkerInteraction(Base):
    __tablename__ = "coworker_interactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    coworker_id = Column(Uuid, ForeignKey("coworkers.id", ondelete="CASCADE"), nullable=False)
    interaction_date = Column(DateTime, default=datetime.utcnow)
    # meeting, conflict, collaboration, feedback, casual, email, chat, phone
    interaction_type = Column(String, nullable=False)
    sentiment = Column(String, nullable=False)  # positive, negative, neutral
    impact_on_career = Column(String, nullable=True)  # helped, hindered, neutral
    description = Column(Text, nullable=True)
    outcomes = Column(Text, nullable=True)
    notes = Column(JSON, default=dict)

    related_project_id = Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    related_goal_id = Column(Uuid, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)
    related_challenge_id = Column(Uuid, ForeignKey("challenges.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    coworker = relationship("Coworker", back_populates="interactions")

class Decision(Base):
    __tablename__ = "decisions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    decision_date = Column(Date, nullable=True)
    reasoning = Column(Text, nullable=True)
    expected_outcome = Column(Text, nullable=True)
    actual_outcome = Column(Text, nullable=True)
    # pending, successful, failed, ongoing, cancelled
    status = Column(String, default="pending")
    impact_score = Column(Integer, nullable=True)
    confidence_level = Column(Integer, nullable=True)

    related_coworker_ids = Column(JSON, default=list)
    related_goal_ids = Column(JSON, default=list)
    related_project_ids = Column(JSON, default=list)
    tags = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
