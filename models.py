from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


def _values_enum(enum_cls: type[Enum], name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )


class ProjectStatus(str, Enum):
    idea = "Idea"
    planning = "Planning"
    approved = "Approved"
    execution = "Execution"
    completed = "Completed"
    dropped = "Dropped"


ACTIVE_PROJECT_STATUSES = (
    ProjectStatus.planning,
    ProjectStatus.approved,
    ProjectStatus.execution,
)


class ProjectType(str, Enum):
    global_grant = "Global Grant"
    club = "Club"
    joint = "Joint"


class AreaOfFocus(str, Enum):
    peace = "Peace"
    disease = "Disease"
    water = "Water"
    maternal_child = "Maternal/Child"
    education = "Education"
    economy = "Economy"
    environment = "Environment"


class SpeakerStatus(str, Enum):
    ideas = "ideas"
    approached = "approached"
    agreed = "agreed"
    scheduled = "scheduled"
    spoken = "spoken"
    dropped = "dropped"


class PhotoCategory(str, Enum):
    event = "event"
    fellowship = "fellowship"
    service = "service"
    community = "community"
    members = "members"
    general = "general"


class LinkableType(str, Enum):
    service_project = "service_project"
    speaker = "speaker"
    photo = "photo"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class RotaryYear(Base, TimestampMixin):
    __tablename__ = "rotary_years"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    rotary_year: Mapped[str] = mapped_column(String(9), nullable=False, unique=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    club_name: Mapped[str] = mapped_column(String(120), nullable=False)
    club_number: Mapped[Optional[int]] = mapped_column(Integer)
    district_number: Mapped[Optional[int]] = mapped_column(Integer)
    charter_date: Mapped[Optional[date]] = mapped_column(Date)

    club_president_name: Mapped[str] = mapped_column(String(120), nullable=False)
    club_president_theme: Mapped[Optional[str]] = mapped_column(String(200))
    ri_president_name: Mapped[Optional[str]] = mapped_column(String(120))
    ri_president_theme: Mapped[Optional[str]] = mapped_column(String(200))
    dg_name: Mapped[Optional[str]] = mapped_column(String(120))
    dg_theme: Mapped[Optional[str]] = mapped_column(String(200))

    summary: Mapped[Optional[str]] = mapped_column(Text)
    narrative: Mapped[Optional[str]] = mapped_column(Text)
    highlights: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    challenges: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    member_count_year_end: Mapped[Optional[int]] = mapped_column(Integer)
    stats: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    service_projects: Mapped[list["ServiceProject"]] = relationship(
        "ServiceProject", back_populates="rotary_year_record"
    )
    speakers: Mapped[list["Speaker"]] = relationship(
        "Speaker", back_populates="rotary_year_record"
    )
    photos: Mapped[list["Photo"]] = relationship(
        "Photo", back_populates="rotary_year_record"
    )

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_rotary_year_date_order"),
    )


class ServiceProject(Base, TimestampMixin):
    __tablename__ = "service_projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    area_of_focus: Mapped[AreaOfFocus] = mapped_column(
        _values_enum(AreaOfFocus, "areaoffocus"), nullable=False
    )
    status: Mapped[ProjectStatus] = mapped_column(
        _values_enum(ProjectStatus, "projectstatus"),
        nullable=False,
        default=ProjectStatus.idea,
    )
    type: Mapped[ProjectType] = mapped_column(
        _values_enum(ProjectType, "projecttype"),
        nullable=False,
        default=ProjectType.club,
    )
    champion: Mapped[str] = mapped_column(String(120), nullable=False)
    project_value_rm: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    beneficiary_count: Mapped[Optional[int]] = mapped_column(Integer)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    project_year: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    completion_date: Mapped[Optional[date]] = mapped_column(Date)
    volunteer_hours: Mapped[Optional[int]] = mapped_column(Integer)
    lessons_learned: Mapped[Optional[str]] = mapped_column(Text)
    rotary_year_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("rotary_years.id")
    )

    rotary_year_record: Mapped[Optional["RotaryYear"]] = relationship(
        "RotaryYear", back_populates="service_projects"
    )
    photos: Mapped[list["Photo"]] = relationship("Photo", back_populates="project")

    __table_args__ = (
        Index("ix_service_projects_year_status", "rotary_year_id", "status"),
        Index("ix_service_projects_project_year", "project_year"),
        CheckConstraint(
            "beneficiary_count IS NULL OR beneficiary_count >= 0",
            name="ck_service_projects_beneficiaries_positive",
        ),
        CheckConstraint(
            "project_value_rm IS NULL OR project_value_rm >= 0",
            name="ck_service_projects_value_positive",
        ),
    )


class Speaker(Base, TimestampMixin):
    __tablename__ = "speakers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200))
    organization: Mapped[Optional[str]] = mapped_column(String(200))
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[SpeakerStatus] = mapped_column(
        _values_enum(SpeakerStatus, "speakerstatus"),
        nullable=False,
        default=SpeakerStatus.ideas,
    )
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    rotary_year_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("rotary_years.id")
    )

    rotary_year_record: Mapped[Optional["RotaryYear"]] = relationship(
        "RotaryYear", back_populates="speakers"
    )

    __table_args__ = (
        Index("ix_speakers_year_status", "rotary_year_id", "status"),
        Index("ix_speakers_status_date", "status", "scheduled_date"),
    )


class Photo(Base, TimestampMixin):
    __tablename__ = "photos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200))
    caption: Mapped[Optional[str]] = mapped_column(Text)
    photo_date: Mapped[Optional[date]] = mapped_column(Date)
    category: Mapped[PhotoCategory] = mapped_column(
        _values_enum(PhotoCategory, "photocategory"),
        nullable=False,
        default=PhotoCategory.general,
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    project_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("service_projects.id", ondelete="SET NULL")
    )
    rotary_year_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("rotary_years.id")
    )

    project: Mapped[Optional["ServiceProject"]] = relationship(
        "ServiceProject", back_populates="photos"
    )
    rotary_year_record: Mapped[Optional["RotaryYear"]] = relationship(
        "RotaryYear", back_populates="photos"
    )

    __table_args__ = (Index("ix_photos_year_date", "rotary_year_id", "photo_date"),)
