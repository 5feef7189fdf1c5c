from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import (
    AreaOfFocus,
    PhotoCategory,
    ProjectStatus,
    ProjectType,
    SpeakerStatus,
)
from periods import parse_label, resolve_rotary_year


class Highlight(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class Challenge(BaseModel):
    issue: str = Field(..., min_length=1, max_length=200)
    resolution: str = ""


class RotaryYearIn(BaseModel):
    rotary_year: str
    club_name: str = Field(..., min_length=1, max_length=120)
    club_number: Optional[int] = Field(default=None, gt=0)
    district_number: Optional[int] = Field(default=None, gt=0)
    charter_date: Optional[date] = None
    club_president_name: str = Field(..., min_length=1, max_length=120)
    club_president_theme: Optional[str] = Field(default=None, max_length=200)
    ri_president_name: Optional[str] = Field(default=None, max_length=120)
    ri_president_theme: Optional[str] = Field(default=None, max_length=200)
    dg_name: Optional[str] = Field(default=None, max_length=120)
    dg_theme: Optional[str] = Field(default=None, max_length=200)
    summary: Optional[str] = None
    narrative: Optional[str] = None
    highlights: list[Highlight] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)
    member_count_year_end: Optional[int] = Field(default=None, ge=0)

    @field_validator("rotary_year")
    @classmethod
    def _valid_label(cls, value: str) -> str:
        value = value.strip()
        parse_label(value)
        return value


class RotaryYearDetailsIn(BaseModel):
    """Partial update of the administrative parts of a Rotary year."""

    model_config = ConfigDict(extra="forbid")

    club_president_name: Optional[str] = Field(default=None, min_length=1)
    club_president_theme: Optional[str] = Field(default=None, max_length=200)
    ri_president_name: Optional[str] = Field(default=None, max_length=120)
    ri_president_theme: Optional[str] = Field(default=None, max_length=200)
    dg_name: Optional[str] = Field(default=None, max_length=120)
    dg_theme: Optional[str] = Field(default=None, max_length=200)
    summary: Optional[str] = None
    narrative: Optional[str] = None
    highlights: Optional[list[Highlight]] = None
    challenges: Optional[list[Challenge]] = None
    member_count_year_end: Optional[int] = Field(default=None, ge=0)
    meetings: Optional[int] = Field(default=None, ge=0)
    volunteer_hours: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _required_columns_not_null(self) -> "RotaryYearDetailsIn":
        for name in ("club_president_name", "highlights", "challenges"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ServiceProjectIn(BaseModel):
    project_name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    area_of_focus: AreaOfFocus
    status: ProjectStatus = ProjectStatus.idea
    type: ProjectType = ProjectType.club
    champion: str = Field(..., min_length=1, max_length=120)
    project_value_rm: Optional[Decimal] = Field(
        default=None, ge=0, max_digits=12, decimal_places=2
    )
    beneficiary_count: Optional[int] = Field(default=None, ge=0)
    start_date: date
    end_date: Optional[date] = None
    project_year: Optional[int] = Field(default=None, ge=1900, le=3000)
    location: Optional[str] = Field(default=None, max_length=200)
    completion_date: Optional[date] = None
    volunteer_hours: Optional[int] = Field(default=None, ge=0)
    lessons_learned: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "ServiceProjectIn":
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        if self.project_year is None:
            self.project_year = self.start_date.year
        return self


class SpeakerIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: Optional[str] = Field(default=None, max_length=200)
    organization: Optional[str] = Field(default=None, max_length=200)
    topic: str = Field(..., min_length=1, max_length=200)
    status: SpeakerStatus = SpeakerStatus.ideas
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip().lower()


class SpeakerStatusIn(BaseModel):
    status: SpeakerStatus


class PhotoIn(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    title: Optional[str] = Field(default=None, max_length=200)
    caption: Optional[str] = None
    photo_date: Optional[date] = None
    category: PhotoCategory = PhotoCategory.general
    is_featured: bool = False
    project_id: Optional[int] = None
    rotary_year_id: Optional[int] = None


class RotaryYearRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rotary_year: str
    start_date: date
    end_date: date
    club_name: str
    club_president_name: str
    member_count_year_end: Optional[int] = None
    stats: dict[str, Any] = Field(default_factory=dict)

    @field_validator("rotary_year")
    @classmethod
    def _valid_label(cls, value: str) -> str:
        parse_label(value)
        return value

    @field_validator("stats", mode="before")
    @classmethod
    def _stats_default(cls, value: Any) -> Any:
        return value or {}


class ServiceProjectRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_name: str
    area_of_focus: AreaOfFocus
    status: ProjectStatus
    project_value_rm: Optional[Decimal] = Field(default=None, ge=0)
    beneficiary_count: Optional[int] = Field(default=None, ge=0)
    project_year: int
    completion_date: Optional[date] = None
    rotary_year_id: Optional[int] = None


class SpeakerRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    status: SpeakerStatus
    scheduled_date: Optional[date] = None
    rotary_year_id: Optional[int] = None


class PhotoRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: Optional[str] = None
    photo_date: Optional[date] = None
    project_id: Optional[int] = None
    rotary_year_id: Optional[int] = None


class ImpactFilters(BaseModel):
    rotary_year: Optional[str] = None
    area_of_focus: Optional[AreaOfFocus] = None
    status: Optional[ProjectStatus] = None

    @field_validator("area_of_focus", "status", mode="before")
    @classmethod
    def _all_means_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() in ("", "all"):
            return None
        return value

    @field_validator("rotary_year", mode="before")
    @classmethod
    def _resolve_year(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return resolve_rotary_year(value)
        return value


class LifetimeImpact(BaseModel):
    people_served: int = 0
    project_value: float = 0.0
    projects_completed: int = 0
    speakers_hosted: int = 0
    active_projects: int = 0
    total_projects: int = 0
    degraded: bool = False


class AreaImpact(BaseModel):
    area: AreaOfFocus
    people_served: int = 0
    project_value: float = 0.0
    project_count: int = 0


class YearImpact(BaseModel):
    rotary_year: str
    people_served: int = 0
    project_value: float = 0.0
    project_count: int = 0
    speakers_count: int = 0


class RotaryYearOut(RotaryYearRow):
    club_number: Optional[int] = None
    district_number: Optional[int] = None
    charter_date: Optional[date] = None
    club_president_theme: Optional[str] = None
    ri_president_name: Optional[str] = None
    ri_president_theme: Optional[str] = None
    dg_name: Optional[str] = None
    dg_theme: Optional[str] = None
    summary: Optional[str] = None
    narrative: Optional[str] = None
    highlights: list[Highlight] = Field(default_factory=list)
    challenges: list[Challenge] = Field(default_factory=list)


class ServiceProjectOut(ServiceProjectRow):
    description: Optional[str] = None
    type: ProjectType
    champion: str
    start_date: date
    end_date: Optional[date] = None
    location: Optional[str] = None
    volunteer_hours: Optional[int] = None
    lessons_learned: Optional[str] = None


class SpeakerOut(SpeakerRow):
    organization: Optional[str] = None
    topic: str
    notes: Optional[str] = None


class PhotoOut(PhotoRow):
    caption: Optional[str] = None
    category: PhotoCategory
    is_featured: bool = False
