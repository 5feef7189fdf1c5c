from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

from rapidfuzz.distance import Levenshtein
from sqlalchemy import select
from sqlalchemy.orm import Session

from models import (
    ACTIVE_PROJECT_STATUSES,
    AreaOfFocus,
    LinkableType,
    Photo,
    ProjectStatus,
    RotaryYear,
    ServiceProject,
    Speaker,
    SpeakerStatus,
)
from periods import (
    bounds_of,
    fiscal_year_of,
    label_for_start_year,
    parse_label,
    previous,
)
from schemas import (
    AreaImpact,
    ImpactFilters,
    LifetimeImpact,
    PhotoIn,
    PhotoRow,
    RotaryYearDetailsIn,
    RotaryYearIn,
    RotaryYearRow,
    ServiceProjectIn,
    ServiceProjectRow,
    SpeakerIn,
    SpeakerRow,
    YearImpact,
)
from store import Between, EntityStore, EntityStoreError, Eq

logger = logging.getLogger(__name__)

AGGREGATED_STAT_KEYS = ("beneficiaries", "project_value_rm", "projects", "speakers")
GROWTH_STAT_KEYS = ("meetings",) + AGGREGATED_STAT_KEYS
MANUAL_STAT_KEYS = ("meetings", "volunteer_hours")

TABLE_FOR_TYPE = {
    LinkableType.service_project: "service_projects",
    LinkableType.speaker: "speakers",
    LinkableType.photo: "photos",
}

EntityState = Union[ServiceProjectRow, SpeakerRow, PhotoRow]


class YearNotProvisioned(LookupError):
    pass


def _money(total: Decimal) -> float:
    return float(total.quantize(Decimal("0.01")))


def _total_value(projects: list[ServiceProjectRow]) -> Decimal:
    return sum((p.project_value_rm or Decimal("0") for p in projects), Decimal("0"))


def linkage_date(
    entity_type: LinkableType, state: Optional[EntityState]
) -> Optional[date]:
    """Date that places an entity in a Rotary year, or None when not eligible.

    Projects count once Completed with a completion date, speakers once they
    have spoken on a scheduled date. Photos only need a photo date.
    """
    if state is None:
        return None
    if entity_type == LinkableType.service_project:
        if state.status == ProjectStatus.completed:
            return state.completion_date
        return None
    if entity_type == LinkableType.speaker:
        if state.status == SpeakerStatus.spoken:
            return state.scheduled_date
        return None
    return state.photo_date


def year_over_year_growth(
    current: dict[str, Any], previous_stats: dict[str, Any]
) -> dict[str, float]:
    def growth(now: float, before: float) -> float:
        if before == 0:
            return 100.0 if now > 0 else 0.0
        return round((now - before) / before * 100, 1)

    return {
        key: growth(float(current.get(key) or 0), float(previous_stats.get(key) or 0))
        for key in GROWTH_STAT_KEYS
    }


def format_stats(stats: dict[str, Any]) -> dict[str, str]:
    volunteer_hours = stats.get("volunteer_hours")
    return {
        "meetings": f"{stats.get('meetings') or 0} meetings",
        "speakers": f"{stats.get('speakers') or 0} speakers",
        "projects": f"{stats.get('projects') or 0} completed projects",
        "beneficiaries": f"{int(stats.get('beneficiaries') or 0):,} people served",
        "project_value": f"RM {float(stats.get('project_value_rm') or 0):,.2f}",
        "volunteer_hours": (
            f"{int(volunteer_hours):,} volunteer hours"
            if volunteer_hours
            else "Not tracked"
        ),
    }


class StatsRecomputer:
    """Rebuilds the cached ``stats`` block of a Rotary year from its linked rows.

    Always a full rescan of the year's completed projects and spoken speakers;
    keys outside the aggregate (meetings, volunteer hours) are kept as stored.
    There is no version check on the write, so concurrent recomputations of
    the same year resolve as last writer wins.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def calculate(self, year_id: int) -> dict[str, Any]:
        projects = self.store.fetch_many(
            "service_projects",
            Eq("rotary_year_id", year_id),
            Eq("status", ProjectStatus.completed),
        )
        speakers = self.store.fetch_many(
            "speakers",
            Eq("rotary_year_id", year_id),
            Eq("status", SpeakerStatus.spoken),
        )
        beneficiaries = sum(p.beneficiary_count or 0 for p in projects)
        return {
            "beneficiaries": beneficiaries,
            "project_value_rm": _money(_total_value(projects)),
            "projects": len(projects),
            "speakers": len(speakers),
        }

    def recompute_stats(self, year_id: int) -> Optional[dict[str, Any]]:
        try:
            year = self.store.fetch_one("rotary_years", year_id)
            fresh = self.calculate(year_id)
            merged = {**year.stats, **fresh}
            self.store.update("rotary_years", year_id, {"stats": merged})
        except EntityStoreError:
            logger.exception(f"stats_recompute_failed: year_id={year_id}")
            return None
        logger.info(
            f"stats_recomputed: year_id={year_id} rotary_year={year.rotary_year} "
            f"projects={fresh['projects']} speakers={fresh['speakers']} "
            f"beneficiaries={fresh['beneficiaries']}"
        )
        return merged

    def recompute_all(self) -> int:
        try:
            years = self.store.fetch_many("rotary_years")
        except EntityStoreError:
            logger.exception("stats_recompute_all_failed")
            return 0
        updated = 0
        for year in years:
            if self.recompute_stats(year.id) is not None:
                updated += 1
        logger.info(f"stats_recompute_all: years={len(years)} updated={updated}")
        return updated

    def is_current(self, year_id: int) -> bool:
        """True when the stored stats match a fresh calculation."""
        try:
            year = self.store.fetch_one("rotary_years", year_id)
            fresh = self.calculate(year_id)
        except EntityStoreError:
            logger.exception(f"stats_validate_failed: year_id={year_id}")
            return False
        return all(year.stats.get(key) == fresh[key] for key in AGGREGATED_STAT_KEYS)

    def multi_year_stats(self, year_ids: list[int]) -> dict[str, Any]:
        totals: dict[str, Any] = {key: 0 for key in AGGREGATED_STAT_KEYS}
        value = Decimal("0")
        for year_id in year_ids:
            stats = self.calculate(year_id)
            for key in ("beneficiaries", "projects", "speakers"):
                totals[key] += stats[key]
            value += Decimal(str(stats["project_value_rm"]))
        totals["project_value_rm"] = _money(value)
        return totals


@dataclass
class LinkageOutcome:
    linked_year_id: Optional[int] = None
    recomputed_year_ids: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class YearLinkageResolver:
    """Keeps ``rotary_year_id`` on projects, speakers and photos in step with
    their dates, and refreshes the statistics of every year that gained or
    lost an entity.

    Linkage is best effort: failures are logged and reported as warnings on
    the returned outcome, never raised.
    """

    def __init__(
        self, store: EntityStore, recomputer: Optional[StatsRecomputer] = None
    ) -> None:
        self.store = store
        self.recomputer = recomputer or StatsRecomputer(store)

    def find_year(self, label: str) -> RotaryYearRow:
        rows = self.store.fetch_many("rotary_years", Eq("rotary_year", label))
        if not rows:
            raise YearNotProvisioned(label)
        return rows[0]

    def resolve_linkage(
        self,
        entity_type: LinkableType,
        new_state: EntityState,
        previous_state: Optional[EntityState] = None,
    ) -> LinkageOutcome:
        entity_type = LinkableType(entity_type)
        if entity_type == LinkableType.photo:
            return self._link_photo(new_state)

        outcome = LinkageOutcome()
        table = TABLE_FOR_TYPE[entity_type]
        linked_id = new_state.rotary_year_id
        if linked_id is None and previous_state is not None:
            linked_id = previous_state.rotary_year_id

        event_date = linkage_date(entity_type, new_state)
        if event_date is None:
            if linked_id is not None:
                # left the done state: drop the link so the old year shrinks
                if self._set_link(table, new_state.id, None, outcome):
                    self.refresh_year(linked_id, outcome)
            return outcome

        label = fiscal_year_of(event_date)
        try:
            year = self.find_year(label)
        except YearNotProvisioned:
            logger.warning(
                f"linkage_skipped: type={entity_type.value} id={new_state.id} "
                f"rotary_year={label} reason=not_provisioned"
            )
            outcome.warnings.append(
                f"Rotary year {label} is not set up; "
                f"{entity_type.value} {new_state.id} was not linked"
            )
            if linked_id is not None:
                if self._set_link(table, new_state.id, None, outcome):
                    self.refresh_year(linked_id, outcome)
            return outcome
        except EntityStoreError:
            logger.exception(
                f"linkage_lookup_failed: type={entity_type.value} id={new_state.id} "
                f"rotary_year={label}"
            )
            outcome.warnings.append(f"Could not look up Rotary year {label}")
            return outcome

        if year.id == linked_id:
            outcome.linked_year_id = year.id
            self.refresh_year(year.id, outcome)
            return outcome

        if not self._set_link(table, new_state.id, year.id, outcome):
            return outcome
        outcome.linked_year_id = year.id
        logger.info(
            f"linkage_set: type={entity_type.value} id={new_state.id} "
            f"rotary_year={label} year_id={year.id} previous_year_id={linked_id}"
        )
        if linked_id is not None:
            self.refresh_year(linked_id, outcome)
        self.refresh_year(year.id, outcome)
        return outcome

    def relink_all(self) -> int:
        """Link done projects and speakers that have no Rotary year yet."""
        linked = 0
        try:
            projects = self.store.fetch_many(
                "service_projects",
                Eq("status", ProjectStatus.completed),
                Eq("rotary_year_id", None),
            )
            speakers = self.store.fetch_many(
                "speakers",
                Eq("status", SpeakerStatus.spoken),
                Eq("rotary_year_id", None),
            )
        except EntityStoreError:
            logger.exception("relink_all_failed")
            return 0
        pending: list[tuple[LinkableType, EntityState]] = [
            (LinkableType.service_project, p) for p in projects
        ] + [(LinkableType.speaker, s) for s in speakers]
        for entity_type, state in pending:
            if linkage_date(entity_type, state) is None:
                continue
            if self.resolve_linkage(entity_type, state).linked_year_id is not None:
                linked += 1
        logger.info(f"relink_all: candidates={len(pending)} linked={linked}")
        return linked

    def _link_photo(self, state: PhotoRow) -> LinkageOutcome:
        outcome = LinkageOutcome(linked_year_id=state.rotary_year_id)
        if state.rotary_year_id is not None or state.photo_date is None:
            return outcome
        label = fiscal_year_of(state.photo_date)
        try:
            year = self.find_year(label)
        except YearNotProvisioned:
            logger.warning(
                f"linkage_skipped: type=photo id={state.id} rotary_year={label} "
                "reason=not_provisioned"
            )
            outcome.warnings.append(
                f"Rotary year {label} is not set up; photo {state.id} was not linked"
            )
            return outcome
        except EntityStoreError:
            logger.exception(f"linkage_lookup_failed: type=photo id={state.id}")
            outcome.warnings.append(f"Could not look up Rotary year {label}")
            return outcome
        if self._set_link("photos", state.id, year.id, outcome):
            outcome.linked_year_id = year.id
        return outcome

    def _set_link(
        self,
        table: str,
        record_id: int,
        year_id: Optional[int],
        outcome: LinkageOutcome,
    ) -> bool:
        try:
            self.store.update(table, record_id, {"rotary_year_id": year_id})
        except EntityStoreError:
            logger.exception(
                f"linkage_write_failed: table={table} id={record_id} year_id={year_id}"
            )
            outcome.warnings.append(
                f"Could not update the Rotary year link of {table} {record_id}"
            )
            return False
        return True

    def refresh_year(self, year_id: int, outcome: LinkageOutcome) -> None:
        if self.recomputer.recompute_stats(year_id) is None:
            outcome.warnings.append(
                f"Statistics for Rotary year {year_id} could not be recalculated"
            )
        else:
            outcome.recomputed_year_ids.append(year_id)


def on_entity_saved(
    session: Session,
    entity_type: LinkableType,
    new_state: EntityState,
    previous_state: Optional[EntityState] = None,
) -> LinkageOutcome:
    """Hook run after a project, speaker or photo write has been committed."""
    resolver = YearLinkageResolver(EntityStore(session))
    try:
        return resolver.resolve_linkage(entity_type, new_state, previous_state)
    except Exception:
        logger.exception(
            f"linkage_crashed: type={entity_type} id={getattr(new_state, 'id', None)}"
        )
        return LinkageOutcome(warnings=["Rotary year linkage failed unexpectedly"])


def on_entity_deleted(
    session: Session, rotary_year_id: Optional[int]
) -> LinkageOutcome:
    """Hook run after a linked project or speaker has been deleted."""
    outcome = LinkageOutcome()
    if rotary_year_id is not None:
        YearLinkageResolver(EntityStore(session)).refresh_year(rotary_year_id, outcome)
    return outcome


class ImpactService:
    """Dashboard rollups computed straight from the project and speaker tables.

    These never read the cached per-year stats. Every query degrades to an
    empty or zero result on failure; ``LifetimeImpact.degraded`` marks that.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def _projects(self, filters: ImpactFilters) -> list[ServiceProjectRow]:
        predicates = []
        if filters.area_of_focus:
            predicates.append(Eq("area_of_focus", filters.area_of_focus))
        if filters.status:
            predicates.append(Eq("status", filters.status))
        if filters.rotary_year:
            start_year, _ = parse_label(filters.rotary_year)
            predicates.append(Eq("project_year", start_year))
        return self.store.fetch_many("service_projects", *predicates)

    def _spoken_speakers(self, rotary_year: Optional[str]) -> list[SpeakerRow]:
        predicates = [Eq("status", SpeakerStatus.spoken)]
        if rotary_year:
            period = bounds_of(rotary_year)
            predicates.append(Between("scheduled_date", period.start, period.end))
        return self.store.fetch_many("speakers", *predicates)

    def lifetime_impact(
        self, filters: Optional[ImpactFilters] = None
    ) -> LifetimeImpact:
        filters = filters or ImpactFilters()
        try:
            projects = self._projects(filters)
            speakers = self._spoken_speakers(filters.rotary_year)
        except Exception:
            logger.exception(f"impact_lifetime_failed: filters={filters.model_dump()}")
            return LifetimeImpact(degraded=True)

        return LifetimeImpact(
            people_served=sum(p.beneficiary_count or 0 for p in projects),
            project_value=_money(_total_value(projects)),
            projects_completed=sum(
                1 for p in projects if p.status == ProjectStatus.completed
            ),
            speakers_hosted=len(speakers),
            active_projects=sum(
                1 for p in projects if p.status in ACTIVE_PROJECT_STATUSES
            ),
            total_projects=len(projects),
        )

    def impact_by_area_of_focus(
        self, filters: Optional[ImpactFilters] = None
    ) -> list[AreaImpact]:
        filters = filters or ImpactFilters()
        try:
            projects = self._projects(filters)
        except Exception:
            logger.exception(f"impact_by_area_failed: filters={filters.model_dump()}")
            return []

        grouped: dict[AreaOfFocus, dict[str, Any]] = defaultdict(
            lambda: {"people_served": 0, "value": Decimal("0"), "project_count": 0}
        )
        for project in projects:
            bucket = grouped[project.area_of_focus]
            bucket["people_served"] += project.beneficiary_count or 0
            bucket["value"] += project.project_value_rm or Decimal("0")
            bucket["project_count"] += 1

        rows = [
            AreaImpact(
                area=area,
                people_served=bucket["people_served"],
                project_value=_money(bucket["value"]),
                project_count=bucket["project_count"],
            )
            for area, bucket in grouped.items()
        ]
        return sorted(rows, key=lambda row: row.project_value, reverse=True)

    def impact_over_time(
        self, filters: Optional[ImpactFilters] = None
    ) -> list[YearImpact]:
        filters = filters or ImpactFilters()
        try:
            projects = self._projects(filters)
            speakers = self._spoken_speakers(filters.rotary_year)
        except Exception:
            logger.exception(f"impact_over_time_failed: filters={filters.model_dump()}")
            return []

        grouped: dict[str, dict[str, Any]] = defaultdict(
            lambda: {
                "people_served": 0,
                "value": Decimal("0"),
                "project_count": 0,
                "speakers_count": 0,
            }
        )
        for project in projects:
            bucket = grouped[label_for_start_year(project.project_year)]
            bucket["people_served"] += project.beneficiary_count or 0
            bucket["value"] += project.project_value_rm or Decimal("0")
            bucket["project_count"] += 1
        for speaker in speakers:
            if speaker.scheduled_date is None:
                continue
            grouped[fiscal_year_of(speaker.scheduled_date)]["speakers_count"] += 1

        rows = [
            YearImpact(
                rotary_year=label,
                people_served=bucket["people_served"],
                project_value=_money(bucket["value"]),
                project_count=bucket["project_count"],
                speakers_count=bucket["speakers_count"],
            )
            for label, bucket in grouped.items()
        ]
        rows.sort(key=lambda row: parse_label(row.rotary_year)[0], reverse=True)
        return rows

    def available_years(self) -> list[str]:
        try:
            projects = self.store.fetch_many("service_projects")
        except Exception:
            logger.exception("impact_available_years_failed")
            return []
        years = sorted({p.project_year for p in projects}, reverse=True)
        return [label_for_start_year(year) for year in years]


def get_impact_dashboard_data(
    session: Session, filters: Optional[ImpactFilters] = None
) -> dict[str, object]:
    filters = filters or ImpactFilters()
    service = ImpactService(EntityStore(session))
    return {
        "filters": filters.model_dump(mode="json"),
        "lifetime": service.lifetime_impact(filters),
        "by_area": service.impact_by_area_of_focus(filters),
        "over_time": service.impact_over_time(filters),
    }


@dataclass
class SaveResult:
    entity: Any
    linkage: LinkageOutcome

    @property
    def warnings(self) -> list[str]:
        return self.linkage.warnings


class RotaryYearService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[RotaryYear]:
        stmt = select(RotaryYear).order_by(RotaryYear.rotary_year.desc())
        return self.session.scalars(stmt).all()

    def get(self, year_id: int) -> RotaryYear:
        year = self.session.get(RotaryYear, year_id)
        if not year:
            raise ValueError("Rotary year not found")
        return year

    def get_by_label(self, label: str) -> RotaryYear:
        parse_label(label)
        year = self.session.scalar(
            select(RotaryYear).where(RotaryYear.rotary_year == label)
        )
        if not year:
            raise ValueError("Rotary year not found")
        return year

    def create(self, data: RotaryYearIn) -> RotaryYear:
        existing = self.session.scalar(
            select(RotaryYear).where(RotaryYear.rotary_year == data.rotary_year)
        )
        if existing:
            raise ValueError("Rotary year already exists")
        period = bounds_of(data.rotary_year)
        payload = data.model_dump(exclude={"highlights", "challenges"})
        year = RotaryYear(
            **payload,
            start_date=period.start,
            end_date=period.end,
            highlights=[h.model_dump() for h in data.highlights],
            challenges=[c.model_dump() for c in data.challenges],
            stats={},
        )
        self.session.add(year)
        self.session.commit()
        self.session.refresh(year)
        logger.info(f"rotary_year_created: id={year.id} rotary_year={year.rotary_year}")
        return year

    def update_details(self, year_id: int, data: RotaryYearDetailsIn) -> RotaryYear:
        year = self.get(year_id)
        changes = data.model_dump(exclude_unset=True, mode="json")
        manual_stats = {
            key: changes.pop(key) for key in MANUAL_STAT_KEYS if key in changes
        }
        for key, value in changes.items():
            setattr(year, key, value)
        if manual_stats:
            year.stats = {**(year.stats or {}), **manual_stats}
        self.session.commit()
        self.session.refresh(year)
        return year

    def timeline(self, label: str) -> dict[str, object]:
        """One year with everything linked to it, for the timeline view."""
        year = self.get_by_label(label)
        projects = self.session.scalars(
            select(ServiceProject)
            .where(ServiceProject.rotary_year_id == year.id)
            .order_by(ServiceProject.completion_date, ServiceProject.id)
        ).all()
        speakers = self.session.scalars(
            select(Speaker)
            .where(Speaker.rotary_year_id == year.id)
            .order_by(Speaker.scheduled_date, Speaker.id)
        ).all()
        photos = self.session.scalars(
            select(Photo)
            .where(Photo.rotary_year_id == year.id)
            .order_by(Photo.photo_date, Photo.id)
        ).all()
        prior = self.session.scalar(
            select(RotaryYear).where(RotaryYear.rotary_year == previous(label))
        )
        stats = year.stats or {}
        growth = None
        if prior:
            growth = year_over_year_growth(stats, prior.stats or {})
        return {
            "year": year,
            "projects": projects,
            "speakers": speakers,
            "photos": photos,
            "stats_display": format_stats(stats),
            "growth": growth,
        }


class ServiceProjectService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(
        self,
        status: Optional[ProjectStatus] = None,
        area_of_focus: Optional[AreaOfFocus] = None,
        rotary_year_id: Optional[int] = None,
    ) -> list[ServiceProject]:
        stmt = select(ServiceProject).order_by(
            ServiceProject.project_year.desc(), ServiceProject.project_name
        )
        if status:
            stmt = stmt.where(ServiceProject.status == status)
        if area_of_focus:
            stmt = stmt.where(ServiceProject.area_of_focus == area_of_focus)
        if rotary_year_id is not None:
            stmt = stmt.where(ServiceProject.rotary_year_id == rotary_year_id)
        return self.session.scalars(stmt).all()

    def get(self, project_id: int) -> ServiceProject:
        project = self.session.get(ServiceProject, project_id)
        if not project:
            raise ValueError("Service project not found")
        return project

    def create(self, data: ServiceProjectIn) -> SaveResult:
        project = ServiceProject(**data.model_dump())
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        outcome = on_entity_saved(
            self.session,
            LinkableType.service_project,
            ServiceProjectRow.model_validate(project),
        )
        self.session.refresh(project)
        return SaveResult(project, outcome)

    def update(self, project_id: int, data: ServiceProjectIn) -> SaveResult:
        project = self.get(project_id)
        previous_state = ServiceProjectRow.model_validate(project)
        for key, value in data.model_dump().items():
            setattr(project, key, value)
        self.session.commit()
        self.session.refresh(project)
        outcome = on_entity_saved(
            self.session,
            LinkableType.service_project,
            ServiceProjectRow.model_validate(project),
            previous_state,
        )
        self.session.refresh(project)
        return SaveResult(project, outcome)

    def delete(self, project_id: int) -> LinkageOutcome:
        project = self.get(project_id)
        year_id = project.rotary_year_id
        self.session.delete(project)
        self.session.commit()
        return on_entity_deleted(self.session, year_id)


class SpeakerService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list(self, status: Optional[SpeakerStatus] = None) -> list[Speaker]:
        stmt = select(Speaker).order_by(Speaker.scheduled_date, Speaker.name)
        if status:
            stmt = stmt.where(Speaker.status == status)
        return self.session.scalars(stmt).all()

    def get(self, speaker_id: int) -> Speaker:
        speaker = self.session.get(Speaker, speaker_id)
        if not speaker:
            raise ValueError("Speaker not found")
        return speaker

    def find_duplicate(
        self,
        email: Optional[str] = None,
        name: Optional[str] = None,
        *,
        exclude_id: Optional[int] = None,
    ) -> Optional[Speaker]:
        """Existing speaker with the same email, else a name within one edit."""
        stmt = select(Speaker)
        if exclude_id is not None:
            stmt = stmt.where(Speaker.id != exclude_id)
        clean_email = (email or "").strip().lower()
        if clean_email:
            match = self.session.scalar(
                stmt.where(Speaker.email == clean_email).order_by(Speaker.id)
            )
            if match:
                return match
        clean_name = (name or "").strip().lower()
        if not clean_name:
            return None
        best: Optional[Speaker] = None
        best_distance: Optional[int] = None
        for speaker in self.session.scalars(stmt.order_by(Speaker.id)).all():
            dist = int(Levenshtein.distance(clean_name, speaker.name.strip().lower()))
            if dist <= 1 and (best_distance is None or dist < best_distance):
                best, best_distance = speaker, dist
        return best

    def create(self, data: SpeakerIn) -> SaveResult:
        speaker = Speaker(**data.model_dump())
        self.session.add(speaker)
        self.session.commit()
        self.session.refresh(speaker)
        outcome = on_entity_saved(
            self.session, LinkableType.speaker, SpeakerRow.model_validate(speaker)
        )
        self.session.refresh(speaker)
        return SaveResult(speaker, outcome)

    def update(self, speaker_id: int, data: SpeakerIn) -> SaveResult:
        return self._apply(speaker_id, data.model_dump())

    def update_status(self, speaker_id: int, status: SpeakerStatus) -> SaveResult:
        return self._apply(speaker_id, {"status": status})

    def _apply(self, speaker_id: int, values: dict[str, Any]) -> SaveResult:
        speaker = self.get(speaker_id)
        previous_state = SpeakerRow.model_validate(speaker)
        for key, value in values.items():
            setattr(speaker, key, value)
        self.session.commit()
        self.session.refresh(speaker)
        outcome = on_entity_saved(
            self.session,
            LinkableType.speaker,
            SpeakerRow.model_validate(speaker),
            previous_state,
        )
        self.session.refresh(speaker)
        return SaveResult(speaker, outcome)

    def delete(self, speaker_id: int) -> LinkageOutcome:
        speaker = self.get(speaker_id)
        year_id = speaker.rotary_year_id
        self.session.delete(speaker)
        self.session.commit()
        return on_entity_deleted(self.session, year_id)


class PhotoService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, data: PhotoIn) -> SaveResult:
        if data.project_id is not None and not self.session.get(
            ServiceProject, data.project_id
        ):
            raise ValueError("Service project not found")
        if data.rotary_year_id is not None and not self.session.get(
            RotaryYear, data.rotary_year_id
        ):
            raise ValueError("Rotary year not found")
        photo = Photo(**data.model_dump())
        self.session.add(photo)
        self.session.commit()
        self.session.refresh(photo)
        outcome = on_entity_saved(
            self.session, LinkableType.photo, PhotoRow.model_validate(photo)
        )
        self.session.refresh(photo)
        return SaveResult(photo, outcome)

    def list_for_year(self, rotary_year_id: int) -> list[Photo]:
        stmt = (
            select(Photo)
            .where(Photo.rotary_year_id == rotary_year_id)
            .order_by(Photo.is_featured.desc(), Photo.photo_date, Photo.id)
        )
        return self.session.scalars(stmt).all()
