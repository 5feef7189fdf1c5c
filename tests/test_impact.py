from datetime import date
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import AreaOfFocus, ProjectStatus, SpeakerStatus
from schemas import ImpactFilters, ServiceProjectIn, SpeakerIn
from services import (
    ImpactService,
    ServiceProjectService,
    SpeakerService,
    get_impact_dashboard_data,
)
from store import EntityStore, EntityStoreError


def _project(
    name: str,
    area: AreaOfFocus,
    people: int,
    value: str,
    start: date,
    status: ProjectStatus = ProjectStatus.completed,
) -> ServiceProjectIn:
    return ServiceProjectIn(
        project_name=name,
        area_of_focus=area,
        status=status,
        champion="Daniel Lee",
        start_date=start,
        completion_date=start if status == ProjectStatus.completed else None,
        beneficiary_count=people,
        project_value_rm=Decimal(value),
    )


def _seed(session: Session) -> None:
    projects = ServiceProjectService(session)
    projects.create(_project("Wells", AreaOfFocus.water, 10, "3000", date(2024, 8, 1)))
    projects.create(
        _project("Tutoring", AreaOfFocus.education, 20, "500", date(2025, 8, 1))
    )
    projects.create(
        _project("Filters", AreaOfFocus.water, 30, "1500", date(2025, 9, 1))
    )
    projects.create(
        _project(
            "Clinic",
            AreaOfFocus.disease,
            0,
            "0",
            date(2025, 10, 1),
            status=ProjectStatus.planning,
        )
    )
    speakers = SpeakerService(session)
    for name, when, status in (
        ("Ravi", date(2024, 9, 1), SpeakerStatus.spoken),
        ("Mei", date(2025, 9, 1), SpeakerStatus.spoken),
        ("Omar", date(2025, 10, 1), SpeakerStatus.scheduled),
    ):
        speakers.create(
            SpeakerIn(name=name, topic="Service", status=status, scheduled_date=when)
        )


def test_lifetime_impact_counts_every_year() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        impact = ImpactService(EntityStore(session)).lifetime_impact()

        assert impact.people_served == 60
        assert impact.project_value == 5000.0
        assert impact.projects_completed == 3
        assert impact.active_projects == 1
        assert impact.total_projects == 4
        assert impact.speakers_hosted == 2
        assert impact.degraded is False


def test_filters_narrow_the_rollups() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        service = ImpactService(EntityStore(session))

        water = service.lifetime_impact(ImpactFilters(area_of_focus="Water"))
        assert water.people_served == 40
        assert water.total_projects == 2

        year = service.lifetime_impact(ImpactFilters(rotary_year="2025-2026"))
        assert year.total_projects == 3
        assert year.projects_completed == 2
        assert year.speakers_hosted == 1

        everything = service.lifetime_impact(
            ImpactFilters(rotary_year="all", area_of_focus="all", status="")
        )
        assert everything.total_projects == 4


def test_impact_by_area_sorted_by_value() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        rows = ImpactService(EntityStore(session)).impact_by_area_of_focus()

        assert [row.area for row in rows] == [
            AreaOfFocus.water,
            AreaOfFocus.education,
            AreaOfFocus.disease,
        ]
        assert rows[0].people_served == 40
        assert rows[0].project_value == 4500.0
        assert rows[0].project_count == 2


def test_impact_over_time_groups_by_rotary_year() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        service = ImpactService(EntityStore(session))
        rows = service.impact_over_time()

        assert [row.rotary_year for row in rows] == ["2025-2026", "2024-2025"]
        assert rows[0].project_count == 3
        assert rows[0].people_served == 50
        assert rows[0].speakers_count == 1
        assert rows[1].project_value == 3000.0
        assert rows[1].speakers_count == 1
        assert service.available_years() == ["2025-2026", "2024-2025"]


class BrokenStore(EntityStore):
    def fetch_many(self, table, *predicates, order_by=None):
        raise EntityStoreError("connection lost")


def test_failed_queries_degrade_to_empty_results() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = ImpactService(BrokenStore(session))

        impact = service.lifetime_impact()
        assert impact.degraded is True
        assert impact.people_served == 0
        assert service.impact_by_area_of_focus() == []
        assert service.impact_over_time() == []
        assert service.available_years() == []


def test_dashboard_payload_echoes_filters() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _seed(session)
        data = get_impact_dashboard_data(
            session, ImpactFilters(rotary_year="2024-2025", status="Completed")
        )

        assert data["filters"] == {
            "rotary_year": "2024-2025",
            "area_of_focus": None,
            "status": "Completed",
        }
        assert data["lifetime"].people_served == 10
        assert len(data["by_area"]) == 1
        assert [row.rotary_year for row in data["over_time"]] == ["2024-2025"]
