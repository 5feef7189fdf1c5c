from datetime import date
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from models import AreaOfFocus, ProjectStatus, SpeakerStatus
from schemas import RotaryYearDetailsIn, RotaryYearIn, ServiceProjectIn, SpeakerIn
from services import (
    RotaryYearService,
    ServiceProjectService,
    SpeakerService,
    StatsRecomputer,
    format_stats,
    year_over_year_growth,
)
from store import EntityStore


def make_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def _year(session, label: str = "2025-2026"):
    return RotaryYearService(session).create(
        RotaryYearIn(
            rotary_year=label,
            club_name="Rotary Club of Bangsar",
            club_president_name="Aisha Rahman",
        )
    )


def _completed(name: str, when: date, people: int, value: str) -> ServiceProjectIn:
    return ServiceProjectIn(
        project_name=name,
        area_of_focus=AreaOfFocus.education,
        status=ProjectStatus.completed,
        champion="Daniel Lee",
        start_date=when,
        completion_date=when,
        beneficiary_count=people,
        project_value_rm=Decimal(value),
    )


def test_recompute_is_idempotent() -> None:
    session = make_session()
    year = _year(session)
    projects = ServiceProjectService(session)
    projects.create(_completed("Book drive", date(2025, 9, 1), 200, "1250.50"))
    projects.create(_completed("Tuition", date(2026, 2, 1), 35, "800.25"))
    SpeakerService(session).create(
        SpeakerIn(
            name="Farid Osman",
            topic="Literacy",
            status=SpeakerStatus.spoken,
            scheduled_date=date(2025, 11, 5),
        )
    )

    recomputer = StatsRecomputer(EntityStore(session))
    first = recomputer.recompute_stats(year.id)
    second = recomputer.recompute_stats(year.id)

    assert first == second
    assert first["projects"] == 2
    assert first["beneficiaries"] == 235
    assert first["project_value_rm"] == 2050.75
    assert first["speakers"] == 1
    assert recomputer.is_current(year.id)


def test_empty_year_recomputes_to_zero_and_keeps_manual_fields() -> None:
    session = make_session()
    year = _year(session)
    RotaryYearService(session).update_details(
        year.id, RotaryYearDetailsIn(meetings=42, volunteer_hours=310)
    )

    stats = StatsRecomputer(EntityStore(session)).recompute_stats(year.id)

    assert stats == {
        "meetings": 42,
        "volunteer_hours": 310,
        "beneficiaries": 0,
        "project_value_rm": 0.0,
        "projects": 0,
        "speakers": 0,
    }


def test_only_completed_and_linked_projects_count() -> None:
    session = make_session()
    year = _year(session)
    _year(session, "2024-2025")
    projects = ServiceProjectService(session)
    projects.create(_completed("This year", date(2025, 8, 1), 10, "100"))
    projects.create(_completed("Last year", date(2025, 3, 1), 99, "999"))
    planning = _completed("Planned", date(2025, 8, 1), 500, "5000")
    projects.create(planning.model_copy(update={"status": ProjectStatus.planning}))

    stats = StatsRecomputer(EntityStore(session)).calculate(year.id)

    assert stats["projects"] == 1
    assert stats["beneficiaries"] == 10


def test_is_current_detects_stale_stats() -> None:
    session = make_session()
    year = _year(session)
    ServiceProjectService(session).create(
        _completed("Book drive", date(2025, 9, 1), 200, "100")
    )
    store = EntityStore(session)
    recomputer = StatsRecomputer(store)
    assert recomputer.is_current(year.id)

    store.update("rotary_years", year.id, {"stats": {"projects": 7}})
    assert not recomputer.is_current(year.id)

    assert recomputer.recompute_all() == 1
    assert recomputer.is_current(year.id)


def test_multi_year_totals() -> None:
    session = make_session()
    later = _year(session)
    earlier = _year(session, "2024-2025")
    projects = ServiceProjectService(session)
    projects.create(_completed("A", date(2025, 8, 1), 10, "100.10"))
    projects.create(_completed("B", date(2025, 3, 1), 20, "200.20"))

    totals = StatsRecomputer(EntityStore(session)).multi_year_stats(
        [later.id, earlier.id]
    )

    assert totals == {
        "beneficiaries": 30,
        "project_value_rm": 300.3,
        "projects": 2,
        "speakers": 0,
    }


def test_format_stats() -> None:
    display = format_stats(
        {
            "meetings": 40,
            "speakers": 12,
            "projects": 3,
            "beneficiaries": 1500,
            "project_value_rm": 5000,
        }
    )
    assert display["meetings"] == "40 meetings"
    assert display["beneficiaries"] == "1,500 people served"
    assert display["project_value"] == "RM 5,000.00"
    assert display["volunteer_hours"] == "Not tracked"
    assert format_stats({})["projects"] == "0 completed projects"


def test_year_over_year_growth() -> None:
    growth = year_over_year_growth(
        {"projects": 3, "speakers": 4, "beneficiaries": 0, "meetings": 40},
        {"projects": 2, "speakers": 0, "beneficiaries": 0, "meetings": 50},
    )
    assert growth["projects"] == 50.0
    assert growth["speakers"] == 100.0
    assert growth["beneficiaries"] == 0.0
    assert growth["meetings"] == -20.0


def test_timeline_includes_growth_against_previous_year() -> None:
    session = make_session()
    _year(session, "2024-2025")
    _year(session)
    projects = ServiceProjectService(session)
    projects.create(_completed("Old", date(2025, 3, 1), 10, "100"))
    projects.create(_completed("New 1", date(2025, 8, 1), 10, "100"))
    projects.create(_completed("New 2", date(2025, 9, 1), 10, "100"))

    timeline = RotaryYearService(session).timeline("2025-2026")

    assert [p.project_name for p in timeline["projects"]] == ["New 1", "New 2"]
    assert timeline["growth"]["projects"] == 100.0
    assert timeline["stats_display"]["projects"] == "2 completed projects"
    assert RotaryYearService(session).timeline("2024-2025")["growth"] is None
