from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from main import app, get_db


def make_client() -> TestClient:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def _create_year(client: TestClient, label: str = "2025-2026") -> dict:
    response = client.post(
        "/api/rotary-years",
        json={
            "rotary_year": label,
            "club_name": "Rotary Club of Bangsar",
            "club_president_name": "Aisha Rahman",
        },
    )
    assert response.status_code == 201
    return response.json()


def test_completed_project_shows_up_on_timeline_and_dashboard() -> None:
    client = make_client()
    year = _create_year(client)
    assert year["start_date"] == "2025-07-01"
    assert year["end_date"] == "2026-06-30"

    response = client.post(
        "/api/projects",
        json={
            "project_name": "Clean Water Wells",
            "area_of_focus": "Water",
            "status": "Completed",
            "champion": "Daniel Lee",
            "start_date": "2025-07-10",
            "completion_date": "2025-08-15",
            "beneficiary_count": 120,
            "project_value_rm": 5000,
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["project"]["rotary_year_id"] == year["id"]
    assert body["linkage"]["linked_year_id"] == year["id"]
    assert body["linkage"]["warnings"] == []

    timeline = client.get("/api/rotary-years/2025-2026").json()
    assert timeline["year"]["stats"]["beneficiaries"] == 120
    assert timeline["stats_display"]["project_value"] == "RM 5,000.00"
    assert [p["project_name"] for p in timeline["projects"]] == ["Clean Water Wells"]

    impact = client.get("/api/impact", params={"rotary_year": "2025-2026"}).json()
    assert impact["lifetime"]["people_served"] == 120
    assert impact["by_area"][0]["area"] == "Water"

    status = client.get(f"/api/rotary-years/{year['id']}/stats/status").json()
    assert status["current"] is True
    app.dependency_overrides.clear()


def test_rotary_year_errors() -> None:
    client = make_client()
    _create_year(client)

    assert client.get("/api/rotary-years/2025-26").status_code == 400
    assert client.get("/api/rotary-years/2019-2020").status_code == 404
    duplicate = client.post(
        "/api/rotary-years",
        json={
            "rotary_year": "2025-2026",
            "club_name": "Rotary Club of Bangsar",
            "club_president_name": "Aisha Rahman",
        },
    )
    assert duplicate.status_code == 400
    bad_label = client.post(
        "/api/rotary-years",
        json={
            "rotary_year": "2025-2027",
            "club_name": "Rotary Club of Bangsar",
            "club_president_name": "Aisha Rahman",
        },
    )
    assert bad_label.status_code == 422
    assert client.get("/api/impact", params={"rotary_year": "bogus"}).status_code == 400
    app.dependency_overrides.clear()


def test_manual_stats_survive_recalculation() -> None:
    client = make_client()
    year = _create_year(client)

    response = client.patch(
        f"/api/rotary-years/{year['id']}",
        json={"meetings": 44, "club_president_theme": "Create Hope"},
    )
    assert response.status_code == 200
    assert response.json()["club_president_theme"] == "Create Hope"

    response = client.post(f"/api/rotary-years/{year['id']}/recalculate")
    assert response.status_code == 200
    assert response.json()["stats"]["meetings"] == 44
    assert response.json()["stats"]["projects"] == 0

    assert client.post("/api/rotary-years/999/recalculate").status_code == 404
    assert client.post("/admin/recalculate-all").json() == {"updated": 1}
    app.dependency_overrides.clear()


def test_speaker_flow_and_duplicate_check() -> None:
    client = make_client()
    year = _create_year(client)

    created = client.post(
        "/api/speakers",
        json={
            "name": "Dr. Tan Mei Ling",
            "email": "mei@example.org",
            "topic": "Polio eradication",
            "status": "scheduled",
            "scheduled_date": "2025-10-02",
        },
    ).json()
    speaker_id = created["speaker"]["id"]

    spoken = client.post(
        f"/api/speakers/{speaker_id}/status", json={"status": "spoken"}
    ).json()
    assert spoken["speaker"]["rotary_year_id"] == year["id"]

    summary = client.get("/api/rotary-years/summary").json()
    assert summary["totals"]["speakers"] == 1

    dup = client.get(
        "/api/speakers/duplicates", params={"email": "MEI@example.org"}
    ).json()
    assert dup["is_duplicate"] is True
    assert dup["existing"]["id"] == speaker_id

    deleted = client.delete(f"/api/speakers/{speaker_id}").json()
    assert deleted["linkage"]["recomputed_year_ids"] == [year["id"]]
    assert client.delete(f"/api/speakers/{speaker_id}").status_code == 404
    app.dependency_overrides.clear()


def test_fiscal_year_endpoints() -> None:
    client = make_client()

    current = client.get("/api/fiscal-years/current").json()["rotary_year"]
    options = client.get("/api/fiscal-years/options", params={"from_year": 2023})
    assert options.json()["years"][0] == current
    assert options.json()["years"][-1] == "2023-2024"
    app.dependency_overrides.clear()


def test_null_for_required_year_field_is_rejected() -> None:
    client = make_client()
    year = _create_year(client)

    for field in ("club_president_name", "highlights", "challenges"):
        response = client.patch(f"/api/rotary-years/{year['id']}", json={field: None})
        assert response.status_code == 422

    response = client.patch(
        f"/api/rotary-years/{year['id']}", json={"club_president_theme": None}
    )
    assert response.status_code == 200
    assert response.json()["club_president_name"] == "Aisha Rahman"
    app.dependency_overrides.clear()


def test_fiscal_year_options_reject_out_of_range_start() -> None:
    client = make_client()

    response = client.get(
        "/api/fiscal-years/options", params={"from_year": -100000000}
    )
    assert response.status_code == 400
    app.dependency_overrides.clear()
