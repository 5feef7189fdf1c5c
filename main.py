import logging
from dataclasses import asdict
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from database import SessionLocal
from models import AreaOfFocus, ProjectStatus, SpeakerStatus
from periods import InvalidFiscalYear, current_fiscal_year, list_years
from scheduler import SchedulerManager
from schemas import (
    ImpactFilters,
    PhotoIn,
    PhotoOut,
    RotaryYearDetailsIn,
    RotaryYearIn,
    RotaryYearOut,
    ServiceProjectIn,
    ServiceProjectOut,
    SpeakerIn,
    SpeakerOut,
    SpeakerStatusIn,
)
from services import (
    ImpactService,
    PhotoService,
    RotaryYearService,
    SaveResult,
    ServiceProjectService,
    SpeakerService,
    StatsRecomputer,
    YearLinkageResolver,
    get_impact_dashboard_data,
)
from store import EntityStore

logger = logging.getLogger(__name__)


def _load_app_version() -> str:
    try:
        import tomllib
    except Exception:
        return "unknown"
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
        return str(data.get("project", {}).get("version", "unknown"))
    except Exception:
        return "unknown"


APP_VERSION = _load_app_version()

app = FastAPI(title="Club Timeline", version=APP_VERSION)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def filters_from_request(request: Request) -> ImpactFilters:
    try:
        return ImpactFilters(
            rotary_year=request.query_params.get("rotary_year"),
            area_of_focus=request.query_params.get("area_of_focus"),
            status=request.query_params.get("status"),
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc


def not_found(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


def save_payload(result: SaveResult, schema, key: str) -> dict[str, object]:
    return {
        key: schema.model_validate(result.entity).model_dump(mode="json"),
        "linkage": asdict(result.linkage),
    }


@app.get("/api/fiscal-years/current")
def api_current_fiscal_year():
    return {"rotary_year": current_fiscal_year()}


@app.get("/api/fiscal-years/options")
def api_fiscal_year_options(from_year: Optional[int] = None):
    try:
        years = list_years(from_year)
    except InvalidFiscalYear as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"years": years}


@app.get("/api/rotary-years")
def api_list_rotary_years(db: Session = Depends(get_db)):
    years = RotaryYearService(db).list_all()
    return [RotaryYearOut.model_validate(y).model_dump(mode="json") for y in years]


@app.post("/api/rotary-years", status_code=201)
def api_create_rotary_year(payload: RotaryYearIn, db: Session = Depends(get_db)):
    try:
        year = RotaryYearService(db).create(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RotaryYearOut.model_validate(year).model_dump(mode="json")


@app.get("/api/rotary-years/summary")
def api_rotary_years_summary(db: Session = Depends(get_db)):
    years = RotaryYearService(db).list_all()
    totals = StatsRecomputer(EntityStore(db)).multi_year_stats([y.id for y in years])
    return {"years": [y.rotary_year for y in years], "totals": totals}


@app.get("/api/rotary-years/{label}")
def api_rotary_year_timeline(label: str, db: Session = Depends(get_db)):
    try:
        timeline = RotaryYearService(db).timeline(label)
    except InvalidFiscalYear as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ValueError as exc:
        raise not_found(exc) from exc
    return {
        "year": RotaryYearOut.model_validate(timeline["year"]).model_dump(mode="json"),
        "projects": [
            ServiceProjectOut.model_validate(p).model_dump(mode="json")
            for p in timeline["projects"]
        ],
        "speakers": [
            SpeakerOut.model_validate(s).model_dump(mode="json")
            for s in timeline["speakers"]
        ],
        "photos": [
            PhotoOut.model_validate(p).model_dump(mode="json")
            for p in timeline["photos"]
        ],
        "stats_display": timeline["stats_display"],
        "growth": timeline["growth"],
    }


@app.patch("/api/rotary-years/{year_id}")
def api_update_rotary_year(
    year_id: int, payload: RotaryYearDetailsIn, db: Session = Depends(get_db)
):
    try:
        year = RotaryYearService(db).update_details(year_id, payload)
    except ValueError as exc:
        raise not_found(exc) from exc
    return RotaryYearOut.model_validate(year).model_dump(mode="json")


@app.post("/api/rotary-years/{year_id}/recalculate")
def api_recalculate_rotary_year(year_id: int, db: Session = Depends(get_db)):
    try:
        RotaryYearService(db).get(year_id)
    except ValueError as exc:
        raise not_found(exc) from exc
    stats = StatsRecomputer(EntityStore(db)).recompute_stats(year_id)
    if stats is None:
        raise HTTPException(status_code=503, detail="Statistics could not be updated")
    return {"year_id": year_id, "stats": stats}


@app.get("/api/rotary-years/{year_id}/stats/status")
def api_rotary_year_stats_status(year_id: int, db: Session = Depends(get_db)):
    try:
        RotaryYearService(db).get(year_id)
    except ValueError as exc:
        raise not_found(exc) from exc
    current = StatsRecomputer(EntityStore(db)).is_current(year_id)
    return {"year_id": year_id, "current": current}


@app.get("/api/projects")
def api_list_projects(
    status: Optional[ProjectStatus] = None,
    area_of_focus: Optional[AreaOfFocus] = None,
    rotary_year_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    projects = ServiceProjectService(db).list(status, area_of_focus, rotary_year_id)
    return [
        ServiceProjectOut.model_validate(p).model_dump(mode="json") for p in projects
    ]


@app.post("/api/projects", status_code=201)
def api_create_project(payload: ServiceProjectIn, db: Session = Depends(get_db)):
    result = ServiceProjectService(db).create(payload)
    return save_payload(result, ServiceProjectOut, "project")


@app.put("/api/projects/{project_id}")
def api_update_project(
    project_id: int, payload: ServiceProjectIn, db: Session = Depends(get_db)
):
    try:
        result = ServiceProjectService(db).update(project_id, payload)
    except ValueError as exc:
        raise not_found(exc) from exc
    return save_payload(result, ServiceProjectOut, "project")


@app.delete("/api/projects/{project_id}")
def api_delete_project(project_id: int, db: Session = Depends(get_db)):
    try:
        outcome = ServiceProjectService(db).delete(project_id)
    except ValueError as exc:
        raise not_found(exc) from exc
    return {"deleted": project_id, "linkage": asdict(outcome)}


@app.get("/api/speakers")
def api_list_speakers(
    status: Optional[SpeakerStatus] = None, db: Session = Depends(get_db)
):
    speakers = SpeakerService(db).list(status)
    return [SpeakerOut.model_validate(s).model_dump(mode="json") for s in speakers]


@app.get("/api/speakers/duplicates")
def api_speaker_duplicates(
    email: Optional[str] = None,
    name: Optional[str] = None,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    match = SpeakerService(db).find_duplicate(email, name, exclude_id=exclude_id)
    return {
        "is_duplicate": match is not None,
        "existing": SpeakerOut.model_validate(match).model_dump(mode="json")
        if match
        else None,
    }


@app.post("/api/speakers", status_code=201)
def api_create_speaker(payload: SpeakerIn, db: Session = Depends(get_db)):
    result = SpeakerService(db).create(payload)
    return save_payload(result, SpeakerOut, "speaker")


@app.put("/api/speakers/{speaker_id}")
def api_update_speaker(
    speaker_id: int, payload: SpeakerIn, db: Session = Depends(get_db)
):
    try:
        result = SpeakerService(db).update(speaker_id, payload)
    except ValueError as exc:
        raise not_found(exc) from exc
    return save_payload(result, SpeakerOut, "speaker")


@app.post("/api/speakers/{speaker_id}/status")
def api_update_speaker_status(
    speaker_id: int, payload: SpeakerStatusIn, db: Session = Depends(get_db)
):
    try:
        result = SpeakerService(db).update_status(speaker_id, payload.status)
    except ValueError as exc:
        raise not_found(exc) from exc
    return save_payload(result, SpeakerOut, "speaker")


@app.delete("/api/speakers/{speaker_id}")
def api_delete_speaker(speaker_id: int, db: Session = Depends(get_db)):
    try:
        outcome = SpeakerService(db).delete(speaker_id)
    except ValueError as exc:
        raise not_found(exc) from exc
    return {"deleted": speaker_id, "linkage": asdict(outcome)}


@app.post("/api/photos", status_code=201)
def api_create_photo(payload: PhotoIn, db: Session = Depends(get_db)):
    try:
        result = PhotoService(db).create(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return save_payload(result, PhotoOut, "photo")


@app.get("/api/impact")
def api_impact(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    return get_impact_dashboard_data(db, filters)


@app.get("/api/impact/years")
def api_impact_years(db: Session = Depends(get_db)):
    return {"years": ImpactService(EntityStore(db)).available_years()}


@app.post("/admin/recalculate-all")
def admin_recalculate_all(db: Session = Depends(get_db)):
    updated = StatsRecomputer(EntityStore(db)).recompute_all()
    logger.info(f"admin_recalculate_all: updated={updated}")
    return {"updated": updated}


@app.post("/admin/relink")
def admin_relink(db: Session = Depends(get_db)):
    linked = YearLinkageResolver(EntityStore(db)).relink_all()
    return {"linked": linked}


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
