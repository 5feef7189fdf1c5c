from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from schemas import SpeakerIn
from services import SpeakerService


def test_duplicate_speaker_found_by_email_case_insensitive() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = SpeakerService(session)
        existing = service.create(
            SpeakerIn(name="Jane Doe", email="Jane@Example.org", topic="Water")
        ).entity

        assert existing.email == "jane@example.org"
        match = service.find_duplicate(email=" JANE@example.org ")
        assert match is not None
        assert match.id == existing.id
        same_row = service.find_duplicate(
            email="jane@example.org", exclude_id=existing.id
        )
        assert same_row is None


def test_duplicate_speaker_found_by_near_identical_name() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = SpeakerService(session)
        existing = service.create(SpeakerIn(name="Jane Doe", topic="Water")).entity

        assert service.find_duplicate(name="jane doe").id == existing.id
        assert service.find_duplicate(name="Jane Do").id == existing.id
        assert service.find_duplicate(name="John Smith") is None
        assert service.find_duplicate() is None


def test_blank_email_is_stored_as_none() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        speaker = SpeakerService(session).create(
            SpeakerIn(name="Ali", email="   ", topic="Fellowship")
        ).entity

        assert speaker.email is None
        assert SpeakerService(session).find_duplicate(email="") is None
