import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import import_data
from practice_api.infra.db.models import Base, BookModel


@pytest.fixture
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)
    engine.dispose()


def _book(name: str, **fields: Any) -> dict[str, Any]:
    return {"name": name, "price": 10, "pages": 100, "author": "Ann", **fields}


def _write(tmp_path: Path, payload: Any) -> str:
    path = tmp_path / "books.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _count(session_factory: sessionmaker[Session]) -> int:
    with session_factory() as db:
        return db.scalar(select(func.count()).select_from(BookModel)) or 0


def test_import_loads_every_document(tmp_path: Path, session_factory: sessionmaker[Session]) -> None:
    path = _write(tmp_path, [_book("A"), _book("B")])

    code = import_data.main(["--import", path, "--collection", "books"], session_factory=session_factory)

    assert code == 0
    assert _count(session_factory) == 2


@pytest.mark.parametrize(
    "payload",
    [
        [_book("A"), _book("A")],
        [_book("A"), {"name": "No price", "pages": 1, "author": "Ann"}],
        {"name": "not a list"},
    ],
)
def test_rejected_import_stores_nothing(
    tmp_path: Path,
    session_factory: sessionmaker[Session],
    payload: Any,
) -> None:
    path = _write(tmp_path, payload)

    code = import_data.main(["--import", path], session_factory=session_factory)

    assert code == 1
    assert _count(session_factory) == 0


def test_unreadable_file_is_reported(tmp_path: Path, session_factory: sessionmaker[Session]) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("[{", encoding="utf-8")

    assert import_data.main(["--import", str(broken)], session_factory=session_factory) == 1
    assert import_data.main(["--import", str(tmp_path / "missing.json")], session_factory=session_factory) == 1


def test_delete_empties_the_collection(tmp_path: Path, session_factory: sessionmaker[Session]) -> None:
    import_data.main(["--import", _write(tmp_path, [_book("A")])], session_factory=session_factory)

    code = import_data.main(["--delete", "--collection", "books"], session_factory=session_factory)

    assert code == 0
    assert _count(session_factory) == 0
