from __future__ import annotations

from sqlmodel import Session, SQLModel, create_engine

from cinema_seating.config import KioskSettings


def _default_db_url(settings: KioskSettings) -> str:
    # Keep data out of git by default.
    data_dir = settings.data_dir.expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / "cinema_kiosk.db"
    return f"sqlite:///{db_path}"


_settings = KioskSettings()

engine = create_engine(
    _settings.db_url or _default_db_url(_settings),
    echo=False,
    connect_args={"check_same_thread": False},
)


def init_db() -> None:
    from . import models  # noqa: F401 - ensure models are registered

    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    return Session(engine)
