from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from .cache import Cache, get_cache as _get_process_cache
from .db import get_session


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_cache() -> Cache:
    return _get_process_cache()
