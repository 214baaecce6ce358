"""
Dependency injection container for backend services.

We store a single Services instance on the Flask app (app.extensions["services"]).
Routes can then fetch dependencies via get_services() which makes route tests able
to inject fakes without importing/initializing global singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import current_app

from ..database import open_database
from .items import ItemStore
from .tag_store import TagStore
from .tagging import TaggingService


@dataclass(frozen=True)
class Services:
    items: ItemStore
    tagging: TaggingService


def create_services(
    *,
    database_url: Optional[str] = None,
    db_path: Optional[Path] = None,
) -> Services:
    """
    Build the production Services container.

    Both stores share one engine (and so one connection pool).

    Args:
        database_url: Optional override for database URL (useful for tests).
        db_path: Optional SQLite file path (useful for tests).
    """
    engine, session_factory = open_database(db_path, database_url)
    store = TagStore(engine=engine, session_factory=session_factory)
    items = ItemStore(engine=engine, session_factory=session_factory)
    return Services(items=items, tagging=TaggingService(store, items))


def get_services() -> Services:
    """
    Fetch the Services container from the current Flask app.

    Raises:
        RuntimeError if services have not been attached to the app.
    """
    services = current_app.extensions.get("services")
    if services is None:
        raise RuntimeError('Services not configured. Expected app.extensions["services"].')
    return services
