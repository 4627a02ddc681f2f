"""Wires a WorkloadEngine to the store backend selected in configuration."""
from __future__ import annotations

from caseload.core.config import Settings, settings as default_settings
from caseload.modules.assignment.application.workload_engine import WorkloadEngine

STORE_BACKENDS = ("memory", "sql", "api")


def build_engine(settings: Settings | None = None) -> WorkloadEngine:
    cfg = settings or default_settings
    backend = cfg.STORE_BACKEND.lower()

    if backend == "memory":
        from caseload.modules.assignment.infrastructure.repositories.memory_store import (
            InMemoryStaffDirectory,
            InMemoryWorkItemStore,
        )
        return WorkloadEngine(InMemoryWorkItemStore(), InMemoryStaffDirectory(), settings=cfg)

    if backend == "sql":
        from caseload.core.database import get_engine, get_sessionmaker
        from caseload.modules.assignment.infrastructure.repositories.sqlalchemy_store import (
            SQLAlchemyStaffDirectory,
            SQLAlchemyWorkItemStore,
        )
        session_factory = get_sessionmaker(get_engine(cfg.DATABASE_URL))
        return WorkloadEngine(
            SQLAlchemyWorkItemStore(session_factory),
            SQLAlchemyStaffDirectory(session_factory),
            settings=cfg,
        )

    if backend == "api":
        from caseload.modules.assignment.infrastructure.external.complaint_api_acl import ComplaintApiACL
        acl = ComplaintApiACL(
            base_url=cfg.COMPLAINTS_API_BASE_URL,
            token=cfg.COMPLAINTS_API_TOKEN,
            timeout=cfg.COMPLAINTS_API_TIMEOUT_SECONDS,
        )
        return WorkloadEngine(acl, acl, settings=cfg)

    raise ValueError(f"Unknown STORE_BACKEND {cfg.STORE_BACKEND!r}; expected one of {STORE_BACKENDS}")
