"""JSON export and import of the whole journal."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from journal.schema import CheckIn, Product, Session

if TYPE_CHECKING:
    from db.repository import Repository

__all__ = ["ExportData", "build_export", "export_data", "import_data", "import_document"]

logger = logging.getLogger(__name__)


class ExportData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    products: List[Product] = Field(default_factory=list)
    sessions: List[Session] = Field(default_factory=list)
    check_ins: List[CheckIn] = Field(default_factory=list)
    exported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def build_export(repo: "Repository") -> ExportData:
    """Collect every product, session and check-in currently stored."""
    return ExportData(
        products=repo.list_products(),
        sessions=repo.list_sessions(),
        check_ins=repo.list_check_ins(),
    )


def export_data(repo: "Repository") -> str:
    """Serialise the journal to pretty-printed JSON with camelCase keys."""
    document = build_export(repo)
    logger.info(
        "Exporting %d products, %d sessions, %d check-ins",
        len(document.products),
        len(document.sessions),
        len(document.check_ins),
    )
    return document.model_dump_json(by_alias=True, indent=2)


def import_data(repo: "Repository", text: str | bytes) -> Dict[str, int]:
    """
    Load a document produced by :func:`export_data` into ``repo``.

    Raises ``pydantic.ValidationError`` for a malformed document and
    ``ConstraintViolationError`` when a session or check-in points at a parent
    missing from the document; in both cases nothing is written.
    """
    return import_document(repo, ExportData.model_validate_json(text))


def import_document(repo: "Repository", document: ExportData) -> Dict[str, int]:
    """Insert an already-validated :class:`ExportData` into ``repo``."""
    return repo.import_snapshot(document.products, document.sessions, document.check_ins)
