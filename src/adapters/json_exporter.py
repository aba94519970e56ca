"""JSON persistence of the Result Document.

Why here:
- Format detection lives at this boundary only: older files may be a bare list of
  records or a document with an ``accounts`` list. Both are normalized into one
  `ResultDocument` before the merge logic ever sees them. Records the models
  reject are carried as `LegacyRecord` and written back unchanged.
- Writes are atomic (temp file + ``os.replace``) so an interrupted write never
  leaves a truncated document behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from core.domain.errors import PersistenceError
from core.domain.models import AccountRecord, LegacyRecord, ResultDocument, RunConfigSnapshot, parse_record

logger = logging.getLogger(__name__)

_TIMESTAMP: TypeAdapter[datetime | None] = TypeAdapter(Optional[datetime])


def _parse_records(raw_records: list[Any], *, path: Path) -> list[AccountRecord]:
    records: list[AccountRecord] = []
    for position, raw in enumerate(raw_records):
        if not isinstance(raw, dict):
            logger.warning("%s: keeping non-object record at position %d as is", path, position)
            records.append(LegacyRecord(raw=raw))
            continue
        try:
            records.append(parse_record(raw))
        except ValidationError as exc:
            logger.warning(
                "%s: keeping unrecognized record at position %d as is (%d error(s))",
                path,
                position,
                exc.error_count(),
            )
            records.append(LegacyRecord(raw=raw))
    return records


def load_result_document(path: Path) -> ResultDocument | None:
    """Load a prior document, or ``None`` when there is no usable prior state.

    Absent, corrupt (including non-UTF-8) or unrecognized files yield ``None``.
    A file that exists but cannot be read raises `PersistenceError` so that it
    is not overwritten.
    """

    if not path.exists():
        return None
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise PersistenceError(path, f"cannot read existing results: {exc}") from exc

    try:
        data = json.loads(raw.decode("utf-8-sig"))
    except ValueError:
        logger.warning("Existing file %s is corrupted; starting a new document", path)
        return None

    if isinstance(data, list):
        return ResultDocument(accounts=_parse_records(data, path=path))

    if isinstance(data, dict) and isinstance(data.get("accounts"), list):
        config = None
        if isinstance(data.get("config"), dict):
            try:
                config = RunConfigSnapshot.model_validate(data["config"])
            except ValidationError:
                config = None
        try:
            created_at = _TIMESTAMP.validate_python(data.get("createdAt"))
        except ValidationError:
            created_at = None
        return ResultDocument(
            created_at=created_at,
            config=config,
            accounts=_parse_records(data["accounts"], path=path),
        )

    logger.warning("Existing file %s has no accounts list; starting a new document", path)
    return None


def _dump_record(record: AccountRecord) -> Any:
    if isinstance(record, LegacyRecord):
        return record.raw
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def dump_result_document(document: ResultDocument) -> str:
    payload = document.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"accounts"})
    payload["accounts"] = [_dump_record(record) for record in document.accounts]
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


def save_result_document(document: ResultDocument, path: Path) -> Path:
    """Atomically overwrite `path` with `document` (UTF-8, 2-space indent)."""

    text = dump_result_document(document)
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(text)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise PersistenceError(path, f"cannot write results: {exc}") from exc
    return path
