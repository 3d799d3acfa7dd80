"""Named workflow definitions stored in a single JSON file."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from comfy_relay.schemas.workflow import WorkflowEntry, WorkflowSummary, WorkflowUpsert
from comfy_relay.services.workflow_format import detect_workflow_format

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowRegistry:
    """CRUD over the workflows file; every mutation rewrites the whole file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _ensure_file(self) -> None:
        """Create the file (and its directory) with an empty list."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]\n", encoding="utf-8")

    def _read_raw(self) -> List[Any]:
        """Raw file contents; entries are left as stored."""
        self._ensure_file()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(f"Unreadable workflows file {self.path}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Workflows file {self.path} is not a JSON array, ignoring")
            return []
        return data

    @staticmethod
    def _parse(raw: Any) -> Optional[WorkflowEntry]:
        try:
            return WorkflowEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping malformed workflow entry: {e}")
            return None

    @staticmethod
    def _index_of(items: List[Any], name: str) -> Optional[int]:
        return next(
            (i for i, item in enumerate(items) if isinstance(item, dict) and item.get("name") == name),
            None,
        )

    def _read(self) -> List[WorkflowEntry]:
        entries = (self._parse(raw) for raw in self._read_raw())
        return [entry for entry in entries if entry is not None]

    def _write(self, items: List[Any]) -> None:
        """Rewrite the whole file. Entries this version cannot parse pass through as stored."""
        self._ensure_file()
        payload = json.dumps(items, indent=2) + "\n"

        # Write next to the target, then swap it in
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(self.path)

    def list(self, include_workflow: bool = False) -> List[Union[WorkflowEntry, WorkflowSummary]]:
        """List entries; summaries (no definition) unless asked otherwise."""
        entries = self._read()
        if include_workflow:
            return entries
        return [entry.summary() for entry in entries]

    def get(self, name: str) -> Optional[WorkflowEntry]:
        """Exact-name lookup, None when absent."""
        for entry in self._read():
            if entry.name == name:
                return entry
        return None

    def upsert(self, data: Union[WorkflowUpsert, Dict[str, Any]]) -> WorkflowEntry:
        """
        Insert or replace an entry by name.

        The format is inferred from the definition when not given. On
        replace, created_at is kept and updated_at refreshed.
        """
        if not isinstance(data, WorkflowUpsert):
            data = WorkflowUpsert.model_validate(data)

        items = self._read_raw()
        index = self._index_of(items, data.name)
        current = self._parse(items[index]) if index is not None else None

        now = _now()
        entry = WorkflowEntry(
            name=data.name,
            format=data.format or detect_workflow_format(data.workflow),
            workflow=data.workflow,
            description=data.description or "",
            defaults=data.defaults or {},
            created_at=current.created_at if current and current.created_at else now,
            updated_at=now,
        )

        stored = entry.model_dump(mode="json")
        if index is not None:
            items[index] = stored
        else:
            items.append(stored)

        self._write(items)
        logger.info(f"{'Updated' if index is not None else 'Created'} workflow {entry.name!r} ({entry.format.value})")
        return entry

    def delete(self, name: str) -> Dict[str, Any]:
        """
        Remove an entry; reports deleted=False when the name is unknown.

        An entry that no longer validates is still removed and returned as stored.
        """
        items = self._read_raw()
        index = self._index_of(items, name)
        if index is None:
            return {"deleted": False}

        raw = items.pop(index)
        self._write(items)
        logger.info(f"Deleted workflow {name!r}")
        return {"deleted": True, "workflow": self._parse(raw) or raw}
