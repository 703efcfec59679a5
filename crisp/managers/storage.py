import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

import structlog

from ..application.interview_session import CandidateRecord
from ..core.exceptions import StorageError
from ..core.interfaces import ActiveMarker, CandidateRepository, SessionStore

logger = structlog.get_logger(__name__)


class InMemorySessionStore(SessionStore):
    def __init__(self, snapshot: Optional[Dict[str, Any]] = None):
        self._snapshot = json.loads(json.dumps(snapshot)) if snapshot is not None else None

    def load(self) -> Optional[Dict[str, Any]]:
        if self._snapshot is None:
            return None
        return json.loads(json.dumps(self._snapshot))

    def save(self, snapshot: Dict[str, Any]) -> None:
        self._snapshot = json.loads(json.dumps(snapshot))

    def clear(self) -> None:
        self._snapshot = None


def _read_json_object(path: Path, what: str) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise StorageError(f"Could not read {what} at {path}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"{what.capitalize()} at {path} is not an object")
    return data


def _write_json_atomic(path: Path, data: Dict[str, Any], what: str) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp_path, path)
    except (OSError, TypeError) as e:
        raise StorageError(f"Could not write {what} to {path}: {e}") from e


class JsonFileSessionStore(SessionStore):
    """Keeps the session snapshot in a single JSON document on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        return _read_json_object(self.path, "session snapshot")

    def save(self, snapshot: Dict[str, Any]) -> None:
        _write_json_atomic(self.path, snapshot, "session snapshot")
        logger.debug("session_snapshot_written", path=str(self.path))

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not remove session snapshot at {self.path}: {e}") from e


class InMemoryActiveMarker(ActiveMarker):
    def __init__(self, initially_set: bool = False):
        self._value = initially_set

    def is_set(self) -> bool:
        return self._value

    def set(self) -> None:
        self._value = True

    def clear(self) -> None:
        self._value = False


class InMemoryCandidateRepository(CandidateRepository):
    def __init__(self):
        self._by_id: Dict[str, CandidateRecord] = {}

    def get(self, candidate_id: str) -> Optional[CandidateRecord]:
        return self._by_id.get(candidate_id)

    def save(self, candidate: CandidateRecord) -> None:
        self._by_id[candidate.id] = candidate


class JsonFileCandidateRepository(CandidateRepository):
    """
    Candidate records kept in one JSON document keyed by candidate id.

    The whole document is rewritten on every save, so a session restored from
    disk always finds the candidate it points at.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load_all(self) -> Dict[str, Any]:
        return _read_json_object(self.path, "candidate records") or {}

    def get(self, candidate_id: str) -> Optional[CandidateRecord]:
        data = self._load_all().get(candidate_id)
        if data is None:
            return None
        try:
            return CandidateRecord.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Candidate {candidate_id} in {self.path} is malformed: {e}") from e

    def save(self, candidate: CandidateRecord) -> None:
        records = self._load_all()
        records[candidate.id] = candidate.to_dict()
        _write_json_atomic(self.path, records, "candidate records")
        logger.debug("candidate_written", candidate_id=candidate.id, path=str(self.path))


def candidate_store_path(session_path: Path) -> Path:
    """Sibling file of the session snapshot that holds the candidate records."""
    session_path = Path(session_path)
    return session_path.with_name(f"{session_path.stem}.candidates.json")
