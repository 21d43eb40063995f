"""Session storage for temporary workspace per session."""

import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import HTTPException

# Global session storage
_sessions: Dict[str, Path] = {}


def get_session_dir(session_id: str) -> Path:
    """Get or create temp directory for session."""
    if session_id not in _sessions:
        temp_dir = Path(tempfile.mkdtemp(prefix=f"lanegraph_{session_id}_"))
        _sessions[session_id] = temp_dir
    return _sessions[session_id]


def find_session_dir(session_id: str) -> Optional[Path]:
    """Session directory if the session exists, without creating it."""
    return _sessions.get(session_id)


def save_session_json(session_id: str, name: str, data: Any) -> Path:
    """Write a JSON artifact into the session directory."""
    path = get_session_dir(session_id) / name
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    return path


def load_session_json(session_id: str, name: str, missing_detail: str) -> Any:
    """Read a JSON artifact from the session directory, 404 if it is missing."""
    session_dir = find_session_dir(session_id)
    path = session_dir / name if session_dir else None
    if path is None or not path.exists():
        raise HTTPException(status_code=404, detail=missing_detail)
    with open(path, 'r') as f:
        return json.load(f)

