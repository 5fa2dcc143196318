"""Session Snapshot - serialization / hydration for SessionHolder.

Invariants:
    - session_to_snapshot produces {"data": None} or {"data": {<5 camelCase str fields>}}
    - Status flags (online, attempting_connect) are never persisted
    - hydrate_session never raises, whatever it is given
    - A decoded record is adopted only when all five fields are non-empty strings;
      otherwise the holder is left untouched

Design Decisions:
    - Field mapping table keeps wire names (camelCase) in one place
    - Non-str values are skipped field-by-field (they stay ""), so one corrupted
      field invalidates the whole record instead of producing a half session
"""

import logging
from collections.abc import Mapping

from atp_session.core.domain_types import Did, Handle
from atp_session.core.session_data import SessionData
from atp_session.core.session_holder import SessionHolder

logger = logging.getLogger(__name__)

# Snapshot key -> SessionData attribute
_FIELD_MAP: dict[str, str] = {
    "service": "service",
    "refreshJwt": "refresh_jwt",
    "accessJwt": "access_jwt",
    "handle": "handle",
    "did": "did",
}


def session_to_snapshot(holder: SessionHolder) -> dict:
    """Serialize the holder's session record. Pure, no IO."""
    data = holder.data
    if data is None:
        return {"data": None}
    return {
        "data": {
            wire: getattr(data, attr) for wire, attr in _FIELD_MAP.items()
        },
    }


def session_from_snapshot(snapshot: object) -> SessionData | None:
    """Decode a snapshot of unknown shape. Returns None unless the record is complete."""
    if not isinstance(snapshot, Mapping):
        return None
    raw = snapshot.get("data")
    if not isinstance(raw, Mapping):
        return None

    values = {attr: "" for attr in _FIELD_MAP.values()}
    for wire, attr in _FIELD_MAP.items():
        value = raw.get(wire)
        if isinstance(value, str):
            values[attr] = value

    data = SessionData(
        service=values["service"],
        access_jwt=values["access_jwt"],
        refresh_jwt=values["refresh_jwt"],
        handle=Handle(values["handle"]),
        did=Did(values["did"]),
    )
    return data if data.is_complete else None


def hydrate_session(holder: SessionHolder, snapshot: object) -> bool:
    """Restore a persisted session into the holder. Returns True if adopted."""
    data = session_from_snapshot(snapshot)
    if data is None:
        empty = snapshot is None or (
            isinstance(snapshot, Mapping) and snapshot.get("data") is None
        )
        if not empty:
            logger.info("Discarded incomplete or unrecognized session snapshot")
        return False
    holder.set_state(data)
    return True
