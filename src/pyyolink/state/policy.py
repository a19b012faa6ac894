"""Reconciliation policy: when to trust the cache and how to merge into it.

Every function here mutates a :class:`DeviceRecord`, so callers must hold
the record's gate. Merges are permissive: unknown keys from upstream are
accepted as-is and nothing is validated against a schema.
"""

from __future__ import annotations

import copy
from datetime import UTC, datetime
from typing import Any

from pyyolink.models._base import parse_yolink_timestamp
from pyyolink.models.states import NESTED_STATE_KINDS, STATE_KINDS
from pyyolink.state.record import DeviceRecord

_IGNORED_RESPONSE_KEYS = frozenset({"loraInfo"})


def needs_refresh(record: DeviceRecord, now: float) -> bool:
    """Whether a pull is required before *record* can be read."""
    if record.data is None:
        return True
    if record.refresh_after == 0:
        return True
    return now >= record.update_time


def apply_pull(record: DeviceRecord, data: dict[str, Any], now: float, *, msgid: Any = None) -> None:
    """Replace ``data`` wholesale with a fresh snapshot."""
    record.data = copy.deepcopy(data)
    record.update_time = now + record.refresh_after
    record.error = False
    note_report_time(record, msgid=msgid, report_at=data.get("reportAt"))


def merge_push(record: DeviceRecord, payload: dict[str, Any], now: float, *, msgid: Any = None) -> bool:
    """Merge a partial push payload into the cached snapshot.

    Sensors nest their readings in ``data["state"]`` and push only that
    object, so the payload is merged into it. Actuators (locks, valves,
    switches, hubs) push top-level fields, even when their own ``state`` is
    an object, so their payload is merged into ``data``. Device types
    without a known kind follow the shape of the cached snapshot. Keys
    absent from the payload are preserved.

    Returns ``False`` (and leaves the record untouched) when there is no
    snapshot to merge into.
    """
    data = record.data
    if data is None:
        return False

    incoming = copy.deepcopy(payload)
    nested = data.get("state")
    if isinstance(nested, dict) and _pushes_into_state(record.type, incoming):
        nested.update(incoming)
    else:
        _merge_top_level(data, incoming)

    data["online"] = True
    report_at = payload.get("reportAt")
    if not report_at:
        report_at = datetime.fromtimestamp(now, tz=UTC).isoformat().replace("+00:00", "Z")
    data["reportAt"] = report_at

    record.update_time = now + record.refresh_after
    record.error = False
    record.target_state = ""
    note_report_time(record, msgid=msgid, report_at=report_at)
    return True


def apply_set_response(record: DeviceRecord, response_data: dict[str, Any]) -> bool:
    """Fold a successful set-command reply into the cached snapshot.

    Does not touch ``update_time``: the reply is partial, so the next
    scheduled pull still happens on time. Returns ``False`` when there is
    no snapshot to fold into.
    """
    if record.data is None:
        return False
    patch = {k: v for k, v in response_data.items() if k not in _IGNORED_RESPONSE_KEYS}
    _merge_top_level(record.data, copy.deepcopy(patch))
    return True


def _merge_top_level(target: dict[str, Any], patch: dict[str, Any]) -> None:
    for key, value in patch.items():
        existing = target.get(key)
        if key == "state" and isinstance(existing, dict) and isinstance(value, dict):
            existing.update(value)
        else:
            target[key] = value


def note_report_time(record: DeviceRecord, *, msgid: Any = None, report_at: Any = None) -> None:
    """Remember the earlier of the message time and the payload ``reportAt``."""
    candidates = [ts for ts in (parse_yolink_timestamp(msgid), parse_yolink_timestamp(report_at)) if ts is not None]
    if candidates:
        record.report_at = min(candidates)


def is_new_report(record: DeviceRecord) -> bool:
    """True once per report time; used to log state changes at info level only once."""
    if record.report_at is None:
        return False
    if record.last_logged_report_at is None or record.last_logged_report_at < record.report_at:
        record.last_logged_report_at = record.report_at
        return True
    return False


def _pushes_into_state(device_type: str, payload: dict[str, Any]) -> bool:
    if isinstance(payload.get("state"), dict):
        return False
    kind = STATE_KINDS.get(device_type)
    if kind is None:
        return True
    return kind in NESTED_STATE_KINDS
