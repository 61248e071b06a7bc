"""
Logical document paths.

Paths alternate collection and document segments, so a path with an even
number of segments names a document and an odd one names a collection.
"""

from routine_sync.models.enums import Weekday

USERS = "users"
ROUTINE_TEMPLATE = "routineTemplate"
DATE_SCHEDULE = "dateSchedule"
ENTRIES = "entries"


def join(*segments: str) -> str:
    return "/".join(str(segment).strip("/") for segment in segments)


def split(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


def is_document_path(path: str) -> bool:
    segments = split(path)
    return bool(segments) and len(segments) % 2 == 0


def parent_collection(path: str) -> str:
    """Collection containing the document at ``path``."""
    return "/".join(split(path)[:-1])


def document_id(path: str) -> str:
    return split(path)[-1]


def _weekday_value(weekday: Weekday | str) -> str:
    return Weekday(weekday).value


def template_path(uid: str, weekday: Weekday | str) -> str:
    return join(USERS, uid, ROUTINE_TEMPLATE, _weekday_value(weekday))


def template_entries_path(uid: str, weekday: Weekday | str) -> str:
    return join(template_path(uid, weekday), ENTRIES)


def template_entry_path(uid: str, weekday: Weekday | str, entry_id: str) -> str:
    return join(template_entries_path(uid, weekday), entry_id)


def schedule_path(uid: str, date_iso: str) -> str:
    return join(USERS, uid, DATE_SCHEDULE, date_iso)


def schedule_entries_path(uid: str, date_iso: str) -> str:
    return join(schedule_path(uid, date_iso), ENTRIES)


def schedule_entry_path(uid: str, date_iso: str, entry_id: str) -> str:
    return join(schedule_entries_path(uid, date_iso), entry_id)
