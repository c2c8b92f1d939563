"""
Term routes — submission window state.

Every endpoint takes {terms: [term config, ...], now} where a term config
has either start_date/end_date or start_month/start_day/end_month/end_day.
"""

from fastapi import APIRouter

from core.errors import OverlappingTermWindows
from routes.common import manager_from_payload, now_from_payload, to_http_error

router = APIRouter()


@router.post("/status")
async def status(payload: dict):
    """State of every configured term, plus configuration overlaps."""
    manager = manager_from_payload(payload)
    now = now_from_payload(payload)
    return {
        "now": now.date().isoformat(),
        "terms": manager.statuses(now),
        "overlaps": [list(pair) for pair in manager.find_overlapping_terms()],
    }


@router.post("/active")
async def active(payload: dict):
    """The currently open window; 409 when enabled windows overlap."""
    manager = manager_from_payload(payload)
    now = now_from_payload(payload)
    try:
        window = manager.get_active_term_window(now)
    except OverlappingTermWindows as exc:
        raise to_http_error(exc)
    return {
        "is_open": window is not None,
        "window": window.to_dict() if window else None,
    }


@router.post("/schools/{school_id}/open")
async def school_open(school_id: str, payload: dict):
    """Whether a school may submit now. Overlapping windows read as closed."""
    manager = manager_from_payload(payload)
    return {"school_id": school_id, "is_open": manager.is_open_for_school(school_id, now_from_payload(payload))}
