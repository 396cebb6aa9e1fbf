from __future__ import annotations

from typing import Mapping, Optional

from app.settings import get_settings


def caller_from_headers(headers: Mapping[str, str]) -> Optional[str]:
    """
    Caller identity as verified by the auth gateway in front of this service.
    The gateway strips any client-supplied copy of the header, so it is trusted
    as-is here. Returns None for anonymous requests.
    """
    header = get_settings().AUTH_UID_HEADER
    uid = (headers.get(header) or "").strip()
    return uid or None
