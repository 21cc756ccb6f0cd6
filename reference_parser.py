# reference_parser.py
import enum
import logging
import re
from typing import NamedTuple, Optional, Union
from urllib.parse import parse_qs

logger = logging.getLogger(__name__)

DIRECTCHARGE_PREFIX = "directcharge?"

UUID_RE = re.compile(r"^[0-9a-f-]{36}$", re.IGNORECASE)
TRAILING_DIGITS_RE = re.compile(r"(?:.*?_)?(\d+)\Z", re.DOTALL)


class Unresolvable(enum.Enum):
    """Reference shapes that are recognized but never map to a ROP check id."""

    UUID = "uuid"


class CompositeReference(NamedTuple):
    device_id: str
    restaurant_id: int
    check_id: int


CheckIdResult = Union[int, Unresolvable, None]


def parse_check_id(reference_code, _depth: int = 0) -> CheckIdResult:
    """Resolve a reference code to a numeric ROP check id.

    Accepts ``ROP_3215799``, ``CHECK_123``, bare digits and the delegated
    ``directcharge?amount=..&ref=<inner>`` form (``inner`` is parsed once more).

    Returns the check id, ``Unresolvable.UUID`` for UUID references (callers use
    the fallback basket, nothing went wrong) or None when nothing could be
    extracted. Never raises.
    """
    if not reference_code or not isinstance(reference_code, str):
        return None

    if _depth == 0:
        inner = inner_reference(reference_code)
        if inner != reference_code:
            logger.debug("parse_check_id: directcharge detected, ref=%s", inner)
            return parse_check_id(inner, _depth=1)

    if "-" in reference_code and UUID_RE.match(reference_code):
        logger.debug("parse_check_id: UUID reference %s, using fallback basket", reference_code)
        return Unresolvable.UUID

    m = TRAILING_DIGITS_RE.search(reference_code)
    check_id = int(m.group(1)) if m else 0
    if check_id <= 0:
        logger.warning("parse_check_id: cannot extract numeric id from %r", reference_code)
        return None

    logger.debug("parse_check_id: %r -> %s", reference_code, check_id)
    return check_id


def inner_reference(reference_code):
    """The ``ref`` wrapped by a ``directcharge?...&ref=<inner>`` code, else the code itself."""
    if isinstance(reference_code, str) and reference_code.startswith(DIRECTCHARGE_PREFIX):
        query = parse_qs(reference_code[len(DIRECTCHARGE_PREFIX):])
        inner = (query.get("ref") or [""])[0]
        if inner:
            return inner
    return reference_code


def extract_check_id(reference_code) -> CheckIdResult:
    return parse_check_id(reference_code)


def resolved_check_id(reference_code) -> Optional[int]:
    """Check id or None, for callers that do not care why resolution failed."""
    check_id = parse_check_id(reference_code)
    return check_id if isinstance(check_id, int) else None


def parse_composite_reference(reference_code) -> Optional[CompositeReference]:
    """Strict ``<deviceId>_<restaurantId>_<checkId>`` parser."""
    if not isinstance(reference_code, str):
        return None
    ref = reference_code.strip()
    if not ref:
        return None
    parts = ref.split("_")
    if len(parts) != 3:
        return None
    device_raw, restaurant_raw, check_raw = parts
    device_id = device_raw.strip()
    restaurant_id = _positive_int(restaurant_raw)
    check_id = _positive_int(check_raw)
    if not device_id or restaurant_id is None or check_id is None:
        return None
    return CompositeReference(device_id, restaurant_id, check_id)


def _positive_int(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not raw.isdecimal():
        return None
    value = int(raw)
    return value if value > 0 else None
