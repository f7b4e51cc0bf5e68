"""
Row Normalization
=================

Maps loosely formatted spreadsheet text onto the engine's enumerations.

All matching runs on lowercased, accent-stripped text. Outcome matching
must test unfavorable patterns before favorable ones: "desfavorável"
contains "favorável", "improcedente" contains "procedente".
"""

import logging
import re
import unicodedata
from datetime import date, datetime, timedelta
from typing import Optional

from .schemas import Outcome, LiabilityType, Company

logger = logging.getLogger(__name__)

# Ordered: first hit wins
_PARTIAL_PATTERNS = ("parcial", "em parte")
_UNFAVORABLE_PATTERNS = (
    "desfavor",
    "improced",
    "improvid",
    "desprovid",
    "nao provid",
    "negou provimento",
    "negad",
    "rejeitad",
)
_FAVORABLE_PATTERNS = (
    "favor",
    "proced",
    "provid",
    "deu provimento",
    "dado provimento",
    "da provimento",
    "dou provimento",
    "dar provimento",
    "acolhid",
)

# "nao procedente", "pedido nao acolhido", "nao deu provimento"
_NEGATED_FAVORABLE = re.compile(
    r"\b(?:nao|sem)\s+(?:\w+\s+)?(?:proced|favor|acolh|provi|deu provimento|da provimento)"
)

# "05/03/2024 10:00", "05/03/2024 10:00:15"
_TRAILING_TIME = re.compile(r"(\S+)\s+\d{1,2}:\d{2}(?::\d{2})?$")

_TRUTHY = {"sim", "s", "yes", "y", "true", "1", "x", "upi", "verdadeiro"}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%Y/%m/%d",
)

# Spreadsheet serial day numbers (1900 date system)
_SERIAL_EPOCH = date(1899, 12, 30)
_SERIAL_MIN = 20000  # 1954-10-03
_SERIAL_MAX = 80000  # 2119-01-10


def strip_accents(text: str) -> str:
    return "".join(c for c in unicodedata.normalize("NFKD", text) if not unicodedata.combining(c))


def normalize_name(text: Optional[str]) -> str:
    """Lowercase, strip diacritics, collapse whitespace"""
    if not text:
        return ""
    text = strip_accents(text).lower()
    return re.sub(r"\s+", " ", text).strip()


def normalize_label(text: Optional[str]) -> str:
    """Case-insensitive label form used for exact division matching"""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip().casefold()


def normalize_outcome(text: Optional[str]) -> Outcome:
    """
    Normalize free outcome text into exactly one Outcome.

    Blank or unrecognised text stays under review.
    """
    t = normalize_name(text)
    if not t:
        return Outcome.EM_ANALISE

    if any(p in t for p in _PARTIAL_PATTERNS):
        return Outcome.PARCIAL
    if _NEGATED_FAVORABLE.search(t) or any(p in t for p in _UNFAVORABLE_PATTERNS):
        return Outcome.DESFAVORAVEL
    if any(p in t for p in _FAVORABLE_PATTERNS):
        return Outcome.FAVORAVEL
    return Outcome.EM_ANALISE


def normalize_liability(text: Optional[str]) -> LiabilityType:
    t = normalize_name(text)
    if "solid" in t:
        return LiabilityType.SOLIDARIA
    return LiabilityType.SUBSIDIARIA


def normalize_upi(text: Optional[str]) -> bool:
    t = normalize_name(text)
    return t in _TRUTHY


def normalize_company(text: Optional[str], default: str = Company.VTAL.value) -> str:
    """
    Normalize company text against the enumerated set.

    Blank -> the tenant's primary company; unrecognised -> Outros Terceiros.
    """
    emp = strip_accents(text or "").upper().strip()
    if not emp:
        return default

    if "V.TAL" in emp or "VTAL" in emp:
        return Company.VTAL.value
    if re.search(r"\bOI\b", emp):
        return Company.OI.value
    if "SEREDE" in emp:
        return Company.SEREDE.value
    if "SPRINK" in emp:
        return Company.SPRINK.value
    return Company.OUTROS.value


def parse_decision_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a loosely formatted decision date.

    Returns None for blank or unparseable input; a bad date never fails
    the row, the decision is simply left out of the timeline.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    parsed = _parse_date_text(text)
    if parsed is None:
        # Spreadsheet exports often append a time ("05/03/2024 10:00")
        match = _TRAILING_TIME.match(text)
        if match:
            parsed = _parse_date_text(match.group(1))

    if parsed is None:
        logger.warning(f"Unparseable decision date {text!r}, stored as null")
    return parsed


def _parse_date_text(text: str) -> Optional[date]:
    if text.isdigit():
        serial = int(text)
        if _SERIAL_MIN <= serial <= _SERIAL_MAX:
            return _SERIAL_EPOCH + timedelta(days=serial)
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    # ISO datetime ("2024-03-05T10:00:00", "2024-03-05 10:00:00")
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    # Month only ("03/2024")
    match = re.fullmatch(r"(\d{1,2})/(\d{4})", text)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return date(year, month, 1)

    return None
