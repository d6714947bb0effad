from __future__ import annotations

import datetime
import logging
import re
from functools import lru_cache
from typing import Any, Optional

from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz

from .errors import DateParseError

logger = logging.getLogger(__name__)

_UTC = datetime.timezone.utc

_MIN_OFFSET = datetime.timedelta(hours=-12)
_MAX_OFFSET = datetime.timedelta(hours=14)

_RE_WHITESPACE = re.compile(r"\s+")
_RE_DIGIT = re.compile(r"\d")
_RE_FEB29 = re.compile(r"(\d{4})-02-29")
_RE_HOUR24 = re.compile(r"(\d{4}-\d{2}-\d{2})[T ]24:(\d{2}):(\d{2})")
_RE_ISO_TZ_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")
_RE_ISO_TZ_HOUR_ONLY = re.compile(r"([+-]\d{2})$")
_RE_ISO_FRACTION = re.compile(r"\.(\d{7,})(?=(?:[+-]\d{2}:?\d{2}|Z|$))", re.IGNORECASE)
_RE_OFFSET_THEN_Z = re.compile(r"([+-]\d{2}:?\d{2})Z$", re.IGNORECASE)
_RE_RFC822 = re.compile(
    r"(?:\w{3},\s+)?(\d{1,2})\s+(\w{3})\s+(\d{4})\s+(\d{2}):(\d{2}):(\d{2})\s+([+-]\d{4}|[A-Z]{2,5})$"
)
_RE_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_RE_GMT_OFFSET = re.compile(r"\b(?:GMT|UTC)\s?([+-]\d{1,2}(?::?\d{2})?)\b")
_RE_IANA_ZONE = re.compile(r"\s([A-Za-z]+(?:/[A-Za-z_\-]+){1,2})$")
_RE_MERIDIEM = re.compile(r"\b([ap])\.m\.?(?=\s|$|,)", re.IGNORECASE)
_RE_ORDINAL = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)\b", re.IGNORECASE)
_RE_THURSDAY = re.compile(r"\bThurs?\b")
_RE_MONTH_DOT = re.compile(
    r"\b(Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sept?|Oct|Nov|Dec)\.", re.IGNORECASE
)
_RE_DAY_DOT = re.compile(r"\b(\d{1,2})\.\s")
_RE_YEAR = re.compile(r"\d{4}")

_MONTHS_RFC822: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

# German and French abbreviations, matched as whole tokens and case-sensitively.
_FOREIGN_TOKENS: dict[str, str] = {
    "Mo,": "Mon,",
    "Di,": "Tue,",
    "Mi,": "Wed,",
    "Do,": "Thu,",
    "Fr,": "Fri,",
    "Sa,": "Sat,",
    "So,": "Sun,",
    "Mär": "Mar",
    "Mai": "May",
    "Okt": "Oct",
    "Dez": "Dec",
    "lun.,": "Mon,",
    "mar.,": "Tue,",
    "mer.,": "Wed,",
    "jeu.,": "Thu,",
    "ven.,": "Fri,",
    "sam.,": "Sat,",
    "dim.,": "Sun,",
    "lun,": "Mon,",
    "mar,": "Tue,",
    "mer,": "Wed,",
    "jeu,": "Thu,",
    "ven,": "Fri,",
    "sam,": "Sat,",
    "dim,": "Sun,",
    "janv.": "Jan",
    "févr.": "Feb",
    "avr.": "Apr",
    "avr": "Apr",
    "mai": "May",
    "jui": "Jun",
    "juil.": "Jul",
    "sept.": "Sep",
    "oct.": "Oct",
    "nov.": "Nov",
    "déc.": "Dec",
    "déc": "Dec",
}

# Full names, matched case-insensitively.
_FOREIGN_WORDS: dict[str, str] = {
    "lundi": "Monday",
    "mardi": "Tuesday",
    "mercredi": "Wednesday",
    "jeudi": "Thursday",
    "vendredi": "Friday",
    "samedi": "Saturday",
    "dimanche": "Sunday",
    "janvier": "January",
    "février": "February",
    "mars": "March",
    "avril": "April",
    "juin": "June",
    "juillet": "July",
    "août": "August",
    "septembre": "September",
    "octobre": "October",
    "novembre": "November",
    "décembre": "December",
    "montag": "Monday",
    "dienstag": "Tuesday",
    "mittwoch": "Wednesday",
    "donnerstag": "Thursday",
    "freitag": "Friday",
    "samstag": "Saturday",
    "sonntag": "Sunday",
    "januar": "January",
    "februar": "February",
    "märz": "March",
    "juni": "June",
    "juli": "July",
    "oktober": "October",
    "dezember": "December",
}


def _alternation(words: dict[str, str]) -> str:
    return "|".join(re.escape(word) for word in sorted(words, key=len, reverse=True))


_RE_FOREIGN_TOKENS = re.compile(r"(?<!\w)(" + _alternation(_FOREIGN_TOKENS) + r")(?!\w)")
_RE_FOREIGN_WORDS = re.compile(
    r"(?<!\w)(" + _alternation(_FOREIGN_WORDS) + r")(?!\w)", re.IGNORECASE
)

_custom_tzinfos: dict[str, int] = {
    "UTC": 0,
    "UT": 0,
    "GMT": 0,
    "Z": 0,
    "WET": 0,
    "WEST": 3600,
    "BST": 3600,
    "CET": 3600,
    "CEST": 7200,
    "EET": 7200,
    "EEST": 10800,
    "MSK": 10800,
    "IST": 19800,
    "PDT": -25200,
    "MDT": -21600,
    "CDT": -18000,
    "EDT": -14400,
    "AKST": -32400,
    "AKDT": -28800,
    "HST": -36000,
    "HAST": -36000,
    "HADT": -32400,
    "AEST": 36000,
    "AEDT": 39600,
    "ACST": 34200,
    "ACDT": 37800,
    "AWST": 28800,
    "NZST": 43200,
    "NZDT": 46800,
    "JST": 32400,
    "KST": 32400,
    "SGT": 28800,
}

# Producers writing these abbreviations usually mean the local zone, DST included.
_LOCAL_ZONE_NAMES: dict[str, str] = {
    "PST": "America/Los_Angeles",
    "EST": "America/New_York",
    "CST": "America/Chicago",
    "MST": "America/Denver",
}


@lru_cache(maxsize=64)
def _zone_for(name: str) -> Optional[datetime.tzinfo]:
    if name in _LOCAL_ZONE_NAMES:
        return dateutil_tz.gettz(_LOCAL_ZONE_NAMES[name])
    offset = _custom_tzinfos.get(name)
    if offset is None:
        return None
    if offset == 0:
        return _UTC
    return dateutil_tz.tzoffset(name, offset)


def _tzinfos(name: str, offset: Optional[int]) -> Any:
    # dateutil callback for zone names it does not know natively.
    zone = _zone_for(name) if name else None
    if zone is not None:
        return zone
    return offset


def _replace_foreign_words(value: str) -> str:
    value = _RE_FOREIGN_TOKENS.sub(lambda m: _FOREIGN_TOKENS[m.group(1)], value)
    return _RE_FOREIGN_WORDS.sub(lambda m: _FOREIGN_WORDS[m.group(1).lower()], value)


def _normalize_tokens(value: str) -> str:
    value = _RE_PARENTHETICAL.sub("", value)
    value = _RE_GMT_OFFSET.sub(r"\1", value)
    value = _RE_MERIDIEM.sub(lambda m: m.group(1).upper() + "M", value)
    value = _RE_ORDINAL.sub(r"\1", value)
    value = _RE_THURSDAY.sub("Thu", value)
    value = _RE_MONTH_DOT.sub(r"\1", value)
    value = _RE_DAY_DOT.sub(r"\1 ", value)
    value = _RE_OFFSET_THEN_Z.sub(r"\1", value.strip())
    return value.strip()


def _normalize_iso_datetime_string(value: str) -> str:
    """Coerce flexible ISO-8601 inputs into a form datetime.fromisoformat can parse."""
    cleaned = value.strip()
    if not cleaned:
        return cleaned

    if cleaned[-1] in ("Z", "z"):
        return cleaned[:-1] + "+00:00"

    if len(cleaned) > 6 and cleaned[-6] in ("+", "-") and cleaned[-3] == ":":
        if " " in cleaned and "T" not in cleaned[:11]:
            date_part, rest = cleaned.split(" ", 1)
            return f"{date_part}T{rest.replace(' ', '')}"
        return cleaned

    upper_cleaned = cleaned.upper()
    for suffix in (" UTC", " GMT", " Z"):
        if upper_cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].rstrip() + "+00:00"
            break

    if (
        " " in cleaned
        and "T" not in cleaned[:11]
        and len(cleaned) >= 10
        and cleaned[4] == "-"
        and cleaned[0:4].isdigit()
    ):
        date_part, rest = cleaned.split(" ", 1)
        if rest and rest[0].isdigit():
            cleaned = f"{date_part}T{rest.replace(' ', '')}"

    match = _RE_ISO_TZ_NO_COLON.search(cleaned)
    if match and "T" in cleaned:
        cleaned = cleaned[:-5] + f"{match.group(1)}:{match.group(2)}"
    else:
        match = _RE_ISO_TZ_HOUR_ONLY.search(cleaned)
        if match and "T" in cleaned:
            cleaned = cleaned[:-3] + f"{match.group(1)}:00"

    return _RE_ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6], cleaned, count=1)


def _fix_impossible_values(candidate: str) -> str:
    # Feb 29 in non-leap years
    if "-02-29" in candidate:
        year_match = _RE_FEB29.match(candidate)
        if year_match:
            year = int(year_match.group(1))
            if not ((year % 4 == 0 and year % 100 != 0) or (year % 400 == 0)):
                candidate = candidate.replace(f"{year}-02-29", f"{year}-02-28")

    # Hour 24 rolls over to the next day
    if "T24:" in candidate or " 24:" in candidate:
        m24 = _RE_HOUR24.search(candidate)
        if m24:
            base = datetime.date.fromisoformat(m24.group(1))
            mins, secs = int(m24.group(2)), int(m24.group(3))
            next_day = base + datetime.timedelta(days=1)
            candidate = (
                candidate[: m24.start()]
                + f"{next_day}T00:{mins:02d}:{secs:02d}"
                + candidate[m24.end() :]
            )
    return candidate


def _parse_iso(candidate: str) -> Optional[datetime.datetime]:
    if not (len(candidate) >= 10 and candidate[4] == "-" and candidate[0:4].isdigit()):
        return None
    try:
        return datetime.datetime.fromisoformat(_normalize_iso_datetime_string(candidate))
    except ValueError:
        return None


def _parse_rfc822(candidate: str) -> Optional[datetime.datetime]:
    m = _RE_RFC822.match(candidate)
    if not m:
        return None
    day, mon_str, year, hour, minute, second, zone_name = m.groups()
    month = _MONTHS_RFC822.get(mon_str.lower())
    if month is None:
        return None
    if zone_name[0] in "+-":
        offset = (int(zone_name[1:3]) * 3600 + int(zone_name[3:5]) * 60) * (
            1 if zone_name[0] == "+" else -1
        )
        if not -86400 < offset < 86400:
            return None
        zone: Optional[datetime.tzinfo] = datetime.timezone(
            datetime.timedelta(seconds=offset)
        )
    else:
        zone = _zone_for(zone_name)
        if zone is None:
            return None
    try:
        return datetime.datetime(
            int(year), month, int(day), int(hour), int(minute), int(second), tzinfo=zone
        )
    except ValueError:
        return None


def _parse_dateutil(candidate: str) -> Optional[datetime.datetime]:
    # A bare weekday or month name would otherwise become a date in the current year
    if not _RE_DIGIT.search(candidate):
        return None
    default = datetime.datetime(datetime.datetime.now(_UTC).year, 1, 1)
    try:
        return dateutil_parser.parse(candidate, default=default, tzinfos=_tzinfos)
    except (ValueError, TypeError, OverflowError):
        return None


def _parse_candidate(candidate: str) -> Optional[datetime.datetime]:
    zone: Optional[datetime.tzinfo] = None
    match = _RE_IANA_ZONE.search(candidate)
    if match:
        zone = dateutil_tz.gettz(match.group(1))
        if zone is not None:
            candidate = candidate[: match.start()].rstrip()

    parsed = _parse_iso(candidate) or _parse_rfc822(candidate) or _parse_dateutil(candidate)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone or _UTC)
    return _clamp_offset(parsed)


def _clamp_offset(value: datetime.datetime) -> datetime.datetime:
    offset = value.utcoffset()
    if offset is None or not _MIN_OFFSET <= offset <= _MAX_OFFSET:
        return value.replace(tzinfo=_UTC)
    return value


@lru_cache(maxsize=8192)
def _parse_cached(candidate: str) -> Optional[datetime.datetime]:
    # Fast path: clean ISO-8601 (the bulk of Atom and modern RSS dates)
    parsed = _parse_iso(candidate)
    if parsed is not None and parsed.tzinfo is not None:
        return _clamp_offset(parsed)

    if "\n" in candidate or "\r" in candidate or "\t" in candidate or "  " in candidate:
        candidate = _RE_WHITESPACE.sub(" ", candidate)
    candidate = _normalize_tokens(_replace_foreign_words(candidate))
    candidate = _fix_impossible_values(candidate)

    while candidate:
        parsed = _parse_candidate(candidate)
        if parsed is not None:
            return parsed
        head, sep, _ = candidate.rpartition(" ")
        if not sep or not _RE_YEAR.search(head):
            return None
        candidate = head.rstrip()
    return None


def parse_date(value: str) -> datetime.datetime:
    """Parse a feed timestamp into a timezone-aware datetime.

    Bare integers are Unix epochs. Named zones keep their offset; results whose
    offset is outside -12:00..+14:00 are coerced to UTC. Raises DateParseError.
    """
    candidate = value.strip() if value else ""
    if not candidate:
        raise DateParseError("date parser: empty value")

    if candidate.isdigit():
        try:
            return datetime.datetime.fromtimestamp(int(candidate), _UTC)
        except (OverflowError, ValueError, OSError):
            pass

    parsed = _parse_cached(candidate)
    if parsed is None:
        raise DateParseError(f'date parser: failed to parse date "{value}"')
    return parsed


def parse_date_or_none(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    try:
        return parse_date(value)
    except DateParseError:
        logger.debug("Unparsable date %r", value)
        return None
