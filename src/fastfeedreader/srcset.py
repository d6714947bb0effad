"""``srcset`` attribute parsing, following the WHATWG candidate grammar."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_WHITESPACE = " \t\n\r\f"

_RE_WIDTH = re.compile(r"^\d+w$")
_RE_HEIGHT = re.compile(r"^\d+h$")
_RE_DENSITY = re.compile(r"^(?:\d+|\d*\.\d+)(?:[eE][+-]?\d+)?x$")


@dataclass(slots=True)
class ImageCandidate:
    image_url: str
    descriptor: str = ""

    def __str__(self) -> str:
        if self.descriptor:
            return f"{self.image_url} {self.descriptor}"
        return self.image_url


class ImageCandidates(list):
    """A parsed ``srcset``; ``str()`` gives the normalized attribute value."""

    def __str__(self) -> str:
        return ", ".join(str(candidate) for candidate in self)


def _tokenize_descriptors(value: str, pos: int) -> tuple[list[str], int]:
    descriptors: list[str] = []
    current = ""
    in_parens = False
    length = len(value)

    while pos < length:
        char = value[pos]
        if in_parens:
            current += char
            if char == ")":
                in_parens = False
        elif char in _WHITESPACE:
            if current:
                descriptors.append(current)
                current = ""
        elif char == ",":
            pos += 1
            break
        else:
            current += char
            if char == "(":
                in_parens = True
        pos += 1

    if current:
        descriptors.append(current)
    return descriptors, pos


def _select_descriptor(descriptors: list[str]) -> Optional[str]:
    """Return the kept descriptor ("" for none) or None when the set is invalid."""
    width = density = height = None
    for token in descriptors:
        if _RE_WIDTH.match(token):
            if width is not None or density is not None or int(token[:-1]) <= 0:
                return None
            width = token
        elif _RE_DENSITY.match(token):
            if width is not None or density is not None or height is not None:
                return None
            density = token
        elif _RE_HEIGHT.match(token):
            if height is not None or density is not None or int(token[:-1]) <= 0:
                return None
            height = token
        else:
            return None

    if height is not None and width is None:
        return None
    return width or density or ""


def parse_srcset(value: str) -> ImageCandidates:
    """Parse a ``srcset`` value; invalid candidates are skipped."""
    candidates = ImageCandidates()
    if not value:
        return candidates

    pos = 0
    length = len(value)
    while pos < length:
        while pos < length and (value[pos] in _WHITESPACE or value[pos] == ","):
            pos += 1
        if pos >= length:
            break

        start = pos
        while pos < length and value[pos] not in _WHITESPACE:
            pos += 1
        url = value[start:pos]

        descriptors: list[str] = []
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            descriptors, pos = _tokenize_descriptors(value, pos)

        if not url:
            continue
        descriptor = _select_descriptor(descriptors)
        if descriptor is None:
            continue
        candidates.append(ImageCandidate(image_url=url, descriptor=descriptor))

    return candidates
