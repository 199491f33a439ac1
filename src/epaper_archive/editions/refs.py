"""Edition identifiers.

Callers address an edition by public numeric id, store-native uid or slug.
The raw string is classified once, at the boundary, into one of three
reference types; everything downstream dispatches on the type.
"""

import re
from dataclasses import dataclass

from ..exceptions import InputError

NATIVE_ID_RE = re.compile(r"^[0-9a-f]{32}$")
NUMERIC_ID_RE = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class ById:
    id: int


@dataclass(frozen=True)
class BySlug:
    slug: str


@dataclass(frozen=True)
class ByNativeId:
    uid: str


EditionRef = ById | BySlug | ByNativeId


def parse_edition_ref(raw: str | int | EditionRef) -> EditionRef:
    """Classify a raw identifier.

    Checked in order: store-native uid (32 lowercase hex digits), then
    numeric public id, then slug.

    Raises:
        InputError: If the identifier is empty
    """
    if isinstance(raw, (ById, BySlug, ByNativeId)):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        return ById(raw)

    value = str(raw).strip()
    if not value:
        raise InputError("Edition identifier is required")

    if NATIVE_ID_RE.match(value):
        return ByNativeId(value)
    if NUMERIC_ID_RE.match(value):
        return ById(int(value))
    return BySlug(value)
