"""
identifier normalization.
turns openalex urls, DOIs and bare ids into the key used throughout a build.
"""

import re
from typing import Optional

OPENALEX_URL_PREFIXES = (
    "https://openalex.org/",
    "http://openalex.org/",
    "https://api.openalex.org/works/",
    "https://api.openalex.org/",
    "https://explore.openalex.org/works/",
    "api.openalex.org/works/",
    "api.openalex.org/",
    "openalex.org/",
)

DOI_URL_PREFIX = "https://doi.org/"

_RAW_DOI = re.compile(r"^10\.\d{4,}")
_DOI_URL = re.compile(r"^(?:https?://)?(?:dx\.)?doi\.org/(10\.\d{4,}.+)$", re.IGNORECASE)
_DOI_SCHEME = re.compile(r"^doi:\s*(10\.\d{4,}.+)$", re.IGNORECASE)


def extract_id(value: Optional[str]) -> str:
    """strip a known openalex url prefix. anything else passes through."""
    if not value:
        return ""
    for prefix in OPENALEX_URL_PREFIXES:
        if value.startswith(prefix):
            return value.rstrip("/").split("/")[-1]
    return value


def parse_doi(value: Optional[str]) -> Optional[str]:
    """
    extract a raw DOI (10.xxxx/...) from common input forms:
    raw DOI, doi: scheme, doi.org or dx.doi.org urls with or without protocol.
    returns None if the value is not a DOI.
    """
    if not value:
        return None
    trimmed = value.strip()

    if _RAW_DOI.match(trimmed):
        return trimmed

    match = _DOI_URL.match(trimmed) or _DOI_SCHEME.match(trimmed)
    if match:
        return match.group(1)

    return None


def normalize_id(value: Optional[str]) -> str:
    """
    canonical key for a work identifier.

    openalex urls collapse to the bare id (W123...). DOIs become the
    DOI-resolution url, which the provider resolves to the bare id on fetch.
    empty or unparseable input gives "" and callers must treat that as invalid.
    idempotent: normalize_id(normalize_id(x)) == normalize_id(x).
    """
    if not value:
        return ""
    trimmed = value.strip()
    if not trimmed:
        return ""

    doi = parse_doi(trimmed)
    if doi:
        return f"{DOI_URL_PREFIX}{doi}"

    key = extract_id(trimmed)
    if "/" in key or any(c.isspace() for c in key):
        return ""
    return key


def is_doi_key(key: str) -> bool:
    """true if a normalized key still needs DOI resolution."""
    return key.startswith(DOI_URL_PREFIX)
