"""Directory listing scraper for the remote service.

The server has no listing API; a GET on a collection returns the HTML page a
browser would render. Parsing is an ordered chain of strategies: the first one
that returns without raising wins.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from typing import Protocol, Sequence

from core.remote.client_base import RemoteEntry
from core.remote.errors import ListingParseError

PARENT_GLYPH = "⇤"
PARENT_NAMES = frozenset({"Parent Directory", ".."})

_ROW_RE = re.compile(r"<tr[^>]*>(.*?)</tr>", re.IGNORECASE | re.DOTALL)
_ROW_OPEN_RE = re.compile(r"<tr[\s>]", re.IGNORECASE)
_NAME_CELL_RE = re.compile(
    r"<td[^>]*class[^>]*nameColumn[^>]*>.*?<a[^>]*href=\"([^\"]*)\"[^>]*>(.*?)</a>",
    re.IGNORECASE | re.DOTALL,
)
_TYPE_CELL_RE = re.compile(r"<td[^>]*class[^>]*typeColumn[^>]*>(.*?)</td>", re.IGNORECASE | re.DOTALL)
_SIZE_CELL_RE = re.compile(r"<td[^>]*class[^>]*sizeColumn[^>]*>(.*?)</td>", re.IGNORECASE | re.DOTALL)
_MODIFIED_CELL_RE = re.compile(
    r"<td[^>]*class[^>]*lastModifiedColumn[^>]*>(.*?)</td>",
    re.IGNORECASE | re.DOTALL,
)
_ANCHOR_RE = re.compile(r"<a[^>]*href=\"([^\"]*)\"[^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")

_logger = logging.getLogger("davoverlay.remote.listing")


class ListingStrategy(Protocol):
    name: str

    def parse(self, document: str) -> list[RemoteEntry]: ...


def strip_tags(fragment: str) -> str:
    return html_lib.unescape(_TAG_RE.sub("", fragment)).strip()


def is_parent_entry(name: str) -> bool:
    return not name or name.startswith(PARENT_GLYPH) or name in PARENT_NAMES


def is_directory_type(type_label: str) -> bool:
    return type_label == "Collection" or "directory" in type_label.lower()


class StructuredTableStrategy:
    name = "structured-table"

    def parse(self, document: str) -> list[RemoteEntry]:
        if document.strip() and _ROW_OPEN_RE.search(document) is None:
            raise ListingParseError("document contains no table rows")

        entries: list[RemoteEntry] = []
        for row in _ROW_RE.findall(document):
            name_match = _NAME_CELL_RE.search(row)
            type_match = _TYPE_CELL_RE.search(row)
            if name_match is None or type_match is None:
                continue

            name = strip_tags(name_match.group(2))
            if is_parent_entry(name):
                continue

            size_match = _SIZE_CELL_RE.search(row)
            modified_match = _MODIFIED_CELL_RE.search(row)
            type_label = strip_tags(type_match.group(1))
            entries.append(
                RemoteEntry(
                    name=name,
                    type_label=type_label,
                    size=strip_tags(size_match.group(1)) if size_match else "",
                    modified=strip_tags(modified_match.group(1)) if modified_match else "",
                    href=name_match.group(1).strip(),
                    is_directory=is_directory_type(type_label),
                )
            )
        return entries


class AnchorFallbackStrategy:
    name = "anchor-fallback"

    def parse(self, document: str) -> list[RemoteEntry]:
        entries: list[RemoteEntry] = []
        for href_raw, label in _ANCHOR_RE.findall(document):
            name = strip_tags(label)
            if is_parent_entry(name):
                continue

            href = href_raw.strip()
            is_directory = href.endswith("/") or "." not in href
            entries.append(
                RemoteEntry(
                    name=name,
                    type_label="Collection" if is_directory else "File",
                    size="",
                    modified="",
                    href=href,
                    is_directory=is_directory,
                )
            )
        return entries


DEFAULT_STRATEGIES: tuple[ListingStrategy, ...] = (StructuredTableStrategy(), AnchorFallbackStrategy())


def parse_listing(
    document: str,
    strategies: Sequence[ListingStrategy] = DEFAULT_STRATEGIES,
) -> list[RemoteEntry]:
    if not isinstance(document, str):
        return []

    for strategy in strategies:
        try:
            return strategy.parse(document)
        except Exception as error:
            _logger.debug("Listing strategy %s failed: %s", strategy.name, error)
    return []
