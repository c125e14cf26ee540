from __future__ import annotations

import hashlib
import logging
from typing import Iterable, List, NamedTuple, Optional, Sequence

from webagent.errors import UnsupportedActionError
from webagent.models import ACTIONS, ChangeRecord, Page, PageMetadata, utcnow
from webagent.paths import DEFAULT_EXTENSION, normalize

log = logging.getLogger(__name__)


class Reconciliation(NamedTuple):
    pages: List[Page]
    active_path: Optional[str]


def content_checksum(content: str) -> str:
    h = hashlib.sha256()
    h.update((content or "").encode("utf-8"))
    return h.hexdigest()


def active_path_of(pages: Iterable[Page]) -> Optional[str]:
    for page in pages:
        if page.isActive:
            return page.path
    return None


def _mark_active(pages: List[Page], active_path: Optional[str]) -> None:
    for page in pages:
        page.isActive = page.path == active_path


def target_path(change: ChangeRecord, extension: str = DEFAULT_EXTENSION) -> str:
    """Collection key a change applies to; an explicit `path` wins over `name`."""
    return normalize(change.path or change.name, extension)


def _index_of(pages: List[Page], path: str) -> int:
    for idx, page in enumerate(pages):
        if page.path == path:
            return idx
    return -1


def apply(
    collection: Sequence[Page],
    changes: Sequence[ChangeRecord],
    extension: str = DEFAULT_EXTENSION,
) -> Reconciliation:
    """Apply an ordered batch of change records to a page collection.

    Records are applied strictly in the order given. A create anywhere in
    the batch takes precedence over updates for choosing the active page,
    and the last create processed wins. Deleting the active page falls back
    to the first remaining page, or to no active page at all.

    The input collection is never mutated; the whole batch is checked for
    unsupported actions before anything is applied.
    """
    for change in changes:
        if change.action not in ACTIONS:
            raise UnsupportedActionError(change.action)

    pages = [p.model_copy(deep=True) for p in collection]
    active_path = active_path_of(pages)
    has_create = any(c.action == "create" for c in changes)
    active_changed = False

    for change in changes:
        path = target_path(change, extension)
        idx = _index_of(pages, path)
        now = utcnow().isoformat()
        size = len(change.content.encode("utf-8"))

        if change.action == "create":
            metadata = PageMetadata(created=now, size=size, checksum=content_checksum(change.content))
            if idx >= 0:
                # Paths stay unique: a create for an existing path rewrites it in place
                log.warning("reconcile: create for existing path=%s, replacing content", path)
                pages[idx].content = change.content
                pages[idx].metadata = metadata
            else:
                # Nameless creates are labelled by their path
                name = change.name or path.lstrip("/")
                pages.append(Page(name=name, path=path, content=change.content, metadata=metadata))
            active_path = path
            active_changed = True

        elif change.action == "update":
            if idx < 0:
                log.warning("reconcile: update for unknown path=%s ignored", path)
                continue
            page = pages[idx]
            created = page.metadata.created if page.metadata else None
            page.content = change.content
            page.metadata = PageMetadata(
                created=created,
                lastModified=now,
                size=size,
                checksum=content_checksum(change.content),
            )
            if not has_create:
                active_path = path
                active_changed = True

        else:
            if idx < 0:
                log.debug("reconcile: delete for unknown path=%s is a no-op", path)
                continue
            del pages[idx]
            if path == active_path:
                active_path = pages[0].path if pages else None
                active_changed = True

    if active_changed:
        _mark_active(pages, active_path)
    log.info(
        "reconcile: applied %d changes pages=%d active=%s",
        len(changes),
        len(pages),
        active_path,
    )
    return Reconciliation(pages, active_path)


def select_page(
    collection: Sequence[Page],
    raw_path: str,
    extension: str = DEFAULT_EXTENSION,
) -> Reconciliation:
    """Make the page at `raw_path` the only active one, if it exists."""
    pages = [p.model_copy(deep=True) for p in collection]
    path = normalize(raw_path, extension)
    if _index_of(pages, path) < 0:
        return Reconciliation(pages, active_path_of(pages))
    _mark_active(pages, path)
    return Reconciliation(pages, path)
