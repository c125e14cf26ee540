from __future__ import annotations

import json
import logging
import re
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import redis

from webagent import config
from webagent.errors import SiteNotFoundError, SiteStoreError
from webagent.models import Page

log = logging.getLogger(__name__)

_SUMMARY_EXCLUDE = {"pages"}
_SITE_ID_RE = re.compile(r"[A-Za-z0-9-]+")


def build_site_record(
    pages: Sequence[Page],
    metadata: Optional[Dict[str, Any]] = None,
    site_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Site document persisted by every backend."""
    meta = dict(metadata or {})
    site_id = site_id or str(uuid.uuid4())
    first_name = pages[0].name if pages else None
    record: Dict[str, Any] = {
        "name": meta.get("name") or first_name or "Untitled Site",
        "description": meta.get("description") or "A generated website",
        "topics": meta.get("topics") or ["web"],
        "messageCount": meta.get("messageCount") or 0,
        "agentType": meta.get("agentType") or "webapp",
    }
    for key, val in meta.items():
        if key not in record:
            record[key] = val
    record.update(
        {
            "siteId": site_id,
            "pages": [{"name": p.name, "path": p.path, "content": p.content} for p in pages],
            "pageCount": len(pages),
            "totalSize": sum(len(p.content.encode("utf-8")) for p in pages),
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "url": f"/sites/{site_id}",
        }
    )
    return record


def _summary(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in _SUMMARY_EXCLUDE}


class SiteStore(ABC):
    """Narrow persistence interface: host, list, list recent, get by id."""

    def __init__(self, page_size: int = config.SITES_PAGE_SIZE, recent_limit: int = config.RECENT_SITES_LIMIT):
        self.page_size = max(1, page_size)
        self.recent_limit = max(1, recent_limit)

    def host_site(self, pages: Sequence[Page], metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = build_site_record(pages, metadata)
        self._save(record)
        log.info("site_store.host: stored site=%s pages=%d", record["siteId"], record["pageCount"])
        return {"success": True, "siteId": record["siteId"], "url": record["url"]}

    def list_sites(self, start_after: Optional[str] = None) -> Dict[str, Any]:
        """Newest first, one page of summaries after the `start_after` site id."""
        ids = self._ordered_ids()
        start = 0
        if start_after:
            try:
                start = ids.index(start_after) + 1
            except ValueError:
                log.info("site_store.list: unknown cursor=%s", start_after)
                return {"sites": [], "hasMore": False}
        window = ids[start : start + self.page_size]
        sites = [_summary(self.get_site(i)) for i in window]
        body: Dict[str, Any] = {"sites": sites, "hasMore": start + self.page_size < len(ids)}
        if body["hasMore"] and window:
            body["nextStartAfter"] = window[-1]
        return body

    def list_recent_sites(self) -> Dict[str, Any]:
        ids = self._ordered_ids()[: self.recent_limit]
        return {"sites": [_summary(self.get_site(i)) for i in ids]}

    @abstractmethod
    def get_site(self, site_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    def _save(self, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def _ordered_ids(self) -> List[str]:
        """Site ids, newest first."""


class FileSiteStore(SiteStore):
    """One JSON file per site; file names sort by creation time."""

    def __init__(self, directory: Optional[Path] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.directory = Path(directory or config.SITE_STORE_DIR)

    def _ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def _files(self) -> List[Path]:
        self._ensure_dir()
        return sorted(self.directory.glob("*.json"), reverse=True)

    def _save(self, record: Dict[str, Any]) -> None:
        try:
            self._ensure_dir()
            path = self.directory / f"{time.time_ns()}-{record['siteId']}.json"
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(record, ensure_ascii=False, separators=(",", ":")), encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise SiteStoreError(f"failed to write site {record['siteId']}: {exc}") from exc

    def _ordered_ids(self) -> List[str]:
        return [p.stem.split("-", 1)[1] for p in self._files()]

    def get_site(self, site_id: str) -> Dict[str, Any]:
        if not _SITE_ID_RE.fullmatch(site_id or ""):
            raise SiteNotFoundError(site_id)
        candidates = self.directory.glob(f"*-{site_id}.json") if self.directory.exists() else []
        # The glob also matches trailing hyphen groups of longer ids
        matches = [p for p in candidates if p.stem.split("-", 1)[1] == site_id]
        if not matches:
            raise SiteNotFoundError(site_id)
        try:
            return json.loads(matches[0].read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise SiteStoreError(f"failed to read site {site_id}: {exc}") from exc


class RedisSiteStore(SiteStore):
    """Sites as JSON strings plus a sorted set ordered by creation time."""

    def __init__(self, redis_url: Optional[str] = None, prefix: str = "webagent", client: Any = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.prefix = prefix
        # Connection is lazy; nothing touches the network until the first command
        self._client = client or redis.from_url(redis_url or config.REDIS_URL, decode_responses=True)

    def _site_key(self, site_id: str) -> str:
        return f"{self.prefix}:site:{site_id}"

    @property
    def _index_key(self) -> str:
        return f"{self.prefix}:sites"

    def _save(self, record: Dict[str, Any]) -> None:
        raw = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        try:
            pipe = self._client.pipeline()
            pipe.set(self._site_key(record["siteId"]), raw)
            pipe.zadd(self._index_key, {record["siteId"]: time.time()})
            pipe.execute()
        except redis.RedisError as exc:
            raise SiteStoreError(f"failed to write site {record['siteId']}: {exc}") from exc

    def _ordered_ids(self) -> List[str]:
        try:
            return list(self._client.zrevrange(self._index_key, 0, -1))
        except redis.RedisError as exc:
            raise SiteStoreError(f"failed to list sites: {exc}") from exc

    def get_site(self, site_id: str) -> Dict[str, Any]:
        try:
            raw = self._client.get(self._site_key(site_id))
        except redis.RedisError as exc:
            raise SiteStoreError(f"failed to read site {site_id}: {exc}") from exc
        if raw is None:
            raise SiteNotFoundError(site_id)
        return json.loads(raw)


def default_store() -> SiteStore:
    if config.REDIS_URL:
        log.info("site_store: using redis backend")
        return RedisSiteStore(config.REDIS_URL)
    return FileSiteStore(config.SITE_STORE_DIR)
