from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import requests

from webagent import config
from webagent.errors import ChatRequestFailed, SiteNotFoundError, SiteStoreError
from webagent.models import (
    GameChangeSet,
    ImageDecision,
    ImageRef,
    Page,
    PipelineResult,
    SolanaChangeSet,
    TranscriptEntry,
    WebAppChangeSet,
)
from webagent.llm_parsing import webapp_changes
from webagent.pipeline import single_file_structure

log = logging.getLogger(__name__)

_CHANGE_SETS = {"webapp": WebAppChangeSet, "gamedev": GameChangeSet, "solana": SolanaChangeSet}


class ApiClient:
    """Client for the backend's JSON routes, mirroring the browser service layer."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 90.0) -> None:
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        # Covers both model stages plus overhead on the server side
        self.timeout = timeout

    def chat(self, prompt: str, previous_messages: Sequence[TranscriptEntry], site_structure: Sequence[Page]) -> Dict[str, Any]:
        body = {
            "prompt": prompt,
            "previousMessages": [m.model_dump(mode="json") for m in previous_messages],
            "siteStructure": [p.model_dump(mode="json", exclude_none=True) for p in site_structure],
        }
        return self._post_chat("/api/chat", body)

    def gamedev_chat(self, prompt: str, previous_messages: Sequence[TranscriptEntry], game_structure: str) -> Dict[str, Any]:
        body = {
            "prompt": prompt,
            "previousMessages": [m.model_dump(mode="json") for m in previous_messages],
            "gameStructure": game_structure,
        }
        return self._post_chat("/api/gamedevchat", body)

    def solana_chat(self, prompt: str, previous_messages: Sequence[TranscriptEntry], program_structure: str) -> Dict[str, Any]:
        body = {
            "prompt": prompt,
            "previousMessages": [m.model_dump(mode="json") for m in previous_messages],
            "programStructure": program_structure,
        }
        return self._post_chat("/api/solanachat", body)

    def run(
        self,
        prompt: str,
        transcript: Sequence[TranscriptEntry],
        pages: Sequence[Page],
        agent_type: str = "webapp",
    ) -> PipelineResult:
        """Same contract as PromptPipeline.run, answered by the HTTP backend."""
        if agent_type == "webapp":
            data = self.chat(prompt, transcript, pages)
        elif agent_type == "gamedev":
            data = self.gamedev_chat(prompt, transcript, single_file_structure(pages))
        else:
            data = self.solana_chat(prompt, transcript, single_file_structure(pages))
        try:
            change_set = _CHANGE_SETS[agent_type].model_validate({"changes": webapp_changes(data)})
            return PipelineResult(
                response_text=data.get("response") or "",
                change_set=change_set,
                image_decision=ImageDecision.model_validate(data.get("imageDecision") or {"needsImages": False}),
                image_urls=[ImageRef.model_validate(i) for i in data.get("imageUrls") or []],
            )
        except ValueError as exc:
            raise ChatRequestFailed(f"unexpected chat response shape: {exc}") from exc

    def recent_sites(self) -> Dict[str, Any]:
        return self._get_site_json("/api/recentsites")

    def sites(self, start_after: Optional[str] = None) -> Dict[str, Any]:
        params = {"startAfter": start_after} if start_after else None
        return self._get_site_json("/api/sites", params=params)

    def site(self, site_id: str) -> Dict[str, Any]:
        return self._get_site_json(f"/api/sites/{site_id}")

    def host_site(self, pages: Sequence[Page], metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = {"pages": [p.model_dump(mode="json", exclude_none=True) for p in pages], "metadata": metadata}
        try:
            resp = requests.post(f"{self.base_url}/api/host", json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SiteStoreError(f"failed to host site: {exc}") from exc
        if resp.status_code != 200:
            raise SiteStoreError(f"failed to host site: HTTP {resp.status_code}")
        return resp.json()

    def _post_chat(self, route: str, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = requests.post(f"{self.base_url}{route}", json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            log.warning("api_client: %s request error: %r", route, exc)
            raise ChatRequestFailed(f"failed to send chat message: {exc}") from exc
        if resp.status_code != 200:
            log.warning("api_client: %s HTTP %s", route, resp.status_code)
            raise ChatRequestFailed(f"failed to send chat message: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise ChatRequestFailed("chat response is not JSON") from exc

    def _get_site_json(self, route: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            resp = requests.get(f"{self.base_url}{route}", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SiteStoreError(f"failed to fetch {route}: {exc}") from exc
        if resp.status_code == 404:
            raise SiteNotFoundError(route.rsplit("/", 1)[-1])
        if resp.status_code != 200:
            raise SiteStoreError(f"failed to fetch {route}: HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise SiteStoreError(f"{route} returned a non-JSON body") from exc
