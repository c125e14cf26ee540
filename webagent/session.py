from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from webagent import config, reconciler
from webagent.errors import WebAgentError
from webagent.models import AGENT_TYPES, ChangeRecord, Page, PageMetadata, PipelineResult, TranscriptEntry, utcnow
from webagent.pipeline import PromptPipeline
from webagent.render import render_placeholder_page, render_starter_program
from webagent.transcript import ChatTranscript

log = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, there was an error processing your request. Please try again."

_AGENT_NAMES = {"webapp": "WebAppAgent", "gamedev": "GameDev", "solana": "SolanaAgent"}

Chat = Callable[[str, Sequence[TranscriptEntry], Sequence[Page], str], PipelineResult]


def _extension(agent_type: str) -> str:
    return ".rs" if agent_type == "solana" else ".html"


def seed_pages(agent_type: str) -> List[Page]:
    """The single placeholder page a fresh session starts with."""
    if agent_type == "solana":
        content = render_starter_program()
        page = Page(name="lib.rs", path="/lib.rs", content=content, isActive=True)
    else:
        content = render_placeholder_page()
        page = Page(name="Home", path="/index.html", content=content, isActive=True)
    page.metadata = PageMetadata(
        created=utcnow().isoformat(),
        size=len(content.encode("utf-8")),
        checksum=reconciler.content_checksum(content),
    )
    return [page]


class EditingSession:
    """Owns one transcript and one page collection for a single editing view.

    `chat` defaults to running the prompt pipeline in-process; pass
    `ApiClient(...).run` to go through the HTTP backend instead.
    """

    def __init__(self, agent_type: str = "webapp", chat: Optional[Chat] = None) -> None:
        if agent_type not in AGENT_TYPES:
            raise ValueError(f"unknown agent type: {agent_type!r}")
        self.agent_type = agent_type
        self.agent_name = _AGENT_NAMES[agent_type]
        self.transcript = ChatTranscript()
        self.pages: List[Page] = seed_pages(agent_type)
        self.active_path: Optional[str] = self.pages[0].path
        self.activity: List[str] = []
        self._chat = chat or self._run_pipeline

    @staticmethod
    def _run_pipeline(prompt, transcript, pages, agent_type) -> PipelineResult:
        return PromptPipeline().run(prompt, transcript, pages, agent_type=agent_type)

    @property
    def active_page(self) -> Optional[Page]:
        for page in self.pages:
            if page.path == self.active_path:
                return page
        return None

    def send(self, prompt: str) -> Optional[PipelineResult]:
        self.transcript.append(TranscriptEntry(role="user", agentName="User", content=prompt))
        context = self.transcript.last_n(config.CONTEXT_WINDOW)
        try:
            result = self._chat(prompt, context, list(self.pages), self.agent_type)
            if self.agent_type == "webapp":
                self._apply_webapp(result)
            else:
                self._apply_single_file(result)
        except WebAgentError as exc:
            log.warning("session.send: chat failed agent=%s err=%r", self.agent_type, exc)
            self.transcript.append(
                TranscriptEntry(role="assistant", agentName=self.agent_name, content=FALLBACK_REPLY)
            )
            self.activity.append(f"Error processing request: {type(exc).__name__}")
            return None
        self.transcript.append(
            TranscriptEntry(role="assistant", agentName=self.agent_name, content=result.response_text)
        )
        return result

    def select(self, raw_path: str) -> Optional[str]:
        pages, active = reconciler.select_page(self.pages, raw_path, _extension(self.agent_type))
        if active != self.active_path:
            self.activity.append(f"Switched to page: {active}")
        self.pages, self.active_path = pages, active
        return active

    def _apply_webapp(self, result: PipelineResult) -> None:
        changes = result.changes
        if not changes:
            return
        pages, active = reconciler.apply(self.pages, changes)
        for change in changes:
            path = reconciler.target_path(change)
            verb = {"create": "Creating new page", "update": "Updating page", "delete": "Deleting page"}[change.action]
            self.activity.append(f"{verb}: {path}")
        self.pages, self.active_path = pages, active
        self.activity.append(f"Changes applied: {len(changes)} (current page: {active})")

    def _apply_single_file(self, result: PipelineResult) -> None:
        # Single-file agents only ever rewrite their one seeded file
        code = result.change_set.code
        if code is None:
            return
        record = ChangeRecord(name=self.pages[0].path, content=code, action="update")
        pages, active = reconciler.apply(self.pages, [record], _extension(self.agent_type))
        self.pages, self.active_path = pages, active
        self.activity.append(f"Updated {active} ({len(code.encode('utf-8'))} bytes)")
