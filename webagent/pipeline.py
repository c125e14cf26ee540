from __future__ import annotations

import json
import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from webagent import config, llm_client
from webagent.config import StageConfig
from webagent.errors import ClassificationParseError, GenerationParseError
from webagent.llm_parsing import (
    classification_schema,
    parse_json_object,
    schema_errors,
    single_file_reply_schema,
    webapp_changes,
    webapp_reply_schema,
)
from webagent.llm_prompts import (
    CLASSIFICATION_PROMPT,
    build_gamedev_prompt,
    build_solana_prompt,
    build_webapp_prompt,
    image_usage_note,
    serialize_transcript,
    transcript_messages,
)
from webagent.models import (
    AGENT_TYPES,
    ChangeRecord,
    GameChangeSet,
    ImageDecision,
    ImageRef,
    Page,
    PipelineResult,
    SolanaChangeSet,
    TranscriptEntry,
    WebAppChangeSet,
)

log = logging.getLogger(__name__)

Completion = Callable[[List[Dict[str, str]], StageConfig], str]
ImageLookup = Callable[[ImageDecision], List[ImageRef]]


def no_image_lookup(decision: ImageDecision) -> List[ImageRef]:
    """Image search hook. No provider is wired in, so no images are ever returned."""
    if decision.needsImages:
        log.debug("pipeline: image lookup not configured query=%r", decision.imageQuery)
    return []


def single_file_structure(pages: Sequence[Page]) -> str:
    """JSON `{"name", "code"}` for the one file a game or solana session edits."""
    if not pages:
        return ""
    page = pages[0]
    return json.dumps({"name": page.path.lstrip("/"), "code": page.content}, ensure_ascii=False)


class PromptPipeline:
    """Two sequential model calls: image-need classification, then content generation.

    Stage two is only issued after stage one returned a usable decision.
    Transport failures surface as ChatRequestFailed from the completion
    function; nothing is retried here.
    """

    def __init__(
        self,
        classifier: Optional[StageConfig] = None,
        generator: Optional[StageConfig] = None,
        complete: Optional[Completion] = None,
        image_lookup: Optional[ImageLookup] = None,
        context_window: int = config.CONTEXT_WINDOW,
    ) -> None:
        self.classifier = classifier or config.classifier_stage()
        self.generator = generator or config.generator_stage()
        self._complete = complete or llm_client.chat_completion
        self._image_lookup = image_lookup or no_image_lookup
        self.context_window = context_window

    def run(
        self,
        user_prompt: str,
        transcript: Sequence[TranscriptEntry],
        current_pages: Sequence[Page],
        agent_type: str = "webapp",
    ) -> PipelineResult:
        if agent_type not in AGENT_TYPES:
            raise ValueError(f"unknown agent type: {agent_type!r}")
        recent = list(transcript)[-self.context_window :] if self.context_window > 0 else []

        decision = self.classify(user_prompt, recent)
        image_urls = self._image_lookup(decision) if decision.needsImages else []

        system_prompt = self._system_prompt(agent_type, current_pages, recent, image_urls)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        text = self._call("generate", messages, self.generator)
        response_text, records = self._parse_generation(text, agent_type)

        if agent_type == "webapp":
            change_set = WebAppChangeSet(changes=records)
        elif agent_type == "gamedev":
            change_set = GameChangeSet(changes=records)
        else:
            change_set = SolanaChangeSet(changes=records)
        return PipelineResult(
            response_text=response_text,
            change_set=change_set,
            image_decision=decision,
            image_urls=image_urls,
        )

    def classify(self, user_prompt: str, recent: Sequence[TranscriptEntry]) -> ImageDecision:
        messages = [{"role": "system", "content": CLASSIFICATION_PROMPT}]
        messages.extend(transcript_messages(recent))
        messages.append({"role": "user", "content": user_prompt})
        text = self._call("classify", messages, self.classifier)
        try:
            doc = parse_json_object(text)
        except ValueError as exc:
            log.warning("pipeline.classify: unparseable reply: %s raw=%r", exc, text[:200])
            raise ClassificationParseError(str(exc)) from exc
        errors = schema_errors(doc, classification_schema())
        if errors:
            log.warning("pipeline.classify: schema errors=%s", errors)
            raise ClassificationParseError(f"classification reply failed validation: {errors[0]['message']}")
        return ImageDecision.model_validate(doc)

    def _call(self, stage_name: str, messages: List[Dict[str, str]], stage: StageConfig) -> str:
        log.info("pipeline.%s: calling model=%s messages=%d", stage_name, stage.model, len(messages))
        start = time.time()
        text = self._complete(messages, stage)
        log.info("pipeline.%s: done dur_ms=%d", stage_name, int((time.time() - start) * 1000))
        return text

    def _system_prompt(
        self,
        agent_type: str,
        pages: Sequence[Page],
        recent: Sequence[TranscriptEntry],
        image_urls: Sequence[ImageRef],
    ) -> str:
        transcript_json = serialize_transcript(recent)
        note = image_usage_note(image_urls)
        if agent_type == "webapp":
            return build_webapp_prompt(pages, transcript_json, note)
        if agent_type == "gamedev":
            return build_gamedev_prompt(single_file_structure(pages), transcript_json, note)
        return build_solana_prompt(single_file_structure(pages), transcript_json, note)

    def _parse_generation(self, text: str, agent_type: str):
        try:
            doc = parse_json_object(text)
        except ValueError as exc:
            log.warning("pipeline.generate: unparseable reply: %s raw=%r", exc, text[:200])
            raise GenerationParseError(str(exc)) from exc

        schema = webapp_reply_schema() if agent_type == "webapp" else single_file_reply_schema()
        errors = schema_errors(doc, schema)
        if errors:
            log.warning("pipeline.generate: schema errors=%s", errors)
            raise GenerationParseError(f"generation reply failed validation: {errors[0]['message']}")

        raw_changes = webapp_changes(doc) if agent_type == "webapp" else list(doc.get("changes") or [])
        try:
            records = [ChangeRecord.model_validate(c) for c in raw_changes]
        except PydanticValidationError as exc:
            raise GenerationParseError(f"invalid change record: {exc.errors()[0].get('msg')}") from exc
        return doc["response"], records
