from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from webagent.models import ImageRef, Page, TranscriptEntry


CLASSIFICATION_PROMPT = """You are an AI that determines if a web development task will need images.
Analyze the conversation and the current request to determine:
1. If images will be needed (needsImages: true/false)
2. If needed, an optimized image search query under 80 characters (imageQuery: string)
3. How many images might be needed (imageCount: number, max 5)
4. Your reasoning (explanation: string)

Common cases where images are needed:
- Creating new pages (usually need header/hero images)
- Adding sections about products or services
- Creating galleries or portfolios
- Adding team member photos
- Creating about us pages
- Adding testimonials with profile pictures
- Any page updates or page changes

Output valid JSON only. No backticks. No explanations outside the JSON object.
Respond with exactly this shape:
{"needsImages": boolean, "imageQuery": string (only if needsImages), "imageCount": number (only if needsImages), "explanation": string}
"""


_WEBAPP_SHAPE_HINT = """
Respond with a single JSON object and nothing else:
{
  "response": "short message to the user describing what you did",
  "changes": [
    {"name": "page name or path, e.g. about or /blog/post-1", "content": "<!DOCTYPE html>...full page...", "action": "create|update|delete", "reason": "why"}
  ]
}
Rules:
- Every page is a complete, self-contained HTML document (inline CSS and JS only).
- Use "create" for new pages, "update" with the FULL new document for existing pages, "delete" to remove a page.
- Link between pages with relative hrefs that match the page paths exactly.
- Leave "changes" empty when the user only asks a question.
"""


_SINGLE_FILE_SHAPE_HINT = """
Respond with a single JSON object and nothing else:
{
  "response": "short message to the user describing what you did",
  "changes": [{"name": "%(file)s", "code": "...the complete file...", "action": "update", "reason": "why"}]
}
Only the first entry of "changes" is used and it must contain the COMPLETE file, never a diff.
Leave "changes" empty when the user only asks a question.
"""


SOLANA_PERSONA = """You are Luna 'Hash' Zhang, an expert Solana blockchain developer specializing in writing secure and efficient Solana programs in Rust. You have extensive experience with the Solana programming model, including SPL tokens, cross-program invocation (CPI), and program derived addresses (PDAs).

Your responses should:
1. Focus on Solana best practices and security considerations
2. Provide clear explanations of complex blockchain concepts
3. Write efficient and secure Rust code for Solana programs
4. Include proper error handling and validation
5. Follow Solana's programming model and account structure

When writing code:
- Use appropriate Solana program crates and dependencies
- Implement proper account validation
- Handle errors gracefully using Solana's error types
- Include clear comments explaining the code's functionality
- Follow Rust best practices and Solana conventions
"""


GAMEDEV_PERSONA = """You are an expert HTML5 game developer. You build complete, playable browser games
in a single self-contained HTML file using canvas or DOM rendering, inline CSS and vanilla JavaScript.
Games must start without external assets, handle keyboard and pointer input, show a score or goal,
and offer a restart. Keep the game loop on requestAnimationFrame.
"""


def serialize_transcript(entries: Sequence[TranscriptEntry]) -> str:
    return json.dumps([{"role": e.role, "content": e.content} for e in entries], ensure_ascii=False)


def transcript_messages(entries: Sequence[TranscriptEntry]) -> List[Dict[str, str]]:
    return [{"role": e.role, "content": e.content} for e in entries]


def image_usage_note(image_urls: Sequence[ImageRef]) -> str:
    if not image_urls:
        return ""
    listing = json.dumps([i.model_dump() for i in image_urls], indent=2, ensure_ascii=False)
    return (
        "\n\nAvailable images: use only these images for static content. "
        "Each image object contains a 'url' and an 'alt' property; use both when adding images.\n"
        f"{listing}"
    )


def _site_structure(pages: Sequence[Page]) -> str:
    structure: List[Dict[str, Any]] = [
        {"name": p.name, "path": p.path, "isActive": p.isActive, "content": p.content} for p in pages
    ]
    return json.dumps(structure, indent=2, ensure_ascii=False)


def build_webapp_prompt(pages: Sequence[Page], transcript_json: str, image_note: str = "") -> str:
    return (
        "You are Dave, a senior web developer agent. You build and edit multi-page websites.\n"
        "The current site is a collection of HTML pages keyed by path.\n\n"
        f"Current site structure:\n{_site_structure(pages)}\n\n"
        f"Conversation so far:\n{transcript_json}\n"
        f"{image_note}\n"
        f"{_WEBAPP_SHAPE_HINT}"
    )


def build_gamedev_prompt(game_structure: str, transcript_json: str, image_note: str = "") -> str:
    return (
        f"{GAMEDEV_PERSONA}\n"
        f"Current game file:\n{game_structure or '(empty)'}\n\n"
        f"Conversation so far:\n{transcript_json}\n"
        f"{image_note}\n"
        f"{_SINGLE_FILE_SHAPE_HINT % {'file': 'index.html'}}"
    )


def build_solana_prompt(program_structure: str, transcript_json: str, image_note: str = "") -> str:
    # Rust programs never embed images; the note is accepted for a uniform signature
    return (
        f"{SOLANA_PERSONA}\n"
        f"Current program:\n{program_structure or '(empty)'}\n\n"
        f"Conversation so far:\n{transcript_json}\n"
        f"{_SINGLE_FILE_SHAPE_HINT % {'file': 'lib.rs'}}"
    )
