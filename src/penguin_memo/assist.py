"""LLM helpers: suggest a command from a request, write a note for a logged command."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from .config import Config
from .llm import generate
from .models import Category

_LOGGER = logging.getLogger(__name__)

# Output beyond this many characters is not sent to the LLM.
NOTE_OUTPUT_LIMIT = 1000

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

SUGGEST_PROMPT = """\
You are a Linux expert. A user is asking for a Linux command related to: "{query}".
Provide the most appropriate command, a brief description, and the best fitting category.
If the request is vague, provide the most common interpretation.

Reply with a single JSON object and nothing else:
{{"command": "...", "description": "...", "category": "..."}}

category must be one of: {categories}
"""

NOTE_PROMPT = """\
You are a DevOps assistant helping to document server operations.
Analyze the following Linux command and its execution output.

Command: {command}
Output (truncated): {output}

Write a concise note (1-2 sentences) explaining the purpose of this command and
what the result indicates. Focus on the intent and the outcome.
Reply with the note text only.
"""


@dataclass
class CommandSuggestion:
    command: str
    description: str
    category: Category


def suggest_command(query: str, config: Config | None = None) -> CommandSuggestion:
    """Ask the LLM for a command matching a natural-language request.

    Raises:
        ValueError: If the reply has no usable JSON object with a command.
    """
    prompt = SUGGEST_PROMPT.format(
        query=query.strip(),
        categories=", ".join(c.value for c in Category),
    )
    reply = generate(prompt, config)
    data = _parse_json_reply(reply)

    command = str(data.get("command", "")).strip()
    if not command:
        raise ValueError("LLM reply did not contain a command")

    return CommandSuggestion(
        command=command,
        description=str(data.get("description", "")).strip(),
        category=Category.parse(str(data.get("category", ""))),
    )


def summarize_log(command: str, output: str, config: Config | None = None) -> str:
    """Write a short note for a command and its output."""
    prompt = NOTE_PROMPT.format(
        command=command,
        output=output[:NOTE_OUTPUT_LIMIT] if output else "(No output)",
    )
    return generate(prompt, config).strip()


def _parse_json_reply(reply: str) -> dict:
    """Extract the JSON object from an LLM reply, tolerating code fences and chatter."""
    text = reply.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Unparseable LLM reply: %r", reply[:200])
        raise ValueError(f"LLM reply is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("LLM reply is not a JSON object")
    return data
