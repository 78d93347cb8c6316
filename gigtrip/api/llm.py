"""LLM helper functions for the event trip planner.

Streams chat completions from OpenAI.  The client is created lazily so the
package imports cleanly without ``OPENAI_API_KEY`` (tests, REST-only use).
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from openai import OpenAI

from gigtrip.api.config import get_chat_config, get_openai_api_key

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None


def _get_client() -> OpenAI:
    """Return a cached OpenAI client."""
    global _client
    if _client is None:
        _client = OpenAI(api_key=get_openai_api_key())
    return _client


def _build_messages(transcript: List[Dict[str, str]], system_prompt: str) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    for message in transcript:
        if message.get("role") not in ("user", "assistant"):
            continue
        messages.append({"role": message["role"], "content": message.get("content", "")})
    return messages


def stream_chat_completion(transcript: List[Dict[str, str]],
                           system_prompt: Optional[str] = None) -> Iterator[str]:
    """Yield the assistant reply to ``transcript`` chunk by chunk.

    Args:
        transcript: Ordered ``{"role", "content"}`` dicts, oldest first
        system_prompt: Overrides the configured planner instructions

    Yields:
        Text increments as they arrive from the API
    """
    config = get_chat_config()
    messages = _build_messages(transcript, system_prompt or config["instructions"])

    logger.debug(
        "Calling OpenAI ChatCompletion (stream): model=%s messages=%d",
        config["model"],
        len(messages),
    )

    stream = _get_client().chat.completions.create(
        model=config["model"],
        messages=messages,
        temperature=config["temperature"],
        max_tokens=config["max_tokens"],
        stream=True,
    )

    for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta
