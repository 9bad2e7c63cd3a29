"""
LLM Helpers Module

Centralized LLM calls, prompt rendering and response parsing for every
LLM-backed collaborator. No inline prompts scattered in code.

Retries are not applied here: the analysis pipeline is retried as a whole by
RetryPolicy, so SDK failures are translated into the error taxonomy and
raised immediately.

Example Usage:
    from scholar_matcher.utils.llm_helpers import (
        analyze_publication_evidence,
        extract_staff_names,
    )

    payload = await analyze_publication_evidence(
        researcher_name="Dr. Jane Smith",
        articles=articles,
        research_interests="Medical Imaging, Robotics",
    )
    names = await extract_staff_names(department_page_text)
"""

import json
from typing import Any, Optional, Sequence

import structlog

from scholar_matcher.errors import (
    ConfigurationError,
    MalformedResponseError,
    TransportError,
)
from scholar_matcher.models.publication import Article
from scholar_matcher.utils.prompt_loader import render_prompt
from scholar_matcher.utils.validator import get_default_validator

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert research analyst. Respond directly to user prompts "
    "with the requested analysis as strict JSON."
)
EVIDENCE_SCHEMA = "evidence_response_schema.json"
NAMES_SCHEMA = "name_extraction_schema.json"


def _extract_json_from_markdown(response_text: str) -> str:
    """Extract JSON from LLM response, removing markdown code block markers if present."""
    json_text = response_text.strip()

    if json_text.startswith("```json"):
        json_text = json_text[7:]
    elif json_text.startswith("```"):
        json_text = json_text[3:]

    if json_text.endswith("```"):
        json_text = json_text[:-3]

    return json_text.strip()


def parse_json_response(
    response_text: str, schema_name: str, correlation_id: Optional[str] = None
) -> dict[str, Any]:
    """
    Parse and validate a JSON object from an LLM response.

    Args:
        response_text: Raw text response from LLM
        schema_name: Schema filename to validate against
        correlation_id: Optional correlation ID for logging

    Returns:
        Parsed JSON object

    Raises:
        MalformedResponseError: If the text is not JSON, not an object, or fails the schema
    """
    json_text = _extract_json_from_markdown(response_text)

    try:
        result = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error(
            "Failed to parse JSON from LLM response",
            error=str(e),
            response=response_text[:200],
            correlation_id=correlation_id,
        )
        raise MalformedResponseError(f"LLM response is not valid JSON: {e}") from e

    if not isinstance(result, dict):
        raise MalformedResponseError(
            f"LLM response must be a JSON object, got {type(result).__name__}"
        )

    get_default_validator().validate(result, schema_name)
    return result


async def call_llm(prompt: str, correlation_id: Optional[str] = None) -> str:
    """
    Send a single stateless prompt to the LLM and return the text response.

    Args:
        prompt: The formatted prompt to send to the LLM
        correlation_id: Optional correlation ID for logging

    Returns:
        LLM response text

    Raises:
        ConfigurationError: If the Claude CLI is not installed
        TransportError: If the SDK connection or subprocess fails
        MalformedResponseError: If the SDK output cannot be decoded or is empty
    """
    from claude_agent_sdk import (
        ClaudeAgentOptions,
        ClaudeSDKClient,
        CLIConnectionError,
        CLIJSONDecodeError,
        CLINotFoundError,
        ProcessError,
    )

    log = logger.bind(correlation_id=correlation_id) if correlation_id else logger
    log.debug("LLM call initiated", prompt_length=len(prompt))

    options = ClaudeAgentOptions(
        max_turns=1,
        allowed_tools=[],
        system_prompt=SYSTEM_PROMPT,
        setting_sources=None,
    )

    response_text = ""
    try:
        async with ClaudeSDKClient(options=options) as client:
            await client.query(prompt)

            async for message in client.receive_response():
                if hasattr(message, "content") and message.content:
                    for block in message.content:
                        if hasattr(block, "text"):
                            response_text += block.text

    except CLINotFoundError as e:
        log.error("Claude CLI not found", error=str(e))
        raise ConfigurationError(f"LLM backend is not available: {e}") from e
    except CLIJSONDecodeError as e:
        log.error("LLM output could not be decoded", error=str(e))
        raise MalformedResponseError(f"LLM output could not be decoded: {e}") from e
    except (CLIConnectionError, ProcessError) as e:
        log.error("LLM call failed", error=str(e), prompt_length=len(prompt))
        raise TransportError(f"LLM call failed: {e}") from e

    if not response_text.strip():
        raise MalformedResponseError("LLM returned empty response")

    log.debug("LLM call succeeded", response_length=len(response_text))
    return response_text.strip()


async def analyze_publication_evidence(
    researcher_name: str,
    articles: Sequence[Article],
    research_interests: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """
    Summarize a researcher's publications and judge which user interests they address.

    Args:
        researcher_name: Researcher display name
        articles: Publications to analyze (already capped by the caller)
        research_interests: Raw user interest text (may be empty)
        correlation_id: Optional correlation ID for logging

    Returns:
        Validated dict with 'summary', and optionally 'keywords',
        'matched_user_interests', 'matchReason'
    """
    prompt = render_prompt(
        "analysis/publication_evidence.j2",
        correlation_id=correlation_id,
        name=researcher_name,
        publications=list(articles),
        interests=research_interests.strip(),
    )

    response = await call_llm(prompt, correlation_id=correlation_id)
    return parse_json_response(response, EVIDENCE_SCHEMA, correlation_id=correlation_id)


async def extract_staff_names(
    text: str, max_chars: int = 30000, correlation_id: Optional[str] = None
) -> list[str]:
    """
    Extract academic staff names from free text (e.g. a pasted department page).

    Args:
        text: Free text to scan
        max_chars: Text is truncated to this many characters before prompting
        correlation_id: Optional correlation ID for logging

    Returns:
        Names in the order the LLM returned them
    """
    prompt = render_prompt(
        "extraction/staff_names.j2",
        correlation_id=correlation_id,
        text=text[:max_chars],
    )

    response = await call_llm(prompt, correlation_id=correlation_id)
    result = parse_json_response(response, NAMES_SCHEMA, correlation_id=correlation_id)
    return [name for name in result["names"] if name.strip()]
