import json
import logging
from flask import current_app
from openai import OpenAI, OpenAIError

from exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

_client = None

def get_client():
    """Return the shared OpenAI client, creating it on first use"""
    global _client
    if _client is None:
        _client = OpenAI(api_key=current_app.config.get("OPENAI_API_KEY"))
    return _client

def complete_json(system_prompt, user_prompt, max_tokens):
    """Send one chat completion request and return the reply parsed as a JSON object.

    Raises UpstreamServiceError when the request fails or the reply is not a
    JSON object.
    """
    config = current_app.config
    try:
        response = get_client().chat.completions.create(
            model=config["OPENAI_MODEL"],
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            response_format={"type": "json_object"},
            temperature=config["OPENAI_TEMPERATURE"],
            max_tokens=max_tokens
        )
    except OpenAIError as e:
        logger.error(f"OpenAI API error: {e}")
        raise UpstreamServiceError(f"OpenAI API error: {getattr(e, 'status_code', None) or type(e).__name__}") from e

    if not response.choices:
        raise UpstreamServiceError("OpenAI API returned no choices")

    content = response.choices[0].message.content or ''
    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"Could not parse OpenAI reply as JSON: {content[:200]!r}")
        raise UpstreamServiceError("Malformed reply from AI service") from e

    if not isinstance(result, dict):
        raise UpstreamServiceError("Malformed reply from AI service")

    return result
