"""
OpenAI Ranking Service - AI ranking via an OpenAI-compatible chat API.

Fails fast: no retries here. Every failure is mapped onto the typed
AIMatchingError hierarchy so the orchestrator can fall back immediately.
"""
from typing import Dict, Any, List, Optional, Sequence
import json
import logging
import re

import openai
from openai import OpenAI

from core.config_loader import AIConfig
from core.errors import (
    AIMalformedResponseError,
    AIQuotaExceededError,
    AITimeoutError,
    AITransportError,
)
from core.llm.interfaces import RankingProvider
from core.llm.system_prompts import RANKING_SYSTEM_PROMPT, build_ranking_prompt
from core.models import Job, UserPreferences

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*")

# Model answers on a 1-10 scale
MODEL_SCORE_SCALE = 10


def parse_ranking_content(content: Optional[str]) -> List[Dict[str, Any]]:
    """Strip markdown fences and parse the model's JSON array.

    Scores on the 1-10 scale are converted to 0-100. Raises
    AIMalformedResponseError when the content is not a JSON array.
    """
    if not content or not content.strip():
        raise AIMalformedResponseError("No content in ranking response")

    cleaned = _FENCE_RE.sub("", content).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse ranking response: {e}")
        raise AIMalformedResponseError(f"Parse error: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("matches"), list):
        data = data["matches"]
    if not isinstance(data, list):
        raise AIMalformedResponseError("Response is not an array")

    items = []
    for item in data:
        if not isinstance(item, dict):
            raise AIMalformedResponseError(f"Ranking item is not an object: {item!r}")
        item = dict(item)
        score = item.get("match_score")
        if isinstance(score, (int, float)) and not isinstance(score, bool) and score <= MODEL_SCORE_SCALE:
            item["match_score"] = score * (100 / MODEL_SCORE_SCALE)
        items.append(item)
    return items


class OpenAIRankingService(RankingProvider):
    """
    OpenAI ranking backend.

    Builds the ranking prompt, calls chat completions with a hard timeout
    and parses the JSON array answer.
    """

    def __init__(self, config: Optional[AIConfig] = None, client: Optional[OpenAI] = None):
        self.config = config or AIConfig()

        if client is None:
            client_kwargs = {}
            if self.config.api_key:
                client_kwargs['api_key'] = self.config.api_key
            if self.config.base_url:
                client_kwargs['base_url'] = self.config.base_url
            # no client-side retries
            client_kwargs['max_retries'] = 0
            client = OpenAI(**client_kwargs)

        self.client = client

    @property
    def model_name(self) -> str:
        return self.config.model

    def rank_jobs(
        self,
        jobs: Sequence[Job],
        user: UserPreferences,
        timeout: float
    ) -> List[Dict[str, Any]]:
        prompt = build_ranking_prompt(
            jobs, user,
            max_matches=self.config.max_matches,
            description_chars=self.config.description_chars
        )
        messages = [
            {"role": "system", "content": RANKING_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise AITimeoutError(f"Ranking call timed out after {timeout}s") from e
        except openai.RateLimitError as e:
            raise AIQuotaExceededError(f"Rate limit exceeded: {e}") from e
        except openai.APIError as e:
            raise AITransportError(f"Ranking call failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError) as e:
            raise AIMalformedResponseError(f"Unexpected response shape: {e}") from e

        items = parse_ranking_content(content)
        logger.debug(f"Model {self.config.model} returned {len(items)} ranking items for {user.email}")
        return items

    def test_connection(self) -> bool:
        try:
            self.client.models.list(timeout=self.config.timeout_seconds)
            return True
        except openai.APIError as e:
            logger.warning(f"Ranking backend unreachable: {e}")
            return False
