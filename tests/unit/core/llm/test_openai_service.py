"""
Unit tests for the OpenAI ranking service.

Tests verify:
- Model content parsing (fences, wrappers, 1-10 scale conversion)
- chat.completions is called with the configured model settings
- OpenAI SDK errors map onto the AIMatchingError hierarchy
"""
import pytest
from unittest.mock import MagicMock
import json

import httpx
import openai

from core.config_loader import AIConfig
from core.errors import (
    AIMalformedResponseError, AIQuotaExceededError, AITimeoutError, AITransportError
)
from core.llm.openai_service import OpenAIRankingService, parse_ranking_content
from core.llm.system_prompts import RANKING_SYSTEM_PROMPT
from tests.mocks.ranking_mocks import make_job, make_user


def _completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestParseRankingContent:

    def test_plain_array_scaled_to_100(self):
        items = parse_ranking_content(json.dumps([
            {"job_index": 1, "match_score": 9, "match_reason": "Great"},
        ]))
        assert items[0]["match_score"] == pytest.approx(90)

    def test_markdown_fences_stripped(self):
        content = "```json\n[{\"job_index\": 2, \"match_score\": 7}]\n```"
        assert parse_ranking_content(content)[0]["job_index"] == 2

    def test_matches_wrapper_accepted(self):
        content = json.dumps({"matches": [{"job_index": 1, "match_score": 85}]})
        items = parse_ranking_content(content)
        # already on the 0-100 scale
        assert items[0]["match_score"] == 85

    @pytest.mark.parametrize("content", [None, "", "   ", "not json", "{\"foo\": 1}", "[1, 2]"])
    def test_malformed(self, content):
        with pytest.raises(AIMalformedResponseError):
            parse_ranking_content(content)


class TestRankJobs:

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def service(self, client):
        config = AIConfig(model="gpt-4o-mini", temperature=0.3, max_tokens=2000, max_matches=5)
        return OpenAIRankingService(config, client=client)

    def test_calls_chat_completions(self, service, client):
        client.chat.completions.create.return_value = _completion(
            json.dumps([{"job_index": 1, "match_score": 8, "match_reason": "Fits", "match_tags": ["tech"]}])
        )
        jobs = [make_job("j1"), make_job("j2")]

        items = service.rank_jobs(jobs, make_user(), timeout=12)

        assert items == [{"job_index": 1, "match_score": pytest.approx(80), "match_reason": "Fits", "match_tags": ["tech"]}]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 2000
        assert kwargs["timeout"] == 12
        assert kwargs["messages"][0] == {"role": "system", "content": RANKING_SYSTEM_PROMPT}
        prompt = kwargs["messages"][1]["content"]
        assert "[1] Graduate Analyst" in prompt
        assert "[2] Graduate Analyst" in prompt
        assert "TOP 5" in prompt

    def test_timeout_maps_to_ai_timeout(self, service, client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
        with pytest.raises(AITimeoutError):
            service.rank_jobs([make_job("j1")], make_user(), timeout=1)

    def test_rate_limit_maps_to_quota(self, service, client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(429, request=request)
        client.chat.completions.create.side_effect = openai.RateLimitError(
            "rate limited", response=response, body=None
        )
        with pytest.raises(AIQuotaExceededError):
            service.rank_jobs([make_job("j1")], make_user(), timeout=1)

    def test_connection_error_maps_to_transport(self, service, client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=request)
        with pytest.raises(AITransportError):
            service.rank_jobs([make_job("j1")], make_user(), timeout=1)

    def test_empty_choices_is_malformed(self, service, client):
        response = MagicMock()
        response.choices = []
        client.chat.completions.create.return_value = response
        with pytest.raises(AIMalformedResponseError):
            service.rank_jobs([make_job("j1")], make_user(), timeout=1)

    def test_test_connection(self, service, client):
        assert service.test_connection() is True
        request = httpx.Request("GET", "https://api.openai.com/v1/models")
        client.models.list.side_effect = openai.APIConnectionError(request=request)
        assert service.test_connection() is False

    def test_model_name(self, service):
        assert service.model_name == "gpt-4o-mini"
