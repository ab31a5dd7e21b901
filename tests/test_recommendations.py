"""Tests for recommendation generation."""

import json

import pytest

from src.insights.recommendations import (
    RecommendationGenerator,
    fallback_recommendations,
    validate_items,
)
from src.llm.client import MockLLMClient
from src.models.insights import CaseParameters


class TestValidateItems:
    """Tests for per-item validation."""

    def test_drops_invalid_items(self):
        items = [
            {"title": "Good", "description": "Valid item"},
            {"title": "", "description": "Empty title"},
            {"description": "Missing title"},
            "not an object",
        ]
        valid = validate_items(items)
        assert [r.title for r in valid] == ["Good"]

    def test_non_list(self):
        assert validate_items({"title": "x"}) == []
        assert validate_items(None) == []


class TestFallback:
    """Tests for the fixed template."""

    def test_template_shape(self):
        result = fallback_recommendations()

        assert result.is_fallback is True
        assert len(result.recommendations) == 3
        assert len(result.alternatives) == 1
        assert result.recommendations[0].title == "Comprehensive Multidisciplinary Assessment"
        assert all(r.action_steps for r in result.recommendations)


class TestRecommendationGenerator:
    """Tests for RecommendationGenerator."""

    @pytest.mark.asyncio
    async def test_generates_from_llm(self, llm_client, case_params):
        result = await RecommendationGenerator(llm_client).generate("query text", case_params)

        assert result.is_fallback is False
        assert [r.title for r in result.recommendations] == ["Functional Communication Training"]
        assert result.alternatives[0].action_steps == ["Print a daily schedule"]

        call = llm_client.calls[0]
        assert call["json_mode"] is True
        assert call["temperature"] == 0.7
        assert call["max_tokens"] == 2500
        assert "Diagnoses: autism" in call["prompt"]

    @pytest.mark.asyncio
    async def test_missing_params_in_prompt(self):
        llm = MockLLMClient(default_response="{}")
        await RecommendationGenerator(llm).generate("q", CaseParameters.empty())

        prompt = llm.calls[0]["prompt"]
        assert "Age: Not specified" in prompt
        assert "Interventions Tried: None reported" in prompt

    @pytest.mark.asyncio
    async def test_fallback_on_error(self, failing_llm_client, case_params):
        result = await RecommendationGenerator(failing_llm_client).generate("q", case_params)
        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_fallback_on_bad_json(self, case_params):
        llm = MockLLMClient(default_response="Here are some ideas: try therapy")
        result = await RecommendationGenerator(llm).generate("q", case_params)
        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_fallback_when_no_valid_items(self, case_params):
        llm = MockLLMClient(default_response=json.dumps({
            "recommendations": [{"title": "No description"}],
            "alternatives": [{"title": "Alt", "description": "Fine"}],
        }))
        result = await RecommendationGenerator(llm).generate("q", case_params)

        assert result.is_fallback is True
        assert len(result.recommendations) == 3

    @pytest.mark.asyncio
    async def test_invalid_items_dropped(self, case_params):
        llm = MockLLMClient(default_response=json.dumps({
            "recommendations": [
                {"title": "Keep", "description": "Valid", "priority": "High"},
                {"title": "Drop", "description": "Bad priority", "priority": "urgent"},
            ],
        }))
        result = await RecommendationGenerator(llm).generate("q", case_params)

        assert result.is_fallback is False
        assert [r.title for r in result.recommendations] == ["Keep"]
        assert result.recommendations[0].priority == "high"
        assert result.alternatives == []
