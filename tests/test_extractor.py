"""Tests for the case parameter extractor."""

import json

import pytest

from src.insights.extractor import CaseParameterExtractor
from src.llm.client import MockLLMClient
from src.models.insights import CaseParameters


SCENARIO_QUERY = "My 8-year-old with ASD struggles with transitions at school"


class TestCaseParameterExtractor:
    """Tests for CaseParameterExtractor."""

    @pytest.mark.asyncio
    async def test_scenario_extraction(self):
        llm = MockLLMClient(default_response=json.dumps({
            "age": "8",
            "diagnosis": ["ASD"],
            "interventions": [],
            "challenges": ["transitions"],
            "goals": [],
        }))
        params = await CaseParameterExtractor(llm).extract(SCENARIO_QUERY)

        assert params.age == "8"
        assert params.diagnosis == ["ASD"]
        assert params.challenges == ["transitions"]

    @pytest.mark.asyncio
    async def test_call_settings(self):
        llm = MockLLMClient(default_response="{}")
        await CaseParameterExtractor(llm, model="extract-model").extract(SCENARIO_QUERY)

        call = llm.calls[0]
        assert call["json_mode"] is True
        assert call["temperature"] == 0.3
        assert call["max_tokens"] == 500
        assert call["model"] == "extract-model"
        assert SCENARIO_QUERY in call["prompt"]

    @pytest.mark.asyncio
    async def test_fenced_response(self):
        llm = MockLLMClient(default_response='```json\n{"diagnosis": ["ADHD"]}\n```')
        params = await CaseParameterExtractor(llm).extract("Child with ADHD cannot focus")
        assert params.diagnosis == ["ADHD"]
        assert params.goals == []

    @pytest.mark.asyncio
    async def test_adapter_error_gives_empty(self):
        extractor = CaseParameterExtractor(MockLLMClient(error=RuntimeError("down")))
        for _ in range(3):
            assert await extractor.extract(SCENARIO_QUERY) == CaseParameters.empty()

    @pytest.mark.asyncio
    async def test_unparseable_gives_empty(self):
        extractor = CaseParameterExtractor(MockLLMClient(default_response="I cannot help"))
        assert await extractor.extract(SCENARIO_QUERY) == CaseParameters.empty()

    @pytest.mark.asyncio
    async def test_invalid_shape_gives_empty(self):
        llm = MockLLMClient(default_response='{"diagnosis": {"nested": true}, "age": [1]}')
        params = await CaseParameterExtractor(llm).extract(SCENARIO_QUERY)
        assert params == CaseParameters.empty()
