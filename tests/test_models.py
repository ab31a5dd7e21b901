"""Tests for pipeline data models."""

import pytest
from pydantic import ValidationError

from src.models.conversation import Conversation, ConversationMessage, MessageRole
from src.models.insights import (
    CaseParameters,
    ExpertMatch,
    InsightBundle,
    LiteratureArticle,
    Recommendation,
    RecommendationSet,
    SimilarCase,
    calculate_confidence,
    format_citation,
    set_union,
)
from src.models.progress import ProgressStage, StreamEvent
from src.models.results import Branch, BranchError, BranchErrorKind, BranchResult
from src.utils.parsing import parse_json_object, strip_code_fences


def _article(i: int) -> LiteratureArticle:
    return LiteratureArticle(
        id=str(i), title=f"Title {i}", abstract="...", authors=["Smith J"],
        journal="J", year=2020,
    )


def _case(i: int) -> SimilarCase:
    return SimilarCase(
        id=str(i), title="t", content="c...", author_name="a", author_role="r",
        similarity=0.5, relevance_explanation="x",
    )


class TestCaseParameters:
    """Tests for CaseParameters coercion and merging."""

    def test_empty(self):
        params = CaseParameters.empty()
        assert params.model_dump() == {
            "age": None, "diagnosis": [], "interventions": [], "challenges": [], "goals": [],
        }

    def test_coerces_llm_shapes(self):
        params = CaseParameters.model_validate({
            "age": 8,
            "diagnosis": "ASD",
            "interventions": None,
            "challenges": ["transitions", "", None],
        })
        assert params.age == "8"
        assert params.diagnosis == ["ASD"]
        assert params.interventions == []
        assert params.challenges == ["transitions"]
        assert params.goals == []

    def test_rejects_nested_terms(self):
        with pytest.raises(ValidationError):
            CaseParameters.model_validate({"diagnosis": {"nested": True}})
        with pytest.raises(ValidationError):
            CaseParameters.model_validate({"challenges": ["sleep", ["nested"]]})

    def test_rejects_non_scalar_age(self):
        with pytest.raises(ValidationError):
            CaseParameters.model_validate({"age": [1]})
        with pytest.raises(ValidationError):
            CaseParameters.model_validate({"age": True})

    def test_keywords_lowercased(self):
        params = CaseParameters(diagnosis=["ASD"], challenges=["Sleep"], goals=["Speech"])
        assert params.keywords() == ["asd", "sleep", "speech"]
        assert params.keywords(include_goals=False) == ["asd", "sleep"]

    def test_merge_is_set_union(self):
        prior = CaseParameters(diagnosis=["ASD"])
        new = CaseParameters(diagnosis=["ASD", "ADHD"])
        assert new.merged_with(prior).diagnosis == ["ASD", "ADHD"]

    def test_merge_independent_of_order(self):
        prior = CaseParameters(diagnosis=["ASD", "ADHD"])
        new = CaseParameters(diagnosis=["ASD"])
        assert new.merged_with(prior).diagnosis == ["ASD", "ADHD"]

    def test_merge_keeps_new_interventions(self):
        prior = CaseParameters(interventions=["ABA"], challenges=["sleep"])
        new = CaseParameters(interventions=["OT"], challenges=["sleep", "eating"])
        merged = new.merged_with(prior)
        assert merged.interventions == ["OT"]
        assert merged.challenges == ["sleep", "eating"]

    def test_set_union_no_duplicates(self):
        assert set_union(["a", "b"], ["b", "c", "a"]) == ["a", "b", "c"]


class TestConfidence:
    """Tests for confidence scoring."""

    def test_baseline(self):
        assert calculate_confidence(0, 0) == 0.5

    def test_grows_with_evidence(self):
        assert calculate_confidence(1, 0) == pytest.approx(0.65)
        assert calculate_confidence(0, 2) == pytest.approx(0.7)

    def test_ceiling(self):
        assert calculate_confidence(10, 10) == 0.95

    @pytest.mark.parametrize("cases,articles", [(0, 0), (1, 1), (3, 5), (100, 100)])
    def test_always_in_range(self, cases, articles):
        assert 0.5 <= calculate_confidence(cases, articles) <= 0.95


class TestInsightBundle:
    """Tests for bundle assembly."""

    def test_assemble_applies_caps(self):
        bundle = InsightBundle.assemble(
            case_analysis=CaseParameters.empty(),
            similar_cases=[_case(i) for i in range(5)],
            articles=[_article(i) for i in range(8)],
            recommendations=RecommendationSet(),
            experts=[
                ExpertMatch(id=str(i), name="n", role="THERAPIST") for i in range(5)
            ],
            communities=[],
            organizations=[],
        )
        assert len(bundle.similar_cases) == 3
        assert len(bundle.articles) == 5
        assert len(bundle.experts) == 3

    def test_confidence_counts_uncapped_results(self):
        bundle = InsightBundle.assemble(
            case_analysis=CaseParameters.empty(),
            similar_cases=[_case(i) for i in range(5)],
            articles=[],
            recommendations=RecommendationSet(),
            experts=[], communities=[], organizations=[],
        )
        assert bundle.confidence == 0.95

    def test_frozen(self):
        bundle = InsightBundle(case_analysis=CaseParameters.empty())
        with pytest.raises(ValidationError):
            bundle.confidence = 0.9

    def test_citation_format(self):
        article = LiteratureArticle(
            id="1", title="ABA outcomes", authors=["Smith J", "Lee K"],
            journal="Pediatrics", year=2023,
        )
        assert format_citation(article) == "Smith J, Lee K, (2023). ABA outcomes. Pediatrics."

    def test_article_caps_validated(self):
        with pytest.raises(ValidationError):
            LiteratureArticle(id="1", title="t", authors=["a", "b", "c", "d"])


class TestRecommendation:
    """Tests for recommendation validation."""

    def test_priority_template_echo(self):
        rec = Recommendation(title="t", description="d", priority="High|medium|low")
        assert rec.priority == "high"

    def test_camel_case_keys_accepted(self):
        rec = Recommendation.model_validate({
            "title": "t",
            "description": "d",
            "actionSteps": ["one"],
            "costEstimate": "Free",
            "availability": {"india": False, "telehealth": True},
        })
        assert rec.action_steps == ["one"]
        assert rec.cost_estimate == "Free"
        assert rec.availability.region is False

    def test_invalid_priority(self):
        with pytest.raises(ValidationError):
            Recommendation(title="t", description="d", priority="urgent")

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            Recommendation(title="", description="d")


class TestConversationModels:
    """Tests for conversation and message models."""

    def test_assistant_message_round_trips_parameters(self):
        params = CaseParameters(diagnosis=["ASD"])
        bundle = InsightBundle(case_analysis=params)
        message = ConversationMessage.from_assistant("done", bundle)
        assert message.role == MessageRole.ASSISTANT
        assert message.case_parameters() == params

    def test_user_message_has_no_parameters(self):
        assert ConversationMessage.from_user("hello").case_parameters() is None

    def test_latest_assistant_message(self):
        first = ConversationMessage.from_assistant("one", InsightBundle(case_analysis=CaseParameters.empty()))
        second = ConversationMessage.from_assistant("two", InsightBundle(case_analysis=CaseParameters.empty()))
        conversation = Conversation(
            user_id="u", title="t",
            messages=[ConversationMessage.from_user("q"), first, ConversationMessage.from_user("f"), second],
        )
        assert conversation.latest_assistant_message().content == "two"


class TestStreamEvent:
    """Tests for streamed progress events."""

    def test_stage_progress(self):
        assert StreamEvent.for_stage(ProgressStage.EXTRACTING, "m").progress == 10
        assert StreamEvent.for_stage(ProgressStage.COMPLETE, "m").progress == 100

    def test_sse_format(self):
        frame = StreamEvent.for_stage(ProgressStage.SEARCHING, "Searching").to_sse()
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert '"step":"searching"' in frame
        assert "data" not in frame[len("data: "):]


class TestBranchResult:
    """Tests for BranchResult."""

    def test_success_value(self):
        result = BranchResult.success([1])
        assert result.ok
        assert result.unwrap_or(list) == [1]

    def test_failure_uses_fallback(self):
        error = BranchError(Branch.LITERATURE, BranchErrorKind.TIMEOUT, "slow")
        result = BranchResult.failure(error)
        assert not result.ok
        assert result.unwrap_or(list) == []


class TestParsing:
    """Tests for LLM JSON recovery."""

    def test_strip_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_parse_with_preamble(self):
        assert parse_json_object('Here you go: {"a": 1} thanks') == {"a": 1}

    def test_parse_garbage(self):
        assert parse_json_object("not json") is None
        assert parse_json_object("") is None

    def test_parse_non_object(self):
        assert parse_json_object("[1, 2]") is None
