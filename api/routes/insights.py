"""Clinical insights API routes with SSE streaming."""

from functools import lru_cache
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from api.schemas.insights import (
    AnalyzeRequest,
    ConversationResponse,
    ConversationSummaryResponse,
    FeedbackRequest,
    FeedbackResponse,
    FollowUpRequest,
    FollowUpResponse,
    InsightResponse,
    PlanRequest,
    SimplifyRequest,
    SimplifyResponse,
)
from src.config import InsightSettings
from src.insights.conversation import AnalysisResult, ConversationManager
from src.insights.factory import (
    build_content_simplifier,
    build_conversation_manager,
    build_plan_generator,
)
from src.insights.plans import PlanGenerator
from src.insights.simplifier import ContentSimplifier
from src.models.conversation import RelatedPost
from src.models.errors import (
    ConversationNotFoundError,
    GenerationError,
    InputValidationError,
    PlanNotFoundError,
)
from src.models.plans import StructuredPlan
from src.models.progress import ProgressStage, StreamEvent
from src.utils.logging import get_logger


router = APIRouter()
logger = get_logger("api.insights")


@lru_cache(maxsize=1)
def get_manager() -> ConversationManager:
    """Process-wide ConversationManager, built on first use."""
    return build_conversation_manager(InsightSettings.from_config())


@lru_cache(maxsize=1)
def get_plan_generator() -> PlanGenerator:
    return build_plan_generator(InsightSettings.from_config())


@lru_cache(maxsize=1)
def get_simplifier() -> ContentSimplifier:
    return build_content_simplifier(InsightSettings.from_config())


def to_response(result: AnalysisResult) -> InsightResponse:
    return InsightResponse(
        **result.bundle.model_dump(),
        conversation_id=result.conversation_id,
    )


@router.post("/insights/analyze", response_model=InsightResponse)
async def analyze(
    request: AnalyzeRequest,
    manager: ConversationManager = Depends(get_manager),
) -> InsightResponse:
    """Analyze a case and return the full insight bundle."""
    try:
        result = await manager.analyze(request.query, request.user_id)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return to_response(result)


@router.post("/insights/analyze-stream")
async def analyze_stream(
    request: AnalyzeRequest,
    manager: ConversationManager = Depends(get_manager),
) -> StreamingResponse:
    """Analyze a case, streaming stage progress via Server-Sent Events."""
    try:
        events = manager.analyze_stream(request.query, request.user_id)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for event in events:
                yield event.to_sse()
        except Exception as e:
            logger.error(f"Streaming error: {e}")
            yield StreamEvent(
                step=ProgressStage.ERROR,
                progress=0,
                message=str(e),
            ).to_sse()
        finally:
            await events.aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/insights/conversations/{conversation_id}/follow-up", response_model=InsightResponse)
async def follow_up(
    conversation_id: str,
    request: FollowUpRequest,
    manager: ConversationManager = Depends(get_manager),
) -> InsightResponse:
    """Ask a follow-up question within a conversation."""
    try:
        result = await manager.follow_up(conversation_id, request.query, request.user_id)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return to_response(result)


@router.get("/insights/history", response_model=list[ConversationSummaryResponse])
async def history(
    user_id: str = Query(..., min_length=1),
    manager: ConversationManager = Depends(get_manager),
) -> list[ConversationSummaryResponse]:
    """List a user's conversations, most recent first."""
    summaries = await manager.list_history(user_id)
    return [ConversationSummaryResponse(**s.model_dump()) for s in summaries]


@router.get("/insights/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    manager: ConversationManager = Depends(get_manager),
) -> ConversationResponse:
    try:
        conversation = await manager.get_conversation(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return ConversationResponse(**conversation.model_dump())


@router.delete("/insights/conversations/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    manager: ConversationManager = Depends(get_manager),
) -> dict:
    try:
        await manager.delete_conversation(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True}


@router.get(
    "/insights/conversations/{conversation_id}/follow-ups",
    response_model=list[FollowUpResponse],
)
async def get_follow_ups(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    manager: ConversationManager = Depends(get_manager),
) -> list[FollowUpResponse]:
    try:
        exchanges = await manager.get_follow_ups(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return [FollowUpResponse(**e.model_dump()) for e in exchanges]


@router.get(
    "/insights/conversations/{conversation_id}/posts",
    response_model=list[RelatedPost],
)
async def related_posts(
    conversation_id: str,
    user_id: str = Query(..., min_length=1),
    manager: ConversationManager = Depends(get_manager),
) -> list[RelatedPost]:
    """Community posts related to the conversation's case."""
    try:
        return await manager.find_related_posts(conversation_id, user_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")


@router.post("/insights/feedback", response_model=FeedbackResponse)
async def submit_feedback(
    request: FeedbackRequest,
    manager: ConversationManager = Depends(get_manager),
) -> FeedbackResponse:
    try:
        feedback = await manager.submit_feedback(
            request.conversation_id,
            request.user_id,
            request.value,
            request.comment,
        )
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return FeedbackResponse(
        conversation_id=feedback.conversation_id,
        value=feedback.value,
        comment=feedback.comment,
        created_at=feedback.created_at,
    )


@router.post("/insights/plans", response_model=StructuredPlan)
async def create_plan(
    request: PlanRequest,
    planner: PlanGenerator = Depends(get_plan_generator),
) -> StructuredPlan:
    """Draft a week-by-week plan for one recommendation."""
    try:
        return await planner.create_plan(request.recommendation, request.user_id)
    except GenerationError as e:
        logger.error(f"Plan creation failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to create plan. Please try again.")


@router.get("/insights/plans/{plan_id}", response_model=StructuredPlan)
async def get_plan(
    plan_id: str,
    user_id: str = Query(..., min_length=1),
    planner: PlanGenerator = Depends(get_plan_generator),
) -> StructuredPlan:
    try:
        return await planner.get_plan(plan_id, user_id)
    except PlanNotFoundError:
        raise HTTPException(status_code=404, detail="Plan not found")


@router.post("/insights/simplify", response_model=SimplifyResponse)
async def simplify(
    request: SimplifyRequest,
    simplifier: ContentSimplifier = Depends(get_simplifier),
) -> SimplifyResponse:
    """Rewrite clinical text in plain language for parents."""
    try:
        result = await simplifier.simplify(request.content)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SimplifyResponse(text=result.text, simplified=result.simplified)
