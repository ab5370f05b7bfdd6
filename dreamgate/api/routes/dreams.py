from fastapi import APIRouter, Depends, Request, status

from dreamgate.core.rate_limit import enforce_rate_limit
from dreamgate.schemas.interpretation import InterpretDreamRequest, InterpretDreamResponse
from dreamgate.services.interpretation_service import InterpretationService

router = APIRouter(tags=["Dreams"])


def get_interpretation_service(request: Request) -> InterpretationService:
    """Return the interpretation service owned by the running application."""
    return request.app.state.interpretation_service


@router.post(
    "/dreams/interpret",
    response_model=InterpretDreamResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def interpret_dream(
    payload: InterpretDreamRequest,
    service: InterpretationService = Depends(get_interpretation_service),
) -> InterpretDreamResponse:
    """Interpret a dream description.

    Throttled per client. Identical dreams (ignoring case and spacing) are
    answered from the result cache without calling the model.

    Args:
        payload: Request body with the dream text.
        service: Injected interpretation service.

    Returns:
        InterpretDreamResponse: Interpretation and cache flag.

    Raises:
        ValidationAppError: 400 when the dream text is out of bounds.
        RateLimitedAppError: 429 when the caller is throttled.
        LLMAppError: 502 when the model fails.
    """
    return await service.interpret(payload.dream_text)
