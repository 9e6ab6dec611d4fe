"""
Natural language assistant endpoints.

Free-text commands go through the CalendarAgent, which classifies the intent,
applies the conflict gate and returns a readable message plus the store
mutation it performed.
"""

from fastapi import APIRouter, Depends

from backend.dependencies import get_calendar_agent
from backend.schemas import AgentResponseSchema, AskRequest, IntentResponse
from smartcal.agents import CalendarAgent

router = APIRouter(prefix="/assistant", tags=["assistant"])


@router.post("/ask", response_model=AgentResponseSchema)
async def ask_assistant(
    request: AskRequest,
    agent: CalendarAgent = Depends(get_calendar_agent),
):
    """
    Run a calendar command.

    Examples:
    - "create team meeting tomorrow at 14:00 in Room 4"
    - "view today"
    - "when am I free?"
    - "delete Dentist"
    - "analyze my week"

    Event Store failures surface as 503 (see exception handlers in main).
    """
    if request.dry_run:
        response = agent.process(request.text)
    else:
        response = agent.handle(request.text)
    return AgentResponseSchema(**response.to_dict())


@router.post("/parse", response_model=IntentResponse)
async def parse_command(
    request: AskRequest,
    agent: CalendarAgent = Depends(get_calendar_agent),
):
    """Classify a command without touching the store."""
    return IntentResponse(**agent.extractor.parse(request.text).to_dict())
