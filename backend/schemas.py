"""
Pydantic schemas for API request/response validation.

These schemas provide:
- Type safety for API inputs and outputs
- Automatic validation and error messages
- OpenAPI documentation generation
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# =============================================================================
# Base Response Schemas
# =============================================================================

class AgentResponseSchema(BaseModel):
    """Standard response from the calendar agent."""
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[str]] = None
    side_effect: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error response for API errors."""
    detail: str
    code: Optional[str] = None


# =============================================================================
# Assistant Schemas
# =============================================================================

class AskRequest(BaseModel):
    """Request body for a free-text command."""
    text: str = Field(..., min_length=1, max_length=2000)
    dry_run: bool = Field(
        default=False,
        description="Compute the response without applying its side effect",
    )


class IntentResponse(BaseModel):
    """Parsed intent, without executing it."""
    type: str
    confidence: float = Field(..., ge=0, le=1)
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    all_day: bool = False
    query: Optional[str] = None


# =============================================================================
# Event Schemas
# =============================================================================

class LocationSchema(BaseModel):
    name: str = ""
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class EventResponse(BaseModel):
    """Calendar event data returned from API."""
    id: str
    title: str
    description: Optional[str] = None
    location: Optional[LocationSchema] = None
    start_time: str
    end_time: str
    all_day: bool = False
    category: str
    color: Optional[str] = None
    recurrence: Optional[Dict[str, Any]] = None
    reminders: List[Dict[str, Any]] = Field(default_factory=list)
    attendees: List[str] = Field(default_factory=list)
    remote_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class EventListResponse(BaseModel):
    """List of calendar events."""
    events: List[EventResponse]
    total: int


class TimeSlotResponse(BaseModel):
    start: str
    end: str


class FreeSlotsResponse(BaseModel):
    """Free slots for one day."""
    date: str
    slots: List[TimeSlotResponse]
    count: int


# =============================================================================
# Sync Schemas
# =============================================================================

class SyncResultResponse(BaseModel):
    """Outcome of one reconciliation pass."""
    created: int
    updated: int
    deleted: int
    errors: List[str]
    bound: Dict[str, str]
    cancelled: bool = False


class PullRequest(BaseModel):
    days: int = Field(default=30, ge=1, le=365)


class PullResponse(BaseModel):
    imported: List[EventResponse]
    total: int
