"""Pydantic schemas for API request/response validation"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, FiniteFloat

from onboarding_gateway.domain.models import EntryFlow, ProfileBranch, WizardState


class CreateSessionRequest(BaseModel):
    """Request body for POST /v1/onboarding/sessions"""

    entry_flow: EntryFlow = Field(..., description="Portal entry point: borrower or investor")


class SelectBranchRequest(BaseModel):
    profile_branch: ProfileBranch


class UpdateFieldsRequest(BaseModel):
    """Stage-local field values for the current stage"""

    fields: Dict[str, str | int | FiniteFloat | bool | None] = Field(..., min_length=1)


class GoToRequest(BaseModel):
    stage: str = Field(..., min_length=1, description="Stage name, or 'confirmation'")


class AttachmentState(BaseModel):
    """Attachment slot status; encoded content is never echoed back"""

    filename: Optional[str] = None
    content_type: Optional[str] = None
    encoded: bool


class StageSummary(BaseModel):
    name: str
    title: str
    passed: bool


class SessionResponse(BaseModel):
    """Current state of an onboarding session"""

    session_id: str
    entry_flow: EntryFlow
    state: WizardState
    offered_branches: List[ProfileBranch]
    profile_branch: Optional[ProfileBranch] = None
    stages: List[StageSummary]
    current_stage: Optional[str] = None
    errors: Dict[str, str] = Field(default_factory=dict)
    details: Dict[str, Any] = Field(default_factory=dict)
    bank: Dict[str, Any] = Field(default_factory=dict)
    lending_criteria: Dict[str, Any] = Field(default_factory=dict)
    attachments: Dict[str, AttachmentState] = Field(default_factory=dict)
    created_account_id: Optional[str] = None
    active_profile: Optional[str] = None


class SubmissionResponse(BaseModel):
    """Response for POST /v1/onboarding/sessions/{id}/submit"""

    succeeded: bool
    partial: bool
    account_type: str
    profile_branch: ProfileBranch
    account_id: Optional[str] = None
    failed_step: Optional[str] = None
    steps: Dict[str, str]
    error: Optional[str] = None
    retryable: bool


class PrefillResponse(BaseModel):
    has_existing_account: bool
    prefilled_fields: List[str] = Field(default_factory=list)
    prefilled_attachments: List[str] = Field(default_factory=list)
