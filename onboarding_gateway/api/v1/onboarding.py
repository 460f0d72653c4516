"""/v1/onboarding - wizard session endpoints"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding_gateway.api.dependencies import (
    get_account_client,
    get_credentials,
    get_orchestrator,
    get_request_id,
    get_session_registry,
)
from onboarding_gateway.api.v1.schemas import (
    AttachmentState,
    CreateSessionRequest,
    GoToRequest,
    PrefillResponse,
    SelectBranchRequest,
    SessionResponse,
    StageSummary,
    SubmissionResponse,
    UpdateFieldsRequest,
)
from onboarding_gateway.domain.exceptions import (
    AccountServiceError,
    CredentialError,
    DomainException,
    EncodingError,
    InvalidTransitionError,
    SessionNotFoundError,
    SubmissionInProgressError,
    UnknownFieldError,
)
from onboarding_gateway.domain.models import FileHandle, SubmissionResult, ValidationResult
from onboarding_gateway.domain.pipeline import WizardSession
from onboarding_gateway.domain.prefill import build_prefill_patch
from onboarding_gateway.domain.submission import SubmissionOrchestrator
from onboarding_gateway.infrastructure.clients.accounts import AccountServiceClient
from onboarding_gateway.infrastructure.clients.identity import BearerCredential
from onboarding_gateway.infrastructure.database.repositories import SubmissionAttemptRepository
from onboarding_gateway.infrastructure.database.session import get_db
from onboarding_gateway.infrastructure.sessions import SessionRegistry

router = APIRouter(prefix="/onboarding")


def _http_error(e: DomainException) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (SubmissionInProgressError, InvalidTransitionError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, UnknownFieldError):
        return HTTPException(status_code=422, detail={"stage": e.stage, "unknown_fields": e.names})
    if isinstance(e, EncodingError):
        return HTTPException(status_code=422, detail={"slot": e.slot, "reason": e.reason})
    if isinstance(e, CredentialError):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, AccountServiceError):
        return HTTPException(status_code=502, detail="Account service unavailable")
    return HTTPException(status_code=400, detail=str(e))


def _session_view(session: WizardSession) -> SessionResponse:
    draft = session.draft
    passed = set(session.passed_stages)
    current = session.current_stage
    return SessionResponse(
        session_id=session.session_id,
        entry_flow=session.entry_flow,
        state=session.state,
        offered_branches=list(session.offered_branches),
        profile_branch=session.branch,
        stages=[StageSummary(name=s.name, title=s.title, passed=s.name in passed) for s in session.pipeline],
        current_stage=current.name if current else None,
        errors=session.last_errors,
        details=dict(draft.details),
        bank=dict(draft.bank),
        lending_criteria=dict(draft.lending_criteria),
        attachments={
            slot: AttachmentState(
                filename=a.handle.filename if a.handle else None,
                content_type=a.handle.content_type if a.handle else None,
                encoded=a.encoded is not None,
            )
            for slot, a in draft.attachments.items()
            if not a.is_empty
        },
        created_account_id=session.created_account_id,
        active_profile=session.active_profile,
    )


def _validation_outcome(session: WizardSession, result: ValidationResult) -> SessionResponse:
    if not result.passed:
        raise HTTPException(status_code=422, detail={"stage": result.stage, "errors": result.errors})
    return _session_view(session)


def _submission_view(result: SubmissionResult) -> SubmissionResponse:
    return SubmissionResponse(
        succeeded=result.succeeded,
        partial=result.partial,
        account_type=result.account_type,
        profile_branch=result.branch,
        account_id=result.account_id,
        failed_step=result.failed_step.value if result.failed_step else None,
        steps={step.value: outcome.value for step, outcome in result.steps.items()},
        error=result.error,
        retryable=not result.succeeded,
    )


def _load(registry: SessionRegistry, session_id: str) -> WizardSession:
    try:
        return registry.get(session_id)
    except SessionNotFoundError as e:
        raise _http_error(e)


@router.post("/sessions", response_model=SessionResponse, status_code=201)
def create_session(
    request_body: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    return _session_view(registry.create(request_body.entry_flow))


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    return _session_view(_load(registry, session_id))


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    try:
        registry.discard(session_id)
    except DomainException as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/branch", response_model=SessionResponse)
def select_branch(
    session_id: str,
    request_body: SelectBranchRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = _load(registry, session_id)
    try:
        session.select_branch(request_body.profile_branch)
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)


@router.patch("/sessions/{session_id}/fields", response_model=SessionResponse)
def update_fields(
    session_id: str,
    request_body: UpdateFieldsRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = _load(registry, session_id)
    try:
        session.update_fields(request_body.fields)
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)


@router.put("/sessions/{session_id}/attachments/{slot}", response_model=SessionResponse)
async def upload_attachment(
    session_id: str,
    slot: str,
    file: UploadFile = File(...),
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = _load(registry, session_id)
    data = await file.read()
    handle = FileHandle.from_bytes(
        filename=file.filename or slot,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )
    try:
        await session.attach(slot, handle)
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)


@router.post("/sessions/{session_id}/advance", response_model=SessionResponse)
def advance(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = _load(registry, session_id)
    try:
        result = session.advance()
    except DomainException as e:
        raise _http_error(e)
    return _validation_outcome(session, result)


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
def back(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = _load(registry, session_id)
    try:
        session.back()
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)


@router.post("/sessions/{session_id}/go-to", response_model=SessionResponse)
def go_to(
    session_id: str,
    request_body: GoToRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = _load(registry, session_id)
    try:
        result = session.go_to(request_body.stage)
    except DomainException as e:
        raise _http_error(e)
    return _validation_outcome(session, result)


@router.post("/sessions/{session_id}/prefill", response_model=PrefillResponse)
async def prefill(
    session_id: str,
    request: Request,
    registry: SessionRegistry = Depends(get_session_registry),
    account_client: AccountServiceClient = Depends(get_account_client),
    credentials: BearerCredential = Depends(get_credentials),
):
    """Copy data from the user's other account into empty fields of this draft"""
    request_id = get_request_id(request)
    session = _load(registry, session_id)
    if session.branch is None:
        raise HTTPException(status_code=409, detail="Select a profile branch before prefilling")

    try:
        token = await credentials.get_token()
        data = await account_client.get_existing_account_data(session.branch.account_type, token)
    except AccountServiceError as e:
        logging.error(f"Existing account lookup failed: {e}", extra={"request_id": request_id})
        raise _http_error(e)
    except DomainException as e:
        raise _http_error(e)

    existing = data.get("existingData") or {}
    if not data.get("hasExistingAccount") or not existing:
        return PrefillResponse(has_existing_account=False)

    patch = build_prefill_patch(existing, session.draft)
    try:
        session.apply_prefill(patch)
    except DomainException as e:
        raise _http_error(e)
    return PrefillResponse(
        has_existing_account=True,
        prefilled_fields=sorted(patch.details),
        prefilled_attachments=sorted(patch.attachments),
    )


@router.post("/sessions/{session_id}/submit", response_model=SubmissionResponse)
async def submit(
    session_id: str,
    request: Request,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_session_registry),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
    credentials: BearerCredential = Depends(get_credentials),
):
    """
    Run the submission sequence for a confirmed session.

    Flow:
    1. Encode pending attachments
    2. Reconcile the draft into the canonical KYC payload
    3. Create the account (skipped when an earlier attempt created it)
    4. Complete KYC
    5. Activate the profile and refresh dependent state
    6. Record the attempt in the audit trail
    """
    request_id = get_request_id(request)
    session = _load(registry, session_id)

    try:
        result = await orchestrator.submit(session, credentials)
    except DomainException as e:
        raise _http_error(e)

    try:
        SubmissionAttemptRepository(db).record_attempt(session_id, result)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Audit write failed: {e}", extra={"request_id": request_id})

    response = _submission_view(result)
    if not result.succeeded:
        raise HTTPException(status_code=502, detail=response.model_dump(mode="json"))
    return response


@router.post("/sessions/{session_id}/retry", response_model=SessionResponse)
def retry(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = _load(registry, session_id)
    try:
        session.retry()
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)


@router.post("/sessions/{session_id}/abandon", response_model=SessionResponse)
def abandon(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = _load(registry, session_id)
    try:
        session.abandon()
    except DomainException as e:
        raise _http_error(e)
    return _session_view(session)
