"""Stage pipeline - the per-session wizard state machine"""

import hashlib
import json
import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple

from onboarding_gateway.config import settings
from onboarding_gateway.domain import branches
from onboarding_gateway.domain.draft_store import DraftStore, changed_keys
from onboarding_gateway.domain.encoding import AttachmentEncoder
from onboarding_gateway.domain.exceptions import (
    EncodingError,
    InvalidTransitionError,
    SubmissionInProgressError,
    UnknownFieldError,
)
from onboarding_gateway.domain.models import (
    Attachment,
    DraftPatch,
    EntryFlow,
    FileHandle,
    ProfileBranch,
    RegistrationDraft,
    StageDescriptor,
    SubmissionResult,
    ValidationResult,
    WizardState,
)
from onboarding_gateway.domain.validation import validate_stage
from onboarding_gateway.infrastructure.observability.logging import log_draft_update
from onboarding_gateway.infrastructure.observability.metrics import validation_failure_counter

logger = logging.getLogger(__name__)

CONFIRMATION_STAGE = "confirmation"


def stage_fingerprint(stage: StageDescriptor, draft: RegistrationDraft) -> str:
    """Digest of a stage's field values and attachment identities"""
    values = draft.section(stage.section)
    snapshot: Dict[str, Any] = {name: values.get(name) for name in sorted(stage.field_names)}
    for slot in sorted(stage.slot_names):
        attachment = draft.attachments.get(slot)
        if attachment is None or attachment.is_empty:
            snapshot[f"file:{slot}"] = None
        elif attachment.handle is not None:
            snapshot[f"file:{slot}"] = attachment.handle.handle_id
        else:
            snapshot[f"file:{slot}"] = hashlib.sha256(attachment.encoded.encode()).hexdigest()
    encoded = json.dumps(snapshot, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode()).hexdigest()


class WizardSession:
    """
    One onboarding session: draft, branch pipeline and wizard position.

    The active stage is the only writer of the draft. A stage is entered only
    after every prior stage has passed validation; a passed stage is not
    re-validated unless its values changed since it passed.
    """

    def __init__(
        self,
        entry_flow: EntryFlow,
        encoder: AttachmentEncoder | None = None,
        session_id: str | None = None,
        trace_draft_updates: bool | None = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.entry_flow = entry_flow
        self.encoder = encoder or AttachmentEncoder()
        self.store = DraftStore()
        self.state = WizardState.BRANCH_SELECTION
        self.pipeline: Tuple[StageDescriptor, ...] = ()
        self.stage_index = 0
        self.last_errors: Dict[str, str] = {}
        self.created_account_id: Optional[str] = None
        self.active_profile: Optional[str] = None
        self.last_result: Optional[SubmissionResult] = None
        self.dependents: Dict[str, Any] = {}
        self.submission_in_flight = False
        self._fingerprints: Dict[str, str] = {}

        trace = settings.trace_draft_updates if trace_draft_updates is None else trace_draft_updates
        if trace:
            self.store.subscribe(self._trace_update)

    def _trace_update(self, previous: RegistrationDraft, current: RegistrationDraft) -> None:
        log_draft_update(self.session_id, changed_keys(previous, current))

    # Read-only views

    @property
    def draft(self) -> RegistrationDraft:
        return self.store.read()

    @property
    def branch(self) -> ProfileBranch | None:
        return self.store.branch

    @property
    def offered_branches(self) -> Tuple[ProfileBranch, ...]:
        return branches.branches_for(self.entry_flow)

    @property
    def current_stage(self) -> StageDescriptor | None:
        if self.state != WizardState.STAGE:
            return None
        return self.pipeline[self.stage_index]

    @property
    def passed_stages(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.pipeline if stage.name in self._fingerprints)

    # Transitions

    def select_branch(self, branch: ProfileBranch) -> Tuple[StageDescriptor, ...]:
        self._require(WizardState.BRANCH_SELECTION, action="select a branch")
        if self.created_account_id is not None and branch != self.branch:
            raise InvalidTransitionError("An account was already created for this session; the branch is fixed")

        previous = self.branch
        draft, pipeline = branches.select_branch(self.draft, branch, self.entry_flow)
        self.store.replace(draft)
        if previous != branch:
            self._fingerprints.clear()
            self.encoder.clear()
        self.pipeline = pipeline
        self.stage_index = 0
        self.last_errors = {}
        self.state = WizardState.STAGE
        logger.info(
            "Profile branch selected",
            extra={"session_id": self.session_id, "profile_branch": branch.value},
        )
        return pipeline

    def update_fields(self, fields: Mapping[str, Any]) -> RegistrationDraft:
        """Write stage-local values into the current stage's draft section"""
        stage = self._require_stage("update fields")
        unknown = set(fields) - stage.field_names
        if unknown:
            raise UnknownFieldError(stage.name, list(unknown))
        return self.store.update(DraftPatch.for_section(stage.section, fields))

    async def attach(self, slot: str, handle: FileHandle) -> Attachment:
        """
        Put a file into one of the current stage's slots and encode it.

        A new handle drops any previous encoded value at once. If encoding
        fails the slot goes back to what it held before and the error is
        re-raised for the stage to show.
        """
        stage = self._require_stage("attach a file")
        if slot not in stage.slot_names:
            raise UnknownFieldError(stage.name, [slot])

        previous = self.draft.attachments.get(slot, Attachment())
        self.store.update(DraftPatch(attachments={slot: Attachment(handle=handle)}))
        try:
            attachment = await self.encoder.encode_slot(self.store, slot)
        except EncodingError:
            current = self.draft.attachments.get(slot)
            if current is not None and current.handle is not None and current.handle.handle_id == handle.handle_id:
                self.store.update(DraftPatch(attachments={slot: previous}))
            raise
        if previous.handle is not None and previous.handle.handle_id != handle.handle_id:
            self.encoder.forget(previous.handle.handle_id)
        return attachment

    def apply_prefill(self, patch: DraftPatch) -> RegistrationDraft:
        """Merge values carried over from an existing account; any stage may receive them"""
        self._require(WizardState.STAGE, action="prefill")
        return self.store.update(patch)

    def advance(self) -> ValidationResult:
        """
        Validate the current stage and move forward when it passes.

        Returns the validation result of the stage the session ends up on:
        the current stage on failure, or a prior stage whose changed values
        no longer validate.
        """
        stage = self._require_stage("advance")
        result = validate_stage(stage, self.draft)
        if not result.passed:
            return self._block(self.stage_index, result)

        self._fingerprints[stage.name] = stage_fingerprint(stage, self.draft)
        return self._enter(self.stage_index + 1)

    def back(self) -> None:
        if self.state == WizardState.CONFIRMATION:
            self.stage_index = len(self.pipeline) - 1
            self.state = WizardState.STAGE
        elif self.state == WizardState.STAGE:
            if self.stage_index == 0:
                self.state = WizardState.BRANCH_SELECTION
            else:
                self.stage_index -= 1
        else:
            raise InvalidTransitionError(f"Cannot go back from {self.state.value}")
        self.last_errors = {}

    def go_to(self, stage_name: str) -> ValidationResult:
        """Jump to a named stage (or confirmation); forward only across passed stages"""
        if self.state not in (WizardState.STAGE, WizardState.CONFIRMATION):
            raise InvalidTransitionError(f"Cannot navigate stages from {self.state.value}")

        names = [stage.name for stage in self.pipeline]
        if stage_name == CONFIRMATION_STAGE:
            target = len(self.pipeline)
        elif stage_name in names:
            target = names.index(stage_name)
        else:
            raise InvalidTransitionError(f"Stage '{stage_name}' is not part of this pipeline")

        current = len(self.pipeline) if self.state == WizardState.CONFIRMATION else self.stage_index
        if target > current and any(name not in self._fingerprints for name in names[:target]):
            raise InvalidTransitionError(f"Cannot skip ahead to '{stage_name}' before earlier stages pass")
        return self._enter(target)

    def begin_submission(self) -> None:
        if self.submission_in_flight:
            raise SubmissionInProgressError(f"Session {self.session_id} is already submitting")
        self._require(WizardState.CONFIRMATION, action="submit")
        self.submission_in_flight = True
        self.state = WizardState.SUBMITTING

    def finish_submission(self, result: SubmissionResult) -> None:
        self.submission_in_flight = False
        self.last_result = result
        if result.succeeded:
            self.state = WizardState.SUCCESS
            self.store.reset()
            self._fingerprints.clear()
            self.encoder.clear()
        else:
            self.state = WizardState.FAILED

    def activate_profile(self, account_type: str) -> None:
        self.active_profile = account_type

    def retry(self) -> None:
        """Return a failed session to confirmation with the draft intact"""
        self._require(WizardState.FAILED, action="retry")
        self.state = WizardState.CONFIRMATION

    def abandon(self) -> None:
        """Discard the draft and start over at branch selection"""
        if self.submission_in_flight:
            raise SubmissionInProgressError(f"Session {self.session_id} is submitting; it cannot be abandoned")
        self.store.reset()
        self._fingerprints.clear()
        self.pipeline = ()
        self.encoder.clear()
        self.stage_index = 0
        self.last_errors = {}
        self.created_account_id = None
        self.last_result = None
        self.state = WizardState.BRANCH_SELECTION

    # Internals

    def _require(self, *states: WizardState, action: str) -> None:
        if self.state not in states:
            raise InvalidTransitionError(f"Cannot {action} while {self.state.value}")

    def _require_stage(self, action: str) -> StageDescriptor:
        self._require(WizardState.STAGE, action=action)
        return self.pipeline[self.stage_index]

    def _block(self, index: int, result: ValidationResult) -> ValidationResult:
        validation_failure_counter.labels(stage=result.stage).inc()
        self._fingerprints.pop(result.stage, None)
        self.stage_index = index
        self.state = WizardState.STAGE
        self.last_errors = dict(result.errors)
        return result

    def _enter(self, target: int) -> ValidationResult:
        """Move to stage `target` (len(pipeline) means confirmation) after re-checking every prior stage"""
        draft = self.draft
        for index, stage in enumerate(self.pipeline[:target]):
            fingerprint = stage_fingerprint(stage, draft)
            if self._fingerprints.get(stage.name) == fingerprint:
                continue
            result = validate_stage(stage, draft)
            if not result.passed:
                return self._block(index, result)
            self._fingerprints[stage.name] = fingerprint

        self.last_errors = {}
        if target >= len(self.pipeline):
            self.state = WizardState.CONFIRMATION
            return ValidationResult(stage=CONFIRMATION_STAGE)
        self.stage_index = target
        self.state = WizardState.STAGE
        return ValidationResult(stage=self.pipeline[target].name)
