"""Domain models - pure Python dataclasses representing onboarding entities"""

import asyncio
import mimetypes
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple


class EntryFlow(str, Enum):
    """Portal entry point that started the onboarding session"""

    BORROWER = "borrower"
    INVESTOR = "investor"


class ProfileBranch(str, Enum):
    """Mutually exclusive profile kind selected once per session"""

    INDIVIDUAL_BORROWER = "individual-borrower"
    NON_INDIVIDUAL_BORROWER = "non-individual-borrower"
    INDIVIDUAL_INVESTOR = "individual-investor"
    NON_INDIVIDUAL_INVESTOR = "non-individual-investor"
    DIRECT_LENDER = "direct-lender"

    @property
    def account_type(self) -> str:
        """Backend account type; a direct lender holds an investor account"""
        if self in (ProfileBranch.INDIVIDUAL_BORROWER, ProfileBranch.NON_INDIVIDUAL_BORROWER):
            return "borrower"
        return "investor"

    @property
    def is_non_individual(self) -> bool:
        return self in (ProfileBranch.NON_INDIVIDUAL_BORROWER, ProfileBranch.NON_INDIVIDUAL_INVESTOR)

    @property
    def is_individual(self) -> bool:
        return not self.is_non_individual


class DraftSection(str, Enum):
    """Field bag of the draft a stage writes into"""

    DETAILS = "details"
    BANK = "bank"
    LENDING_CRITERIA = "lending_criteria"


class FieldKind(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    CHOICE = "choice"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    CONSENT = "consent"  # checkbox that must be explicitly ticked


@dataclass(frozen=True)
class FileHandle:
    """Unencoded file selected for an attachment slot"""

    filename: str
    content_type: str
    reader: Callable[[], Awaitable[bytes]] = field(compare=False, repr=False)
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    async def read(self) -> bytes:
        return await self.reader()

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes) -> "FileHandle":
        async def _read() -> bytes:
            return data

        return cls(filename=filename, content_type=content_type, reader=_read)

    @classmethod
    def from_path(cls, path: Path, content_type: str | None = None) -> "FileHandle":
        async def _read() -> bytes:
            return await asyncio.to_thread(path.read_bytes)

        guessed = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content_type=guessed, reader=_read)


@dataclass(frozen=True)
class Attachment:
    """Attachment slot content: a file handle, its encoded form, or both"""

    handle: Optional[FileHandle] = None
    encoded: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.handle is None and self.encoded is None

    @property
    def needs_encoding(self) -> bool:
        return self.handle is not None and self.encoded is None


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class RegistrationDraft:
    """In-progress onboarding record for one session"""

    profile_branch: Optional[ProfileBranch] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    bank: Mapping[str, Any] = field(default_factory=dict)
    attachments: Mapping[str, Attachment] = field(default_factory=dict)
    lending_criteria: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Sections are read-only views; changes go through apply_patch
        for name in ("details", "bank", "attachments", "lending_criteria"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    def section(self, section: DraftSection) -> Mapping[str, Any]:
        return getattr(self, section.value)


@dataclass(frozen=True)
class DraftPatch:
    """Partial draft; each section is shallow-merged into the current draft"""

    profile_branch: Optional[ProfileBranch] = None
    details: Mapping[str, Any] = field(default_factory=dict)
    bank: Mapping[str, Any] = field(default_factory=dict)
    attachments: Mapping[str, Attachment] = field(default_factory=dict)
    lending_criteria: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def for_section(cls, section: DraftSection, values: Mapping[str, Any]) -> "DraftPatch":
        return cls(**{section.value: dict(values)})


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for one stage-local field"""

    name: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = True
    min_length: Optional[int] = None
    choices: Tuple[str, ...] = ()
    minimum: Optional[float] = None
    exclusive_minimum: bool = False
    required_when: Optional[Tuple[str, Any]] = None  # (other field, value that makes this required)


@dataclass(frozen=True)
class FileSlot:
    name: str
    required: bool = True


@dataclass(frozen=True)
class StageDescriptor:
    """One ordered data-collection step of a branch pipeline"""

    name: str
    title: str
    section: DraftSection
    fields: Tuple[FieldRule, ...] = ()
    files: Tuple[FileSlot, ...] = ()

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(rule.name for rule in self.fields)

    @property
    def slot_names(self) -> frozenset[str]:
        return frozenset(slot.name for slot in self.files)


@dataclass
class ValidationResult:
    """Per-field error codes for one stage; empty means the stage passed"""

    stage: str
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not self.errors


class WizardState(str, Enum):
    BRANCH_SELECTION = "branch-selection"
    STAGE = "stage"
    CONFIRMATION = "confirmation"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class SubmissionStep(str, Enum):
    ENCODE_ATTACHMENTS = "encode_attachments"
    RECONCILE = "reconcile"
    CREATE_ACCOUNT = "create_account"
    COMPLETE_KYC = "complete_kyc"
    ACTIVATE_PROFILE = "activate_profile"
    REFRESH_DEPENDENTS = "refresh_dependents"


class StepOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_RUN = "not_run"


@dataclass
class SubmissionResult:
    """Outcome of one run of the submission call sequence"""

    account_type: str
    branch: ProfileBranch
    steps: Dict[SubmissionStep, StepOutcome] = field(
        default_factory=lambda: {step: StepOutcome.NOT_RUN for step in SubmissionStep}
    )
    failed_step: Optional[SubmissionStep] = None
    account_id: Optional[str] = None
    error: Optional[str] = None
    response_body: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None and self.steps[SubmissionStep.COMPLETE_KYC] == StepOutcome.SUCCEEDED

    @property
    def partial(self) -> bool:
        """Account exists but the KYC record was not completed"""
        account_exists = self.steps[SubmissionStep.CREATE_ACCOUNT] in (StepOutcome.SUCCEEDED, StepOutcome.SKIPPED)
        return account_exists and self.failed_step == SubmissionStep.COMPLETE_KYC
