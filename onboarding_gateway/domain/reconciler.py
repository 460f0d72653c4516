"""Schema reconciler - maps branch-specific draft fields onto the canonical KYC payload"""

import math
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from onboarding_gateway.domain.canonical import CANONICAL_FIELDS, PEP_ALIASES, CanonicalField, ValueKind
from onboarding_gateway.domain.exceptions import AttachmentNotEncodedError
from onboarding_gateway.domain.models import Attachment, ProfileBranch, RegistrationDraft
from onboarding_gateway.domain.validation import is_scalar, parse_number

_TRUE_STRINGS = frozenset({"true", "yes", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "0"})

CanonicalKycPayload = Mapping[str, Any]


def sanitize_value(value: Any) -> Any:
    """Strings are trimmed and empty strings become None; containers and NaN become None"""
    if not is_scalar(value):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return value


def explicit_bool(value: Any) -> Optional[bool]:
    """Boolean from an explicit check; anything unrecognised is None, never coerced"""
    if value is True or value is False:
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def _to_number(value: Any) -> Any:
    if value is None:
        return None
    number = parse_number(value)
    if number is None:
        # Unparseable text is kept as entered; validation rejects it earlier
        return sanitize_value(value) if isinstance(value, str) else None
    return int(number) if number.is_integer() else number


def _attachment_value(slot: str, attachment: Optional[Attachment]) -> Optional[str]:
    if attachment is None or attachment.is_empty:
        return None
    if attachment.needs_encoding:
        raise AttachmentNotEncodedError(f"Attachment '{slot}' has not been encoded")
    return attachment.encoded


def _resolve(spec: CanonicalField, draft: RegistrationDraft) -> Any:
    values = getattr(draft, spec.section)

    if spec.kind == ValueKind.ATTACHMENT:
        return _attachment_value(spec.name, values.get(spec.name))

    for alias in spec.aliases_for(draft.profile_branch):
        raw = values.get(alias)
        # Blank strings, containers and NaN never win over a later alias
        if sanitize_value(raw) is None:
            continue
        if spec.kind == ValueKind.NUMBER:
            return _to_number(raw)
        if spec.kind == ValueKind.BOOLEAN:
            return explicit_bool(raw)
        return sanitize_value(raw)
    return None


def is_politically_exposed(details: Mapping[str, Any]) -> bool:
    """First present PEP flag decides; only an explicit yes counts"""
    for alias in PEP_ALIASES:
        flag = explicit_bool(details.get(alias))
        if flag is not None:
            return flag
    return False


def reconcile(draft: RegistrationDraft) -> CanonicalKycPayload:
    """
    Build the canonical KYC payload from a draft.

    Pure and deterministic: every canonical key is present, keys outside the
    active branch's scope are None, and every string value is trimmed and
    non-empty.

    Raises:
        ValueError: If the draft has no profile branch
        AttachmentNotEncodedError: If an attachment still holds only a file handle
    """
    branch = draft.profile_branch
    if branch is None:
        raise ValueError("Cannot reconcile a draft without a profile branch")

    payload: Dict[str, Any] = {}
    for spec in CANONICAL_FIELDS:
        payload[spec.name] = _resolve(spec, draft) if branch in spec.scope else None

    payload["isIndividualAccount"] = branch.is_individual
    payload["isDirectLender"] = branch == ProfileBranch.DIRECT_LENDER
    payload["isPoliticallyExposedPerson"] = (
        False if branch == ProfileBranch.DIRECT_LENDER else is_politically_exposed(draft.details)
    )
    return MappingProxyType(payload)


def _join(*parts: Any) -> Optional[str]:
    present = [part for part in parts if part]
    return ", ".join(present) if present else None


def minimal_profile(payload: CanonicalKycPayload, branch: ProfileBranch) -> Dict[str, Any]:
    """Account-creation body derived from the payload; None values are dropped"""
    if branch.is_non_individual:
        full_name = payload.get("entityName")
    else:
        full_name = " ".join(
            part for part in (payload.get("firstName"), payload.get("middleName"), payload.get("lastName")) if part
        ) or None

    profile: Dict[str, Any] = {
        "fullName": full_name,
        "location": _join(payload.get("city"), payload.get("state"), payload.get("country")),
        "phoneNumber": payload.get("phoneNumber"),
    }

    if branch.account_type == "borrower":
        if branch.is_non_individual:
            profile["businessType"] = payload.get("entityType")
        else:
            profile["occupation"] = payload.get("occupation")
    else:
        profile["investmentPreference"] = "direct-lending" if branch == ProfileBranch.DIRECT_LENDER else None

    return {key: value for key, value in profile.items() if value is not None}
