"""Prefill a new draft from the user's existing account of the other type"""

from typing import Any, Dict, Mapping, Tuple

from onboarding_gateway.domain.models import Attachment, DraftPatch, DraftSection, RegistrationDraft
from onboarding_gateway.domain.stages import declared_fields, declared_slots
from onboarding_gateway.domain.validation import is_blank

# (existingData group, source keys in precedence order) -> stage-local field
PREFILL_FIELDS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "firstName": ("personalInfo", ("firstName",)),
    "middleName": ("personalInfo", ("middleName",)),
    "lastName": ("personalInfo", ("lastName",)),
    "placeOfBirth": ("personalInfo", ("placeOfBirth",)),
    "nationality": ("personalInfo", ("nationality",)),
    "gender": ("personalInfo", ("gender",)),
    "civilStatus": ("personalInfo", ("civilStatus",)),
    "nationalId": ("identification", ("nationalId",)),
    "passport": ("identification", ("passport",)),
    "secondaryIdType": ("identification", ("secondaryIdType",)),
    "secondaryIdNumber": ("identification", ("secondaryIdNumber",)),
    "street": ("address", ("street",)),
    "barangay": ("address", ("barangay",)),
    "cityName": ("address", ("cityName", "city")),
    "stateIso": ("address", ("stateIso", "state")),
    "countryIso": ("address", ("countryIso", "country")),
    "postalCode": ("address", ("postalCode", "postal")),
    "phoneNumber": ("contact", ("mobileNumber", "phoneNumber")),
    "contactEmail": ("contact", ("contactEmail", "emailAddress")),
    "entityType": ("entityInfo", ("entityType",)),
    "entityName": ("entityInfo", ("entityName",)),
    "registrationNumber": ("entityInfo", ("registrationNumber",)),
    "contactPersonName": ("entityInfo", ("contactPersonName",)),
    "contactPersonPosition": ("entityInfo", ("contactPersonPosition",)),
    "contactPersonEmail": ("entityInfo", ("contactPersonEmail",)),
    "contactPersonPhone": ("entityInfo", ("contactPersonPhone",)),
    "businessRegistrationType": ("businessRegistration", ("type", "businessRegistrationType")),
    "businessRegistrationDate": ("businessRegistration", ("date", "businessRegistrationDate")),
    "corporateTin": ("businessRegistration", ("corporateTin",)),
    "natureOfBusiness": ("businessRegistration", ("natureOfBusiness",)),
    "authorizedSignatoryName": ("businessRegistration", ("authorizedSignatoryName",)),
    "authorizedSignatoryPosition": ("businessRegistration", ("authorizedSignatoryPosition",)),
    "authorizedSignatoryIdNumber": ("businessRegistration", ("authorizedSignatoryIdNumber",)),
    "principalOfficeStreet": ("principalOffice", ("street",)),
    "principalOfficeBarangay": ("principalOffice", ("barangay",)),
    "principalOfficeCity": ("principalOffice", ("city",)),
    "principalOfficeState": ("principalOffice", ("state",)),
    "principalOfficeCountry": ("principalOffice", ("country",)),
    "principalOfficePostalCode": ("principalOffice", ("postalCode",)),
}

# tin lives under identification for individuals and entityInfo for entities
_TIN_GROUPS = ("entityInfo", "identification")

# Attachment slot -> existingData groups that may carry its data URL
PREFILL_FILES: Dict[str, Tuple[str, ...]] = {
    "nationalIdFile": ("files", "identification"),
    "passportFile": ("files", "identification"),
    "registrationCertFile": ("files",),
    "tinCertFile": ("files",),
    "authorizationFile": ("files",),
}


def _lookup(existing: Mapping[str, Any], group: str, keys: Tuple[str, ...]) -> Any:
    values = existing.get(group) or {}
    if not isinstance(values, Mapping):
        return None
    for key in keys:
        value = values.get(key)
        if not is_blank(value):
            return value.strip() if isinstance(value, str) else value
    return None


def build_prefill_patch(existing: Mapping[str, Any], draft: RegistrationDraft) -> DraftPatch:
    """
    Patch filling the draft's empty fields from existing account data.

    Only fields and slots the draft's branch declares are touched, and a
    value the user already entered is never overwritten.
    """
    branch = draft.profile_branch
    if branch is None:
        return DraftPatch()

    allowed = declared_fields(branch)[DraftSection.DETAILS]
    details: Dict[str, Any] = {}
    for target, (group, keys) in PREFILL_FIELDS.items():
        if target not in allowed or not is_blank(draft.details.get(target)):
            continue
        value = _lookup(existing, group, keys)
        if value is not None:
            details[target] = value

    if "tin" in allowed and is_blank(draft.details.get("tin")):
        groups = _TIN_GROUPS if branch.is_non_individual else tuple(reversed(_TIN_GROUPS))
        for group in groups:
            value = _lookup(existing, group, ("tin",))
            if value is not None:
                details["tin"] = value
                break

    for flag in ("isPoliticallyExposedPerson", "pepStatus"):
        pep = existing.get("pepStatus")
        if flag in allowed and draft.details.get(flag) is None and isinstance(pep, bool):
            details[flag] = pep

    slots = declared_slots(branch)
    attachments: Dict[str, Attachment] = {}
    for slot, groups in PREFILL_FILES.items():
        current = draft.attachments.get(slot)
        if slot not in slots or (current is not None and not current.is_empty):
            continue
        for group in groups:
            encoded = _lookup(existing, group, (slot,))
            if isinstance(encoded, str) and encoded.startswith("data:"):
                attachments[slot] = Attachment(encoded=encoded)
                break

    return DraftPatch(details=details, attachments=attachments)
