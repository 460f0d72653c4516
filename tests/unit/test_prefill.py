"""Unit tests for prefilling from an existing account"""

from onboarding_gateway.domain.models import Attachment, ProfileBranch, RegistrationDraft
from onboarding_gateway.domain.prefill import build_prefill_patch

EXISTING = {
    "personalInfo": {"firstName": "Maria", "lastName": "Santos", "gender": "female"},
    "identification": {"nationalId": "PH-9", "tin": "123-456", "nationalIdFile": "data:image/png;base64,AA=="},
    "address": {"street": "12 Mabini St", "city": "Quezon City", "country": "PH"},
    "contact": {"mobileNumber": "+639171234567", "emailAddress": "maria@example.com"},
    "entityInfo": {"entityName": "Santos Trading", "tin": "999-000"},
    "files": {"registrationCertFile": "data:application/pdf;base64,AA==", "tinCertFile": "not-a-data-url"},
    "pepStatus": False,
}


def test_prefill_individual_fills_declared_fields():
    draft = RegistrationDraft(profile_branch=ProfileBranch.INDIVIDUAL_INVESTOR)

    patch = build_prefill_patch(EXISTING, draft)

    assert patch.details["firstName"] == "Maria"
    assert patch.details["cityName"] == "Quezon City"
    assert patch.details["countryIso"] == "PH"
    assert patch.details["phoneNumber"] == "+639171234567"
    assert patch.details["contactEmail"] == "maria@example.com"
    assert patch.details["tin"] == "123-456"
    assert patch.details["isPoliticallyExposedPerson"] is False
    assert "entityName" not in patch.details
    assert set(patch.attachments) == {"nationalIdFile"}


def test_prefill_never_overwrites_entered_values():
    draft = RegistrationDraft(
        profile_branch=ProfileBranch.INDIVIDUAL_BORROWER,
        details={"firstName": "Juan"},
        attachments={"nationalIdFile": Attachment(encoded="data:image/png;base64,QQ==")},
    )

    patch = build_prefill_patch(EXISTING, draft)

    assert "firstName" not in patch.details
    assert patch.details["lastName"] == "Santos"
    assert "nationalIdFile" not in patch.attachments


def test_prefill_entity_uses_entity_tin_and_files():
    draft = RegistrationDraft(profile_branch=ProfileBranch.NON_INDIVIDUAL_BORROWER)

    patch = build_prefill_patch(EXISTING, draft)

    assert patch.details["entityName"] == "Santos Trading"
    assert patch.details["tin"] == "999-000"
    assert patch.details["pepStatus"] is False
    assert "firstName" not in patch.details
    # Only data URLs are accepted as prefilled files
    assert set(patch.attachments) == {"registrationCertFile"}


def test_prefill_without_branch_is_empty():
    patch = build_prefill_patch(EXISTING, RegistrationDraft())

    assert dict(patch.details) == {}
    assert dict(patch.attachments) == {}
