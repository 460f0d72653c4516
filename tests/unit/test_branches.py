"""Unit tests for branch selection"""

import pytest
from onboarding_gateway.domain.branches import branches_for, select_branch
from onboarding_gateway.domain.exceptions import BranchNotOfferedError
from onboarding_gateway.domain.models import (
    Attachment,
    EntryFlow,
    ProfileBranch,
    RegistrationDraft,
)
from onboarding_gateway.domain.stages import STAGE_CATALOG, declared_fields


def test_borrower_flow_offers_two_branches():
    assert branches_for(EntryFlow.BORROWER) == (
        ProfileBranch.INDIVIDUAL_BORROWER,
        ProfileBranch.NON_INDIVIDUAL_BORROWER,
    )


def test_investor_flow_offers_three_branches():
    offered = branches_for(EntryFlow.INVESTOR)

    assert len(offered) == 3
    assert ProfileBranch.DIRECT_LENDER in offered


def test_branch_not_offered_by_entry_flow():
    with pytest.raises(BranchNotOfferedError):
        select_branch(RegistrationDraft(), ProfileBranch.DIRECT_LENDER, EntryFlow.BORROWER)


def test_select_branch_returns_pipeline():
    draft, pipeline = select_branch(RegistrationDraft(), ProfileBranch.DIRECT_LENDER, EntryFlow.INVESTOR)

    assert draft.profile_branch == ProfileBranch.DIRECT_LENDER
    assert [stage.name for stage in pipeline] == ["personal-identification", "home-address", "lending-criteria"]


def test_switching_branch_keeps_shared_fields():
    """Test name, contact, address and bank survive a switch while entity data is cleared"""
    draft = RegistrationDraft(
        profile_branch=ProfileBranch.NON_INDIVIDUAL_INVESTOR,
        details={"firstName": "Ana", "cityName": "Makati", "entityName": "Acme Co.", "registrationNumber": "REG-123"},
        bank={"accountNumber": "9876543210"},
        attachments={"registrationCertFile": Attachment(encoded="data:application/pdf;base64,AA==")},
        lending_criteria={"docReq": "stale"},
    )

    switched, _ = select_branch(draft, ProfileBranch.INDIVIDUAL_INVESTOR, EntryFlow.INVESTOR)

    assert dict(switched.details) == {"firstName": "Ana", "cityName": "Makati"}
    assert dict(switched.bank) == {"accountNumber": "9876543210"}
    assert dict(switched.attachments) == {}
    assert dict(switched.lending_criteria) == {}


def test_reselecting_same_branch_keeps_data():
    draft = RegistrationDraft(
        profile_branch=ProfileBranch.NON_INDIVIDUAL_BORROWER,
        details={"entityName": "Acme Co."},
    )

    same, _ = select_branch(draft, ProfileBranch.NON_INDIVIDUAL_BORROWER, EntryFlow.BORROWER)

    assert same is draft


def test_every_branch_has_a_pipeline():
    assert set(STAGE_CATALOG) == set(ProfileBranch)
    assert all(STAGE_CATALOG[branch] for branch in ProfileBranch)


def test_non_individual_branches_never_declare_personal_id():
    for branch in (ProfileBranch.NON_INDIVIDUAL_BORROWER, ProfileBranch.NON_INDIVIDUAL_INVESTOR):
        fields = set().union(*declared_fields(branch).values())
        assert "nationalId" not in fields
        assert "registrationNumber" in fields


def test_switching_between_individual_branches_drops_id_scan():
    draft = RegistrationDraft(
        profile_branch=ProfileBranch.INDIVIDUAL_INVESTOR,
        attachments={"nationalIdFile": Attachment(encoded="data:image/png;base64,AA==")},
    )

    switched, _ = select_branch(draft, ProfileBranch.DIRECT_LENDER, EntryFlow.INVESTOR)

    assert dict(switched.attachments) == {}
