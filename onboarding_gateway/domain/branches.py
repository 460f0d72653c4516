"""Branch selector - which profile kinds an entry flow offers and what a switch keeps"""

from typing import Dict, Tuple

from onboarding_gateway.domain.exceptions import BranchNotOfferedError
from onboarding_gateway.domain.models import (
    DraftSection,
    EntryFlow,
    ProfileBranch,
    RegistrationDraft,
    StageDescriptor,
)
from onboarding_gateway.domain.stages import STAGE_CATALOG

ENTRY_FLOW_BRANCHES: Dict[EntryFlow, Tuple[ProfileBranch, ...]] = {
    EntryFlow.BORROWER: (
        ProfileBranch.INDIVIDUAL_BORROWER,
        ProfileBranch.NON_INDIVIDUAL_BORROWER,
    ),
    EntryFlow.INVESTOR: (
        ProfileBranch.INDIVIDUAL_INVESTOR,
        ProfileBranch.NON_INDIVIDUAL_INVESTOR,
        ProfileBranch.DIRECT_LENDER,
    ),
}

# Branch-agnostic detail fields kept when the user switches branch
SHARED_DETAIL_FIELDS = frozenset({
    "firstName",
    "middleName",
    "lastName",
    "suffixName",
    "contactEmail",
    "phoneNumber",
    "street",
    "barangay",
    "countryIso",
    "stateIso",
    "cityName",
    "postalCode",
})

# Bank details describe the user's payout account whatever the profile kind
SHARED_SECTIONS = frozenset({DraftSection.BANK})


def branches_for(entry_flow: EntryFlow) -> Tuple[ProfileBranch, ...]:
    return ENTRY_FLOW_BRANCHES[entry_flow]


def pipeline_for(branch: ProfileBranch) -> Tuple[StageDescriptor, ...]:
    """Ordered stage descriptors that run for a branch"""
    return STAGE_CATALOG[branch]


def clear_branch_specific(draft: RegistrationDraft) -> RegistrationDraft:
    """Drop every field that does not survive a branch switch; attachments never do"""
    return RegistrationDraft(
        profile_branch=draft.profile_branch,
        details={k: v for k, v in draft.details.items() if k in SHARED_DETAIL_FIELDS},
        bank=dict(draft.bank) if DraftSection.BANK in SHARED_SECTIONS else {},
        attachments={},
        lending_criteria={},
    )


def select_branch(
    draft: RegistrationDraft,
    branch: ProfileBranch,
    entry_flow: EntryFlow,
) -> Tuple[RegistrationDraft, Tuple[StageDescriptor, ...]]:
    """
    Set the active branch on a draft and compute its stage pipeline.

    Re-selecting the current branch keeps everything. Picking a different
    branch clears branch-specific data so stale entity fields never leak
    into an individual submission (and vice versa), while name, contact,
    address and bank fields already entered are kept.

    Raises:
        BranchNotOfferedError: If the entry flow does not offer the branch
    """
    offered = branches_for(entry_flow)
    if branch not in offered:
        raise BranchNotOfferedError(
            f"{entry_flow.value} onboarding offers {', '.join(b.value for b in offered)}, not {branch.value}"
        )

    if draft.profile_branch == branch:
        return draft, pipeline_for(branch)

    if draft.profile_branch is None:
        selected = RegistrationDraft(
            profile_branch=branch,
            details=draft.details,
            bank=draft.bank,
            attachments=draft.attachments,
            lending_criteria=draft.lending_criteria,
        )
    else:
        cleared = clear_branch_specific(draft)
        selected = RegistrationDraft(
            profile_branch=branch,
            details=cleared.details,
            bank=cleared.bank,
            attachments=cleared.attachments,
            lending_criteria=cleared.lending_criteria,
        )
    return selected, pipeline_for(branch)
