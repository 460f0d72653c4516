"""
Canonical KYC schema table.

Every key of the payload sent to the KYC service is declared here with the
draft section it is read from, the stage-local names that may hold it (in
precedence order), the branches allowed to populate it and the kind of value
it carries. Keys outside the active branch's scope are always null.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from onboarding_gateway.domain.models import ProfileBranch


class ValueKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ATTACHMENT = "attachment"


@dataclass(frozen=True)
class CanonicalField:
    name: str
    section: str  # draft attribute: details, bank, lending_criteria or attachments
    aliases: Tuple[str, ...]
    scope: frozenset
    kind: ValueKind = ValueKind.TEXT
    # (branches, aliases) pairs that replace `aliases` for those branches
    scoped_aliases: Tuple[Tuple[frozenset, Tuple[str, ...]], ...] = ()

    def aliases_for(self, branch: Optional[ProfileBranch]) -> Tuple[str, ...]:
        for branches, aliases in self.scoped_aliases:
            if branch in branches:
                return aliases
        return self.aliases


ALL_BRANCHES = frozenset(ProfileBranch)
INDIVIDUALS = frozenset({
    ProfileBranch.INDIVIDUAL_BORROWER,
    ProfileBranch.INDIVIDUAL_INVESTOR,
    ProfileBranch.DIRECT_LENDER,
})
PERSONAL_PROFILES = frozenset({ProfileBranch.INDIVIDUAL_BORROWER, ProfileBranch.INDIVIDUAL_INVESTOR})
NON_INDIVIDUALS = frozenset({ProfileBranch.NON_INDIVIDUAL_BORROWER, ProfileBranch.NON_INDIVIDUAL_INVESTOR})
BORROWERS = frozenset({ProfileBranch.INDIVIDUAL_BORROWER, ProfileBranch.NON_INDIVIDUAL_BORROWER})
INVESTORS = frozenset({ProfileBranch.INDIVIDUAL_INVESTOR, ProfileBranch.NON_INDIVIDUAL_INVESTOR})
DIRECT_LENDERS = frozenset({ProfileBranch.DIRECT_LENDER})
# Direct lenders register without bank details
BANKED = ALL_BRANCHES - DIRECT_LENDERS


def _details(name: str, scope: frozenset, *aliases: str, kind: ValueKind = ValueKind.TEXT) -> CanonicalField:
    return CanonicalField(name, "details", aliases or (name,), scope, kind)


def _contact(name: str, entity_alias: str) -> CanonicalField:
    return CanonicalField(
        name, "details", (name, entity_alias), ALL_BRANCHES,
        scoped_aliases=((NON_INDIVIDUALS, (entity_alias,)),),
    )


def _bank(name: str, *aliases: str) -> CanonicalField:
    return CanonicalField(name, "bank", aliases or (name,), BANKED)


def _criteria(name: str, kind: ValueKind = ValueKind.TEXT) -> CanonicalField:
    return CanonicalField(name, "lending_criteria", (name,), DIRECT_LENDERS, kind)


def _file(name: str, scope: frozenset) -> CanonicalField:
    return CanonicalField(name, "attachments", (name,), scope, ValueKind.ATTACHMENT)


_NUMBER = ValueKind.NUMBER
_BOOLEAN = ValueKind.BOOLEAN

CANONICAL_FIELDS: Tuple[CanonicalField, ...] = (
    # Identity
    _details("firstName", INDIVIDUALS),
    _details("middleName", INDIVIDUALS),
    _details("lastName", INDIVIDUALS),
    _details("suffixName", INDIVIDUALS),
    _details("nationalId", INDIVIDUALS),
    _details("passport", INDIVIDUALS),
    _details("tin", ALL_BRANCHES),
    _details("entityType", NON_INDIVIDUALS),
    _details("entityName", NON_INDIVIDUALS),
    _details("contactPersonName", NON_INDIVIDUALS),
    _details("contactPersonPosition", NON_INDIVIDUALS),
    # Contact
    # Entities can only edit the contact person; a personal value kept from
    # an earlier branch must not win
    _contact("contactEmail", "contactPersonEmail"),
    _contact("phoneNumber", "contactPersonPhone"),
    # Home or registered address
    _details("street", ALL_BRANCHES),
    _details("barangay", ALL_BRANCHES),
    _details("city", ALL_BRANCHES, "cityName", "city"),
    _details("state", ALL_BRANCHES, "stateIso", "state"),
    _details("country", ALL_BRANCHES, "countryIso", "country"),
    _details("postalCode", ALL_BRANCHES),
    # Personal profile
    _details("placeOfBirth", PERSONAL_PROFILES),
    _details("gender", PERSONAL_PROFILES),
    _details("civilStatus", PERSONAL_PROFILES),
    _details("nationality", PERSONAL_PROFILES),
    _details("secondaryIdType", PERSONAL_PROFILES),
    _details("secondaryIdNumber", PERSONAL_PROFILES),
    _details("emergencyContactName", PERSONAL_PROFILES),
    _details("emergencyContactRelationship", PERSONAL_PROFILES),
    _details("emergencyContactPhone", PERSONAL_PROFILES),
    _details("emergencyContactEmail", PERSONAL_PROFILES),
    _details("pepDetails", BANKED),
    # Employment
    _details("occupation", PERSONAL_PROFILES),
    _details("employerName", PERSONAL_PROFILES),
    _details("employerAddress", PERSONAL_PROFILES),
    _details("sourceOfIncome", PERSONAL_PROFILES),
    _details("monthlyIncome", PERSONAL_PROFILES, kind=_NUMBER),
    # Business registration
    _details("businessRegistrationType", NON_INDIVIDUALS),
    _details("businessRegistrationNumber", NON_INDIVIDUALS, "businessRegistrationNumber", "registrationNumber"),
    _details("businessRegistrationDate", NON_INDIVIDUALS),
    _details("corporateTin", NON_INDIVIDUALS),
    _details(
        "natureOfBusiness", BANKED,
        "natureOfBusiness", "incomeBusinessSpecify", "industryType", "occupation",
    ),
    _details("authorizedSignatoryName", NON_INDIVIDUALS),
    _details("authorizedSignatoryPosition", NON_INDIVIDUALS),
    _details("authorizedSignatoryIdType", NON_INDIVIDUALS),
    _details("authorizedSignatoryIdNumber", NON_INDIVIDUALS),
    _details("gisTotalAssets", NON_INDIVIDUALS, kind=_NUMBER),
    _details("gisTotalLiabilities", NON_INDIVIDUALS, kind=_NUMBER),
    _details("gisPaidUpCapital", NON_INDIVIDUALS, kind=_NUMBER),
    _details("gisNumberOfStockholders", NON_INDIVIDUALS, kind=_NUMBER),
    _details("gisNumberOfEmployees", NON_INDIVIDUALS, kind=_NUMBER),
    # Principal office
    _details("principalOfficeStreet", NON_INDIVIDUALS),
    _details("principalOfficeBarangay", NON_INDIVIDUALS),
    _details("principalOfficeMunicipality", NON_INDIVIDUALS, "principalOfficeMunicipality", "principalOfficeCity"),
    _details("principalOfficeProvince", NON_INDIVIDUALS, "principalOfficeProvince", "principalOfficeState"),
    _details("principalOfficeCountry", NON_INDIVIDUALS),
    _details("principalOfficePostalCode", NON_INDIVIDUALS),
    # Borrower industry and declarations
    _details("industryType", BORROWERS, "industryType", "industryKey"),
    _details("liabilityAccepted", BORROWERS, kind=_BOOLEAN),
    _details("termsAccepted", BORROWERS, kind=_BOOLEAN),
    _details("riskDisclosureAccepted", BORROWERS, kind=_BOOLEAN),
    # Investor income
    _details("grossAnnualIncome", INVESTORS),
    _details("incomeFromBusiness", INVESTORS, kind=_BOOLEAN),
    _details("incomeBusinessSpecify", INVESTORS),
    _details("incomeFromInvestments", INVESTORS, kind=_BOOLEAN),
    _details("incomeInvestmentsSpecify", INVESTORS),
    _details("incomeFromEmployment", INVESTORS, kind=_BOOLEAN),
    _details("incomeFromFarming", INVESTORS, kind=_BOOLEAN),
    _details("incomeFromRealEstate", INVESTORS, kind=_BOOLEAN),
    _details("incomeFromOthers", INVESTORS, kind=_BOOLEAN),
    _details("confirmationAccepted", INVESTORS, kind=_BOOLEAN),
    # Bank
    _bank("bankName"),
    _bank("accountName"),
    _bank("accountNumber"),
    _bank("bankAccountType", "accountType", "bankAccount"),
    _bank("branchCode"),
    _bank("branchName"),
    _bank("iban"),
    _bank("swiftCode"),
    # Direct lender criteria
    _criteria("requirementsCriteria"),
    _criteria("docReq"),
    _criteria("maxFacility", _NUMBER),
    _criteria("interestRate", _NUMBER),
    # Attachments
    _file("nationalIdFile", INDIVIDUALS),
    _file("passportFile", INDIVIDUALS),
    _file("proofOfBillingFile", INDIVIDUALS),
    _file("registrationCertFile", NON_INDIVIDUALS),
    _file("tinCertFile", NON_INDIVIDUALS),
    _file("authorizationFile", NON_INDIVIDUALS),
    _file("requirementsCriteriaFile", DIRECT_LENDERS),
    _file("docReqFile", DIRECT_LENDERS),
)

# Raw stage values probed, in order, for the politically-exposed flag
PEP_ALIASES = ("isPoliticallyExposedPerson", "pepStatus")

DERIVED_KEYS = ("isIndividualAccount", "isDirectLender", "isPoliticallyExposedPerson")

CANONICAL_KEYS = tuple(f.name for f in CANONICAL_FIELDS) + DERIVED_KEYS
