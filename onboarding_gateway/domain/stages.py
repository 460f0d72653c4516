"""
Stage catalog: the ordered data-collection steps of every profile branch.

Each branch declares exactly which stage-local field names and attachment
slots it may write. Field names follow the portal forms they come from, so
the same concept can appear under different names in different branches;
the reconciler maps them onto canonical keys.
"""

from typing import Dict, Tuple

from onboarding_gateway.domain.models import (
    DraftSection,
    FieldKind,
    FieldRule,
    FileSlot,
    ProfileBranch,
    StageDescriptor,
)

ENTITY_TYPES = ("Sole Proprietor", "MSME", "NGO", "Foundation", "Educational Institution", "Others")
BUSINESS_REGISTRATION_TYPES = ("SEC", "CDA", "DTI")
GENDERS = ("male", "female", "other", "prefer-not-to-say")
CIVIL_STATUSES = ("single", "married", "divorced", "widowed", "separated")
SECONDARY_ID_TYPES = (
    "Drivers License", "Postal ID", "Voters ID", "PhilHealth ID", "SSS ID",
    "GSIS ID", "PRC ID", "OFW ID", "Senior Citizen ID", "PWD ID",
)
RELATIONSHIPS = ("spouse", "parent", "child", "sibling", "relative", "friend", "colleague", "other")
SOURCES_OF_INCOME = ("employment", "business", "investments", "pension", "remittances", "other")
GROSS_ANNUAL_INCOME_RANGES = (
    "Below Php 50,000",
    "Php 50,000 - Php 100,000",
    "Php 100,001 - Php 250,000",
    "Php 250,001 - Php 500,000",
    "Php 500,001 - Php 1,000,000",
    "Above Php 1,000,000",
)
BORROWER_BANK_ACCOUNT_TYPES = ("Savings Account", "Current Account", "Business Account", "Others")
INVESTOR_BANK_ACCOUNT_TYPES = ("Savings Account", "Current Account", "Time Deposit", "Investment Account")

# Industry groups offered to borrowers, key -> display label
INDUSTRY_GROUPS: Dict[str, str] = {
    "agriculture": "Agriculture",
    "hospitality": "Hospitality",
    "food": "Food & Beverages",
    "retail": "Retail",
    "medical": "Medical & Pharmaceutical",
    "construction": "Construction",
    "others": "Others",
}

ACCOUNT_NUMBER_MIN_LENGTH = 5

_OPTIONAL = dict(required=False)


def _address_fields() -> Tuple[FieldRule, ...]:
    return (
        FieldRule("street"),
        FieldRule("barangay"),
        FieldRule("countryIso"),
        FieldRule("stateIso"),
        FieldRule("cityName"),
        FieldRule("postalCode"),
    )


PERSONAL_IDENTIFICATION = StageDescriptor(
    name="personal-identification",
    title="Personal Identification (Individual)",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("firstName"),
        FieldRule("middleName", **_OPTIONAL),
        FieldRule("lastName"),
        FieldRule("suffixName", **_OPTIONAL),
        FieldRule("nationalId"),
        FieldRule("passport", **_OPTIONAL),
        FieldRule("tin"),
        FieldRule("phoneNumber", **_OPTIONAL),
    ),
    files=(FileSlot("nationalIdFile"), FileSlot("passportFile", required=False)),
)

HOME_ADDRESS = StageDescriptor(
    name="home-address",
    title="Home Address",
    section=DraftSection.DETAILS,
    fields=_address_fields(),
    files=(FileSlot("proofOfBillingFile", required=False),),
)

PERSONAL_PROFILE = StageDescriptor(
    name="personal-profile",
    title="Personal Profile",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("placeOfBirth"),
        FieldRule("gender", FieldKind.CHOICE, choices=GENDERS),
        FieldRule("civilStatus", FieldKind.CHOICE, choices=CIVIL_STATUSES),
        FieldRule("nationality"),
        FieldRule("contactEmail", FieldKind.EMAIL),
        FieldRule("secondaryIdType", FieldKind.CHOICE, choices=SECONDARY_ID_TYPES),
        FieldRule("secondaryIdNumber"),
        FieldRule("emergencyContactName"),
        FieldRule("emergencyContactRelationship", FieldKind.CHOICE, choices=RELATIONSHIPS),
        FieldRule("emergencyContactPhone"),
        FieldRule("emergencyContactEmail", FieldKind.EMAIL, **_OPTIONAL),
        FieldRule("isPoliticallyExposedPerson", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("pepDetails", required=False, required_when=("isPoliticallyExposedPerson", True)),
    ),
)

EMPLOYMENT = StageDescriptor(
    name="employment",
    title="Employment and Income",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("occupation"),
        FieldRule("employerName", **_OPTIONAL),
        FieldRule("employerAddress", **_OPTIONAL),
        FieldRule("sourceOfIncome", FieldKind.CHOICE, choices=SOURCES_OF_INCOME),
        FieldRule("monthlyIncome", FieldKind.NUMBER, required=False, minimum=0),
    ),
)

INDUSTRY = StageDescriptor(
    name="industry",
    title="Industry Group",
    section=DraftSection.DETAILS,
    fields=(FieldRule("industryKey", FieldKind.CHOICE, choices=tuple(INDUSTRY_GROUPS)),),
)

BORROWER_BANK_DETAILS = StageDescriptor(
    name="bank-details",
    title="Bank Account Details",
    section=DraftSection.BANK,
    fields=(
        FieldRule("bankName"),
        FieldRule("accountNumber", min_length=ACCOUNT_NUMBER_MIN_LENGTH),
        FieldRule("accountName"),
        FieldRule("accountType", FieldKind.CHOICE, choices=BORROWER_BANK_ACCOUNT_TYPES),
        FieldRule("branchCode"),
        FieldRule("branchName"),
    ),
)

DECLARATIONS = StageDescriptor(
    name="declarations",
    title="Confirmations",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("liabilityAccepted", FieldKind.CONSENT),
        FieldRule("termsAccepted", FieldKind.CONSENT),
        FieldRule("riskDisclosureAccepted", FieldKind.CONSENT),
    ),
)


def _entity_information(authorization_required: bool) -> StageDescriptor:
    return StageDescriptor(
        name="entity-information",
        title="Entity Information",
        section=DraftSection.DETAILS,
        fields=(
            FieldRule("entityType", FieldKind.CHOICE, choices=ENTITY_TYPES),
            FieldRule("entityName"),
            FieldRule("registrationNumber"),
            FieldRule("tin"),
            FieldRule("contactPersonName"),
            FieldRule("contactPersonPosition"),
            FieldRule("contactPersonEmail", FieldKind.EMAIL),
            FieldRule("contactPersonPhone"),
        ),
        files=(
            FileSlot("registrationCertFile"),
            FileSlot("tinCertFile"),
            FileSlot("authorizationFile", required=authorization_required),
        ),
    )


REGISTERED_ADDRESS = StageDescriptor(
    name="registered-address",
    title="Registered Address",
    section=DraftSection.DETAILS,
    fields=_address_fields(),
)

BUSINESS_REGISTRATION = StageDescriptor(
    name="business-registration",
    title="Business Registration",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("businessRegistrationType", FieldKind.CHOICE, choices=BUSINESS_REGISTRATION_TYPES),
        FieldRule("businessRegistrationDate", FieldKind.DATE),
        FieldRule("corporateTin"),
        FieldRule("natureOfBusiness"),
        FieldRule("authorizedSignatoryName"),
        FieldRule("authorizedSignatoryPosition"),
        FieldRule("authorizedSignatoryIdType", **_OPTIONAL),
        FieldRule("authorizedSignatoryIdNumber"),
        FieldRule("pepStatus", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("pepDetails", required=False, required_when=("pepStatus", True)),
        FieldRule("gisTotalAssets", FieldKind.NUMBER, required=False, minimum=0),
        FieldRule("gisTotalLiabilities", FieldKind.NUMBER, required=False, minimum=0),
        FieldRule("gisPaidUpCapital", FieldKind.NUMBER, required=False, minimum=0),
        FieldRule("gisNumberOfStockholders", FieldKind.NUMBER, required=False, minimum=0),
        FieldRule("gisNumberOfEmployees", FieldKind.NUMBER, required=False, minimum=0),
    ),
)

PRINCIPAL_OFFICE = StageDescriptor(
    name="principal-office",
    title="Principal Office Address",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("principalOfficeStreet"),
        FieldRule("principalOfficeBarangay"),
        FieldRule("principalOfficeCountry"),
        FieldRule("principalOfficeState"),
        FieldRule("principalOfficeCity"),
        FieldRule("principalOfficePostalCode"),
    ),
)

INCOME_DETAILS = StageDescriptor(
    name="income-details",
    title="Income Details",
    section=DraftSection.DETAILS,
    fields=(
        FieldRule("grossAnnualIncome", FieldKind.CHOICE, choices=GROSS_ANNUAL_INCOME_RANGES),
        FieldRule("incomeFromBusiness", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("incomeBusinessSpecify", required=False, required_when=("incomeFromBusiness", True)),
        FieldRule("incomeFromInvestments", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("incomeInvestmentsSpecify", required=False, required_when=("incomeFromInvestments", True)),
        FieldRule("incomeFromEmployment", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("incomeFromFarming", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("incomeFromRealEstate", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("incomeFromOthers", FieldKind.BOOLEAN, **_OPTIONAL),
        FieldRule("confirmationAccepted", FieldKind.CONSENT),
    ),
)

INVESTOR_BANK_DETAILS = StageDescriptor(
    name="investor-bank-details",
    title="Bank Account Details",
    section=DraftSection.BANK,
    fields=(
        FieldRule("accountName"),
        FieldRule("bankAccount", FieldKind.CHOICE, choices=INVESTOR_BANK_ACCOUNT_TYPES),
        FieldRule("accountNumber", min_length=ACCOUNT_NUMBER_MIN_LENGTH),
        FieldRule("iban", **_OPTIONAL),
        FieldRule("swiftCode", **_OPTIONAL),
    ),
)

LENDING_CRITERIA = StageDescriptor(
    name="lending-criteria",
    title="Lending Criteria",
    section=DraftSection.LENDING_CRITERIA,
    fields=(
        FieldRule("requirementsCriteria"),
        FieldRule("docReq"),
        FieldRule("maxFacility", FieldKind.NUMBER, minimum=0, exclusive_minimum=True),
        FieldRule("interestRate", FieldKind.NUMBER, minimum=0),
    ),
    files=(FileSlot("requirementsCriteriaFile"), FileSlot("docReqFile")),
)


STAGE_CATALOG: Dict[ProfileBranch, Tuple[StageDescriptor, ...]] = {
    ProfileBranch.INDIVIDUAL_BORROWER: (
        PERSONAL_IDENTIFICATION,
        HOME_ADDRESS,
        PERSONAL_PROFILE,
        EMPLOYMENT,
        INDUSTRY,
        BORROWER_BANK_DETAILS,
        DECLARATIONS,
    ),
    ProfileBranch.NON_INDIVIDUAL_BORROWER: (
        _entity_information(authorization_required=False),
        REGISTERED_ADDRESS,
        BUSINESS_REGISTRATION,
        PRINCIPAL_OFFICE,
        INDUSTRY,
        BORROWER_BANK_DETAILS,
        DECLARATIONS,
    ),
    ProfileBranch.INDIVIDUAL_INVESTOR: (
        PERSONAL_IDENTIFICATION,
        HOME_ADDRESS,
        PERSONAL_PROFILE,
        EMPLOYMENT,
        INCOME_DETAILS,
        INVESTOR_BANK_DETAILS,
    ),
    ProfileBranch.NON_INDIVIDUAL_INVESTOR: (
        _entity_information(authorization_required=True),
        REGISTERED_ADDRESS,
        BUSINESS_REGISTRATION,
        INCOME_DETAILS,
        INVESTOR_BANK_DETAILS,
    ),
    ProfileBranch.DIRECT_LENDER: (
        PERSONAL_IDENTIFICATION,
        HOME_ADDRESS,
        LENDING_CRITERIA,
    ),
}


def declared_fields(branch: ProfileBranch) -> Dict[DraftSection, frozenset[str]]:
    """Every stage-local field name the branch may write, per draft section"""
    fields: Dict[DraftSection, set[str]] = {section: set() for section in DraftSection}
    for stage in STAGE_CATALOG[branch]:
        fields[stage.section] |= stage.field_names
    return {section: frozenset(names) for section, names in fields.items()}


def declared_slots(branch: ProfileBranch) -> frozenset[str]:
    return frozenset(slot for stage in STAGE_CATALOG[branch] for slot in stage.slot_names)
