from typing import Any, Dict

from fastapi import FastAPI, Header, HTTPException, Request

app = FastAPI(title="Mock Account Server", version="1.0.0")

# Bearer tokens that make the mock misbehave
FAIL_CREATE_TOKEN = "fail-create"
FAIL_KYC_TOKEN = "fail-kyc"
RETURNING_USER_TOKEN = "returning-user"

accounts: Dict[str, Dict[str, Any]] = {}
kyc_records: Dict[str, Dict[str, Any]] = {}
calls: list = []

EXISTING_ACCOUNT_DATA = {
    "personalInfo": {"firstName": "Maria", "lastName": "Santos", "nationality": "Filipino"},
    "identification": {"nationalId": "PH-1234-5678", "tin": "123-456-789"},
    "address": {"street": "12 Mabini St", "barangay": "San Roque", "city": "Quezon City", "state": "NCR",
                "country": "PH", "postalCode": "1100"},
    "contact": {"mobileNumber": "+639171234567", "emailAddress": "maria@example.com"},
    "files": {"nationalIdFile": "data:image/png;base64,iVBORw0KGgo="},
}


def reset() -> None:
    accounts.clear()
    kyc_records.clear()
    calls.clear()


def _token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    return authorization.removeprefix("Bearer ")


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/api/accounts/create")
async def create_account(request: Request, authorization: str | None = Header(default=None)):
    token = _token(authorization)
    body = await request.json()
    calls.append(("create_account", body))
    if token == FAIL_CREATE_TOKEN:
        raise HTTPException(status_code=500, detail="database unavailable")
    key = f"{token}:{body['accountType']}"
    if key in accounts:
        raise HTTPException(status_code=409, detail="account already exists")
    accounts[key] = {"type": body["accountType"], "profile": {"id": len(accounts) + 1, **body["profileData"]}}
    return {"success": True, "account": accounts[key]}

@app.post("/api/profile/complete-kyc")
async def complete_kyc(request: Request, authorization: str | None = Header(default=None)):
    token = _token(authorization)
    body = await request.json()
    calls.append(("complete_kyc", body))
    if token == FAIL_KYC_TOKEN:
        raise HTTPException(status_code=503, detail="kyc ingestion offline")
    kyc_records[f"{token}:{body['accountType']}"] = body["kycData"]
    return {"success": True}

@app.get("/api/profile/existing-account-data")
def existing_account_data(targetAccountType: str, authorization: str | None = Header(default=None)):
    token = _token(authorization)
    calls.append(("existing_account_data", {"targetAccountType": targetAccountType}))
    if token != RETURNING_USER_TOKEN:
        return {"success": True, "hasExistingAccount": False, "existingData": None}
    return {"success": True, "hasExistingAccount": True, "existingData": EXISTING_ACCOUNT_DATA}

@app.get("/api/accounts")
def list_accounts(authorization: str | None = Header(default=None)):
    token = _token(authorization)
    calls.append(("list_accounts", {}))
    mine = {key.split(":", 1)[1]: value for key, value in accounts.items() if key.startswith(f"{token}:")}
    return {"accounts": mine}

@app.get("/api/profile")
def get_profile(authorization: str | None = Header(default=None)):
    _token(authorization)
    calls.append(("get_profile", {}))
    return {"profile": {"hasCompletedRegistration": True}}

@app.get("/api/team/my-permissions")
def my_permissions(authorization: str | None = Header(default=None)):
    _token(authorization)
    calls.append(("get_permissions", {}))
    return {"isAdmin": False, "permissions": []}
