"""Submission orchestrator - the ordered calls that turn a confirmed draft into an account"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from onboarding_gateway.domain.encoding import AttachmentEncoder
from onboarding_gateway.domain.exceptions import (
    AccountServiceError,
    AttachmentNotEncodedError,
    CredentialError,
    DomainException,
    EncodingError,
)
from onboarding_gateway.domain.models import StepOutcome, SubmissionResult, SubmissionStep
from onboarding_gateway.domain.pipeline import WizardSession
from onboarding_gateway.domain.reconciler import minimal_profile, reconcile
from onboarding_gateway.infrastructure.clients.accounts import AccountServiceClient
from onboarding_gateway.infrastructure.clients.identity import CredentialProvider
from onboarding_gateway.infrastructure.observability.logging import log_submission
from onboarding_gateway.infrastructure.observability.metrics import (
    record_submission,
    submission_step_failure_counter,
)

logger = logging.getLogger(__name__)

Refresher = Callable[[str], Awaitable[Any]]


def default_refreshers(client: AccountServiceClient) -> Dict[str, Refresher]:
    return {
        "permissions": client.get_permissions,
        "accounts": client.list_accounts,
        "profile": client.get_profile,
    }


class SubmissionOrchestrator:
    """
    Runs encode, reconcile, create account, complete KYC, activate profile
    and refresh dependents strictly in order.

    Steps 1-4 stop the run on failure. Steps 5-6 are best-effort: failures are
    logged and counted but never undo the account or KYC record.
    """

    def __init__(
        self,
        account_client: AccountServiceClient,
        encoder: AttachmentEncoder | None = None,
        refreshers: Optional[Mapping[str, Refresher]] = None,
    ):
        self.account_client = account_client
        self.encoder = encoder
        self.refreshers = dict(refreshers) if refreshers is not None else default_refreshers(account_client)

    async def submit(self, session: WizardSession, credentials: CredentialProvider) -> SubmissionResult:
        """
        Submit a confirmed session.

        Raises:
            SubmissionInProgressError: If the session is already submitting
            InvalidTransitionError: If the session is not at confirmation
        """
        # Guard is set before the first await
        session.begin_submission()
        start = time.perf_counter()
        branch = session.branch
        result = SubmissionResult(account_type=branch.account_type, branch=branch)
        try:
            await self._run(session, credentials, result)
        finally:
            session.finish_submission(result)
            record_submission(result.account_type, result.succeeded, result.partial)
            log_submission(
                session_id=session.session_id,
                account_type=result.account_type,
                branch=branch.value,
                succeeded=result.succeeded,
                failed_step=result.failed_step.value if result.failed_step else None,
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        return result

    async def _run(self, session: WizardSession, credentials: CredentialProvider, result: SubmissionResult) -> None:
        encoder = self.encoder or session.encoder

        # 1. Encode attachments
        try:
            await encoder.encode_pending(session.store)
        except EncodingError as e:
            self._fail(result, SubmissionStep.ENCODE_ATTACHMENTS, e)
            return
        result.steps[SubmissionStep.ENCODE_ATTACHMENTS] = StepOutcome.SUCCEEDED

        # 2. Reconcile
        try:
            payload = reconcile(session.draft)
        except (AttachmentNotEncodedError, ValueError) as e:
            self._fail(result, SubmissionStep.RECONCILE, e)
            return
        result.steps[SubmissionStep.RECONCILE] = StepOutcome.SUCCEEDED

        # 3. Create account, unless a previous partial attempt already did
        try:
            token = await credentials.get_token()
            if session.created_account_id is not None:
                result.account_id = session.created_account_id
                result.steps[SubmissionStep.CREATE_ACCOUNT] = StepOutcome.SKIPPED
                logger.info(
                    "Reusing account from earlier attempt",
                    extra={"session_id": session.session_id, "account_id": result.account_id},
                )
            else:
                account_id = await self.account_client.create_account(
                    result.account_type, minimal_profile(payload, result.branch), token
                )
                session.created_account_id = account_id
                result.account_id = account_id
                result.steps[SubmissionStep.CREATE_ACCOUNT] = StepOutcome.SUCCEEDED
        except (CredentialError, AccountServiceError) as e:
            self._fail(result, SubmissionStep.CREATE_ACCOUNT, e)
            return

        # 4. Complete KYC
        try:
            await self.account_client.complete_kyc(result.account_type, payload, token)
        except AccountServiceError as e:
            self._fail(result, SubmissionStep.COMPLETE_KYC, e)
            logger.warning(
                "Account created without completed KYC",
                extra={"session_id": session.session_id, "account_id": result.account_id},
            )
            return
        result.steps[SubmissionStep.COMPLETE_KYC] = StepOutcome.SUCCEEDED

        # 5. Activate profile (best-effort)
        try:
            session.activate_profile(result.account_type)
            result.steps[SubmissionStep.ACTIVATE_PROFILE] = StepOutcome.SUCCEEDED
        except Exception:
            result.steps[SubmissionStep.ACTIVATE_PROFILE] = StepOutcome.FAILED
            submission_step_failure_counter.labels(step=SubmissionStep.ACTIVATE_PROFILE.value).inc()
            logger.exception("Profile activation failed", extra={"session_id": session.session_id})

        # 6. Refresh dependents (best-effort)
        outcome = StepOutcome.SUCCEEDED
        for name, refresh in self.refreshers.items():
            try:
                session.dependents[name] = await refresh(token)
            except Exception:
                outcome = StepOutcome.FAILED
                submission_step_failure_counter.labels(step=SubmissionStep.REFRESH_DEPENDENTS.value).inc()
                logger.exception(
                    "Dependent refresh failed",
                    extra={"session_id": session.session_id, "dependent": name},
                )
        result.steps[SubmissionStep.REFRESH_DEPENDENTS] = outcome

    def _fail(self, result: SubmissionResult, step: SubmissionStep, error: DomainException | ValueError) -> None:
        result.steps[step] = StepOutcome.FAILED
        result.failed_step = step
        result.error = str(error)
        if isinstance(error, AccountServiceError):
            result.response_body = error.body
        submission_step_failure_counter.labels(step=step.value).inc()
        logger.warning(
            "Submission step failed",
            extra={"step": step.value, "error_type": type(error).__name__},
        )
