"""Registration draft store - single owner of the in-progress draft value"""

import logging
from typing import Callable, List

from onboarding_gateway.domain.models import DraftPatch, DraftSection, ProfileBranch, RegistrationDraft

logger = logging.getLogger(__name__)

DraftObserver = Callable[[RegistrationDraft, RegistrationDraft], None]

_SECTIONS = tuple(section.value for section in DraftSection) + ("attachments",)


def apply_patch(draft: RegistrationDraft, patch: DraftPatch) -> RegistrationDraft:
    """
    Shallow-merge a patch into a draft and return the new draft.

    Keys absent from the patch keep their current values, so a stage never
    drops fields written by another stage.
    """
    merged = {name: {**getattr(draft, name), **getattr(patch, name)} for name in _SECTIONS}
    branch = patch.profile_branch if patch.profile_branch is not None else draft.profile_branch
    return RegistrationDraft(profile_branch=branch, **merged)


def changed_keys(previous: RegistrationDraft, current: RegistrationDraft) -> List[str]:
    """Dotted names of every key whose value differs between two drafts"""
    keys = []
    if previous.profile_branch != current.profile_branch:
        keys.append("profile_branch")
    for name in _SECTIONS:
        before, after = getattr(previous, name), getattr(current, name)
        for key in sorted(set(before) | set(after)):
            if before.get(key) != after.get(key):
                keys.append(f"{name}.{key}")
    return keys


class DraftStore:
    """
    Holds the current draft for one onboarding session.

    Every update replaces the draft value; watchers registered with
    subscribe() see (previous, current) pairs and are meant for tracing,
    never for business logic.
    """

    def __init__(self, draft: RegistrationDraft | None = None):
        self._draft = draft or RegistrationDraft()
        self._observers: List[DraftObserver] = []

    def read(self) -> RegistrationDraft:
        return self._draft

    def update(self, patch: DraftPatch) -> RegistrationDraft:
        return self._set(apply_patch(self._draft, patch))

    def replace(self, draft: RegistrationDraft) -> RegistrationDraft:
        return self._set(draft)

    def reset(self) -> None:
        self._set(RegistrationDraft())

    @property
    def branch(self) -> ProfileBranch | None:
        return self._draft.profile_branch

    def subscribe(self, observer: DraftObserver) -> Callable[[], None]:
        """Register a watcher; returns a callable that removes it"""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def _set(self, draft: RegistrationDraft) -> RegistrationDraft:
        previous, self._draft = self._draft, draft
        for observer in list(self._observers):
            try:
                observer(previous, draft)
            except Exception:
                logger.exception("Draft observer failed")
        return draft
