"""Resolve the sync link (and its credentials) governing an inbound event"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from syncbridge.services.crypto import Decryptor
from syncbridge.services.errors import CounterpartCallFailed, FatalReconciliationError, NoLinkFound
from syncbridge.services.linear_client import graphql_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialConfig:
    """Explicit API key overrides applied to every sync link (None = use the link's own keys)."""

    linear_api_key: Optional[str] = None
    github_api_key: Optional[str] = None


@dataclass
class ResolvedLink:
    """One sync link plus its decrypted credentials, valid for a single event."""

    sync: Any
    linear_key: str
    github_key: str

    @property
    def team(self):
        return self.sync.linear_team

    @property
    def repo(self):
        return self.sync.github_repo

    @property
    def team_id(self) -> str:
        return self.sync.linear_team_id

    @property
    def repo_id(self) -> int:
        return self.sync.github_repo_id

    @property
    def repo_name(self) -> str:
        return self.repo.repo_name

    @property
    def public_label_id(self) -> str:
        return self.team.public_label_id

    @property
    def done_state_id(self) -> str:
        return self.team.done_state_id

    @property
    def canceled_state_id(self) -> str:
        return self.team.canceled_state_id


class IdentityResolver:
    """Find the one sync link for an actor (and team, when the event has one)."""

    def __init__(self, store, credentials: Optional[CredentialConfig] = None, decrypt: Optional[Decryptor] = None):
        self.store = store
        self.credentials = credentials or CredentialConfig()
        self.decrypt = decrypt

    def resolve(self, actor_id: Optional[str], scope_id: Optional[str] = None) -> ResolvedLink:
        """Return the sync link for the actor.

        Comment events carry no team id, so the team only narrows the match
        when it is present. Raises `NoLinkFound` when nothing matches.
        """
        if not actor_id:
            raise NoLinkFound(actor_id, scope_id)

        sync = self.store.find_sync_link(actor_id, scope_id)
        if sync is None:
            logger.info(f"Could not find Linear user {actor_id} (team {scope_id}) in syncs.")
            raise NoLinkFound(actor_id, scope_id)

        if sync.linear_team is None or sync.github_repo is None:
            raise FatalReconciliationError("Could not find ticket's corresponding repo.", 404)

        return ResolvedLink(
            sync=sync,
            linear_key=self._api_key(
                "Linear", self.credentials.linear_api_key, sync.linear_api_key, sync.linear_api_key_iv
            ),
            github_key=self._api_key(
                "GitHub", self.credentials.github_api_key, sync.github_api_key, sync.github_api_key_iv
            ),
        )

    def _api_key(self, side: str, override: Optional[str], ciphertext: str, iv: str) -> str:
        if override:
            return override
        if self.decrypt is None:
            raise FatalReconciliationError(
                f"No {side} API key available: configure an override or an encryption key.", 500
            )
        try:
            return self.decrypt(ciphertext, iv)
        except Exception as e:
            raise FatalReconciliationError(f"Could not decrypt {side} API key: {e}", 500) from e

    def ensure_identity_mapping(self, resolved: ResolvedLink, linear, github, executor) -> bool:
        """Map the link's Linear user to its GitHub user if not yet mapped.

        Best effort: lookup failures are logged and the event carries on.
        Returns True when a new mapping was written.
        """
        sync = resolved.sync
        if self.store.find_user_mapping(sync.linear_user_id, sync.github_user_id):
            return False

        try:
            linear_response = executor.call(
                "fetch Linear viewer", linear.viewer, context={"linear_user": sync.linear_user_id}
            )
            github_response = executor.call(
                "fetch GitHub user",
                lambda: github.get_user(sync.github_user_id),
                context={"github_user": sync.github_user_id},
            )
        except CounterpartCallFailed as e:
            logger.warning(f"Skipping user mapping for Linear user {sync.linear_user_id}: {e}")
            return False

        viewer = graphql_data(linear_response, "viewer") or {}
        github_user = github_response.json() or {}
        if not github_user.get("login"):
            logger.warning(f"GitHub user {sync.github_user_id} has no login; not mapping.")
            return False

        created = self.store.create_identity_mapping(
            linear_user_id=sync.linear_user_id,
            linear_username=viewer.get("displayName") or viewer.get("name"),
            linear_email=viewer.get("email"),
            github_user_id=sync.github_user_id,
            github_username=github_user["login"],
            github_email=github_user.get("email"),
        )
        if created:
            logger.info(
                f"Mapped Linear user {sync.linear_user_id} to GitHub user {github_user['login']}."
            )
        return created
