"""Webhook event reconciliation engine"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from syncbridge.models.sync_log import SyncStatus
from syncbridge.services.crypto import make_decryptor
from syncbridge.services.errors import CounterpartCallFailed, FatalReconciliationError, NoLinkFound
from syncbridge.services.events import ActionKind, InboundEvent
from syncbridge.services.executor import MutationExecutor, OutboundPolicy
from syncbridge.services.github_client import GitHubClient
from syncbridge.services.identity import CredentialConfig, IdentityResolver, ResolvedLink
from syncbridge.services.linear_client import LinearClient
from syncbridge.services.locks import TicketLocks
from syncbridge.services.mapping_store import MappingStore
from syncbridge.services.reconcilers import (
    Outcome,
    OutcomeKind,
    ReconcileContext,
    ReconcilerSettings,
    reconcile_assignee,
    reconcile_comment,
    reconcile_cycle,
    reconcile_description,
    reconcile_estimate,
    reconcile_labels,
    reconcile_new_ticket,
    reconcile_priority,
    reconcile_state,
    reconcile_title,
    skip_reason,
    utcnow,
)

logger = logging.getLogger(__name__)

Reconciler = Callable[[ReconcileContext], Outcome]

# (delta field, reconciler), run in this order for every field present in the delta.
FIELD_RECONCILERS: Tuple[Tuple[str, Reconciler], ...] = (
    ("labelIds", reconcile_labels),
    ("title", reconcile_title),
    ("description", reconcile_description),
    ("cycleId", reconcile_cycle),
    ("stateId", reconcile_state),
    ("assigneeId", reconcile_assignee),
    ("priority", reconcile_priority),
    ("estimate", reconcile_estimate),
)

# Fields whose reconciler handles a missing issue link itself.
LINK_OPTIONAL_FIELDS = frozenset({"labelIds"})

ISSUE_TYPE = "Issue"
COMMENT_TYPE = "Comment"

# Shared by every engine in the process; attachment calls are short-lived.
_attachment_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="linear-attachment")
_ticket_locks = TicketLocks()


def shutdown_workers(wait: bool = True):
    """Stop the shared attachment pool; pending attachment calls finish first."""
    _attachment_pool.shutdown(wait=wait)


@dataclass
class EventResult:
    """What happened to one inbound event"""

    outcomes: List[Outcome] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return max((o.status_code for o in self.outcomes), default=200)

    @property
    def message(self) -> str:
        return " ".join(o.message for o in self.outcomes)

    @property
    def failed(self) -> bool:
        return any(o.kind == OutcomeKind.FAILED for o in self.outcomes)

    @property
    def synced(self) -> bool:
        return any(o.kind == OutcomeKind.SYNCED for o in self.outcomes)

    @property
    def sync_status(self) -> SyncStatus:
        if self.failed:
            return SyncStatus.FAILED
        if self.synced:
            return SyncStatus.SUCCESS
        return SyncStatus.SKIPPED

    def as_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "outcomes": [
                {"field": o.field, "kind": o.kind.value, "message": o.message} for o in self.outcomes
            ],
        }


class ReconciliationEngine:
    """Classify inbound Linear events and dispatch them to field reconcilers."""

    def __init__(
        self,
        store: MappingStore,
        resolver: IdentityResolver,
        *,
        options: Optional[ReconcilerSettings] = None,
        policy: Optional[OutboundPolicy] = None,
        github_factory: Optional[Callable[[ResolvedLink], Any]] = None,
        linear_factory: Optional[Callable[[ResolvedLink], Any]] = None,
        attachment_pool: Optional[Executor] = None,
        locks: Optional[TicketLocks] = None,
        now: Callable[[], datetime] = utcnow,
        executor: Optional[MutationExecutor] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.options = options or ReconcilerSettings()
        self.policy = policy or OutboundPolicy()
        self.executor = executor or MutationExecutor(self.policy)
        self.github_factory = github_factory or self._default_github
        self.linear_factory = linear_factory or self._default_linear
        self.attachment_pool = attachment_pool
        self.locks = locks or TicketLocks()
        self.now = now

    def _default_github(self, link: ResolvedLink) -> GitHubClient:
        return GitHubClient(
            link.github_key,
            link.repo_name,
            timeout=self.policy.timeout_seconds,
            user_agent=f"{link.repo_name}, {self.options.app_name}",
        )

    def _default_linear(self, link: ResolvedLink) -> LinearClient:
        return LinearClient(link.linear_key, timeout=self.policy.timeout_seconds)

    def handle(self, event: InboundEvent) -> EventResult:
        """Reconcile one event and record the result in the sync log."""
        result = EventResult()
        link: Optional[ResolvedLink] = None
        synced_issue = None
        try:
            link = self.resolver.resolve(event.actor_id, self._event_scope(event))
        except NoLinkFound as e:
            result.outcomes.append(Outcome(OutcomeKind.NO_LINK_FOUND, str(e)))
        except FatalReconciliationError as e:
            logger.error(f"Could not resolve sync link for {event.ticket_name}: {e}")
            result.outcomes.append(Outcome(OutcomeKind.FAILED, str(e), status_code=e.status_code))
        else:
            github = self.github_factory(link)
            linear = self.linear_factory(link)
            try:
                self.resolver.ensure_identity_mapping(link, linear, github, self.executor)
                ctx = ReconcileContext(
                    event=event,
                    link=link,
                    github=github,
                    linear=linear,
                    store=self.store,
                    executor=self.executor,
                    options=self.options,
                    locks=self.locks,
                    attachment_pool=self.attachment_pool,
                    now=self.now,
                )
                result.outcomes.extend(self._dispatch(ctx))
                synced_issue = ctx.synced_issue
            finally:
                for client in (github, linear):
                    close = getattr(client, "close", None)
                    if close is not None:
                        close()

        if not result.outcomes:
            result.outcomes.append(
                Outcome(OutcomeKind.SKIPPED, f"Nothing to sync for {event.type} {event.action}.")
            )

        log = logger.warning if result.failed else logger.info
        log(f"{event.type} {event.action} {event.ticket_name}: {result.message}")
        self.store.log_event(
            result.sync_status,
            result.message,
            action=f"{event.type}.{event.action}",
            sync_id=link.sync.id if link is not None else None,
            linear_issue_id=event.issue_id,
            github_issue_number=synced_issue.github_issue_number if synced_issue is not None else None,
        )
        return result

    def _event_scope(self, event: InboundEvent) -> Optional[str]:
        """Team the event belongs to.

        Comment payloads carry no team id; the commented ticket's issue link
        names it, so the comment resolves to the sync link (and repo) that
        owns the ticket.
        """
        if event.scope_id is not None or event.type != COMMENT_TYPE:
            return event.scope_id
        synced_issue = self.store.find_issue_link(event.issue_id) if event.issue_id else None
        return synced_issue.linear_team_id if synced_issue is not None else None

    def _dispatch(self, ctx: ReconcileContext) -> List[Outcome]:
        event = ctx.event
        if event.action == ActionKind.CREATE.value and event.type == ISSUE_TYPE:
            return [self._run("visibility", reconcile_new_ticket, ctx)]
        if event.action == ActionKind.CREATE.value and event.type == COMMENT_TYPE:
            return [self._run("comment", reconcile_comment, ctx)]
        if event.action == ActionKind.UPDATE.value and event.type == ISSUE_TYPE:
            return self._dispatch_update(ctx)
        return [
            Outcome(OutcomeKind.SKIPPED, f"Ignoring {event.type} {event.action} event.")
        ]

    def _dispatch_update(self, ctx: ReconcileContext) -> List[Outcome]:
        delta = ctx.event.delta_fields
        ctx.synced_issue = self.store.find_issue_link(ctx.event.ticket_id, ctx.link.team_id)
        had_link = ctx.synced_issue is not None

        outcomes: List[Outcome] = []
        for field_name, reconciler in FIELD_RECONCILERS:
            if field_name not in delta:
                continue
            if not had_link and ctx.synced_issue is not None:
                # Created by this event from current values; nothing left to patch.
                break
            if ctx.synced_issue is None and field_name not in LINK_OPTIONAL_FIELDS:
                outcomes.append(
                    Outcome(
                        OutcomeKind.SKIPPED_NO_LINK,
                        skip_reason(field_name, ctx.ticket_name),
                        field_name,
                    )
                )
                continue
            outcomes.append(self._run(field_name, reconciler, ctx))
        return outcomes

    def _run(self, field_name: str, reconciler: Reconciler, ctx: ReconcileContext) -> Outcome:
        """Run one reconciler; failures are contained to it."""
        try:
            outcome = reconciler(ctx)
        except FatalReconciliationError as e:
            logger.error(f"Failed to sync {field_name} for {ctx.ticket_name}: {e}")
            return Outcome(OutcomeKind.FAILED, str(e), field_name, e.status_code)
        except CounterpartCallFailed as e:
            return Outcome(OutcomeKind.FAILED, str(e), field_name)
        except Exception as e:
            logger.exception(f"Unexpected error syncing {field_name} for {ctx.ticket_name}")
            self.store.rollback()
            return Outcome(OutcomeKind.FAILED, f"Unexpected error: {e}", field_name, 500)
        if outcome.field is None:
            outcome.field = field_name
        return outcome


def build_engine(db, settings) -> ReconciliationEngine:
    """Wire an engine from application settings for one database session."""
    store = MappingStore(db)
    credentials = CredentialConfig(
        linear_api_key=settings.linear_api_key or None,
        github_api_key=settings.github_api_key or None,
    )
    decrypt = make_decryptor(settings.encryption_key) if settings.encryption_key else None
    resolver = IdentityResolver(store, credentials=credentials, decrypt=decrypt)
    options = ReconcilerSettings.from_settings(settings)
    policy = OutboundPolicy.from_settings(settings)

    def github_factory(link: ResolvedLink) -> GitHubClient:
        return GitHubClient(
            link.github_key,
            link.repo_name,
            api_url=settings.github_api_url,
            timeout=policy.timeout_seconds,
            user_agent=f"{link.repo_name}, {settings.app_name}",
        )

    def linear_factory(link: ResolvedLink) -> LinearClient:
        return LinearClient(
            link.linear_key, api_url=settings.linear_api_url, timeout=policy.timeout_seconds
        )

    return ReconciliationEngine(
        store,
        resolver,
        options=options,
        policy=policy,
        github_factory=github_factory,
        linear_factory=linear_factory,
        attachment_pool=_attachment_pool,
        locks=_ticket_locks,
    )
