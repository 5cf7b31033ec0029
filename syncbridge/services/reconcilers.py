"""Field reconcilers: translate one Linear field change into GitHub mutations.

Each reconciler takes a `ReconcileContext` and returns an `Outcome`. A
reconciler may raise `FatalReconciliationError`; the engine catches it for
that reconciler only, so sibling fields are still reconciled.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from syncbridge.config import split_csv
from syncbridge.services.content import (
    github_footer,
    has_inline_images,
    is_number,
    issue_body_footer,
    prepare_markdown_content,
    replace_mentions,
    sync_footer,
)
from syncbridge.services.errors import CounterpartCallFailed, FatalReconciliationError
from syncbridge.services.events import InboundEvent
from syncbridge.services.linear_client import graphql_data
from syncbridge.services.locks import TicketLocks

logger = logging.getLogger(__name__)


# Linear priority -> GitHub label. 0 is Linear's "No priority" sentinel.
NO_PRIORITY = 0
PRIORITY_LABELS: Dict[int, Dict[str, str]] = {
    0: {"name": "No priority", "color": "999999"},
    1: {"name": "Urgent", "color": "ff0000"},
    2: {"name": "High priority", "color": "ff6600"},
    3: {"name": "Medium priority", "color": "ffcc00"},
    4: {"name": "Low priority", "color": "0066ff"},
}
ESTIMATE_LABEL_COLOR = "666666"
DEFAULT_LABEL_COLOR = "428bca"


class OutcomeKind(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    SKIPPED_NOT_PUBLIC = "skipped_not_public"
    SKIPPED_NO_LINK = "skipped_no_link"
    SKIPPED_ALREADY_SYNCED = "skipped_already_synced"
    NO_LINK_FOUND = "no_link_found"
    FAILED = "failed"


@dataclass
class Outcome:
    """Human-readable result of one reconciler run."""

    kind: OutcomeKind
    message: str
    field: Optional[str] = None
    status_code: int = 200


@dataclass(frozen=True)
class ReconcilerSettings:
    allowed_labels: frozenset = frozenset()
    internal_comment_prefix: str = ""
    synthetic_id_suffix: str = ""
    disable_linear_metadata: bool = False
    app_name: str = "SyncBridge"
    app_url: str = ""

    @classmethod
    def from_settings(cls, settings) -> "ReconcilerSettings":
        return cls(
            allowed_labels=frozenset(name.lower() for name in split_csv(settings.allowed_labels)),
            internal_comment_prefix=settings.internal_comment_prefix or "",
            synthetic_id_suffix=settings.synthetic_id_suffix or "",
            disable_linear_metadata=settings.disable_linear_metadata,
            app_name=settings.app_name,
            app_url=settings.app_url,
        )

    @property
    def footer(self) -> str:
        return sync_footer(self.app_name, self.app_url)

    def is_allowed_label(self, name: Optional[str]) -> bool:
        return bool(name) and name.lower() in self.allowed_labels

    def is_internal_comment(self, body: Optional[str]) -> bool:
        prefix = self.internal_comment_prefix
        return bool(prefix and body and body.strip().startswith(prefix))

    def is_synthetic(self, entity_id: Optional[str]) -> bool:
        suffix = self.synthetic_id_suffix
        return bool(suffix and entity_id and str(entity_id).endswith(suffix))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ReconcileContext:
    """Everything one event's reconcilers share."""

    event: InboundEvent
    link: Any  # ResolvedLink
    github: Any  # GitHubClient
    linear: Any  # LinearClient
    store: Any  # MappingStore
    executor: Any  # MutationExecutor
    options: ReconcilerSettings
    synced_issue: Optional[Any] = None
    locks: TicketLocks = field(default_factory=TicketLocks)
    attachment_pool: Optional[Executor] = None
    now: Callable[[], datetime] = utcnow
    _mentions: Optional[Dict[str, str]] = None

    @property
    def data(self) -> Dict[str, Any]:
        return self.event.data

    @property
    def ticket_name(self) -> str:
        return self.event.ticket_name

    @property
    def issue_number(self) -> Optional[int]:
        return self.synced_issue.github_issue_number if self.synced_issue is not None else None

    @property
    def mentions(self) -> Dict[str, str]:
        if self._mentions is None:
            self._mentions = self.store.mention_map()
        return self._mentions

    def call_context(self, field_name: str, value: Any = None) -> Dict[str, Any]:
        ctx = {"ticket": self.ticket_name, "field": field_name, "value": value}
        if self.issue_number is not None:
            ctx["issue"] = f"#{self.issue_number}"
        return ctx


def skip_reason(what: str, ticket_name: str, synthetic: bool = False) -> str:
    if synthetic:
        return f"Skipping {what} for {ticket_name} as it was created by the sync itself."
    return f"Skipping {what} for {ticket_name} as no GitHub issue was found."


# Shared helpers


def _issue_title(ctx: ReconcileContext) -> str:
    title = ctx.data.get("title") or ""
    if ctx.options.disable_linear_metadata:
        return title
    return f"[{ctx.ticket_name}] {title}"


def _issue_body(ctx: ReconcileContext) -> str:
    markdown = ctx.data.get("description")
    if has_inline_images(markdown):
        # Webhook payloads carry expiring image URLs; the API returns the stored ones.
        try:
            response = ctx.executor.call(
                "fetch Linear issue description",
                lambda: ctx.linear.issue(ctx.event.ticket_id),
                context=ctx.call_context("description"),
            )
            issue = graphql_data(response, "issue") or {}
            if issue.get("description"):
                markdown = issue["description"]
        except CounterpartCallFailed:
            pass

    body = prepare_markdown_content(markdown, ctx.mentions)
    if ctx.options.disable_linear_metadata:
        return body
    return body + issue_body_footer(ctx.options.footer, ctx.ticket_name, ctx.event.url)


def _fetch_label(ctx: ReconcileContext, label_id: str) -> Optional[Dict[str, Any]]:
    """Look up a Linear label by id. None when it cannot be found."""
    try:
        response = ctx.executor.call(
            "fetch Linear label", lambda: ctx.linear.issue_label(label_id),
            context=ctx.call_context("labels", label_id),
        )
    except CounterpartCallFailed:
        return None
    label = graphql_data(response, "issueLabel")
    return label if label and label.get("name") else None


def _ensure_label(ctx: ReconcileContext, name: str, color: Optional[str], field_name: str) -> str:
    """Create the label on GitHub, or find it if it already exists. Returns its name."""
    response = ctx.executor.call(
        "create GitHub label",
        lambda: ctx.github.create_label(name, (color or DEFAULT_LABEL_COLOR).lstrip("#")),
        context=ctx.call_context(field_name, name),
        accept=(422,),  # already_exists
    )
    if response.status_code == 422:
        return name
    try:
        return response.json().get("name") or name
    except ValueError:
        return name


def _apply_labels(ctx: ReconcileContext, issue_number: int, names: List[str], field_name: str):
    ctx.executor.call(
        "apply GitHub labels",
        lambda: ctx.github.apply_labels(issue_number, names),
        context=ctx.call_context(field_name, ", ".join(names)),
    )


def _ensure_and_apply_label(
    ctx: ReconcileContext, name: str, color: Optional[str], field_name: str
) -> Outcome:
    try:
        label_name = _ensure_label(ctx, name, color, field_name)
        _apply_labels(ctx, ctx.issue_number, [label_name], field_name)
    except CounterpartCallFailed as e:
        return Outcome(OutcomeKind.FAILED, str(e), field_name)
    return Outcome(
        OutcomeKind.SYNCED,
        f'Applied label "{label_name}" to issue #{ctx.issue_number} for {ctx.ticket_name}.',
        field_name,
    )


def _remove_label_best_effort(ctx: ReconcileContext, name: str, field_name: str) -> bool:
    try:
        ctx.executor.call(
            "remove GitHub label",
            lambda: ctx.github.delete_label(ctx.issue_number, name),
            context=ctx.call_context(field_name, name),
        )
    except CounterpartCallFailed:
        logger.info(f'Did not remove {field_name} label "{name}" from issue #{ctx.issue_number}.')
        return False
    logger.info(f'Removed {field_name} label "{name}" from issue #{ctx.issue_number}.')
    return True


def _parse_linear_datetime(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# Issue creation / visibility


def _create_attachment(ctx: ReconcileContext, issue_number: int, repo_name: str) -> bool:
    """Back-reference the GitHub issue on the Linear ticket. Never raises.

    Runs on a worker thread, so it must not touch the database session.
    """
    context = {"ticket": ctx.ticket_name, "field": "attachment", "issue": f"#{issue_number}"}
    try:
        response = ctx.executor.call(
            "create Linear attachment",
            lambda: ctx.linear.create_attachment(
                ctx.event.ticket_id,
                title=f"GitHub Issue #{issue_number}",
                subtitle=repo_name,
                url=f"https://github.com/{repo_name}/issues/{issue_number}",
            ),
            context=context,
        )
        result = graphql_data(response, "attachmentCreate") or {}
    except CounterpartCallFailed as e:
        logger.warning(
            f"Failed to create attachment on {ctx.ticket_name} for GitHub issue #{issue_number}: {e}"
        )
        return False

    if not result.get("success"):
        logger.warning(
            f"Failed to create attachment on {ctx.ticket_name} for GitHub issue #{issue_number}, "
            f"received response {result}."
        )
        return False
    logger.info(f"Created attachment on {ctx.ticket_name} for GitHub issue #{issue_number}.")
    return True


def _persist_issue_link(ctx: ReconcileContext, issue: Dict[str, Any]):
    data = ctx.data
    try:
        created = ctx.store.create_issue_link(
            linear_issue_id=data["id"],
            linear_issue_number=data.get("number") or 0,
            linear_team_id=ctx.link.team_id,
            github_issue_id=issue["id"],
            github_issue_number=issue["number"],
            github_repo_id=ctx.link.repo_id,
        )
    except SQLAlchemyError as e:
        raise FatalReconciliationError(
            f"Created GitHub issue #{issue['number']} for {ctx.ticket_name} but could not save the link: {e}",
            500,
        ) from e
    if created is None:
        # A concurrent delivery linked the ticket first; this issue is a duplicate.
        raise FatalReconciliationError(
            f"{ctx.ticket_name} was linked concurrently; GitHub issue #{issue['number']} is a duplicate.",
            409,
        )
    return created


def _replay_labels(ctx: ReconcileContext) -> List[str]:
    names: List[str] = []
    public_label_id = ctx.link.public_label_id
    for label_id in ctx.event.label_ids:
        if label_id == public_label_id:
            continue
        label = _fetch_label(ctx, label_id)
        if label is None:
            logger.info(f"Could not find label {label_id} for {ctx.ticket_name}.")
            continue
        if not ctx.options.is_allowed_label(label["name"]):
            logger.info(f"Label is not in the allowed list: {label['name']}")
            continue
        try:
            names.append(_ensure_label(ctx, label["name"], label.get("color"), "labels"))
        except CounterpartCallFailed:
            continue

    priority_label = PRIORITY_LABELS.get(ctx.data.get("priority"))
    if ctx.data.get("priority") and priority_label:
        try:
            names.append(_ensure_label(ctx, priority_label["name"], priority_label["color"], "priority"))
        except CounterpartCallFailed:
            pass
    return names


def _replay_comments(ctx: ReconcileContext) -> int:
    try:
        response = ctx.executor.call(
            "fetch Linear comments",
            lambda: ctx.linear.issue_comments(ctx.event.ticket_id),
            context=ctx.call_context("comments"),
        )
    except CounterpartCallFailed:
        return 0
    issue = graphql_data(response, "issue") or {}
    comments = ((issue.get("comments") or {}).get("nodes")) or []

    synced = 0
    for comment in comments:
        body = comment.get("body")
        if ctx.options.is_synthetic(comment.get("id")):
            continue
        if ctx.options.is_internal_comment(body):
            logger.info(f"Skipping internal comment for issue {ctx.ticket_name}")
            continue
        user = comment.get("user") or {}
        text = replace_mentions(body, ctx.mentions) + github_footer(
            user.get("displayName") or user.get("name"), ctx.options.footer
        )
        try:
            ctx.executor.call(
                "create GitHub comment",
                lambda: ctx.github.create_comment(ctx.issue_number, text),
                context=ctx.call_context("comments", comment.get("id")),
            )
        except CounterpartCallFailed:
            continue
        synced += 1
    return synced


def create_counterpart_issue(ctx: ReconcileContext, replay_comments: bool = True) -> Outcome:
    """Mirror a public Linear ticket to a new GitHub issue.

    Creation, and persisting the link afterwards, are fatal on failure; the
    attachment, label and comment replay steps are best effort.
    """
    ticket_id = ctx.event.ticket_id
    with ctx.locks.hold(ticket_id):
        existing = ctx.synced_issue or ctx.store.find_issue_link(ticket_id, ctx.link.team_id)
        if existing is not None:
            ctx.synced_issue = existing
            return Outcome(
                OutcomeKind.SKIPPED_ALREADY_SYNCED,
                f"Not creating issue as {ctx.ticket_name} already exists on GitHub as "
                f"#{existing.github_issue_number}.",
                "visibility",
            )

        assignees = []
        assignee_id = ctx.data.get("assigneeId")
        if assignee_id:
            username = ctx.store.find_identity_mapping(assignee_id)
            if username:
                assignees.append(username)

        title, body = _issue_title(ctx), _issue_body(ctx)
        repo_name = ctx.link.repo_name
        response = ctx.executor.call(
            "create GitHub issue",
            lambda: ctx.github.create_issue(title, body, assignees),
            context=ctx.call_context("visibility", ctx.data.get("title")),
            fatal=True,
        )
        issue = response.json()
        issue_number = issue["number"]
        logger.info(f"Created GitHub issue #{issue_number} for {ctx.ticket_name}.")

        # The attachment and the link are independent; only the link is fatal.
        attachment = (
            ctx.attachment_pool.submit(_create_attachment, ctx, issue_number, repo_name)
            if ctx.attachment_pool is not None
            else None
        )
        try:
            ctx.synced_issue = _persist_issue_link(ctx, issue)
        finally:
            if attachment is not None:
                attachment.result()
            else:
                _create_attachment(ctx, issue_number, repo_name)

    label_names = _replay_labels(ctx)
    if label_names:
        try:
            _apply_labels(ctx, issue_number, label_names, "labels")
            logger.info(f"Applied labels to #{issue_number} in {repo_name}.")
        except CounterpartCallFailed:
            logger.info(f"Could not apply labels to #{issue_number} in {repo_name}.")

    comment_count = _replay_comments(ctx) if replay_comments else 0

    return Outcome(
        OutcomeKind.SYNCED,
        f"Created GitHub issue #{issue_number} for {ctx.ticket_name} "
        f"({len(label_names)} labels, {comment_count} comments).",
        "visibility",
    )


def reconcile_new_ticket(ctx: ReconcileContext) -> Outcome:
    """Ticket created in Linear: mirror it only if it is already public."""
    if ctx.link.public_label_id not in ctx.event.label_ids:
        return Outcome(OutcomeKind.SKIPPED_NOT_PUBLIC, "Issue is not labeled as public", "visibility")
    if ctx.options.is_synthetic(ctx.event.ticket_id):
        return Outcome(OutcomeKind.SKIPPED, skip_reason("issue", ctx.ticket_name, True), "visibility")
    # A brand-new ticket has no comments yet.
    return create_counterpart_issue(ctx, replay_comments=False)


def detach_issue(ctx: ReconcileContext) -> Outcome:
    """Public label removed: forget the link; the GitHub issue itself stays."""
    try:
        ctx.store.delete_issue_link(ctx.synced_issue)
    except SQLAlchemyError as e:
        raise FatalReconciliationError(f"Could not unlink {ctx.ticket_name}: {e}", 500) from e
    ctx.synced_issue = None
    return Outcome(
        OutcomeKind.SYNCED,
        f"Deleted synced issue {ctx.ticket_name} after Public label removed.",
        "visibility",
    )


def reconcile_labels(ctx: ReconcileContext) -> Outcome:
    """Route a label change: visibility transitions, or a single label added/removed."""
    public_label_id = ctx.link.public_label_id
    previous = ctx.event.previous_label_ids or []
    current = ctx.event.label_ids

    if public_label_id not in previous:
        if public_label_id in current:
            return create_counterpart_issue(ctx)
        return Outcome(OutcomeKind.SKIPPED_NOT_PUBLIC, f"{ctx.ticket_name} is not public.", "labels")

    if ctx.synced_issue is None:
        return Outcome(OutcomeKind.SKIPPED_NO_LINK, skip_reason("label", ctx.ticket_name), "labels")

    if public_label_id not in current:
        return detach_issue(ctx)

    if len(current) < len(previous):
        removed_id = next(label_id for label_id in previous if label_id not in current)
        label = _fetch_label(ctx, removed_id)
        if label is None:
            return Outcome(OutcomeKind.FAILED, f"Could not find label {removed_id}.", "labels")
        try:
            ctx.executor.call(
                "remove GitHub label",
                lambda: ctx.github.delete_label(ctx.issue_number, label["name"]),
                context=ctx.call_context("labels", label["name"]),
            )
        except CounterpartCallFailed as e:
            return Outcome(OutcomeKind.FAILED, str(e), "labels")
        return Outcome(
            OutcomeKind.SYNCED,
            f'Removed label "{label["name"]}" from issue #{ctx.issue_number}.',
            "labels",
        )

    if len(current) > len(previous):
        added_id = next(label_id for label_id in current if label_id not in previous)
        label = _fetch_label(ctx, added_id)
        if label is None:
            return Outcome(OutcomeKind.FAILED, f"Could not find label {added_id}.", "labels")
        if not ctx.options.is_allowed_label(label["name"]):
            return Outcome(
                OutcomeKind.SKIPPED, f"Label is not in the allowed list: {label['name']}", "labels"
            )
        return _ensure_and_apply_label(ctx, label["name"], label.get("color"), "labels")

    return Outcome(OutcomeKind.SKIPPED, f"Label count unchanged for {ctx.ticket_name}.", "labels")


# Plain field-to-field translations


def _patch_issue(ctx: ReconcileContext, field_name: str, fields: Dict[str, Any], value: Any) -> Outcome:
    try:
        ctx.executor.call(
            f"update GitHub issue {field_name}",
            lambda: ctx.github.patch_issue(ctx.issue_number, fields),
            context=ctx.call_context(field_name, value),
        )
    except CounterpartCallFailed as e:
        return Outcome(OutcomeKind.FAILED, str(e), field_name)
    return Outcome(
        OutcomeKind.SYNCED,
        f"Updated GitHub issue {field_name} for {ctx.ticket_name} [{ctx.event.ticket_id}] "
        f"on GitHub issue #{ctx.issue_number}.",
        field_name,
    )


def reconcile_title(ctx: ReconcileContext) -> Outcome:
    title = _issue_title(ctx)
    return _patch_issue(ctx, "title", {"title": title}, title)


def reconcile_description(ctx: ReconcileContext) -> Outcome:
    return _patch_issue(ctx, "description", {"body": _issue_body(ctx)}, "<body>")


def reconcile_state(ctx: ReconcileContext) -> Outcome:
    state_id = ctx.data.get("stateId")
    if state_id == ctx.link.done_state_id:
        fields = {"state": "closed", "state_reason": "completed"}
    elif state_id == ctx.link.canceled_state_id:
        fields = {"state": "closed", "state_reason": "not_planned"}
    else:
        fields = {"state": "open"}
    return _patch_issue(ctx, "state", fields, fields.get("state_reason", fields["state"]))


# Cycle -> milestone


def milestone_title(cycle: Dict[str, Any]) -> str:
    name = cycle.get("name")
    if not name:
        return f"v.{cycle.get('number')}"
    return f"v.{name}" if is_number(name) else name


def milestone_state(cycle: Dict[str, Any], now: datetime) -> str:
    ends_at = cycle.get("endsAt")
    if not ends_at:
        return "open"
    return "open" if _parse_linear_datetime(ends_at) > now else "closed"


def _set_milestone(ctx: ReconcileContext, milestone_number: Optional[int], action: str):
    ctx.executor.call(
        action,
        lambda: ctx.github.set_issue_milestone(ctx.issue_number, milestone_number),
        context=ctx.call_context("cycle", milestone_number),
        fatal=True,
    )


def reconcile_cycle(ctx: ReconcileContext) -> Outcome:
    cycle_id = ctx.data.get("cycleId")
    if not cycle_id:
        _set_milestone(ctx, None, "remove GitHub milestone")
        return Outcome(OutcomeKind.SYNCED, f"Removed milestone for {ctx.ticket_name}.", "cycle")

    synced_milestone = ctx.store.find_milestone_link(cycle_id, ctx.link.team_id, ctx.link.repo_id)
    if synced_milestone is None:
        response = ctx.executor.call(
            "fetch Linear cycle",
            lambda: ctx.linear.cycle(cycle_id),
            context=ctx.call_context("cycle", cycle_id),
            fatal=True,
        )
        cycle = graphql_data(response, "cycle")
        if not cycle:
            raise FatalReconciliationError(f"Could not find cycle for {ctx.ticket_name}.", 500)

        footer = ctx.options.footer
        if footer in (cycle.get("description") or ""):
            # The cycle was created from a GitHub milestone by the sync itself.
            return Outcome(
                OutcomeKind.SKIPPED,
                f'Skipping over cycle "{cycle.get("name")}" because it is caused by sync',
                "cycle",
            )

        title = milestone_title(cycle)
        response = ctx.executor.call(
            "create GitHub milestone",
            lambda: ctx.github.create_milestone(
                title,
                f"{cycle.get('description') or ''}\n\n> {footer}",
                milestone_state(cycle, ctx.now()),
            ),
            context=ctx.call_context("cycle", title),
            fatal=True,
        )
        milestone_number = (response.json() or {}).get("number")
        if not milestone_number:
            raise FatalReconciliationError(f"Could not create milestone for {ctx.ticket_name}.", 500)

        synced_milestone = ctx.store.create_milestone_link(
            cycle_id=cycle_id,
            milestone_id=milestone_number,
            linear_team_id=ctx.link.team_id,
            github_repo_id=ctx.link.repo_id,
        ) or ctx.store.find_milestone_link(cycle_id, ctx.link.team_id, ctx.link.repo_id)
        if synced_milestone is None:
            raise FatalReconciliationError(
                f"Could not save milestone link for cycle {cycle_id} ({ctx.ticket_name}).", 500
            )
        logger.info(f'Created milestone "{title}" for cycle {cycle_id}.')

    _set_milestone(ctx, synced_milestone.milestone_id, "add GitHub milestone")
    return Outcome(
        OutcomeKind.SYNCED,
        f"Added milestone to #{ctx.issue_number} for {ctx.ticket_name}.",
        "cycle",
    )


# Assignee


def reconcile_assignee(ctx: ReconcileContext) -> Outcome:
    """Replace the GitHub assignees with the mapped Linear assignee.

    Existing assignees are removed before the new one is added, so GitHub
    never reports the new person as a re-assignment that would echo back.
    """
    assignee_id = ctx.data.get("assigneeId")
    username = ctx.store.find_identity_mapping(assignee_id) if assignee_id else None
    if assignee_id and not username:
        return Outcome(
            OutcomeKind.SKIPPED,
            f"Skipping assignee for {ctx.ticket_name} as no GitHub username was found "
            f"for Linear user {assignee_id}.",
            "assignee",
        )

    try:
        response = ctx.executor.call(
            "fetch GitHub issue",
            lambda: ctx.github.get_issue(ctx.issue_number),
            context=ctx.call_context("assignee", username),
        )
    except CounterpartCallFailed as e:
        return Outcome(OutcomeKind.FAILED, str(e), "assignee")
    current = [a.get("login") for a in (response.json() or {}).get("assignees") or [] if a]

    if username and username in current:
        return Outcome(
            OutcomeKind.SKIPPED,
            f"Skipping assignee for {ctx.ticket_name} as Linear user {assignee_id} is already assigned.",
            "assignee",
        )
    if not username and not current:
        return Outcome(OutcomeKind.SKIPPED, f"No assignees to change for {ctx.ticket_name}.", "assignee")

    failures = []
    if current:
        try:
            ctx.executor.call(
                "remove GitHub assignees",
                lambda: ctx.github.remove_assignees(ctx.issue_number, current),
                context=ctx.call_context("assignee", ", ".join(current)),
            )
        except CounterpartCallFailed as e:
            failures.append(str(e))
    if username:
        try:
            ctx.executor.call(
                "add GitHub assignee",
                lambda: ctx.github.add_assignees(ctx.issue_number, [username]),
                context=ctx.call_context("assignee", username),
            )
        except CounterpartCallFailed as e:
            failures.append(str(e))

    if failures:
        return Outcome(OutcomeKind.FAILED, " ".join(failures), "assignee")
    if username:
        message = f"Assigned {username} to GitHub issue #{ctx.issue_number} for {ctx.ticket_name}."
    else:
        message = f"Removed assignees from GitHub issue #{ctx.issue_number} for {ctx.ticket_name}."
    return Outcome(OutcomeKind.SYNCED, message, "assignee")


# Priority and estimate labels


def reconcile_priority(ctx: ReconcileContext) -> Outcome:
    previous = ctx.event.updated_from.get("priority")
    priority = ctx.data.get("priority")
    previous_label = PRIORITY_LABELS.get(previous)
    new_label = PRIORITY_LABELS.get(priority)
    if previous_label is None or new_label is None:
        return Outcome(
            OutcomeKind.FAILED,
            f"Could not find a priority label for {previous} or {priority}.",
            "priority",
        )

    _remove_label_best_effort(ctx, previous_label["name"], "priority")
    if priority == NO_PRIORITY:
        return Outcome(
            OutcomeKind.SYNCED,
            f'Removed priority label "{previous_label["name"]}" from issue #{ctx.issue_number}.',
            "priority",
        )
    return _ensure_and_apply_label(ctx, new_label["name"], new_label["color"], "priority")


def estimate_label(value: Any) -> str:
    return f"{value} points"


def reconcile_estimate(ctx: ReconcileContext) -> Outcome:
    previous = ctx.event.updated_from.get("estimate")
    estimate = ctx.data.get("estimate")
    if previous is not None:
        _remove_label_best_effort(ctx, estimate_label(previous), "estimate")
    if not estimate:
        return Outcome(
            OutcomeKind.SYNCED,
            f'Removed estimate label "{estimate_label(previous)}" from issue #{ctx.issue_number}.',
            "estimate",
        )
    return _ensure_and_apply_label(ctx, estimate_label(estimate), ESTIMATE_LABEL_COLOR, "estimate")


# Comments


def reconcile_comment(ctx: ReconcileContext) -> Outcome:
    """Mirror a newly created Linear comment onto the linked GitHub issue."""
    data = ctx.data
    issue_ref = (data.get("issue") or {}).get("id") or data.get("issueId")
    if ctx.options.is_synthetic(data.get("id")):
        return Outcome(OutcomeKind.SKIPPED, skip_reason("comment", issue_ref, True), "comment")
    if ctx.options.is_internal_comment(data.get("body")):
        return Outcome(
            OutcomeKind.SKIPPED, f"Skipping syncing internal comment for issue #{issue_ref}", "comment"
        )

    # The sync link was resolved from the ticket's own team.
    ctx.synced_issue = ctx.store.find_issue_link(data.get("issueId"), ctx.link.team_id)
    if ctx.synced_issue is None:
        return Outcome(OutcomeKind.SKIPPED_NO_LINK, skip_reason("comment", ctx.ticket_name), "comment")

    user = data.get("user") or {}
    body = replace_mentions(data.get("body"), ctx.mentions) + github_footer(
        user.get("displayName") or user.get("name"), ctx.options.footer
    )
    try:
        ctx.executor.call(
            "create GitHub comment",
            lambda: ctx.github.create_comment(ctx.issue_number, body),
            context=ctx.call_context("comment", data.get("id")),
        )
    except CounterpartCallFailed as e:
        return Outcome(OutcomeKind.FAILED, str(e), "comment")
    return Outcome(
        OutcomeKind.SYNCED,
        f"Synced comment [{data.get('id')}] for {issue_ref} on GitHub issue #{ctx.issue_number}.",
        "comment",
    )
