import logging
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from fakes import (
    ACTOR_ID,
    GITHUB_USER_ID,
    PUBLIC_LABEL,
    REPO_ID,
    TEAM_ID,
    FakeGitHub,
    FakeLinear,
    issue_data,
    link_issue,
    make_engine,
    make_event,
    make_session,
    map_user,
    seed_link,
)

logging.disable(logging.CRITICAL)

LINEAR_LABELS = {
    "lbl-bug": {"id": "lbl-bug", "name": "bug", "color": "#d73a4a"},
    "lbl-internal": {"id": "lbl-internal", "name": "internal", "color": "#000000"},
}


def _made_public_event():
    return make_event(
        data=issue_data(labelIds=[PUBLIC_LABEL, "lbl-bug", "lbl-internal"]),
        updated_from={"labelIds": ["lbl-bug", "lbl-internal"]},
    )


class MadePublicScenarioTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        seed_link(self.db)
        map_user(self.db, "user-2", "bob", 88, "bob-gh")
        self.calls = []
        self.github = FakeGitHub(self.calls)
        self.linear = FakeLinear(
            self.calls,
            labels=LINEAR_LABELS,
            comments=[
                {"id": "comment-1", "body": "ping @bob about this", "user": {"displayName": "Alice"}},
            ],
        )
        self.engine = make_engine(self.db, self.github, self.linear)

    def tearDown(self):
        self.db.close()

    def test_visibility_label_creates_issue_with_allowed_labels_and_comments(self):
        from syncbridge.models import SyncedIssue
        from syncbridge.services.reconcilers import OutcomeKind

        result = self.engine.handle(_made_public_event())

        self.assertEqual(result.status_code, 200)
        self.assertEqual([o.kind for o in result.outcomes], [OutcomeKind.SYNCED])

        creates = [c for c in self.calls if c[0] == "create_issue"]
        self.assertEqual(len(creates), 1)
        _, title, body, _assignees = creates[0]
        self.assertIn("T-42", title)
        self.assertEqual(title, "[T-42] Crash on save")
        self.assertIn("[T-42](https://linear.app/acme/issue/T-42)", body)

        applies = [c for c in self.calls if c[0] == "apply_labels"]
        self.assertEqual(applies, [("apply_labels", 7, ["bug"])])
        created_labels = [c[1] for c in self.calls if c[0] == "create_label"]
        self.assertEqual(created_labels, ["bug"])

        links = self.db.query(SyncedIssue).all()
        self.assertEqual(len(links), 1)
        self.assertEqual(links[0].linear_issue_id, "ticket-42")
        self.assertEqual(links[0].github_issue_number, 7)
        self.assertEqual(links[0].github_repo_id, REPO_ID)

        comments = [c for c in self.calls if c[0] == "create_comment"]
        self.assertEqual(len(comments), 1)
        self.assertTrue(comments[0][2].startswith("ping @bob-gh about this"))
        self.assertIn("Alice on Linear", comments[0][2])

    def test_attachment_back_references_the_github_issue(self):
        self.engine.handle(_made_public_event())

        attachments = [c for c in self.calls if c[0] == "create_attachment"]
        self.assertEqual(
            attachments,
            [("create_attachment", "ticket-42", "https://github.com/acme/widgets/issues/7")],
        )

    def test_attachment_runs_on_worker_pool(self):
        from syncbridge.models import SyncedIssue

        with ThreadPoolExecutor(max_workers=1) as pool:
            engine = make_engine(self.db, self.github, self.linear, attachment_pool=pool)
            result = engine.handle(_made_public_event())

        self.assertEqual(result.status_code, 200)
        self.assertEqual(self.linear.names().count("create_attachment"), 1)
        self.assertEqual(self.db.query(SyncedIssue).count(), 1)

    def test_attachment_failure_does_not_fail_creation(self):
        from syncbridge.models import SyncedIssue
        from fakes import json_response

        self.linear.responses["create_attachment"] = json_response(400, {"errors": ["nope"]})

        result = self.engine.handle(_made_public_event())

        self.assertEqual(result.status_code, 200)
        self.assertEqual(self.db.query(SyncedIssue).count(), 1)

    def test_replaying_made_public_event_creates_no_second_issue(self):
        from syncbridge.models import SyncedIssue
        from syncbridge.services.reconcilers import OutcomeKind

        self.engine.handle(_made_public_event())
        second = self.engine.handle(_made_public_event())

        self.assertEqual(self.github.names().count("create_issue"), 1)
        self.assertEqual(self.db.query(SyncedIssue).count(), 1)
        self.assertEqual(second.outcomes[0].kind, OutcomeKind.SKIPPED_ALREADY_SYNCED)

    def test_issue_creation_failure_is_fatal_and_persists_nothing(self):
        from syncbridge.models import SyncedIssue
        from syncbridge.services.reconcilers import OutcomeKind
        from fakes import json_response

        self.github.responses["create_issue"] = json_response(502, {"message": "bad gateway"})

        result = self.engine.handle(_made_public_event())

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.FAILED)
        self.assertEqual(result.status_code, 500)
        self.assertEqual(self.db.query(SyncedIssue).count(), 0)
        self.assertNotIn("apply_labels", self.github.names())

    def test_internal_and_synthetic_comments_are_not_replayed(self):
        self.linear.comments = [
            {"id": "c-1", "body": "Gerrit changes: https://review/1", "user": {"name": "bot"}},
            {"id": "c-2-decafbad", "body": "mirrored back", "user": {"name": "bot"}},
            {"id": "c-3", "body": "real comment", "user": {"name": "carol"}},
        ]

        self.engine.handle(_made_public_event())

        comments = [c for c in self.calls if c[0] == "create_comment"]
        self.assertEqual(len(comments), 1)
        self.assertTrue(comments[0][2].startswith("real comment"))

    def test_failed_label_or_comment_does_not_stop_the_replay(self):
        from syncbridge.services.reconcilers import OutcomeKind
        from fakes import json_response

        self.linear.labels["lbl-feature"] = {"id": "lbl-feature", "name": "feature", "color": "#a2eeef"}
        self.linear.responses["issue_label"] = [json_response(500, {"errors": ["boom"]})]
        self.github.responses["create_comment"] = [json_response(500, {"message": "boom"})]
        self.linear.comments = [
            {"id": "c-1", "body": "first", "user": {"name": "carol"}},
            {"id": "c-2", "body": "second", "user": {"name": "carol"}},
            {"id": "c-3", "body": "third", "user": {"name": "carol"}},
        ]

        result = self.engine.handle(
            make_event(
                data=issue_data(labelIds=[PUBLIC_LABEL, "lbl-bug", "lbl-feature"]),
                updated_from={"labelIds": ["lbl-bug", "lbl-feature"]},
            )
        )

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.SYNCED)
        self.assertEqual(result.status_code, 200)
        fetched = [c[1] for c in self.calls if c[0] == "issue_label"]
        self.assertEqual(fetched, ["lbl-bug", "lbl-feature"])
        self.assertIn(("apply_labels", 7, ["feature"]), self.calls)
        bodies = [c[2] for c in self.calls if c[0] == "create_comment"]
        self.assertEqual(len(bodies), 3)
        self.assertTrue(bodies[1].startswith("second"))
        self.assertTrue(bodies[2].startswith("third"))

    def test_priority_label_is_applied_in_the_same_call(self):
        event = make_event(
            data=issue_data(labelIds=[PUBLIC_LABEL, "lbl-bug"], priority=1),
            updated_from={"labelIds": ["lbl-bug"]},
        )

        self.engine.handle(event)

        applies = [c for c in self.calls if c[0] == "apply_labels"]
        self.assertEqual(applies, [("apply_labels", 7, ["bug", "Urgent"])])

    def test_fields_changed_alongside_visibility_are_not_patched_again(self):
        event = make_event(
            data=issue_data(labelIds=[PUBLIC_LABEL], title="New"),
            updated_from={"labelIds": [], "title": "Old"},
        )

        self.engine.handle(event)

        self.assertEqual(self.github.names().count("create_issue"), 1)
        self.assertNotIn("patch_issue", self.github.names())

    def test_event_result_is_written_to_sync_log(self):
        from syncbridge.models import SyncLog
        from syncbridge.models.sync_log import SyncStatus

        self.engine.handle(_made_public_event())

        log = self.db.query(SyncLog).one()
        self.assertEqual(log.status, SyncStatus.SUCCESS)
        self.assertEqual(log.linear_issue_id, "ticket-42")
        self.assertEqual(log.github_issue_number, 7)
        self.assertEqual(log.action, "Issue.update")


class CreatedTicketTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        seed_link(self.db)
        self.github = FakeGitHub()
        self.linear = FakeLinear(labels=LINEAR_LABELS)
        self.engine = make_engine(self.db, self.github, self.linear)

    def tearDown(self):
        self.db.close()

    def test_public_ticket_is_mirrored_without_comment_replay(self):
        event = make_event(action="create", data=issue_data(labelIds=[PUBLIC_LABEL]))

        self.engine.handle(event)

        self.assertEqual(self.github.names().count("create_issue"), 1)
        self.assertNotIn("issue_comments", self.linear.names())

    def test_private_ticket_is_skipped(self):
        from syncbridge.services.reconcilers import OutcomeKind

        result = self.engine.handle(make_event(action="create", data=issue_data(labelIds=["lbl-bug"])))

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.SKIPPED_NOT_PUBLIC)
        self.assertEqual(self.github.calls, [])

    def test_synthetic_ticket_is_skipped(self):
        event = make_event(
            action="create", data=issue_data(id="ticket-decafbad", labelIds=[PUBLIC_LABEL])
        )

        self.engine.handle(event)

        self.assertEqual(self.github.calls, [])

    def test_mapped_assignee_is_set_on_creation(self):
        map_user(self.db, "user-2", "bob", 88, "bob-gh")
        event = make_event(
            action="create", data=issue_data(labelIds=[PUBLIC_LABEL], assigneeId="user-2")
        )

        self.engine.handle(event)

        create = next(c for c in self.github.calls if c[0] == "create_issue")
        self.assertEqual(create[3], ["bob-gh"])

    def test_unsupported_event_is_skipped(self):
        from syncbridge.services.reconcilers import OutcomeKind

        result = self.engine.handle(make_event(action="remove"))

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.SKIPPED)
        self.assertEqual(self.github.calls, [])


class NoLinkFoundTests(unittest.TestCase):
    def test_unknown_actor_makes_zero_outbound_calls(self):
        from syncbridge.models import SyncLog
        from syncbridge.models.sync_log import SyncStatus
        from syncbridge.services.reconcilers import OutcomeKind

        db = make_session()
        seed_link(db)
        github, linear = FakeGitHub(), FakeLinear()
        engine = make_engine(db, github, linear)
        event = make_event(
            data=issue_data(userId="stranger", labelIds=[PUBLIC_LABEL]),
            updated_from={"labelIds": []},
        )

        result = engine.handle(event)

        self.assertEqual([o.kind for o in result.outcomes], [OutcomeKind.NO_LINK_FOUND])
        self.assertEqual(result.status_code, 200)
        self.assertEqual(github.calls, [])
        self.assertEqual(linear.calls, [])
        self.assertEqual(db.query(SyncLog).one().status, SyncStatus.SKIPPED)
        db.close()

    def test_other_team_is_not_matched(self):
        from syncbridge.services.reconcilers import OutcomeKind

        db = make_session()
        seed_link(db)
        github, linear = FakeGitHub(), FakeLinear()
        engine = make_engine(db, github, linear)

        result = engine.handle(make_event(data=issue_data(teamId="team-2"), updated_from={"title": "x"}))

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.NO_LINK_FOUND)
        self.assertEqual(github.calls, [])
        db.close()


class CycleScenarioTests(unittest.TestCase):
    def test_new_cycle_creates_open_milestone_and_sets_it(self):
        from syncbridge.models import SyncedMilestone

        db = make_session()
        seed_link(db)
        link_issue(db)
        github = FakeGitHub()
        linear = FakeLinear(
            cycles={
                "cycle-9": {
                    "id": "cycle-9",
                    "name": "C-9",
                    "number": 9,
                    "description": "Sprint goals",
                    "endsAt": "2026-02-01T00:00:00.000Z",
                }
            }
        )
        now = datetime(2026, 1, 15, tzinfo=timezone.utc)
        engine = make_engine(db, github, linear, now=lambda: now)

        result = engine.handle(
            make_event(data=issue_data(cycleId="cycle-9"), updated_from={"cycleId": None})
        )

        self.assertEqual(result.status_code, 200)
        milestones = [c for c in github.calls if c[0] == "create_milestone"]
        self.assertEqual(len(milestones), 1)
        _, title, description, state = milestones[0]
        self.assertEqual(title, "C-9")
        self.assertEqual(state, "open")
        self.assertEqual(description, "Sprint goals\n\n> From [SyncBridge](https://sync.example)")

        link = db.query(SyncedMilestone).one()
        self.assertEqual(link.cycle_id, "cycle-9")
        self.assertEqual(link.milestone_id, 3)
        self.assertEqual(link.linear_team_id, TEAM_ID)

        sets = [c for c in github.calls if c[0] == "set_issue_milestone"]
        self.assertEqual(sets, [("set_issue_milestone", 7, 3)])
        db.close()


class AssigneeScenarioTests(unittest.TestCase):
    def test_unmapped_new_assignee_is_skipped_without_calls(self):
        from syncbridge.services.reconcilers import OutcomeKind

        db = make_session()
        seed_link(db)
        link_issue(db)
        map_user(db, "user-u1", "uone", 101, "u1-gh")
        github, linear = FakeGitHub(assignees=["u1-gh"]), FakeLinear()
        engine = make_engine(db, github, linear)

        result = engine.handle(
            make_event(data=issue_data(assigneeId="user-u2"), updated_from={"assigneeId": "user-u1"})
        )

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.SKIPPED)
        self.assertIn("no GitHub username", result.outcomes[0].message)
        self.assertEqual(result.status_code, 200)
        self.assertNotIn("add_assignees", github.names())
        self.assertNotIn("remove_assignees", github.names())
        db.close()


class CommentScenarioTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session()
        seed_link(self.db)
        map_user(self.db, "user-2", "bob", 88, "bob-gh")
        self.github, self.linear = FakeGitHub(), FakeLinear()
        self.engine = make_engine(self.db, self.github, self.linear)

    def tearDown(self):
        self.db.close()

    def _comment_event(self, **overrides):
        data = {
            "id": "comment-1",
            "body": "Thanks @Bob!",
            "issueId": "ticket-42",
            "userId": ACTOR_ID,
            "user": {"id": ACTOR_ID, "name": "alice", "displayName": "Alice"},
            "issue": {"id": "ticket-42", "identifier": "T-42", "title": "Crash on save"},
        }
        data.update(overrides)
        return make_event(action="create", type_="Comment", data=data)

    def test_comment_is_mirrored_with_mentions_and_footer(self):
        link_issue(self.db)

        result = self.engine.handle(self._comment_event())

        self.assertEqual(result.status_code, 200)
        comments = [c for c in self.github.calls if c[0] == "create_comment"]
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0][1], 7)
        self.assertEqual(
            comments[0][2],
            "Thanks @bob-gh!\n\n<sub>Alice on Linear | From [SyncBridge](https://sync.example)</sub>",
        )

    def test_comment_without_issue_link_is_skipped(self):
        from syncbridge.services.reconcilers import OutcomeKind

        result = self.engine.handle(self._comment_event())

        self.assertEqual(result.outcomes[0].kind, OutcomeKind.SKIPPED_NO_LINK)
        self.assertEqual(self.github.calls, [])

    def test_internal_and_synthetic_comments_are_skipped(self):
        link_issue(self.db)

        self.engine.handle(self._comment_event(body="Gerrit changes: https://review/2"))
        self.engine.handle(self._comment_event(id="comment-2-decafbad"))

        self.assertEqual(self.github.calls, [])


class CommentAcrossTeamsTests(unittest.TestCase):
    """One actor syncing two teams into two repos."""

    OPS_TEAM = "team-2"
    OPS_REPO_ID = 556

    def setUp(self):
        from syncbridge.models import GitHubRepo, LinearTeam, SyncLink

        self.db = make_session()
        seed_link(self.db)
        self.db.add(
            LinearTeam(
                team_id=self.OPS_TEAM,
                team_name="Operations",
                public_label_id="lbl-ops-public",
                done_state_id="ops-done",
                canceled_state_id="ops-canceled",
            )
        )
        self.db.add(GitHubRepo(repo_id=self.OPS_REPO_ID, repo_name="acme/ops"))
        self.db.add(
            SyncLink(
                linear_user_id=ACTOR_ID,
                linear_team_id=self.OPS_TEAM,
                linear_api_key="enc-linear",
                linear_api_key_iv="iv-linear",
                github_user_id=GITHUB_USER_ID,
                github_repo_id=self.OPS_REPO_ID,
                github_api_key="enc-github",
                github_api_key_iv="iv-github",
            )
        )
        self.db.commit()
        link_issue(self.db)
        link_issue(
            self.db, ticket_id="ticket-ops", github_issue_number=3, number=3,
            team_id=self.OPS_TEAM, repo_id=self.OPS_REPO_ID,
        )

        self.repos = []
        self.github, self.linear = FakeGitHub(), FakeLinear()
        self.engine = make_engine(self.db, self.github, self.linear)
        self.engine.github_factory = self._github_for

    def tearDown(self):
        self.db.close()

    def _github_for(self, link):
        self.repos.append(link.repo_name)
        return self.github

    def _comment_on(self, ticket_id):
        return make_event(
            action="create",
            type_="Comment",
            data={
                "id": f"comment-on-{ticket_id}",
                "body": "Looking into it",
                "issueId": ticket_id,
                "userId": ACTOR_ID,
                "user": {"id": ACTOR_ID, "name": "alice"},
            },
        )

    def test_comment_goes_to_the_repo_of_the_tickets_team(self):
        result = self.engine.handle(self._comment_on("ticket-ops"))

        self.assertEqual(result.status_code, 200)
        self.assertEqual(self.repos, ["acme/ops"])
        comments = [c for c in self.github.calls if c[0] == "create_comment"]
        self.assertEqual([c[1] for c in comments], [3])

    def test_comment_on_first_team_still_goes_to_its_repo(self):
        self.engine.handle(self._comment_on("ticket-42"))

        self.assertEqual(self.repos, ["acme/widgets"])
        comments = [c for c in self.github.calls if c[0] == "create_comment"]
        self.assertEqual([c[1] for c in comments], [7])


if __name__ == "__main__":
    unittest.main()
