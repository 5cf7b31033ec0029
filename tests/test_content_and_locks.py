import threading
import time
import unittest


class ContentHelperTests(unittest.TestCase):
    def test_replace_mentions_is_case_insensitive_and_leaves_unknown(self):
        from syncbridge.services.content import replace_mentions

        body = "cc @Bob and @dave, mail bob@example.com"
        self.assertEqual(
            replace_mentions(body, {"bob": "bob-gh"}),
            "cc @bob-gh and @dave, mail bob@example.com",
        )

    def test_replace_mentions_handles_empty(self):
        from syncbridge.services.content import replace_mentions

        self.assertEqual(replace_mentions(None, {"a": "b"}), "")
        self.assertEqual(replace_mentions("hi @a", {}), "hi @a")

    def test_footers(self):
        from syncbridge.services.content import github_footer, issue_body_footer, sync_footer

        footer = sync_footer("SyncBridge", "https://sync.example")
        self.assertEqual(footer, "From [SyncBridge](https://sync.example)")
        self.assertEqual(
            issue_body_footer(footer, "T-1", "https://linear.app/x/T-1"),
            "\n\n<sub>From [SyncBridge](https://sync.example) | [T-1](https://linear.app/x/T-1)</sub>",
        )
        self.assertEqual(
            github_footer("Alice", footer),
            "\n\n<sub>Alice on Linear | From [SyncBridge](https://sync.example)</sub>",
        )

    def test_is_number_and_inline_images(self):
        from syncbridge.services.content import has_inline_images, is_number

        self.assertTrue(is_number("12"))
        self.assertTrue(is_number(3))
        self.assertFalse(is_number("Sprint 12"))
        self.assertFalse(is_number(None))
        self.assertTrue(has_inline_images('x <img alt="a" src="https://i/1.png"> y'))
        self.assertFalse(has_inline_images("![md](https://i/1.png)"))


class TicketLocksTests(unittest.TestCase):
    def test_same_ticket_is_serialized(self):
        from syncbridge.services.locks import TicketLocks

        locks = TicketLocks()
        inside = []
        overlaps = []

        def worker():
            with locks.hold("ticket-1"):
                if inside:
                    overlaps.append(1)
                inside.append(1)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(overlaps, [])
        self.assertEqual(locks._locks, {})

    def test_different_tickets_do_not_block(self):
        from syncbridge.services.locks import TicketLocks

        locks = TicketLocks()
        with locks.hold("a"):
            acquired = threading.Event()

            def other():
                with locks.hold("b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            self.assertTrue(acquired.wait(1))
            t.join()
