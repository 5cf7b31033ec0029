"""Errors raised while reconciling a webhook event"""


class NoLinkFound(Exception):
    """No sync link governs the event's actor/team; the event is dropped."""

    def __init__(self, actor_id, scope_id=None):
        self.actor_id = actor_id
        self.scope_id = scope_id
        super().__init__("Could not find Linear user in syncs.")


class CounterpartCallFailed(Exception):
    """An outbound call to GitHub or Linear did not return 2xx."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class FatalReconciliationError(Exception):
    """A creation-critical step failed; aborts the current reconciler only.

    `status_code` is what the transport layer reports back to the sender.
    """

    def __init__(self, message: str, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message)
