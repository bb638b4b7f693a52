from collections import deque

from .completion import SUGGESTION_PROMPT
from .utils import deliver_message


def open_stream(client, prompt):
    # Defer the request into iteration so the panel sees its failures.
    yield from client.stream(prompt)


class Composer:
    """Message form and suggestion panel of one public profile page."""

    def __init__(self, username, form, panel):
        self.username = username
        self.form = form
        self.panel = panel

    def select(self, suggestion):
        """Copy a cleaned suggestion into the content field."""
        self.form.content.data = suggestion

    def suggest(self, client):
        # Only the panel's final state matters here; drop the snapshots.
        deque(self.panel.run(open_stream(client, SUGGESTION_PROMPT)), maxlen=0)

    def send(self):
        """
        Deliver the (already validated) form content. Returns ``(category,
        text)`` for the notice to show.
        """
        success, message, _ = deliver_message(self.username, self.form.content.data)
        if success:
            self.form.content.data = ''
            return 'success', message
        return 'error', message or 'Failed to send message'
