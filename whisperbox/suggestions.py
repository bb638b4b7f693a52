"""
Message suggestions: turning streamed completion text into display-ready
candidate messages.

The completion service answers with one blob of text that uses ``||`` as a
record separator. Depending on the model, each record is either plain text,
text with a ``code:`` / ``message:`` annotation, or a small JSON envelope.
``clean_message`` normalizes all of these shapes to plain text and never
raises. ``SuggestionPanel`` holds the raw buffer of one suggestion request
and recomputes the whole batch from it every time it is read.
"""

import enum
import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from .completion import CompletionError

logger = logging.getLogger(__name__)

SPECIAL_CHAR = '||'

INITIAL_MESSAGE_STRING = (
    "What's your favorite movie?||Do you have any pets?||What's your dream job?"
)

_ENVELOPE_CHARS = re.compile(r'[{}"]')
_CODE_PREFIX = re.compile(r'^code\s*:\s*', re.IGNORECASE)
_MESSAGE_PREFIX = re.compile(r'^message\s*:\s*', re.IGNORECASE)


def parse_string_messages(message_string: str) -> List[str]:
    """Split raw completion text into ordered segments."""
    return message_string.split(SPECIAL_CHAR)


@dataclass(frozen=True)
class Structured:
    """A segment that parsed as JSON."""

    text: str
    code: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class Raw:
    """A segment that is not well-formed JSON."""

    text: str


def _envelope_text(value):
    # None: absent or falsy. False: present but not text.
    if not value:
        return None
    return value if isinstance(value, str) else False


def parse_segment(segment: str) -> Union[Structured, Raw]:
    try:
        parsed = json.loads(segment)
    except (ValueError, RecursionError):
        return Raw(segment)

    if not isinstance(parsed, dict):
        return Structured(segment)

    # Fields are read in order; only the one actually used must be text.
    code = _envelope_text(parsed.get('code'))
    if code is False:
        return Raw(segment)
    if code:
        return Structured(segment, code=code)

    message = _envelope_text(parsed.get('message'))
    if message is False:
        return Raw(segment)
    return Structured(segment, message=message)


def clean_message(segment: str) -> str:
    """Normalize one suggestion segment to plain display text."""
    parsed = parse_segment(segment)
    if isinstance(parsed, Structured):
        if parsed.code:
            return parsed.code.strip()
        if parsed.message:
            return parsed.message.strip()
        return parsed.text.strip()

    text = _ENVELOPE_CHARS.sub('', parsed.text)
    text = _CODE_PREFIX.sub('', text)
    text = _MESSAGE_PREFIX.sub('', text)
    return text.strip()


class PanelState(enum.Enum):
    IDLE = 'idle'
    LOADING = 'loading'
    POPULATED = 'populated'
    ERRORED = 'errored'


class InvalidTransition(ValueError):
    pass


class SuggestionPanel:
    """
    State of the suggestion panel for one page render.

    Idle -> Loading -> Populated | Errored. A new request may start from any
    state except Loading and always replaces the previous batch.
    """

    def __init__(self, initial: str = ''):
        self.state = PanelState.IDLE
        self.buffer = initial
        self.error: Optional[str] = None
        self.in_flight = False

    @property
    def is_loading(self) -> bool:
        return self.in_flight

    @property
    def suggestions(self) -> List[str]:
        if not self.buffer:
            return []
        return [clean_message(segment) for segment in parse_string_messages(self.buffer)]

    def begin(self):
        if self.in_flight:
            raise InvalidTransition('A suggestion request is already in flight')
        self.state = PanelState.LOADING
        self.buffer = ''
        self.error = None
        self.in_flight = True

    def receive(self, chunk: str):
        if not self.in_flight:
            raise InvalidTransition(f'Cannot receive data in state {self.state.value}')
        self.buffer += chunk
        self.state = PanelState.POPULATED

    def finish(self):
        if not self.in_flight:
            raise InvalidTransition(f'Cannot finish in state {self.state.value}')
        self.in_flight = False
        if self.state is PanelState.LOADING:
            self.state = PanelState.POPULATED

    def fail(self, message: str):
        if not self.in_flight:
            raise InvalidTransition(f'Cannot fail in state {self.state.value}')
        self.in_flight = False
        self.state = PanelState.ERRORED
        self.error = message

    def snapshot(self) -> dict:
        return {
            'state': self.state.value,
            'suggestions': self.suggestions,
            'error': self.error,
            'raw': self.buffer,
        }

    def run(self, chunks: Iterable[str]) -> Iterator[dict]:
        """Drive one request over ``chunks``, yielding a snapshot per update."""
        self.begin()
        yield self.snapshot()
        try:
            for chunk in chunks:
                if chunk:
                    self.receive(chunk)
                    yield self.snapshot()
        except CompletionError as e:
            logger.warning("Suggestion request failed: %s", e)
            self.fail(str(e))
        else:
            self.finish()
        yield self.snapshot()
