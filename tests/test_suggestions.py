import pytest

from whisperbox.completion import CompletionError
from whisperbox.suggestions import (
    INITIAL_MESSAGE_STRING, InvalidTransition, PanelState, Raw, Structured,
    SuggestionPanel, clean_message, parse_segment, parse_string_messages,
)


def test_split_preserves_order():
    assert parse_string_messages("A||B||C") == ["A", "B", "C"]


def test_split_without_delimiter():
    assert parse_string_messages("A") == ["A"]


def test_split_keeps_partial_trailing_segment():
    assert parse_string_messages("What's up?||Do you") == ["What's up?", "Do you"]


def test_parse_segment_variants():
    assert parse_segment('{"code": "x", "message": "y"}') == Structured('{"code": "x", "message": "y"}', code='x')
    assert parse_segment('{"code": "", "message": "y"}') == Structured('{"code": "", "message": "y"}', message='y')
    assert parse_segment('"just a string"') == Structured('"just a string"')
    assert parse_segment('code: Hello') == Raw('code: Hello')
    # A non-text envelope member counts as a failed parse.
    assert parse_segment('{"code": 5}') == Raw('{"code": 5}')


@pytest.mark.parametrize('segment, expected', [
    ('{"code":"  Hi there  "}', 'Hi there'),
    ('{"message":" Hello friend "}', 'Hello friend'),
    ('{"code":"", "message":"Fallback"}', 'Fallback'),
    ('code: Hello', 'Hello'),
    ('CODE :  Hello', 'Hello'),
    ('Message: How are you?', 'How are you?'),
    ('{code: "What do you like?"}', 'What do you like?'),
    ('  plain question?  ', 'plain question?'),
    ('{"foo":"bar"}', '{"foo":"bar"}'),
    ('{"code": 5}', '5'),
    ('{"code": "Hi", "message": 5}', 'Hi'),
    ('{"message": 5}', '5'),
    ('', ''),
])
def test_clean_message(segment, expected):
    assert clean_message(segment) == expected


@pytest.mark.parametrize('segment', ['{', '}}}', '"', 'null', '[1, 2', '{"code": {"nested": true}}', '\x00',
                                     '[' * 100000, '{"code": ' * 100000])
def test_clean_message_never_raises(segment):
    assert isinstance(clean_message(segment), str)


def test_panel_starts_idle_with_seeded_batch():
    panel = SuggestionPanel(initial=INITIAL_MESSAGE_STRING)
    assert panel.state is PanelState.IDLE
    assert panel.suggestions == [
        "What's your favorite movie?", "Do you have any pets?", "What's your dream job?",
    ]


def test_empty_buffer_has_no_suggestions():
    assert SuggestionPanel().suggestions == []


def test_panel_transitions():
    panel = SuggestionPanel(initial="Old||Batch")
    panel.begin()
    assert panel.state is PanelState.LOADING
    assert panel.is_loading
    assert panel.suggestions == []

    panel.receive("What's your favorite")
    assert panel.state is PanelState.POPULATED
    assert panel.suggestions == ["What's your favorite"]

    panel.receive(" movie?||Do you")
    assert panel.suggestions == ["What's your favorite movie?", "Do you"]

    panel.receive(" have any pets?")
    panel.finish()
    assert not panel.is_loading
    assert panel.state is PanelState.POPULATED
    assert panel.suggestions == ["What's your favorite movie?", "Do you have any pets?"]


def test_panel_failure_keeps_upstream_message():
    panel = SuggestionPanel()
    panel.begin()
    panel.fail("Rate limit exceeded")
    assert panel.state is PanelState.ERRORED
    assert panel.error == "Rate limit exceeded"

    panel.begin()
    assert panel.error is None
    assert panel.state is PanelState.LOADING


def test_finish_without_data_is_populated_and_empty():
    panel = SuggestionPanel()
    panel.begin()
    panel.finish()
    assert panel.state is PanelState.POPULATED
    assert panel.suggestions == []


def test_invalid_transitions():
    panel = SuggestionPanel()
    with pytest.raises(InvalidTransition):
        panel.receive("x")
    with pytest.raises(InvalidTransition):
        panel.finish()
    panel.begin()
    with pytest.raises(InvalidTransition):
        panel.begin()


def test_run_recomputes_batch_on_every_update():
    panel = SuggestionPanel()
    snapshots = list(panel.run(['{"code":"Hi', ' there"}||Sec', 'ond']))

    assert [s['state'] for s in snapshots] == ['loading'] + ['populated'] * 4
    assert snapshots[1]['suggestions'] == ['Hi']
    assert snapshots[2]['suggestions'] == ['Hi there', 'Sec']
    assert snapshots[-1]['suggestions'] == ['Hi there', 'Second']


def test_run_turns_completion_errors_into_failure():
    def chunks():
        yield "Half a question"
        raise CompletionError("upstream went away")

    panel = SuggestionPanel()
    snapshots = list(panel.run(chunks()))

    assert snapshots[-1] == {
        'state': 'errored', 'suggestions': ['Half a question'], 'error': 'upstream went away',
        'raw': 'Half a question',
    }
    assert not panel.is_loading


def test_deeply_nested_segment_is_cleaned_as_text():
    segment = '[' * 100000
    assert parse_segment(segment) == Raw(segment)
    assert clean_message(segment) == segment


def test_snapshot_carries_raw_buffer():
    panel = SuggestionPanel()
    snapshots = list(panel.run(['{"code":"Hi', ' there"}||Sec', 'ond']))

    assert [s['raw'] for s in snapshots] == [
        '', '{"code":"Hi', '{"code":"Hi there"}||Sec', '{"code":"Hi there"}||Second',
        '{"code":"Hi there"}||Second',
    ]
