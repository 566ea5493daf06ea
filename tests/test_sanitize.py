from ragchat_server.api.models import ChatTurn
from ragchat_server.rag.sanitize import MAX_INPUT_CHARS, sanitize, sanitize_history


def test_control_characters_stripped():
    assert sanitize("he\x00l\x07lo\x0b\x0c wor\x1fld") == "hello world"


def test_tab_newline_and_carriage_return_kept():
    assert sanitize("a\tb\nc\rd") == "a\tb\nc\rd"


def test_truncated_to_max_length():
    assert len(sanitize("x" * 5000)) == MAX_INPUT_CHARS


def test_sanitize_is_idempotent():
    samples = [
        "",
        "plain text",
        "\x01" * 10 + "y" * 1500,
        ("ab\x02" * 600),
        "ünïcödé \x1b[31m coloured",
    ]
    for text in samples:
        once = sanitize(text)
        assert sanitize(once) == once
        assert len(once) <= MAX_INPUT_CHARS


def test_history_bounded_to_last_ten_turns():
    history = [{"role": "user", "text": f"turn {i}"} for i in range(15)]

    turns = sanitize_history(history)

    assert len(turns) == 10
    assert turns[0].text == "turn 5"
    assert turns[-1].text == "turn 14"


def test_malformed_turns_dropped():
    history = [
        {"role": "user", "text": "hello"},
        {"role": "user"},
        {"text": "no role"},
        {"role": "system", "text": "not allowed"},
        {"role": "assistant", "text": ""},
        {"role": "assistant", "text": 42},
        "just a string",
        None,
        {"role": "assistant", "text": "hi\x00 there"},
    ]

    assert sanitize_history(history) == [
        ChatTurn(role="user", text="hello"),
        ChatTurn(role="assistant", text="hi there"),
    ]


def test_non_list_history_is_empty():
    assert sanitize_history(None) == []
    assert sanitize_history("nope") == []
    assert sanitize_history({"role": "user", "text": "hi"}) == []


def test_history_text_is_sanitized():
    turns = sanitize_history([{"role": "user", "text": "z" * 2000}])
    assert len(turns[0].text) == MAX_INPUT_CHARS
