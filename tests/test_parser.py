# tests/test_parser.py

from __future__ import annotations

from focusmate.breakdown.parser import parse_breakdown


def test_numbered_lines() -> None:
    parsed = parse_breakdown("1. Wash dishes (5 min)\n2. Dry dishes (3 min)")
    assert parsed.steps == ["Wash dishes", "Dry dishes"]
    assert parsed.minutes == [5, 3]
    assert parsed.total_minutes == 8
    assert list(parsed) == [("Wash dishes", 5), ("Dry dishes", 3)]


def test_placeholder_step_is_discarded() -> None:
    parsed = parse_breakdown("- [Clear action] (5 min)")
    assert parsed.steps == []
    assert parsed.minutes == []
    assert not parsed


def test_empty_and_blank_input() -> None:
    assert len(parse_breakdown("")) == 0
    assert len(parse_breakdown("\n   \n")) == 0


def test_parse_is_idempotent() -> None:
    text = "Here is your plan:\n1. Open the window (2 min)\n  - let fresh air in\n2. Make the bed (4 min)\n"
    assert parse_breakdown(text) == parse_breakdown(text)


def test_sub_bullets_never_become_steps() -> None:
    text = (
        "1. Clear the desk (5 min)\n"
        "   * Recycle old papers (2 min)\n"
        "   - Stack books (1 min)\n"
        "2. Wipe the desk (3 min)\n"
    )
    parsed = parse_breakdown(text)
    assert parsed.steps == ["Clear the desk", "Wipe the desk"]
    assert parsed.minutes == [5, 3]


def test_step_label_format() -> None:
    parsed = parse_breakdown("Step 1: Fill the sink (2 min)\nStep 2: Scrub pans (10 min)")
    assert parsed.steps == ["Fill the sink", "Scrub pans"]
    assert parsed.minutes == [2, 10]


def test_bracket_and_plain_bullets() -> None:
    parsed = parse_breakdown("- [Sort the mail] (4 min)\n- Shred old letters (6 min)")
    assert parsed.steps == ["Sort the mail", "Shred old letters"]
    assert parsed.minutes == [4, 6]


def test_fallback_line_with_minutes_anywhere() -> None:
    parsed = parse_breakdown("First, (5 min) fold the towels\nThen (10 MIN) put them away")
    assert parsed.steps == ["First, fold the towels", "Then put them away"]
    assert parsed.minutes == [5, 10]


def test_fallback_rejects_too_short_text() -> None:
    assert parse_breakdown("Go (5 min)").steps == []


def test_lines_without_minutes_are_ignored() -> None:
    text = "Great task! Let's go.\n1. Start the washer (2 min)\nYou've got this."
    parsed = parse_breakdown(text)
    assert parsed.steps == ["Start the washer"]
    assert parsed.minutes == [2]
