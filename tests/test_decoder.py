"""Tests for decoding raw messages."""

from helpers import BASE_TIME, build_message, header_block
from inbox_code_fetcher.decoder import looks_garbled, parse_date, parse_headers, parse_message


def test_parse_headers_only():
    raw = header_block(build_message("Your Windsurf code 482913", text="body text"))
    message = parse_headers(42, raw)
    assert message.uid == 42
    assert message.subject == "Your Windsurf code 482913"
    assert message.sender == "Windsurf <noreply@windsurf.com>"
    assert message.recipient == "alice@example.com"
    assert message.date == BASE_TIME
    assert message.text is None
    assert message.html is None
    assert not message.has_body


def test_encoded_subject_is_decoded():
    raw = build_message("验证码 482913", text="x")
    assert parse_headers(1, header_block(raw)).subject == "验证码 482913"


def test_parse_multipart_message():
    raw = build_message(
        "Verify your email",
        text="Your verification code: 7Q3K9Z\n",
        html="<p>Your verification code: <b>7Q3K9Z</b></p>",
    )
    message = parse_message(5, raw)
    assert "7Q3K9Z" in message.text
    assert "<b>7Q3K9Z</b>" in message.html
    assert message.has_body


def test_parse_html_only_message():
    message = parse_message(5, build_message("Verify", html="<p>code 123456</p>"))
    assert message.text is None
    assert "123456" in message.html


def test_parse_non_ascii_body():
    message = parse_message(5, build_message("验证", text="您的验证码：A1B2C3"))
    assert "A1B2C3" in message.text


def test_parse_date_invalid():
    assert parse_date("not a date") is None
    assert parse_date("") is None


def test_missing_date_header():
    message = parse_headers(1, header_block(build_message("Verify", date=None)))
    assert message.date is None


def test_looks_garbled():
    assert not looks_garbled("Your verification code is 123456.\r\n\r\n\r\nThanks")
    assert looks_garbled("Code: \ufffd\ufffd\ufffd\ufffd")
    assert looks_garbled("???????? verification")
    assert not looks_garbled("short")
    assert not looks_garbled(None)
