import pytest

from recordcat.format import CompileError, compile_template, decode_escape, parse_delimiter, render
from recordcat.models import Record

RECORD = Record(topic="t")


@pytest.mark.parametrize("escape, byte", [("\\n", b"\n"), ("\\r", b"\r"), ("\\t", b"\t")])
@pytest.mark.parametrize("template", ["{}", "{}abc", "abc{}", "a{}b", "%t{}%t"])
def test_control_escapes_anywhere(escape, byte, template):
    out = render(compile_template(template.format(escape)), RECORD)
    expected = template.replace("%t", "t").encode().replace(b"{}", byte)
    assert out == expected


def test_hex_escape_every_byte():
    for value in range(256):
        for text in (f"\\x{value:02x}", f"\\x{value:02X}"):
            assert render(compile_template(text), RECORD) == bytes([value])


def test_decode_escape_returns_next_position():
    assert decode_escape("a\\x41b", 1) == (0x41, 5)
    assert decode_escape("\\n", 0) == (0x0A, 2)


@pytest.mark.parametrize(
    "fmt, message",
    [
        ("abc\\", "unterminated escape"),
        ("\\x4", "malformed escape"),
        ("\\x", "malformed escape"),
        ("\\xzz", "malformed escape"),
        ("\\x+1", "malformed escape"),
        ("\\q", "unknown escape sequence"),
        ("\\\\", "unknown escape sequence"),
    ],
)
def test_bad_escapes_fail(fmt, message):
    with pytest.raises(CompileError, match=message):
        compile_template(fmt)


def test_parse_delimiter():
    assert parse_delimiter("\\n") == b"\n"
    assert parse_delimiter("--\\x00--") == b"--\x00--"
    assert parse_delimiter("|") == b"|"
