import pytest

from zaplog.color import Color


def test_color_formatting():
    assert Color.RED.add("foo") == "\x1b[31mfoo\x1b[0m"


@pytest.mark.parametrize(
    "color, expected",
    [
        (Color.BLACK, "\x1b[30mx\x1b[0m"),
        (Color.RED, "\x1b[31mx\x1b[0m"),
        (Color.GREEN, "\x1b[32mx\x1b[0m"),
        (Color.YELLOW, "\x1b[33mx\x1b[0m"),
        (Color.BLUE, "\x1b[34mx\x1b[0m"),
        (Color.MAGENTA, "\x1b[35mx\x1b[0m"),
        (Color.CYAN, "\x1b[36mx\x1b[0m"),
        (Color.WHITE, "\x1b[37mx\x1b[0m"),
    ],
)
def test_each_color_code(color, expected):
    assert color.add("x") == expected


def test_empty_string_still_wrapped():
    assert Color.BLUE.add("") == "\x1b[34m\x1b[0m"