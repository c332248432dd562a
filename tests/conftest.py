import io
import re

import pytest

from logbar import Console

SGR = re.compile(r'\x1b\[[0-9;]*m')


def strip_colors(text: str) -> str:
    return SGR.sub('', text)


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def console(stream):
    console = Console(stream=stream, autostart=False)
    yield console
    console.close()


@pytest.fixture
def drain(stream):
    """Return everything written so far, without colors, and reset the stream"""
    def read() -> str:
        text = strip_colors(stream.getvalue())
        stream.seek(0)
        stream.truncate()
        return text
    return read
