import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def write_file(tmp_path):
    """Write *data* below tmp_path and return the path."""

    def _write(name, data, mode=0o755):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        path.chmod(mode)
        return path

    return _write


@pytest.fixture
def debug_lines():
    """A debug callback that records formatted messages."""
    lines = []

    def _debug(fmt, *args):
        lines.append(fmt % args)

    _debug.lines = lines
    return _debug
