"""
Pytest configuration.

Media files used by the tests are synthesized with tests/media_builders.py
and written under pytest's tmp_path.
"""

import pytest


@pytest.fixture
def write_file(tmp_path):
    """
    Factory fixture that writes bytes to a file under tmp_path.

    Usage:
        def test_something(write_file):
            path = write_file("clip.mkv", build_mkv(date_utc=...))
    """

    def _write(name: str, data: bytes):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    return _write
