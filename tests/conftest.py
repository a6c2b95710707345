"""Shared fixtures for the tether test suite."""

import logging

import pytest

from pe_test_utils import BuiltImage, build_pe


KERNEL32_IMPORTS = {"KERNEL32.dll": ["ExitProcess", 5]}


@pytest.fixture
def kernel32_pe32() -> BuiltImage:
    """PE32 image importing ExitProcess and ordinal 5 from KERNEL32.dll."""
    return build_pe(KERNEL32_IMPORTS)


@pytest.fixture
def kernel32_pe32plus() -> BuiltImage:
    """PE32+ twin of :func:`kernel32_pe32`."""
    return build_pe(KERNEL32_IMPORTS, pe32plus=True)


@pytest.fixture
def multi_library_pe() -> BuiltImage:
    return build_pe(
        {
            "KERNEL32.dll": ["GetLastError", "ExitProcess", "CreateFileW"],
            "USER32.dll": ["MessageBoxW", 17],
            "WS2_32.dll": [3, 4, 23],
        }
    )


@pytest.fixture
def pe_file(tmp_path, kernel32_pe32):
    """The KERNEL32 PE32 image written to disk."""
    path = tmp_path / "sample.exe"
    path.write_bytes(bytes(kernel32_pe32.data))
    return path


@pytest.fixture
def restore_logger():
    """Snapshot stdlib loggers by name and restore them after the test.

    Tests that configure a ``TetherLogger`` over a package logger call this
    with the logger name so handlers, level and propagation do not leak.
    """
    saved = {}

    def _snapshot(name: str) -> logging.Logger:
        log = logging.getLogger(name)
        saved.setdefault(name, (list(log.handlers), log.level, log.propagate))
        return log

    yield _snapshot

    for name, (handlers, level, propagate) in saved.items():
        log = logging.getLogger(name)
        for handler in list(log.handlers):
            if handler not in handlers:
                log.removeHandler(handler)
                handler.close()
        for handler in handlers:
            if handler not in log.handlers:
                log.addHandler(handler)
        log.setLevel(level)
        log.propagate = propagate
