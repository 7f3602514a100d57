import io

import pytest

import ferrisfetch
from ferrisfetch import SystemFacts, Terminal


@pytest.fixture
def facts():
    return SystemFacts(
        hostname="box",
        username="bob",
        os_name_version="Linux 6.1",
        kernel_version="6.1.0",
        uptime_seconds=3725,
        shell_name="bash",
        cpu_model="AMD Ryzen 7 5800X 8-Core Processor",
        cpu_core_count=16,
        memory_used_bytes=6 * 1024 ** 3,
        memory_total_bytes=16 * 1024 ** 3,
        disk_used_bytes=200 * 1024 ** 3,
        disk_total_bytes=500 * 1024 ** 3,
    )


@pytest.fixture
def make_terminal():
    def _make(columns=100, rows=30, image_protocol=None):
        return Terminal(stream=io.StringIO(), size=(columns, rows), image_protocol=image_protocol)
    return _make


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("NO_COLOR", "CLICOLOR", "CLICOLOR_FORCE", "FERRISFETCH_THEME",
                 "FERRISFETCH_IMAGE_PROTOCOL", "FERRISFETCH_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def theme():
    return ferrisfetch.resolve_theme("ocean")
