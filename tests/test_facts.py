from collections import namedtuple

import pytest

import ferrisfetch
from ferrisfetch import UNKNOWN, SystemFacts, collect_facts

VMem = namedtuple("VMem", "total available")
Part = namedtuple("Part", "device mountpoint")
Usage = namedtuple("Usage", "total free")


@pytest.fixture
def fake_host(monkeypatch):
    ps = ferrisfetch.psutil
    monkeypatch.setattr(ps, "virtual_memory", lambda: VMem(16 * 1024 ** 3, 10 * 1024 ** 3))
    monkeypatch.setattr(ps, "boot_time", lambda: 1000.0)
    monkeypatch.setattr(ps, "cpu_count", lambda logical=True: 12)
    monkeypatch.setattr(ps, "disk_partitions", lambda all=False: [
        Part("/dev/sda1", "/"), Part("/dev/sda1", "/var/bind"), Part("/dev/sdb1", "/home"),
    ])
    monkeypatch.setattr(ps, "disk_usage", lambda mnt: Usage(100, 40) if mnt == "/" else Usage(50, 50))
    monkeypatch.setattr(ferrisfetch.time, "time", lambda: 1000.0 + 3725.9)
    monkeypatch.setattr(ferrisfetch.socket, "gethostname", lambda: "box")
    monkeypatch.setattr(ferrisfetch.getpass, "getuser", lambda: "bob")
    monkeypatch.setattr(ferrisfetch, "_os_name_version", lambda: "Linux 6.1")
    monkeypatch.setattr(ferrisfetch.platform, "release", lambda: "6.1.0")
    monkeypatch.setattr(ferrisfetch, "_cpu_model", lambda: "Test CPU")
    monkeypatch.setenv("SHELL", "/usr/bin/zsh")


def test_collect_facts(fake_host):
    facts = collect_facts()
    assert facts == SystemFacts(
        hostname="box",
        username="bob",
        os_name_version="Linux 6.1",
        kernel_version="6.1.0",
        uptime_seconds=3725,
        shell_name="zsh",
        cpu_model="Test CPU",
        cpu_core_count=12,
        memory_used_bytes=6 * 1024 ** 3,
        memory_total_bytes=16 * 1024 ** 3,
        disk_used_bytes=60,
        disk_total_bytes=150,
    )


def test_each_fact_falls_back_on_its_own(fake_host, monkeypatch):
    def boom(*_args, **_kwargs):
        raise OSError("nope")
    monkeypatch.setattr(ferrisfetch.socket, "gethostname", boom)
    monkeypatch.setattr(ferrisfetch.psutil, "virtual_memory", boom)
    monkeypatch.setattr(ferrisfetch.psutil, "boot_time", boom)
    monkeypatch.setattr(ferrisfetch, "_cpu_model", lambda: "")

    facts = collect_facts()
    assert facts.hostname == UNKNOWN
    assert facts.cpu_model == UNKNOWN
    assert facts.uptime_seconds == 0
    assert (facts.memory_used_bytes, facts.memory_total_bytes) == (0, 0)
    assert facts.username == "bob"
    assert facts.disk_total_bytes == 150


def test_unreadable_partition_is_skipped(fake_host, monkeypatch):
    def usage(mnt):
        if mnt == "/home":
            raise PermissionError(mnt)
        return Usage(100, 40)
    monkeypatch.setattr(ferrisfetch.psutil, "disk_usage", usage)
    assert ferrisfetch._disk_used_total() == (60, 100)


def test_shell_from_comspec(monkeypatch):
    monkeypatch.delenv("SHELL", raising=False)
    monkeypatch.setenv("COMSPEC", "C:\\Windows\\System32\\cmd.exe")
    assert ferrisfetch._shell_name() == "cmd.exe"


def test_shell_from_parent_process(monkeypatch):
    monkeypatch.delenv("SHELL", raising=False)
    monkeypatch.delenv("COMSPEC", raising=False)

    class Parent:
        def __init__(self, pid):
            self.pid = pid

        def name(self):
            return "fish"
    monkeypatch.setattr(ferrisfetch.psutil, "Process", Parent)
    assert ferrisfetch._shell_name() == "fish"


def test_os_release_name(monkeypatch, tmp_path):
    osr = tmp_path / "os-release"
    osr.write_text('NAME="Debian GNU/Linux"\nVERSION_ID="12"\nID=debian\n', encoding="utf-8")
    monkeypatch.setattr(ferrisfetch.platform, "system", lambda: "Linux")
    parsed = ferrisfetch._read_os_release(str(osr))
    monkeypatch.setattr(ferrisfetch, "_read_os_release", lambda: parsed)
    assert ferrisfetch._os_name_version() == "Debian GNU/Linux 12"


def test_os_release_missing_falls_back_to_linux(monkeypatch):
    def missing():
        raise FileNotFoundError("/etc/os-release")
    monkeypatch.setattr(ferrisfetch.platform, "system", lambda: "Linux")
    monkeypatch.setattr(ferrisfetch, "_read_os_release", missing)
    assert ferrisfetch._os_name_version() == "Linux"
