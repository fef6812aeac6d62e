"""Tests for ingnetutil.pty.session against a shell-script stand-in for netutil."""

from __future__ import annotations

import sys
import textwrap

import pytest

from ingnetutil.config import NetutilConfig
from ingnetutil.errors import SessionClosedError, SessionStartError, SessionTimeoutError
from ingnetutil.netutil import Netutil
from ingnetutil.pty.session import PTYSession, PTYStatus

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX pty")

FAKE_NETUTIL = textwrap.dedent(
    """\
    #!/bin/sh
    echo "INGRES NETUTIL (fake)"
    printf 'Netutil> '
    while IFS= read -r line; do
      case "$line" in
        QUIT) exit 0 ;;
        HANG) sleep 30 ;;
        DIE) exit 3 ;;
        "SHOW GLOBAL LOGIN *")
          echo "Global    alpha     ingres"
          echo "Global  beta  dba"
          ;;
        *) echo "ok:  $line" ;;
      esac
      printf 'Netutil> '
    done
    """
)

SILENT_NETUTIL = "#!/bin/sh\nsleep 30\n"


def _install(root, script: str) -> str:
    bin_dir = root / "ingres" / "bin"
    bin_dir.mkdir(parents=True)
    path = bin_dir / "netutil"
    path.write_text(script)
    path.chmod(0o755)
    return str(path)


@pytest.fixture
def fake_netutil(tmp_path) -> str:
    return _install(tmp_path, FAKE_NETUTIL)


@pytest.fixture
def session(fake_netutil: str):
    s = PTYSession(command=[fake_netutil], timeout=5.0)
    s.start()
    yield s
    s.kill()


class TestPTYSession:
    def test_banner_then_command(self, session: PTYSession) -> None:
        banner = session.read_until_prompt()
        assert "INGRES NETUTIL (fake)" in banner
        assert "Netutil>" not in banner

        session.send("SHOW * CONNECTION * * * *")
        output = session.read_until_prompt()
        assert "ok:  SHOW * CONNECTION * * * *" in output
        assert "\r" not in output

    def test_status_running(self, session: PTYSession) -> None:
        assert session.alive is True
        assert session.status is PTYStatus.RUNNING

    def test_timeout(self, session: PTYSession) -> None:
        session.read_until_prompt()
        session.send("HANG")
        with pytest.raises(SessionTimeoutError):
            session.read_until_prompt(timeout=0.3)

    def test_exit_before_prompt(self, session: PTYSession) -> None:
        session.read_until_prompt()
        session.send("DIE")
        with pytest.raises(SessionClosedError):
            session.read_until_prompt(timeout=5.0)

    def test_close(self, session: PTYSession) -> None:
        session.read_until_prompt()
        session.close()
        assert session.alive is False
        assert session.status is PTYStatus.KILLED
        with pytest.raises(SessionClosedError):
            session.send("SHOW * LOGIN *")

    def test_close_twice(self, session: PTYSession) -> None:
        session.close()
        session.close()
        assert session.status is PTYStatus.KILLED

    def test_context_manager(self, fake_netutil: str) -> None:
        with PTYSession(command=[fake_netutil], timeout=5.0) as s:
            s.read_until_prompt()
            assert s.alive
        assert s.status is PTYStatus.KILLED


class TestNetutilOverPTY:
    def test_open_show_next(self, tmp_path) -> None:
        _install(tmp_path, FAKE_NETUTIL)
        config = NetutilConfig(ii_system=str(tmp_path), timeout=5.0)
        with Netutil.open(config) as nu:
            text = nu.show_login("global", "*")
            assert "Global alpha ingres" in text
            assert nu.next_login() == ["Global", "alpha", "ingres"]
            assert nu.next_login() == ["Global", "beta", "dba"]
            assert nu.next_login() == []

    def test_no_initial_prompt(self, tmp_path) -> None:
        _install(tmp_path, SILENT_NETUTIL)
        config = NetutilConfig(ii_system=str(tmp_path), timeout=0.3)
        with pytest.raises(SessionStartError):
            Netutil.open(config)
