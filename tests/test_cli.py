import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from knows import cli
from knows.config import Settings
from knows.core.identity import IdentityEnricher
from knows.core.models import TerminationFailure, TerminationOutcome, WatchEntry
from knows.core.repository import ListenerRepository
from knows.errors import ToolInvocationError

from conftest import FakeProcessTable, FakeSource, make_record


SNAPSHOT = [make_record(4821, 3000), make_record(551, 4000), make_record(812, 5432)]


def _app(snapshot=SNAPSHOT, outcome=None):
    repo = ListenerRepository(source=FakeSource(snapshot), enricher=IdentityEnricher(FakeProcessTable({4821: "node"})))
    manager = MagicMock()
    manager.terminate_by_port.return_value = outcome or TerminationOutcome(terminated=list(snapshot[:1]))
    return SimpleNamespace(settings=Settings(), repository=repo, process_manager=manager)


def _args(argv):
    return cli.build_parser().parse_args(argv)


def test_list_text(capsys):
    assert cli.cmd_list(_app(), _args(["list"])) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["TCP/3000 pid:4821 addr:* node", "TCP/4000 pid:551 addr:*", "TCP/5432 pid:812 addr:*"]


def test_list_port_range_json(capsys):
    cli.cmd_list(_app(), _args(["list", "--port-range", "3500-5000", "-f", "json"]))
    data = json.loads(capsys.readouterr().out)
    assert [d["port"] for d in data] == [4000]


def test_inspect_writes_file(tmp_path, capsys):
    target = tmp_path / "inspect.csv"
    cli.cmd_inspect(_app(), _args(["inspect", "3000", "-f", "csv", "-o", str(target)]))
    assert target.read_text(encoding="utf-8").splitlines()[1] == "TCP,3000,4821,*,node"


def test_port_and_range_are_exclusive():
    with pytest.raises(SystemExit):
        _args(["list", "--port", "80", "--port-range", "1-2"])


def test_invalid_port_is_usage_error(capsys):
    with pytest.raises(SystemExit) as exc:
        _args(["inspect", "70000"])
    assert exc.value.code == 2
    assert "Invalid port: 70000" in capsys.readouterr().err


def test_kill_nothing_listening(capsys):
    app = _app()
    assert cli.cmd_kill(app, _args(["kill", "9999"])) == 0
    assert "No listening processes found on port 9999." in capsys.readouterr().out
    app.process_manager.terminate_by_port.assert_not_called()


def test_kill_aborted_without_confirmation(capsys):
    app = _app()
    assert cli.cmd_kill(app, _args(["kill", "3000"]), ask=lambda prompt: False) == 0
    assert "Termination aborted." in capsys.readouterr().out
    app.process_manager.terminate_by_port.assert_not_called()


def test_kill_confirmed(capsys):
    app = _app()
    prompts = []
    code = cli.cmd_kill(app, _args(["kill", "3000"]), ask=lambda p: prompts.append(p) or True)
    assert code == 0
    assert prompts == ["Proceed with terminating 1 process(es) on port 3000?"]
    assert "Terminated TCP/3000 pid:4821 addr:*" in capsys.readouterr().out


def test_kill_force_skips_prompt_and_reports_failures(capsys):
    record = make_record(4821, 3000)
    outcome = TerminationOutcome(failed=[TerminationFailure(record, "Access denied")])
    app = _app(outcome=outcome)

    def never(prompt):
        raise AssertionError("should not prompt")

    assert cli.cmd_kill(app, _args(["kill", "3000", "--force"]), ask=never) == 1
    assert "Failed to terminate TCP/3000 pid:4821 addr:* -> Access denied" in capsys.readouterr().err


def test_confirm_defaults_to_no():
    with patch("builtins.input", return_value=""):
        assert cli.confirm("ok?") is False
    with patch("builtins.input", return_value="Y"):
        assert cli.confirm("ok?") is True
    with patch("builtins.input", side_effect=EOFError):
        assert cli.confirm("ok?") is False


def test_watch_requires_tty(capsys):
    with patch("knows.cli.sys.stdin") as stdin:
        stdin.isatty.return_value = False
        assert cli.cmd_watch(_app(), _args(["watch"])) == 1
    assert "requires an interactive TTY" in capsys.readouterr().err


def test_watch_screen_marks_new_entries():
    stream = MagicMock()
    screen = cli.WatchScreen(2000, stream=stream)
    screen.render([WatchEntry(make_record(1, 80), True), WatchEntry(make_record(2, 81), False)])
    written = stream.write.call_args[0][0]
    assert written.startswith(cli.CLEAR_SCREEN)
    assert "+ TCP/80 pid:1 addr:*" in written
    assert "  TCP/81 pid:2 addr:*" in written


def test_main_reports_knows_errors(capsys):
    app = SimpleNamespace(settings=Settings(), repository=MagicMock())
    app.repository.list_all.side_effect = ToolInvocationError("lsof", "could not be started")
    with patch("knows.cli.setup_logging"), patch("knows.cli.load_settings", return_value=Settings()), \
            patch("knows.cli.App", return_value=app):
        assert cli.main(["list"]) == 1
    assert "lsof: could not be started" in capsys.readouterr().err


def test_main_dispatches(capsys):
    with patch("knows.cli.setup_logging"), patch("knows.cli.load_settings", return_value=Settings()), \
            patch("knows.cli.App", return_value=_app()):
        assert cli.main(["inspect", "4000"]) == 0
    assert capsys.readouterr().out.strip() == "TCP/4000 pid:551 addr:*"
