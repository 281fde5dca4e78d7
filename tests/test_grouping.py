from knows.core.identity import IdentityEnricher
from knows.core.models import Protocol
from knows.core.repository import ListenerRepository
from knows.errors import ToolInvocationError
from knows.ui.grouping import group_by_port, load_snapshot, matches_filter, port_choice_label

from conftest import FakeProcessTable, FakeSource, make_record


def _repo(*snapshots):
    return ListenerRepository(source=FakeSource(*snapshots), enricher=IdentityEnricher(FakeProcessTable()))


def test_group_by_port_sorts_ports_and_keeps_record_order():
    records = [make_record(9, 8080), make_record(1, 22), make_record(3, 8080, Protocol.UDP)]
    groups = group_by_port(records)
    assert list(groups) == [22, 8080]
    assert [r.pid for r in groups[8080]] == [9, 3]
    assert port_choice_label(8080, groups[8080]) == "Port 8080 (2 listener(s))"


def test_matches_filter():
    record = make_record(4821, 3000, command="node server.js")
    assert matches_filter(record, "")
    assert matches_filter(record, "NODE")
    assert matches_filter(record, "4821")
    assert not matches_filter(record, "postgres")


def test_load_snapshot_marks_new_keys():
    repo = _repo([make_record(1, 80)], [make_record(1, 80), make_record(2, 443)])
    first = load_snapshot(repo, set())
    second = load_snapshot(repo, first.seen_keys)

    assert first.error is None
    assert first.new_keys == {"TCP:80:1"}
    assert [r.pid for r in second.records] == [1, 2]
    assert second.new_keys == {"TCP:443:2"}


def test_load_snapshot_reports_tool_errors():
    snapshot = load_snapshot(_repo(ToolInvocationError("lsof", "timed out after 15s")), {"TCP:80:1"})
    assert snapshot.error == "lsof: timed out after 15s"
    assert snapshot.records == []
    assert snapshot.seen_keys == {"TCP:80:1"}


def test_load_snapshot_survives_unexpected_errors():
    snapshot = load_snapshot(_repo(OSError("permission denied")), set())
    assert snapshot.error == "Unexpected error: permission denied"
    assert snapshot.records == []
