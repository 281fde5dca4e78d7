from knows.core.listener_parser import (
    parse_lsof_line, parse_lsof_output, parse_netstat_line, parse_netstat_output,
    split_address,
)
from knows.core.models import ListenerRecord, Protocol

from conftest import LSOF_OUTPUT, NETSTAT_OUTPUT


# -- lsof ------------------------------------------------------------------

def test_lsof_example_line():
    record = parse_lsof_line("node 4821 dev 23u IPv4 0x1 0t0 TCP *:3000 (LISTEN)")
    assert record == ListenerRecord(pid=4821, port=3000, protocol=Protocol.TCP, address="*")
    assert record.command is None
    assert record.reported_command == "node"


def test_lsof_output_one_record_per_listener_line():
    records = parse_lsof_output(LSOF_OUTPUT)
    assert [(r.pid, r.port, r.address) for r in records] == [
        (812, 5432, "::1"),
        (4821, 3000, "*"),
        (812, 5432, "127.0.0.1"),
        (551, 4000, "0.0.0.0"),
        (4821, 3001, "::"),
    ]
    assert all(r.protocol is Protocol.TCP for r in records)


def test_lsof_header_only_is_empty():
    assert parse_lsof_output("COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME\n") == []
    assert parse_lsof_output("") == []


def test_lsof_garbled_lines_are_skipped():
    output = (
        "COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME\n"
        "garbage\n"
        "node notapid dev 23u IPv4 0x1 0t0 TCP *:3000 (LISTEN)\n"
        "node 77 dev 23u IPv4 0x1 0t0 TCP nowhere (LISTEN)\n"
        "\n"
        "node 78 dev 23u IPv4 0x1 0t0 TCP *:8080 (LISTEN)\n"
    )
    records = parse_lsof_output(output)
    assert [(r.pid, r.port) for r in records] == [(78, 8080)]


def test_lsof_udp_token_is_detected_case_insensitively():
    record = parse_lsof_line("dnsmasq 300 root 5u IPv4 0x2 0t0 udp 127.0.0.1:53")
    assert record.protocol is Protocol.UDP
    assert record.port == 53


def test_lsof_protocol_defaults_to_tcp():
    record = parse_lsof_line("app 10 dev 5u IPv4 0x2 0t0 127.0.0.1:9000")
    assert record.protocol is Protocol.TCP


def test_lsof_rejects_out_of_range_port():
    assert parse_lsof_line("app 10 dev 5u IPv4 0x2 0t0 TCP *:70000 (LISTEN)") is None


def test_lsof_first_line_is_always_dropped():
    line = "node 4821 dev 23u IPv4 0x1 0t0 TCP *:3000 (LISTEN)"
    assert parse_lsof_output(line) == []
    assert len(parse_lsof_output(f"HEADER\n{line}\n")) == 1


# -- netstat ---------------------------------------------------------------

def test_netstat_listening_example():
    record = parse_netstat_line("TCP 0.0.0.0:8080 0.0.0.0:0 LISTENING 9912")
    assert record == ListenerRecord(pid=9912, port=8080, protocol=Protocol.TCP, address="0.0.0.0")


def test_netstat_established_is_not_a_listener():
    assert parse_netstat_line("TCP 0.0.0.0:8080 0.0.0.0:0 ESTABLISHED 9912") is None


def test_netstat_output():
    records = parse_netstat_output(NETSTAT_OUTPUT)
    assert [(r.protocol, r.port, r.pid, r.address) for r in records] == [
        (Protocol.TCP, 135, 1044, "0.0.0.0"),
        (Protocol.TCP, 8080, 9912, "0.0.0.0"),
        (Protocol.TCP, 445, 4, "::"),
        (Protocol.UDP, 5353, 2260, "0.0.0.0"),
        (Protocol.UDP, 1900, 3412, "::1"),
    ]


def test_netstat_udp_has_no_state_column():
    record = parse_netstat_line("  UDP    0.0.0.0:5353    *:*    2260")
    assert record.protocol is Protocol.UDP
    assert record.pid == 2260


def test_netstat_discards_malformed_lines():
    for line in [
        "Proto  Local Address  Foreign Address  State  PID",
        "Active Connections",
        "TCP 0.0.0.0:80 0.0.0.0:0 LISTENING",
        "TCP 0.0.0.0:80 0.0.0.0:0 LISTENING abc",
        "TCP nocolon 0.0.0.0:0 LISTENING 12",
        "UDP 0.0.0.0:53 *:* x",
        "tcp 0.0.0.0:80 0.0.0.0:0 LISTENING 12",
        "ICMP 0.0.0.0:80 0.0.0.0:0 LISTENING 12",
        "",
    ]:
        assert parse_netstat_line(line) is None, line


def test_split_address_uses_rightmost_colon():
    assert split_address("[fe80::1%4]:5000") == ("fe80::1%4", 5000)
    assert split_address("127.0.0.1:8080") == ("127.0.0.1", 8080)
    assert split_address("*:*") is None
