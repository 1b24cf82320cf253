import pytest

from dbm_agent import provenance
from dbm_agent.errors import ProvenanceMismatch
from dbm_agent.provenance import Invocation, ProvenanceStatus


def test_canonicalize_ignores_token_order():
    assert provenance.canonicalize(["--b", "2", "--a", "1"]) == provenance.canonicalize(["--a", "1", "--b", "2"])


def test_signatures_equal_is_exact():
    assert provenance.signatures_equal("a b", "a b")
    assert not provenance.signatures_equal("a b", "a  b")


def test_invocation_command_keeps_explicit_flags():
    inv = Invocation("User.js", "user", (("database", "mydb"), ("auto-created-at", False), ("save", True)))
    assert inv.command == "User.js --table user --database mydb --no-auto-created-at --save"
    assert inv.provenance_line() == f"`dbm-agent generate {inv.command}`"
    assert inv.flag("database") == "mydb"
    assert inv.flag("templates") is None


def test_parse_provenance_line():
    line = " * `dbm-agent generate User.js --table user --database mydb --no-auto-created-at`"
    assert provenance.parse_provenance_line(line) == Invocation(
        "User.js", "user", (("database", "mydb"), ("auto-created-at", False))
    )
    assert provenance.parse_provenance_line("module.exports = {}") is None


def test_read_invocation_uses_first_marker_line():
    text = "/**\n * `dbm-agent generate A.js --table a`\n * `dbm-agent generate B.js --table b`\n */\n"
    assert provenance.read_invocation(text).filename == "A.js"
    assert provenance.read_invocation("no marker here") is None


def test_check_matches_regardless_of_order():
    text = " * `dbm-agent generate User.js --database mydb --table user`\n"
    current = Invocation("User.js", "user", (("database", "mydb"),))
    assert provenance.check(text, current) is ProvenanceStatus.UP_TO_DATE


def test_check_reports_both_signatures_on_drift():
    text = " * `dbm-agent generate User.js --database mydb --table user`\n"
    current = Invocation("User.js", "user", (("database", "other"),))
    with pytest.raises(ProvenanceMismatch) as exc_info:
        provenance.check(text, current)
    assert exc_info.value.previous == "User.js --database mydb --table user"
    assert exc_info.value.current == "User.js --table user --database other"


def test_check_unrecorded_model():
    assert provenance.check("module.exports = {};\n", Invocation("User.js", "user")) is ProvenanceStatus.UNRECORDED
