import json

import pytest

from diagrep.miette_diagnostic import MietteDiagnostic
from diagrep.protocol import Diagnostic, LabeledSpan, Severity


def _full():
    return MietteDiagnostic(
        "message",
        code="code",
        help="help",
        url="url",
        labels=[LabeledSpan.at_offset(0, "label1"), LabeledSpan.at(range(1, 3), "label2")],
        severity=Severity.WARNING,
    )


FULL_JSON = {
    "message": "message",
    "code": "code",
    "help": "help",
    "url": "url",
    "severity": "Warning",
    "labels": [
        {"span": {"offset": 0, "length": 0}, "label": "label1", "primary": False},
        {"span": {"offset": 1, "length": 2}, "label": "label2", "primary": False},
    ],
}


def test_new():
    diag = MietteDiagnostic("Oops, something went wrong!")
    assert str(diag) == "Oops, something went wrong!"
    assert diag.message == "Oops, something went wrong!"
    assert diag.code is None and diag.labels is None


def test_is_a_raisable_diagnostic():
    diag = MietteDiagnostic("boom").with_code("x::y")
    assert diag.code == "x::y"
    with pytest.raises(Diagnostic) as info:
        raise diag
    assert info.value is diag
    assert str(info.value) == "boom"


def test_with_code():
    diag = MietteDiagnostic("Oops, something went wrong!").with_code("foo::bar::baz")
    assert diag.message == "Oops, something went wrong!"
    assert diag.code == "foo::bar::baz"


def test_with_severity():
    diag = MietteDiagnostic("I warn you to stop!").with_severity(Severity.WARNING)
    assert diag.message == "I warn you to stop!"
    assert diag.severity == Severity.WARNING


def test_with_help():
    diag = MietteDiagnostic("PC is not working").with_help("Try to reboot it again")
    assert diag.help == "Try to reboot it again"


def test_with_url():
    url = "https://letmegooglethat.com/?q=Why+my+pc+doesn%27t+work"
    diag = MietteDiagnostic("PC is not working").with_url(url)
    assert diag.message == "PC is not working"
    assert diag.url == url


def test_with_label():
    label = LabeledSpan.at(range(0, 3), "This should be Rust")
    diag = MietteDiagnostic("Wrong best language").with_label(label)
    assert diag.message == "Wrong best language"
    assert diag.labels == [label]


def test_with_label_discards_previous():
    first = LabeledSpan.at_offset(3, "add 'l'")
    second = LabeledSpan.at_offset(6, "add 'r'")
    diag = MietteDiagnostic("x").with_label(first).with_label(second)
    assert diag.labels == [second]


def test_with_labels():
    labels = [LabeledSpan.at_offset(3, "add 'l'"), LabeledSpan.at_offset(6, "add 'r'")]
    diag = MietteDiagnostic("Typos in 'hello world'").with_labels(labels)
    assert diag.message == "Typos in 'hello world'"
    assert diag.labels == labels


def test_and_label():
    label1 = LabeledSpan.at_offset(3, "add 'l'")
    label2 = LabeledSpan.at_offset(6, "add 'r'")
    diag = MietteDiagnostic("Typos in 'hello world'").and_label(label1).and_label(label2)
    assert diag.labels == [label1, label2]


def test_and_labels():
    label1 = LabeledSpan.at_offset(3, "add 'l'")
    label2 = LabeledSpan.at_offset(6, "add 'r'")
    label3 = LabeledSpan.at_offset(9, "add '!'")
    diag = (
        MietteDiagnostic("Typos in 'hello world!'")
        .and_label(label1)
        .and_labels([label2, label3])
    )
    assert diag.message == "Typos in 'hello world!'"
    assert diag.labels == [label1, label2, label3]


def test_builders_leave_original_untouched():
    base = MietteDiagnostic("x")
    base.with_code("c").and_label(LabeledSpan.at_offset(0, "l"))
    assert base.code is None
    assert base.labels is None


def test_serialize_minimal():
    assert MietteDiagnostic("message").to_dict() == {"message": "message"}


def test_serialize_full():
    assert _full().to_dict() == FULL_JSON


def test_deserialize_minimal():
    assert MietteDiagnostic.from_dict({"message": "message"}) == MietteDiagnostic("message")


def test_deserialize_nulls():
    data = {
        "message": "message",
        "help": None,
        "code": None,
        "severity": None,
        "url": None,
        "labels": None,
    }
    assert MietteDiagnostic.from_dict(data) == MietteDiagnostic("message")


def test_deserialize_full():
    assert MietteDiagnostic.from_dict(FULL_JSON) == _full()


def test_json_round_trip():
    text = json.dumps(_full().to_dict())
    assert MietteDiagnostic.from_dict(json.loads(text)) == _full()


def test_deserialize_errors():
    with pytest.raises(ValueError):
        MietteDiagnostic.from_dict({"code": "code"})
    with pytest.raises(ValueError):
        MietteDiagnostic.from_dict({"message": "m", "severity": "Fatal"})
    with pytest.raises(ValueError):
        MietteDiagnostic.from_dict({"message": "m", "labels": [{"primary": False}]})


def test_equality_and_hash():
    assert _full() == _full()
    assert hash(_full()) == hash(_full())
    assert MietteDiagnostic("a") != MietteDiagnostic("b")