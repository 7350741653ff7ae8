import textwrap
from pathlib import Path

import pytest

from keysmith.models import DynamicKeyReason, Position
from keysmith.parsers.python import PythonParser


def parse(source: str, identifier: str = "t"):
    return PythonParser().parse_file("src/app.py", textwrap.dedent(source), identifier, Path("."))


def test_literal_key_with_position():
    result = parse('x = 1\nlabel = t("nav.home")\n')
    assert len(result.references) == 1
    ref = result.references[0]
    assert ref.key == "nav.home"
    assert ref.file_path == "src/app.py"
    assert ref.position == Position(2, 9)
    assert ref.fallback_literal is None
    assert result.dynamic_key_warnings == []


def test_column_counts_characters_not_bytes():
    result = parse('s = "é"; y = t("a.b")\n')
    assert result.references[0].position == Position(1, 14)


def test_member_and_subscript_callees():
    result = parse(
        """
        i18n.t("a.member")
        i18n["t"]("a.subscript")
        self.t("a.self")
        translate("ignored")
        """
    )
    assert [ref.key for ref in result.references] == ["a.member", "a.subscript", "a.self"]


def test_custom_identifier():
    result = parse('translate("a.b")\nt("c.d")\n', identifier="translate")
    assert [ref.key for ref in result.references] == ["a.b"]


def test_f_string_without_fields_is_a_literal():
    result = parse('t(f"plain.key")\n')
    assert result.references[0].key == "plain.key"


@pytest.mark.parametrize(
    "call, reason",
    [
        ('t(f"items.{name}")', DynamicKeyReason.TEMPLATE),
        ('t("items.%s" % name)', DynamicKeyReason.TEMPLATE),
        ('t("items.{}".format(name))', DynamicKeyReason.TEMPLATE),
        ('t("items." + name)', DynamicKeyReason.BINARY),
        ("t(key if ok else other)", DynamicKeyReason.EXPRESSION),
        ("t(get_key())", DynamicKeyReason.EXPRESSION),
        ("t(key)", DynamicKeyReason.EXPRESSION),
    ],
)
def test_dynamic_arguments_are_classified(call, reason):
    result = parse(call + "\n")
    assert result.references == []
    assert len(result.dynamic_key_warnings) == 1
    warning = result.dynamic_key_warnings[0]
    assert warning.reason is reason
    assert warning.position == Position(1, 3)


def test_warning_keeps_expression_text():
    result = parse('t(f"items.{name}")\n')
    assert result.dynamic_key_warnings[0].expression == 'f"items.{name}"'


def test_calls_without_usable_argument_are_ignored():
    result = parse("t()\nt(*args)\n")
    assert result.references == []
    assert result.dynamic_key_warnings == []


def test_or_fallback_literal():
    result = parse('label = t("greeting") or "Hello"\n')
    assert result.references[0].fallback_literal == "Hello"


def test_fallback_must_be_a_string_literal():
    result = parse('label = t("greeting") or default\n')
    assert result.references[0].fallback_literal is None


def test_fallback_through_cast():
    result = parse('label = cast(str, t("greeting")) or "Hi"\n')
    assert result.references[0].fallback_literal == "Hi"


def test_cast_around_key_is_unwrapped():
    result = parse('t(cast(str, "a.b"))\n')
    assert result.references[0].key == "a.b"


def test_references_in_document_order():
    result = parse(
        """
        def view():
            return [t("b.second"), t("a.first")]

        TITLE = t("c.third")
        """
    )
    assert [ref.key for ref in result.references] == ["b.second", "a.first", "c.third"]


def test_syntax_error_propagates():
    with pytest.raises(SyntaxError):
        parse("def broken(:\n")


def test_parser_metadata():
    parser = PythonParser()
    assert parser.id == "python"
    assert ".py" in parser.extensions
    assert parser.is_available(Path("."))
    assert len(parser.signature()) == 64
