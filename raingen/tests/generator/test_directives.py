"""Tests for @tag directives in method comments."""

from lark.exceptions import LarkError

from raingen.generator import directives as directives_module
from raingen.generator.directives import Binding, parse_directives


def describe_parse_directives():
    def reads_key_value_pairs(expect):
        directives = parse_directives(" @tag middleware:auth,quota binding:form\n")
        expect(directives.raw) == {"middleware": "auth,quota", "binding": "form"}
        expect(directives.middlewares) == ["auth", "quota"]
        expect(directives.binding) == Binding.FORM

    def reads_bare_flags(expect):
        directives = parse_directives(" @tag  internal  trace:on")
        expect(directives.raw) == {"internal": "", "trace": "on"}

    def allows_empty_values(expect):
        expect(parse_directives(" @tag middleware:").raw) == {"middleware": ""}

    def finds_the_marker_after_other_text(expect):
        directives = parse_directives(" Form submission.\n @tag binding:formpost\n")
        expect(directives.binding) == Binding.FORM_POST

    def ignores_comments_without_a_marker(expect):
        directives = parse_directives(" Just a comment with middleware:auth\n")
        expect(directives.raw) == {}
        expect(directives.middlewares) == []

    def lets_later_keys_win(expect):
        expect(parse_directives(" @tag binding:query binding:json").binding) == Binding.JSON

    def separates_tokens_with_any_whitespace(expect):
        directives = parse_directives(" @tag middleware:auth\u3000认证中间件\u00a0binding:query\n")
        expect(directives.raw) == {"middleware": "auth", "认证中间件": "", "binding": "query"}
        expect(directives.middlewares) == ["auth"]

    def reads_a_marker_without_directives(expect):
        expect(parse_directives(" @tag  \n").raw) == {}

    def splits_on_whitespace_when_the_grammar_rejects_the_text(expect, monkeypatch):
        class RejectingParser:
            def parse(self, text):
                raise LarkError(text)

        monkeypatch.setattr(directives_module, "_parser", RejectingParser)
        directives = parse_directives(" @tag middleware:auth,quota internal :x")
        expect(directives.raw) == {"middleware": "auth,quota", "internal": "", "": "x"}


def describe_directives():
    def checks_binding_unless_disabled(expect):
        expect(parse_directives("").bind_check) == True
        expect(parse_directives(" @tag bindcheck:false").bind_check) == False
        expect(parse_directives(" @tag bindcheck:FALSE").bind_check) == False
        expect(parse_directives(" @tag bindcheck:no").bind_check) == True

    def defaults_to_json_binding(expect):
        expect(parse_directives("").binding) == Binding.JSON
        expect(parse_directives(" @tag binding:xml").binding) == Binding.JSON

    def accepts_every_binding(expect):
        for value, binding in [
            ("json", Binding.JSON),
            ("form", Binding.FORM),
            ("query", Binding.QUERY),
            ("formpost", Binding.FORM_POST),
            ("formmultipart", Binding.FORM_MULTIPART),
        ]:
            expect(parse_directives(f" @tag binding:{value}").binding) == binding
