"""Tests for naming helpers."""

from raingen.generator.util import (
    base_name,
    camel_case_slice,
    clean_package_name,
    safe_identifier,
    to_camel_case,
    to_snake_case,
)


def describe_to_camel_case():
    def drops_underscores_before_lower_case(expect):
        expect(to_camel_case("my_msg")) == "MyMsg"
        expect(to_camel_case("foo_bar_baz")) == "FooBarBaz"

    def keeps_underscores_before_capitals(expect):
        expect(to_camel_case("Foo_Bar")) == "Foo_Bar"

    def replaces_leading_underscore(expect):
        expect(to_camel_case("_foo")) == "XFoo"

    def capitalizes_after_digits(expect):
        expect(to_camel_case("foo2bar")) == "Foo2Bar"

    def joins_dotted_names(expect):
        expect(camel_case_slice(["item", "dimensions"])) == "Item_Dimensions"


def describe_to_snake_case():
    def splits_words(expect):
        expect(to_snake_case("GetProfile")) == "get_profile"
        expect(to_snake_case("HTTPStatus")) == "http_status"
        expect(to_snake_case("already_snake")) == "already_snake"


def describe_identifiers():
    def suffixes_keywords(expect):
        expect(safe_identifier("class")) == "class_"
        expect(safe_identifier("match")) == "match"

    def fixes_bad_characters(expect):
        expect(safe_identifier("2fa")) == "_2fa"
        expect(safe_identifier("a-b")) == "a_b"

    def cleans_package_names(expect):
        expect(clean_package_name("My-Pkg")) == "my_pkg"
        expect(clean_package_name("class")) == "_class"

    def strips_directories_and_extension(expect):
        expect(base_name("a/b/c.proto")) == "c"
