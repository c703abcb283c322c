"""Tests for wrapping descriptors into the object graph."""

import pytest

from raingen.generator import generate, wrapper
from raingen.generator.context import CompilationContext
from raingen.generator.errors import ConsistencyError, ResolutionError
from raingen.generator.wrapper import wrap_file, wrap_types

GROUPS = """
name: "legacy/search.proto"
package: "legacy"
syntax: "proto2"
message_type {
  name: "Search"
  field { name: "result" number: 1 label: LABEL_REPEATED type: TYPE_GROUP type_name: ".legacy.Search.Result" }
  field { name: "meta" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE type_name: ".legacy.Search.Meta" }
  nested_type {
    name: "Result"
    field { name: "url" number: 3 label: LABEL_OPTIONAL type: TYPE_STRING }
  }
  nested_type { name: "Meta" }
}
"""


@pytest.fixture
def catalog(codegen_request):
    ctx = CompilationContext.from_request(codegen_request("catalog"))
    wrap_types(ctx)
    return ctx.files_by_name["shop/catalog.proto"]


def describe_wrap_types():
    def wraps_every_file_of_the_request(expect, codegen_request):
        ctx = CompilationContext.from_request(codegen_request("catalog"))
        wrap_types(ctx)
        expect([f.name for f in ctx.files]) == [
            "google/protobuf/empty.proto",
            "google/protobuf/struct.proto",
            "shop/catalog.proto",
        ]
        expect([f.name for f in ctx.gen_files]) == ["shop/catalog.proto"]

    def fails_on_unknown_files_to_generate(expect, codegen_request):
        ctx = CompilationContext.from_request(codegen_request("catalog", generate=["nope.proto"]))
        with pytest.raises(ResolutionError) as exc:
            wrap_types(ctx)
        expect(str(exc.value)) == "could not find file named nope.proto"


def describe_messages():
    def lists_nested_messages_in_the_arena(expect, catalog):
        expect([m.name for m in catalog.messages]) == [
            "Item",
            "Dimensions",
            "StockEntry",
            "VariantsEntry",
        ]
        expect([m.path for m in catalog.messages]) == ["4,0", "4,0,3,0", "4,0,3,1", "4,0,3,2"]

    def links_parents_and_children(expect, catalog):
        item, dims = catalog.messages[0], catalog.messages[1]
        expect(item.parent is None) == True
        expect(dims.parent is item) == True
        expect([m.name for m in item.nested]) == ["Dimensions", "StockEntry", "VariantsEntry"]
        expect(dims.type_name()) == ["Item", "Dimensions"]

    def marks_map_entries(expect, catalog):
        expect([m.is_map_entry for m in catalog.messages]) == [False, False, True, True]

    def refers_back_to_the_file(expect, catalog):
        expect(catalog.messages[1].file is catalog) == True

    def detects_groups(expect, parse_schema):
        file = wrap_file(parse_schema(GROUPS))
        result, meta = file.messages[1], file.messages[2]
        expect(result.group) == True
        expect(meta.group) == False


def describe_enums():
    def flattens_enums_of_every_level(expect, catalog):
        expect([e.name for e in catalog.enums]) == ["Status", "Kind", "Unit"]
        expect([e.path for e in catalog.enums]) == ["5,0", "4,0,4,0", "4,0,3,0,4,0"]

    def records_the_declaring_message(expect, catalog):
        status, kind, unit = catalog.enums
        expect(status.parent is None) == True
        expect(kind.parent is catalog.messages[0]) == True
        expect(unit.parent is catalog.messages[1]) == True
        expect(catalog.messages[1].nested_enums) == [unit]

    def builds_value_prefixes_from_the_parent(expect, catalog):
        status, kind, unit = catalog.enums
        expect(status.prefix()) == "Status_"
        expect(kind.prefix()) == "Item_"
        expect(unit.prefix()) == "Item_Dimensions_"
        expect(unit.type_name()) == ["Item", "Dimensions", "Unit"]


def describe_nesting_checks():
    def reject_messages_missing_nested_messages(expect, catalog):
        catalog.messages[1].parent_id = None
        with pytest.raises(ConsistencyError) as exc:
            wrapper._build_nested_messages(catalog)
        expect(str(exc.value)) == "internal error: nesting failure for Item"

    def reject_messages_missing_nested_enums(expect, catalog):
        catalog.enums[2].parent_id = None
        with pytest.raises(ConsistencyError) as exc:
            wrapper._build_nested_enums(catalog)
        expect(str(exc.value)) == "internal error: enum nesting failure for Dimensions"

    def abort_generation_before_any_output(expect, codegen_request, monkeypatch, tmp_path):
        wrap_messages = wrapper._wrap_messages

        def orphan_last_message(file):
            arena = wrap_messages(file)
            if arena:
                arena[-1].parent_id = None
            return arena

        monkeypatch.setattr(wrapper, "_wrap_messages", orphan_last_message)
        request = codegen_request(
            "catalog", "profile", parameter=f"runtime=raingen.router,path={tmp_path}"
        )
        with pytest.raises(ConsistencyError) as exc:
            generate(request)
        expect(str(exc.value)) == "internal error: nesting failure for Item"
        expect((tmp_path / "handler.json").exists()) == False


def describe_services():
    def records_source_paths(expect, codegen_request):
        ctx = CompilationContext.from_request(codegen_request("gateway"))
        wrap_types(ctx)
        (service,) = ctx.files_by_name["shop/gateway.proto"].services
        expect(service.path) == "6,0"
        expect([m.path for m in service.methods][:2]) == ["6,0,2,0", "6,0,2,1"]
        expect(service.methods[1].name) == "GetPrice"


def describe_comments():
    def keys_leading_comments_by_path(expect, catalog):
        expect(catalog.comments["4,0"]) == " An item for sale.\n"
        expect(catalog.comments["5,0"]) == " Lifecycle of an item.\n"
        expect("4,0,2,0" in catalog.comments) == False
