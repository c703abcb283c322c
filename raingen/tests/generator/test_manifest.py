"""Tests for the handler manifest."""

import json

import pytest

from raingen.generator.errors import ManifestError
from raingen.generator.manifest import read_manifest, update_manifest


def describe_read_manifest():
    def treats_missing_files_as_empty(expect, tmp_path):
        expect(read_manifest(str(tmp_path / "handler.json"))) == {}

    def rejects_malformed_json(expect, tmp_path):
        path = tmp_path / "handler.json"
        path.write_text("{not json")
        with pytest.raises(ManifestError) as exc:
            read_manifest(str(path))
        expect(str(exc.value).startswith("handler.json file content error:")) == True

    def rejects_other_shapes(expect, tmp_path):
        path = tmp_path / "handler.json"
        path.write_text('{"a": 1}')
        with pytest.raises(ManifestError):
            read_manifest(str(path))


def describe_update_manifest():
    def creates_the_file(expect, tmp_path):
        directory = tmp_path / "out"
        path = update_manifest(str(directory), {"user/ProfileService": "user"})
        expect(path) == str(directory / "handler.json")
        expect(json.loads((directory / "handler.json").read_text())) == {
            "user/ProfileService": "user"
        }

    def merges_with_existing_entries(expect, tmp_path):
        (tmp_path / "handler.json").write_text('{"shop/Gateway": "shop", "user/Old": "x"}')
        update_manifest(str(tmp_path), {"user/Old": "user", "user/New": "user"})
        expect(json.loads((tmp_path / "handler.json").read_text())) == {
            "shop/Gateway": "shop",
            "user/New": "user",
            "user/Old": "user",
        }

    def writes_sorted_keys(expect, tmp_path):
        update_manifest(str(tmp_path), {"b/B": "b", "a/A": "a"})
        expect((tmp_path / "handler.json").read_text()) == '{"a/A": "a", "b/B": "b"}'
