"""Tests for the spec catalog."""

from __future__ import annotations

import json

import pytest

from shellsense.core.exceptions import SpecError
from shellsense.services.catalog import SpecCatalog


class TestSpecCatalog:
    def test_find_by_any_alias(self):
        catalog = SpecCatalog([{"name": ["python", "python3"]}])
        assert catalog.find("python3").primary_name == "python"
        assert catalog.find("ruby") is None
        assert catalog.known_names() == {"python", "python3"}

    def test_last_added_wins(self):
        catalog = SpecCatalog()
        catalog.add_spec({"name": "git", "description": "bundled"})
        catalog.add_spec({"name": "git", "description": "extension"})
        assert catalog.find("git").description == "extension"
        assert len(catalog) == 2

    def test_listeners_and_dispose(self):
        catalog = SpecCatalog()
        seen = []
        dispose = catalog.on_spec_added(lambda spec: seen.append(spec.primary_name))
        catalog.add_spec({"name": "ls"})
        dispose()
        catalog.add_spec({"name": "cat"})
        assert seen == ["ls"]

    def test_invalid_spec_is_rejected(self):
        catalog = SpecCatalog()
        with pytest.raises(SpecError):
            catalog.add_spec({"name": "aws", "versionedSpecPath": "aws/"})
        assert len(catalog) == 0


class TestLoadPath:
    def test_load_file_with_list(self, tmp_path):
        path = tmp_path / "specs.json"
        path.write_text(json.dumps([{"name": "ls"}, {"name": "cat"}]))
        catalog = SpecCatalog()
        assert catalog.load_path(path) == 2
        assert catalog.find("cat") is not None

    def test_load_directory(self, tmp_path):
        (tmp_path / "ls.json").write_text(json.dumps({"name": "ls"}))
        (tmp_path / "git.json").write_text(json.dumps({"name": "git"}))
        (tmp_path / "notes.txt").write_text("ignored")
        catalog = SpecCatalog()
        assert catalog.load_path(tmp_path) == 2
        assert [s.primary_name for s in catalog.specs()] == ["git", "ls"]

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SpecError, match="Failed to read spec"):
            SpecCatalog().load_path(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SpecError):
            SpecCatalog().load_path(tmp_path / "missing.json")
