import os
from pathlib import Path

import pytest

from madcap_toolkit.core.models import VariableSet
from madcap_toolkit.core.resolvers import VariableStore


class TestVariableFallbackOrder:
    """Qualified lookup first, then the bare key, then nothing."""

    @pytest.fixture
    def store(self):
        store = VariableStore()
        store.add_variable_set(VariableSet(Path("Ns.flvar"), {"Ns.Key": "V1"}))
        store.add_variable_set(VariableSet(Path("Misc.flvar"), {"Misc.Key": "V2"}))
        return store

    def test_qualified_name(self, store):
        assert store.resolve("Ns.Key") == "V1"

    def test_unknown_namespace_falls_back_to_bare_key(self, store):
        assert store.resolve("Other.Key") == "V2"

    def test_bare_name(self, store):
        assert store.resolve("Key") == "V2"

    def test_no_match(self, store):
        assert store.resolve("Missing.Nothing") is None
        assert store.resolve("") is None


class TestProjectVariableSets:
    def test_load_and_resolve(self, flare_project):
        flare_project.add_variable_set("General", {"ProductName": "Acme"})
        store = VariableStore()
        sets = store.load_variable_sets(flare_project.root)
        assert [s.namespace for s in sets] == ["General"]
        assert store.resolve("General.ProductName", flare_project.root) == "Acme"
        # Without a root every loaded project is consulted.
        assert store.resolve("General.ProductName") == "Acme"

    def test_later_files_override_earlier(self, flare_project):
        flare_project.add_variable_set("A", {"Name": "from A"})
        flare_project.add_variable_set("B", {"Name": "from B"})
        store = VariableStore()
        store.load_variable_sets(flare_project.root)
        assert store.resolve("A.Name", flare_project.root) == "from A"
        assert store.resolve("Name", flare_project.root) == "from B"

    def test_registered_variables_come_first(self, flare_project):
        flare_project.add_variable_set("General", {"ProductName": "Acme"})
        store = VariableStore()
        store.register("General.ProductName", "Override")
        store.load_variable_sets(flare_project.root)
        assert store.resolve("General.ProductName", flare_project.root) == "Override"

    def test_invalid_file_becomes_warning(self, flare_project):
        flare_project.add_variable_set("General", {"ProductName": "Acme"})
        (flare_project.variable_sets_dir / "Broken.flvar").write_text("", encoding="utf-8")
        warnings = []
        store = VariableStore()
        sets = store.load_variable_sets(flare_project.root, warnings)
        assert [s.namespace for s in sets] == ["General"]
        assert len(warnings) == 1
        assert "Broken.flvar" in warnings[0]

    def test_missing_directory_is_empty(self, temp_dir):
        assert VariableStore().load_variable_sets(temp_dir) == []

    def test_changed_file_is_reloaded(self, flare_project):
        path = flare_project.add_variable_set("General", {"ProductName": "Acme"})
        store = VariableStore()
        store.load_variable_sets(flare_project.root)
        stat = path.stat()
        flare_project.add_variable_set("General", {"ProductName": "Acme 2"})
        os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
        store.load_variable_sets(flare_project.root)
        assert store.resolve("General.ProductName", flare_project.root) == "Acme 2"

    def test_variable_sets_listing(self, flare_project):
        flare_project.add_variable_set("General", {"ProductName": "Acme"})
        store = VariableStore()
        store.load_variable_sets(flare_project.root)
        store.register("Extra", "x")
        namespaces = [s.namespace for s in store.variable_sets(flare_project.root)]
        assert namespaces == ["<registered>", "General"]
