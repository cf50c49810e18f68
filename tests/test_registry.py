"""Tests for CapabilityRegistry, capability models, and presets."""

from __future__ import annotations

import threading

import pytest

from agentloop.exceptions import NameConflictError, UnknownCapabilityError
from agentloop.toolkit import (
    CapabilityRegistry,
    ParamSpec,
    ParamType,
    StaticCapabilitySource,
    get_builtin_capabilities,
    get_preset,
)
from agentloop.toolkit.registry import CapabilitySource

from tests.conftest import make_capability


class MutableSource:
    """A CapabilitySource whose contents can change between refreshes."""

    def __init__(self, definitions):
        self.definitions = list(definitions)
        self.loads = 0

    def load(self):
        self.loads += 1
        return list(self.definitions)


# ===========================================================================
# Registration
# ===========================================================================


class TestRegistration:
    """register / register_batch conflict handling."""

    def test_builtins_registered_in_order(self):
        registry = CapabilityRegistry([make_capability("a"), make_capability("b")])
        assert registry.names() == ["a", "b"]
        assert len(registry) == 2
        assert "a" in registry
        assert "zzz" not in registry

    def test_register_single(self):
        registry = CapabilityRegistry()
        registry.register(make_capability("a"))
        assert registry.lookup("a").name == "a"

    def test_register_conflict_raises(self):
        registry = CapabilityRegistry([make_capability("a")])
        with pytest.raises(NameConflictError) as exc_info:
            registry.register(make_capability("a"))
        assert exc_info.value.names == ("a",)

    def test_batch_is_all_or_nothing(self):
        """A batch with one colliding name registers nothing."""
        registry = CapabilityRegistry([make_capability("a")])
        with pytest.raises(NameConflictError):
            registry.register_batch([make_capability("b"), make_capability("a")])
        assert registry.names() == ["a"]

    def test_batch_lists_every_conflict(self):
        registry = CapabilityRegistry([make_capability("a"), make_capability("b")])
        with pytest.raises(NameConflictError) as exc_info:
            registry.register_batch([
                make_capability("a"),
                make_capability("c"),
                make_capability("b"),
            ])
        assert set(exc_info.value.names) == {"a", "b"}
        assert "'a'" in str(exc_info.value)

    def test_batch_duplicates_within_batch(self):
        registry = CapabilityRegistry()
        with pytest.raises(NameConflictError) as exc_info:
            registry.register_batch([make_capability("x"), make_capability("x")])
        assert exc_info.value.names == ("x",)
        assert len(registry) == 0

    def test_duplicate_builtins_rejected(self):
        with pytest.raises(NameConflictError):
            CapabilityRegistry([make_capability("a"), make_capability("a")])

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            make_capability("  ")


# ===========================================================================
# Lookup
# ===========================================================================


class TestLookup:
    """lookup, get, by_group, subset."""

    def test_lookup_missing_returns_none(self):
        assert CapabilityRegistry().lookup("nope") is None

    def test_get_missing_raises(self):
        with pytest.raises(UnknownCapabilityError) as exc_info:
            CapabilityRegistry().get("nope")
        assert exc_info.value.name == "nope"

    def test_by_group(self):
        registry = CapabilityRegistry([
            make_capability("a", groups=("read_only",)),
            make_capability("b", groups=("code_generation",)),
            make_capability("c", groups=("read_only", "code_analysis")),
        ])
        assert [d.name for d in registry.by_group("read_only")] == ["a", "c"]
        assert [d.name for d in registry.by_group("all")] == ["a", "b", "c"]
        assert registry.by_group("missing") == []

    def test_subset_keeps_requested_order(self):
        registry = CapabilityRegistry([make_capability("a"), make_capability("b")])
        assert [d.name for d in registry.subset(["b", "a"])] == ["b", "a"]

    def test_subset_unknown_raises(self):
        registry = CapabilityRegistry([make_capability("a")])
        with pytest.raises(UnknownCapabilityError):
            registry.subset(["a", "ghost"])

    def test_iteration_returns_definitions(self):
        registry = CapabilityRegistry([make_capability("a")])
        assert [d.name for d in registry] == ["a"]


# ===========================================================================
# Sources and refresh
# ===========================================================================


class TestRefresh:
    """Source loading and atomic refresh."""

    def test_static_source_is_a_capability_source(self):
        assert isinstance(StaticCapabilitySource([]), CapabilitySource)

    def test_sources_loaded_at_construction(self):
        source = StaticCapabilitySource([make_capability("custom")])
        registry = CapabilityRegistry([make_capability("a")], sources=[source])
        assert registry.names() == ["a", "custom"]

    def test_refresh_picks_up_new_definitions(self):
        source = MutableSource([make_capability("one")])
        registry = CapabilityRegistry(sources=[source])
        source.definitions.append(make_capability("two"))
        registry.refresh()
        assert registry.names() == ["one", "two"]

    def test_refresh_drops_removed_definitions(self):
        source = MutableSource([make_capability("one"), make_capability("two")])
        registry = CapabilityRegistry(sources=[source])
        source.definitions = [make_capability("two")]
        registry.refresh()
        assert registry.names() == ["two"]

    def test_refresh_keeps_directly_registered(self):
        source = MutableSource([make_capability("one")])
        registry = CapabilityRegistry(sources=[source])
        registry.register(make_capability("direct"))
        registry.refresh()
        assert set(registry.names()) == {"one", "direct"}

    def test_refresh_conflict_keeps_old_snapshot(self):
        source = MutableSource([make_capability("custom")])
        registry = CapabilityRegistry([make_capability("read_file")], sources=[source])
        source.definitions = [make_capability("read_file")]
        with pytest.raises(NameConflictError):
            registry.refresh()
        assert registry.names() == ["read_file", "custom"]

    def test_add_source_conflict_is_atomic(self):
        registry = CapabilityRegistry([make_capability("a")])
        with pytest.raises(NameConflictError):
            registry.add_source(StaticCapabilitySource([make_capability("b"), make_capability("a")]))
        assert registry.names() == ["a"]
        registry.refresh()
        assert registry.names() == ["a"]

    def test_concurrent_readers_see_complete_snapshots(self):
        """Readers never observe a half-updated registry during refreshes."""
        batch_a = [make_capability(f"a{i}") for i in range(20)]
        batch_b = [make_capability(f"b{i}") for i in range(20)]
        source = MutableSource(batch_a)
        registry = CapabilityRegistry(sources=[source])
        seen_sizes: set[int] = set()
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                names = registry.names()
                seen_sizes.add(len(names))
                assert all(n.startswith("a") for n in names) or all(
                    n.startswith("b") for n in names
                )

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for i in range(200):
            source.definitions = batch_b if i % 2 == 0 else batch_a
            registry.refresh()
        stop.set()
        for t in threads:
            t.join()
        assert seen_sizes == {20}


# ===========================================================================
# Capability models
# ===========================================================================


class TestCapabilityDefinition:
    """Definition rendering and schema conversion."""

    def test_parameters_are_read_only(self):
        defn = make_capability("a", {"x": ParamSpec(ParamType.STRING)})
        with pytest.raises(TypeError):
            defn.parameters["y"] = ParamSpec()

    def test_required_parameters(self):
        defn = make_capability("a", {
            "x": ParamSpec(ParamType.STRING, required=True),
            "y": ParamSpec(ParamType.NUMBER),
        })
        assert defn.required_parameters == ["x"]

    def test_describe_marks_risky_and_params(self):
        defn = make_capability(
            "w", {"path": ParamSpec(ParamType.STRING, required=True, description="Where")},
            risky=True,
        )
        text = defn.describe()
        assert "(requires approval)" in text
        assert "path (string, required): Where" in text

    def test_to_openai(self):
        defn = make_capability("a", {
            "items": ParamSpec(ParamType.TEXT_COLLECTION, required=True),
            "n": ParamSpec(ParamType.INTEGER),
        })
        schema = defn.to_openai()
        assert schema["type"] == "function"
        params = schema["function"]["parameters"]
        assert params["required"] == ["items"]
        assert params["properties"]["n"] == {"type": "integer"}
        assert "anyOf" in params["properties"]["items"]

    def test_param_type_from_string(self):
        assert ParamSpec("integer").type is ParamType.INTEGER


# ===========================================================================
# Presets
# ===========================================================================


class TestPresets:
    """Named presets over built-in group tags."""

    def test_read_only_preset_excludes_risky(self, tmp_path):
        registry = CapabilityRegistry(get_builtin_capabilities(tmp_path))
        names = get_preset("read_only").names(registry)
        assert names == ["read_file", "list_files", "search_files"]
        assert all(not registry.get(n).risky for n in names)

    def test_code_generation_preset(self, tmp_path):
        registry = CapabilityRegistry(get_builtin_capabilities(tmp_path))
        assert get_preset("code_generation").names(registry) == [
            "read_file", "write_file", "list_files",
        ]

    def test_data_analysis_preset(self, tmp_path):
        registry = CapabilityRegistry(get_builtin_capabilities(tmp_path))
        assert get_preset("data_analysis").names(registry) == ["execute_code"]

    def test_all_preset(self, tmp_path):
        registry = CapabilityRegistry(get_builtin_capabilities(tmp_path))
        assert len(get_preset("all").names(registry)) == 5

    def test_custom_capability_joins_preset(self, tmp_path):
        registry = CapabilityRegistry(get_builtin_capabilities(tmp_path))
        registry.register(make_capability("peek", groups=("read_only",)))
        assert "peek" in get_preset("read_only").names(registry)

    def test_unknown_preset_raises(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            get_preset("everything")
