"""Tests for the extension loader (infra/extensions.py).

Entry-point discovery is replaced with a fixed table via monkeypatch,
so no installed distribution is needed.
"""

from __future__ import annotations

from importlib.metadata import EntryPoint
from typing import Any

import pytest

import sample_commands
from fractal_cli.core.models import ExtensionDescriptor
from fractal_cli.exceptions import ConfigError, ExtensionError
from fractal_cli.infra import extensions
from fractal_cli.infra.extensions import ENTRY_POINT_GROUP, ExtensionLoader, coerce_descriptor


@pytest.fixture
def installed(monkeypatch: pytest.MonkeyPatch) -> dict[str, EntryPoint]:
    """Fake installed entry points, keyed by name."""
    table: dict[str, EntryPoint] = {}
    monkeypatch.setattr(extensions, "_installed_entry_points", lambda group: table)
    return table


# ---------------------------------------------------------------------------
# coerce_descriptor
# ---------------------------------------------------------------------------

class TestCoerceDescriptor:
    def test_descriptor_passes_through(self) -> None:
        descriptor = ExtensionDescriptor(name="x")
        assert coerce_descriptor(descriptor, name="x") is descriptor

    def test_mapping_defaults(self) -> None:
        descriptor = coerce_descriptor({}, name="blog")
        assert descriptor == ExtensionDescriptor(name="blog")

    def test_mapping_commands_are_built(self) -> None:
        descriptor = coerce_descriptor(
            {"name": "Docs", "commands": [{"name": "docs", "handler": "sample_commands:user_info"}]},
            name="docs",
        )
        assert descriptor.name == "Docs"
        assert [command.name for command in descriptor.commands] == ["docs"]
        assert descriptor.commands[0].handler is sample_commands.user_info

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("nope", "expected an ExtensionDescriptor"),
            ({"hooks": []}, "unknown key"),
            ({"commands": "docs"}, "'commands' must be a list"),
            ({"register": 42}, "'register' must be callable"),
            ({"commands": [{"name": "docs"}]}, "invalid command"),
        ],
    )
    def test_invalid(self, value: Any, message: str) -> None:
        with pytest.raises(ExtensionError, match=message):
            coerce_descriptor(value, name="docs")


# ---------------------------------------------------------------------------
# ExtensionLoader
# ---------------------------------------------------------------------------

class TestExtensionLoader:
    def test_empty_config(self, installed: dict[str, EntryPoint]) -> None:
        assert ExtensionLoader()({}) == []

    def test_explicit_factories_in_config_order(self, installed: dict[str, EntryPoint]) -> None:
        seen: list[tuple[str, dict[str, Any]]] = []

        def factory(name: str) -> Any:
            def build(options: dict[str, Any]) -> ExtensionDescriptor:
                seen.append((name, options))
                return ExtensionDescriptor(name=name)

            return build

        loader = ExtensionLoader({"a": factory("a"), "b": factory("b")})
        descriptors = loader({"b": {"x": 1}, "a": None})

        assert [descriptor.name for descriptor in descriptors] == ["b", "a"]
        assert seen == [("b", {"x": 1}), ("a", {})]

    def test_entry_point_fallback(self, installed: dict[str, EntryPoint]) -> None:
        installed["docs"] = EntryPoint(
            name="docs", value="sample_commands:docs_extension", group=ENTRY_POINT_GROUP,
        )
        [descriptor] = ExtensionLoader()({"docs": {"path": "content"}})
        assert descriptor.name == "docs"
        assert [command.name for command in descriptor.commands] == ["docs"]
        assert callable(descriptor.register)

    def test_explicit_factory_beats_entry_point(self, installed: dict[str, EntryPoint]) -> None:
        installed["docs"] = EntryPoint(
            name="docs", value="sample_commands:docs_extension", group=ENTRY_POINT_GROUP,
        )
        loader = ExtensionLoader({"docs": lambda options: {"name": "local"}})
        assert loader.resolve("docs")({}) == {"name": "local"}

    def test_unknown_extension(self, installed: dict[str, EntryPoint]) -> None:
        with pytest.raises(ExtensionError, match="Unknown extension 'blog'") as exc_info:
            ExtensionLoader()({"blog": {}})
        assert ENTRY_POINT_GROUP in (exc_info.value.hint or "")

    def test_broken_entry_point(self, installed: dict[str, EntryPoint]) -> None:
        installed["docs"] = EntryPoint(
            name="docs", value="fractal_cli_no_such_module:factory", group=ENTRY_POINT_GROUP,
        )
        with pytest.raises(ExtensionError, match="Cannot load extension 'docs'"):
            ExtensionLoader().resolve("docs")

    def test_entry_point_must_be_callable(self, installed: dict[str, EntryPoint]) -> None:
        installed["docs"] = EntryPoint(
            name="docs", value="sample_commands:NOT_CALLABLE", group=ENTRY_POINT_GROUP,
        )
        with pytest.raises(ExtensionError, match="does not name a callable"):
            ExtensionLoader().resolve("docs")

    def test_options_must_be_mapping(self, installed: dict[str, EntryPoint]) -> None:
        loader = ExtensionLoader({"docs": lambda options: {}})
        with pytest.raises(ExtensionError, match="must be a mapping"):
            loader({"docs": ["not", "a", "mapping"]})

    def test_failing_factory_is_wrapped(self, installed: dict[str, EntryPoint]) -> None:
        def factory(options: dict[str, Any]) -> Any:
            raise KeyError("path")

        with pytest.raises(ExtensionError, match="failed to load") as exc_info:
            ExtensionLoader({"docs": factory})({"docs": {}})
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_fractal_error_from_factory_propagates(self, installed: dict[str, EntryPoint]) -> None:
        def factory(options: dict[str, Any]) -> Any:
            raise ConfigError("docs.path is required")

        with pytest.raises(ConfigError, match="docs.path is required"):
            ExtensionLoader({"docs": factory})({"docs": {}})
