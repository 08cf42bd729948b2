"""Tests for the bootstrap sequencer (core/bootstrap.py).

All collaborators are fakes that record their calls, so phase ordering
and override semantics are observable without touching the filesystem.

Coverage:
* Phases run strictly in order.
* A missing root (or a failing lookup) is not fatal; config/app
  failures are.
* Built-ins come first, then user commands, then extension commands.
* ``register`` callbacks run once each, in loader order, after every
  extension's commands are appended.
* Extension options exclude ``app`` and ``cli``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from fractal_cli.core.bootstrap import DEFAULT_SETTINGS, Bootstrapper
from fractal_cli.core.models import CommandDefinition, ExtensionDescriptor, LoadedConfig
from fractal_cli.exceptions import AppLoadError, ConfigError, ExtensionError

MakeCommand = Callable[..., CommandDefinition]


class FakeCollaborators:
    """Records every collaborator call in ``self.calls``."""

    def __init__(
        self,
        *,
        root: Path | None = Path("/project"),
        config: Mapping[str, Any] | None = None,
        user_commands: list[CommandDefinition] | None = None,
        extensions: list[ExtensionDescriptor] | None = None,
    ) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.root = root
        self.config = dict(config or {"app": {"name": "demo"}, "cli": {"commands": []}})
        self.user_commands = user_commands or []
        self.extensions = extensions or []
        self.app = object()

    def locate_root(self, start: Path) -> Path | None:
        self.calls.append(("locate_root", start))
        return self.root

    def chdir(self, path: Path) -> None:
        self.calls.append(("chdir", path))

    def load_config(self, root: Path | None, defaults: Mapping[str, Any]) -> LoadedConfig:
        self.calls.append(("load_config", root))
        return LoadedConfig(config_path=None, config=self.config)

    def load_app(self, root: Path, settings: Mapping[str, Any]) -> Any:
        self.calls.append(("load_app", (root, dict(settings))))
        return self.app

    def load_commands(self, settings: Mapping[str, Any]) -> list[CommandDefinition]:
        self.calls.append(("load_commands", dict(settings)))
        return self.user_commands

    def load_extensions(self, config: Mapping[str, Any]) -> list[ExtensionDescriptor]:
        self.calls.append(("load_extensions", dict(config)))
        return self.extensions

    def bootstrapper(self, core_commands: list[CommandDefinition] | None = None) -> Bootstrapper:
        return Bootstrapper(
            core_commands=core_commands or [],
            locate_root=self.locate_root,
            load_config=self.load_config,
            load_app=self.load_app,
            load_commands=self.load_commands,
            load_extensions=self.load_extensions,
            chdir=self.chdir,
        )

    @property
    def phases(self) -> list[str]:
        return [name for name, _ in self.calls]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TestPhaseOrder:
    def test_phases_run_in_order(self) -> None:
        fakes = FakeCollaborators()
        fakes.bootstrapper().run(Path("/project/sub"))
        assert fakes.phases == [
            "locate_root",
            "chdir",
            "load_config",
            "load_app",
            "load_commands",
            "load_extensions",
        ]

    def test_root_is_passed_downstream(self) -> None:
        fakes = FakeCollaborators(root=Path("/project"))
        result = fakes.bootstrapper().run(Path("/project/sub"))
        assert result.root == Path("/project")
        assert ("load_config", Path("/project")) in fakes.calls
        assert ("load_app", (Path("/project"), {"name": "demo"})) in fakes.calls

    def test_app_object_returned(self) -> None:
        fakes = FakeCollaborators()
        assert fakes.bootstrapper().run(Path("/project")).app is fakes.app


# ---------------------------------------------------------------------------
# Phase 1: root
# ---------------------------------------------------------------------------

class TestLocateRoot:
    def test_missing_root_keeps_start_directory(self) -> None:
        fakes = FakeCollaborators(root=None)
        result = fakes.bootstrapper().run(Path("/elsewhere"))
        assert "chdir" not in fakes.phases
        assert result.root == Path("/elsewhere")
        assert ("load_config", None) in fakes.calls

    def test_lookup_failure_is_swallowed(self) -> None:
        fakes = FakeCollaborators()

        def broken(start: Path) -> Path | None:
            raise PermissionError("denied")

        fakes.locate_root = broken  # type: ignore[method-assign]
        result = fakes.bootstrapper().run(Path("/elsewhere"))
        assert result.root == Path("/elsewhere")
        assert fakes.phases[0] == "load_config"


# ---------------------------------------------------------------------------
# Phases 2-3: fatal failures
# ---------------------------------------------------------------------------

class TestFatalPhases:
    def test_config_failure_aborts_before_app(self) -> None:
        fakes = FakeCollaborators()

        def broken(root: Path | None, defaults: Mapping[str, Any]) -> LoadedConfig:
            raise ConfigError("bad yaml")

        fakes.load_config = broken  # type: ignore[method-assign]
        with pytest.raises(ConfigError, match="bad yaml"):
            fakes.bootstrapper().run(Path("/project"))
        assert "load_app" not in fakes.phases

    def test_app_failure_aborts_before_registry(self) -> None:
        fakes = FakeCollaborators()

        def broken(root: Path, settings: Mapping[str, Any]) -> Any:
            raise AppLoadError("no app")

        fakes.load_app = broken  # type: ignore[method-assign]
        with pytest.raises(AppLoadError):
            fakes.bootstrapper().run(Path("/project"))
        assert "load_commands" not in fakes.phases

    def test_defaults_are_offered_to_the_loader(self) -> None:
        seen: list[Mapping[str, Any]] = []
        fakes = FakeCollaborators()

        def recording(root: Path | None, defaults: Mapping[str, Any]) -> LoadedConfig:
            seen.append(defaults)
            return LoadedConfig(config_path=None, config=dict(defaults))

        fakes.load_config = recording  # type: ignore[method-assign]
        fakes.bootstrapper().run(Path("/project"))
        assert seen == [DEFAULT_SETTINGS]


# ---------------------------------------------------------------------------
# Phases 4-5: registry and extensions
# ---------------------------------------------------------------------------

class TestRegistryMerge:
    def test_core_then_user_then_extensions(self, make_command: MakeCommand) -> None:
        core = [make_command("info"), make_command("render")]
        user = [make_command("render", description="user")]
        ext = [make_command("docs")]
        fakes = FakeCollaborators(
            user_commands=user,
            extensions=[ExtensionDescriptor(name="docs-ext", commands=ext)],
        )
        result = fakes.bootstrapper(core).run(Path("/project"))

        assert result.registry.all() == (*core, *user, *ext)
        assert result.registry.resolve()["render"] is user[0]

    def test_extension_config_excludes_app_and_cli(self) -> None:
        fakes = FakeCollaborators(
            config={"app": {}, "cli": {"commands": []}, "docs": {"path": "x"}, "blog": None},
        )
        fakes.bootstrapper().run(Path("/project"))
        assert ("load_extensions", {"docs": {"path": "x"}, "blog": None}) in fakes.calls

    def test_user_commands_receive_cli_section(self) -> None:
        fakes = FakeCollaborators(config={"app": {}, "cli": {"commands": [{"name": "x"}]}})
        fakes.bootstrapper().run(Path("/project"))
        assert ("load_commands", {"commands": [{"name": "x"}]}) in fakes.calls


class TestExtensionRegistration:
    def test_register_runs_in_loader_order_after_all_commands(
        self, make_command: MakeCommand,
    ) -> None:
        seen: list[tuple[str, int]] = []
        holder: dict[str, Any] = {}

        def recorder(name: str) -> Callable[[Any], None]:
            def register(app: Any) -> None:
                seen.append((name, len(holder["registry"])))

            return register

        extensions = [
            ExtensionDescriptor(name="first", commands=[make_command("a")], register=recorder("first")),
            ExtensionDescriptor(name="second", commands=[make_command("b")], register=recorder("second")),
            ExtensionDescriptor(name="third", commands=[make_command("c")], register=recorder("third")),
        ]
        fakes = FakeCollaborators(extensions=extensions)
        bootstrapper = fakes.bootstrapper([make_command("core")])

        apply_extensions = bootstrapper._apply_extensions

        def capture(exts, registry, app):  # noqa: ANN001, ANN202
            holder["registry"] = registry
            return apply_extensions(exts, registry, app)

        bootstrapper._apply_extensions = capture  # type: ignore[method-assign]
        bootstrapper.run(Path("/project"))

        assert seen == [("first", 4), ("second", 4), ("third", 4)]

    def test_register_receives_app_once(self) -> None:
        received: list[Any] = []
        fakes = FakeCollaborators(
            extensions=[ExtensionDescriptor(name="ext", register=received.append)],
        )
        fakes.bootstrapper().run(Path("/project"))
        assert received == [fakes.app]

    def test_register_return_value_ignored(self) -> None:
        fakes = FakeCollaborators(
            extensions=[ExtensionDescriptor(name="ext", register=lambda app: "ignored")],
        )
        result = fakes.bootstrapper().run(Path("/project"))
        assert result.extensions[0].name == "ext"

    def test_throwing_register_is_bootstrap_fatal(self) -> None:
        def register(app: Any) -> None:
            raise RuntimeError("setup failed")

        fakes = FakeCollaborators(extensions=[ExtensionDescriptor(name="broken", register=register)])
        with pytest.raises(ExtensionError, match="broken") as exc_info:
            fakes.bootstrapper().run(Path("/project"))
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_fractal_errors_from_register_propagate_unchanged(self) -> None:
        def register(app: Any) -> None:
            raise AppLoadError("capability clash")

        fakes = FakeCollaborators(extensions=[ExtensionDescriptor(name="ext", register=register)])
        with pytest.raises(AppLoadError, match="capability clash"):
            fakes.bootstrapper().run(Path("/project"))
