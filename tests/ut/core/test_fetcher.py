"""产物拉取器测试"""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeExecutor, tool_output

from androidresolver.core.config import Config
from androidresolver.core.dep.merger import DependencyMerger
from androidresolver.core.dep.models import Dependency
from androidresolver.core.environment import StaticEnvironment
from androidresolver.core.gradle.fetcher import (
    ArtifactFetcher,
    ResolutionState,
    contains_jetpack_libraries,
    missing_to_dependencies,
)
from androidresolver.core.labels import LabelStore
from androidresolver.core.scheduler import Dispatcher
from androidresolver.utils.shell import CommandResult


def _deps(*specs: str) -> dict[str, Dependency]:
    deps = [Dependency.parse(s, created_by="test.yml") for s in specs]
    return {d.key: d for d in deps}


class _Harness:
    def __init__(self, project: Config, environment: StaticEnvironment,
                 executor: FakeExecutor) -> None:
        self.dispatcher = Dispatcher()
        self.tracker = LabelStore(project.path(project.label_file))
        self.fetcher = ArtifactFetcher(
            project, environment, self.tracker, self.dispatcher, executor,
        )
        self.dest = project.path(project.package_dir).as_posix()
        self.states: list[ResolutionState] = []

    def run(self, deps: dict[str, Dependency]) -> ResolutionState:
        request = DependencyMerger().merge(deps.values())
        self.fetcher.fetch(request, deps, self.dest, self.states.append)
        self.dispatcher.drain(timeout=5)
        assert len(self.states) == 1
        state = self.states[0]
        state.close()
        return state


def _copy_into(dest: Path, *names: str):
    def _on_run(cmd: list[str], cwd: str) -> None:
        for name in names:
            (dest / name).write_bytes(b"aar")
    return _on_run


class TestHelpers:
    def test_jetpack_detection(self) -> None:
        assert contains_jetpack_libraries(["/d/androidx.core.core-1.0.0.aar"])
        assert not contains_jetpack_libraries(["/d/com.google.base-1.0.aar"])

    def test_missing_mapping(self, caplog: pytest.LogCaptureFixture) -> None:
        deps = _deps("g:a:1.0", "g:latest")
        mapped = missing_to_dependencies(
            ["g:a:1.0", "g:latest:+", "x:y:2", "garbage"], deps,
        )
        assert [d.key for d in mapped] == ["g:a:1.0", "g:latest:LATEST", "x:y:2"]
        assert mapped[0] is deps["g:a:1.0"]
        assert "garbage" in caplog.text


class TestFetch:
    def test_success(self, project: Config, environment: StaticEnvironment) -> None:
        out = tool_output(copied=["g.a-1.0.aar"], missing=["g:b:2.0"])
        executor = FakeExecutor(CommandResult(0, out, ""))
        h = _Harness(project, environment, executor)
        state = h.run(_deps("g:a:1.0", "g:b:2.0"))

        assert state.copied == [f"{h.dest}/g.a-1.0.aar"]
        assert state.missing == ["g:b:2.0"]
        assert not state.aborted
        assert h.tracker.is_labeled(f"{h.dest}/g.a-1.0.aar")

        call = executor.calls[0]
        assert call["cwd"] == str(h.fetcher.build_dir)
        assert call["cmd"][0].endswith("gradlew")
        assert "-PPACKAGES_TO_COPY=g:a:1.0;g:b:2.0" in call["cmd"]
        props = (h.fetcher.build_dir / "gradle.properties").read_text(encoding="utf-8")
        assert "USE_JETIFIER=0" in props

    def test_nonzero_exit_reports_all_missing(
        self, project: Config, environment: StaticEnvironment,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        out = tool_output(copied=["a.aar"])
        h = _Harness(project, environment, FakeExecutor(CommandResult(1, out, "boom")))
        state = h.run(_deps("g:a:1.0", "g:b:2.0"))

        assert state.aborted
        assert state.copied == []
        assert [d.key for d in state.missing_dependencies] == ["g:a:1.0", "g:b:2.0"]
        assert state.error_or_warning_logged
        assert "boom" in caplog.text

    def test_missing_tool_components(
        self, project: Config, environment: StaticEnvironment,
    ) -> None:
        (project.path(project.gradle_build_dir) / project.build_script).unlink()
        executor = FakeExecutor()
        h = _Harness(project, environment, executor)
        state = h.run(_deps("g:a:1.0"))
        assert state.aborted
        assert executor.calls == []

    def test_modified_artifacts_warn(
        self, project: Config, environment: StaticEnvironment,
    ) -> None:
        out = tool_output(modified=["g:a:1.0 --> g:a:1.1"])
        h = _Harness(project, environment, FakeExecutor(CommandResult(0, out, "")))
        state = h.run(_deps("g:a:1.0"))
        assert state.modified == ["g:a:1.0 --> g:a:1.1"]
        assert state.error_or_warning_logged

    def test_jetpack_enables_jetifier_and_refetches(
        self, project: Config, environment: StaticEnvironment,
    ) -> None:
        dest = project.path(project.package_dir)
        out = tool_output(copied=["androidx.core.core-1.0.0.aar"])
        executor = FakeExecutor(
            CommandResult(0, out, ""),
            on_run=_copy_into(dest, "androidx.core.core-1.0.0.aar"),
        )
        h = _Harness(project, environment, executor)
        state = h.run(_deps("androidx.core:core:1.0.0"))

        assert len(executor.calls) == 2
        assert environment.use_jetifier
        assert "-PUSE_JETIFIER=1" in executor.calls[1]["cmd"]
        assert not state.aborted
        assert (dest / "androidx.core.core-1.0.0.aar").is_file()

    def test_jetpack_without_jetifier_support_aborts(
        self, project: Config, environment: StaticEnvironment, tmp_path: Path,
    ) -> None:
        env = StaticEnvironment(
            environment.snapshot(), sdk_root=str(tmp_path / "sdk"),
            jetifier_supported=False,
        )
        dest = project.path(project.package_dir)
        out = tool_output(copied=["androidx.core.core-1.0.0.aar"])
        executor = FakeExecutor(
            CommandResult(0, out, ""),
            on_run=_copy_into(dest, "androidx.core.core-1.0.0.aar"),
        )
        h = _Harness(project, env, executor)
        state = h.run(_deps("androidx.core:core:1.0.0"))

        assert state.aborted
        assert [d.key for d in state.missing_dependencies] == ["androidx.core:core:1.0.0"]
        assert not (dest / "androidx.core.core-1.0.0.aar").exists()
        assert h.tracker.find_labeled() == []
