"""依赖声明模型 / 注册表 / 版本比较测试"""

from pathlib import Path

import pytest

from androidresolver.core.dep.models import LATEST_VERSION, Dependency
from androidresolver.core.dep.registry import DependencyRegistry
from androidresolver.core.dep.version import compare_versions, version_key
from androidresolver.core.exceptions import DependencyError


class TestDependency:
    def test_parse_full(self) -> None:
        dep = Dependency.parse("com.google:base:1.2.3", created_by="a.yml")
        assert dep.key == "com.google:base:1.2.3"
        assert dep.versionless_key == "com.google:base"
        assert dep.source == "a.yml"
        assert not dep.is_latest

    @pytest.mark.parametrize("spec", ["g:a", "g:a:+", "g:a:"])
    def test_parse_latest(self, spec: str) -> None:
        dep = Dependency.parse(spec)
        assert dep.version == LATEST_VERSION
        assert dep.is_latest

    @pytest.mark.parametrize("spec", ["", "group", ":artifact:1.0"])
    def test_parse_invalid(self, spec: str) -> None:
        with pytest.raises(DependencyError):
            Dependency.parse(spec)

    def test_source_is_first_line(self) -> None:
        dep = Dependency("g", "a", "1", created_by="first.yml\nsecond.yml")
        assert dep.source == "first.yml"

    def test_immutable(self) -> None:
        dep = Dependency("g", "a", "1")
        with pytest.raises(AttributeError):
            dep.version = "2"  # type: ignore[misc]


class TestDependencyRegistry:
    def test_declare_keeps_order(self) -> None:
        reg = DependencyRegistry()
        reg.declare_spec("g:b:1", created_by="x")
        reg.declare_spec("g:a:1", created_by="y")
        assert list(reg.get_all_dependencies()) == ["g:b:1", "g:a:1"]

    def test_duplicate_merges_sources_and_repos(self) -> None:
        reg = DependencyRegistry()
        reg.declare_spec("g:a:1", repositories=["r1"], created_by="x.yml")
        reg.declare_spec("g:a:1", repositories=["r1", "r2"], created_by="y.yml")
        dep = reg.get_all_dependencies()["g:a:1"]
        assert dep.repositories == ("r1", "r2")
        assert dep.created_by == "x.yml\ny.yml"
        assert dep.source == "x.yml"

    def test_global_repositories_first_source_wins(self) -> None:
        reg = DependencyRegistry()
        reg.add_repository("https://a", "x")
        reg.add_repository("https://a", "y")
        reg.add_repository("https://b", "y")
        assert reg.global_repositories == [("https://a", "x"), ("https://b", "y")]

    def test_load_file(self, tmp_path: Path) -> None:
        f = tmp_path / "Assets" / "Firebase" / "FirebaseDependencies.yml"
        f.parent.mkdir(parents=True)
        f.write_text(
            "repositories:\n"
            "  - https://maven.google.com\n"
            "dependencies:\n"
            "  - com.google.firebase:firebase-app:21.0.0\n"
            "  - spec: com.google.android.gms:play-services-base:18.0.1\n"
            "    repositories: [Assets/Firebase/m2repository]\n"
            "    packageIds: [extra-google-m2repository]\n"
            "  - {repositories: [x]}\n"
            "  - not-a-spec\n",
            encoding="utf-8",
        )
        reg = DependencyRegistry()
        assert reg.load_directory(tmp_path / "Assets", "**/*Dependencies.yml") == 2
        deps = reg.get_all_dependencies()
        base = deps["com.google.android.gms:play-services-base:18.0.1"]
        assert base.repositories == ("Assets/Firebase/m2repository",)
        assert base.package_ids == ("extra-google-m2repository",)
        assert base.source.endswith("FirebaseDependencies.yml")
        assert reg.global_repositories[0][0] == "https://maven.google.com"

    def test_load_corrupt_file(self, tmp_path: Path) -> None:
        f = tmp_path / "BadDependencies.yml"
        f.write_text("dependencies: [unclosed", encoding="utf-8")
        assert DependencyRegistry().load_file(f) == 0

    def test_load_missing_directory(self, tmp_path: Path) -> None:
        assert DependencyRegistry().load_directory(tmp_path / "nope", "*.yml") == 0


class TestCompareVersions:
    @pytest.mark.parametrize(("lhs", "rhs", "sign"), [
        ("1.0.0", "2.0.0", -1),
        ("2.0.0", "1.0.0", 1),
        ("1.0", "1.0.0", 0),
        ("10.2.1", "9.8.0", 1),
        ("1.0.0-alpha", "1.0.0", -1),
        ("1.0.0-custom", "1.0.0", -1),
        ("1.0.0-custom.2", "1.0.0-custom.10", -1),
        ("r7", "r10", -1),
    ])
    def test_ordering(self, lhs: str, rhs: str, sign: int) -> None:
        result = compare_versions(lhs, rhs)
        assert (result > 0) - (result < 0) == sign

    def test_sort_key(self) -> None:
        assert sorted(["2.0", "10.0", "1.5"], key=version_key) == ["1.5", "2.0", "10.0"]
