"""命令行接口测试（click CliRunner）"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from androidresolver import __version__
from androidresolver.cli import main
from androidresolver.services.container import reset_container
from androidresolver.utils.logger import reset_logging


@pytest.fixture(autouse=True)
def _isolate():
    reset_container()
    yield
    reset_container()
    reset_logging()


@pytest.fixture()
def config_file(tmp_path: Path) -> str:
    deps = tmp_path / "Assets" / "Firebase" / "FirebaseDependencies.yml"
    deps.parent.mkdir(parents=True)
    deps.write_text(
        "repositories:\n"
        "  - https://maven.google.com\n"
        "dependencies:\n"
        "  - spec: com.google.firebase:firebase-app:21.0.0\n"
        "    repositories: [https://repo.example.com/maven]\n"
        "  - com.google.android.gms:play-services-base\n",
        encoding="utf-8",
    )
    cfg = tmp_path / "resolver.yml"
    cfg.write_text(yaml.safe_dump({
        "project_dir": str(tmp_path),
        "environment": {"application_id": "com.example.app", "sdk_root": ""},
    }), encoding="utf-8")
    return str(cfg)


def _invoke(*args: str):
    return CliRunner().invoke(main, list(args))


class TestCli:
    def test_version(self) -> None:
        result = _invoke("--version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_deps(self, config_file: str) -> None:
        result = _invoke("deps", "--config", config_file)
        assert result.exit_code == 0
        assert "com.google.firebase:firebase-app:21.0.0" in result.output
        assert "com.google.android.gms:play-services-base:+" in result.output

    def test_repos_in_resolution_order(self, config_file: str) -> None:
        result = _invoke("repos", "--config", config_file)
        assert result.exit_code == 0
        google = result.output.index("https://maven.google.com")
        custom = result.output.index("https://repo.example.com/maven")
        assert google < custom
        assert "FirebaseDependencies.yml" in result.output

    def test_resolve_without_sdk_lists_missing(self, config_file: str) -> None:
        result = _invoke("resolve", "--config", config_file, "--timeout", "5")
        assert result.exit_code == 1
        assert "以下 2 个依赖缺失" in result.output
        assert "com.google.android.gms:play-services-base:LATEST" in result.output

    def test_conflicts_clean(self, config_file: str) -> None:
        result = _invoke("conflicts", "--config", config_file)
        assert result.exit_code == 0
        assert "没有发现冲突" in result.output

    def test_check_settings(self, config_file: str) -> None:
        result = _invoke("check-settings", "--config", config_file)
        assert result.exit_code == 0
        assert "一致" in result.output

    def test_cache_show_and_clear(self, config_file: str) -> None:
        result = _invoke("cache", "show", "--config", config_file)
        assert result.exit_code == 0
        assert "缓存为空" in result.output
        result = _invoke("cache", "clear", "--config", config_file)
        assert result.exit_code == 0
        assert "已清除 0 条缓存" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        cfg = tmp_path / "bad.yml"
        cfg.write_text("explode_aars: maybe\n", encoding="utf-8")
        result = _invoke("deps", "--config", str(cfg))
        assert result.exit_code == 1
        assert "explode_aars" in result.output
