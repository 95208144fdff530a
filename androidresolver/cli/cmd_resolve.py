"""CLI: 解析 / 构建设置检查 / 冲突处理命令"""

from __future__ import annotations

import sys
from typing import Callable

import click

from androidresolver.cli import _svc, config_option


def register(group: click.Group) -> None:
    group.add_command(resolve)
    group.add_command(check_settings)
    group.add_command(conflicts)


def _confirm(assume_yes: bool) -> Callable[[str], bool]:
    if assume_yes:
        return lambda _message: True
    return lambda message: click.confirm(message, default=False)


@click.command()
@config_option
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="自动确认删除冲突的旧库")
@click.option("--timeout", default=None, type=float, help="等待构建工具的超时（秒）")
def resolve(config_path: str, assume_yes: bool, timeout: float | None) -> None:
    """执行一次完整的 Android 依赖解析"""
    svc = _svc(config_path, _confirm(assume_yes)).resolution
    try:
        missing = svc.resolve_sync(timeout=timeout)
    except TimeoutError as e:
        raise click.ClickException(f"等待构建工具超时: {e}") from e
    report = svc.last_conflicts
    if report is not None:
        for path in report.removed:
            click.echo(f"已删除冲突旧库: {path}")
    for path in svc.last_failed_artifacts:
        click.echo(f"处理失败: {path}")
    if not missing and not svc.last_failed_artifacts:
        click.echo("解析完成，全部依赖已就绪。")
        return
    if missing:
        click.echo(f"以下 {len(missing)} 个依赖缺失:")
        for dep in missing:
            source = f"  ({dep.source})" if dep.source else ""
            click.echo(f"  {dep.key}{source}")
    sys.exit(1)


@click.command(name="check-settings")
@config_option
def check_settings(config_path: str) -> None:
    """检查受管产物是否与当前构建设置一致"""
    paths = _svc(config_path).resolution.check_build_settings()
    if not paths:
        click.echo("受管产物与构建设置一致。")
        return
    click.echo("以下产物需要重新解析:")
    for path in paths:
        click.echo(f"  {path}")


@click.command()
@config_option
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="自动确认删除冲突的旧库")
def conflicts(config_path: str, assume_yes: bool) -> None:
    """只运行冲突检测与处理"""
    report = _svc(config_path, _confirm(assume_yes)).resolution.conflicts.resolve()
    for path in report.removed:
        click.echo(f"已删除: {path}")
    for managed, paths in report.unresolved.items():
        click.echo(f"未解决: {managed}")
        for p in paths:
            click.echo(f"    {p}")
    if report.legacy_warning:
        click.echo("存在旧版 google-play-services.jar，需要手动处理。")
    if report.clean and not report.removed:
        click.echo("没有发现冲突。")
    if not report.clean:
        sys.exit(1)
