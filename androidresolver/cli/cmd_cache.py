"""CLI: explode 缓存管理命令"""

from __future__ import annotations

import click

from androidresolver.cli import _svc, config_option


def register(group: click.Group) -> None:
    group.add_command(cache_group)


@click.group(name="cache")
def cache_group() -> None:
    """AAR explode 缓存管理"""


@cache_group.command(name="show")
@config_option
def cache_show(config_path: str) -> None:
    """显示缓存条目"""
    svc = _svc(config_path).resolution
    svc.ensure_cache_loaded()
    entries = svc.cache.entries
    if not entries:
        click.echo("缓存为空。")
        return
    for name, entry in entries.items():
        reason = svc.cache.dirty_reason(entry)
        state = reason.value if reason is not None else "clean"
        click.echo(
            f"  {name:40s} explode={str(entry.explode).lower():5s} "
            f"abis={entry.available_abis}/{entry.target_abis} [{state}]"
        )
        click.echo(f"      {entry.path}")


@cache_group.command(name="clear")
@config_option
def cache_clear(config_path: str) -> None:
    """清空缓存（下次解析时重新检查全部产物）"""
    svc = _svc(config_path).resolution
    svc.ensure_cache_loaded()
    count = len(svc.cache.entries)
    svc.cache.clear()
    click.echo(f"已清除 {count} 条缓存。")
