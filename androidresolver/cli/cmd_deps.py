"""CLI: 依赖声明查看命令"""

from __future__ import annotations

import click

from androidresolver.cli import _svc, config_option


def register(group: click.Group) -> None:
    group.add_command(list_deps)
    group.add_command(list_repos)


@click.command(name="deps")
@config_option
def list_deps(config_path: str) -> None:
    """列出合并后的包规格及其声明来源"""
    request = _svc(config_path).resolution.merged_request()
    if not request.package_specs:
        click.echo("没有已声明的依赖。")
        return
    for spec in request.package_specs:
        click.echo(f"  {spec:60s} {request.sources_by_spec.get(spec, '')}")


@click.command(name="repos")
@config_option
def list_repos(config_path: str) -> None:
    """按解析顺序列出仓库 URI 及其声明来源"""
    repos = _svc(config_path).resolution.repository_sources()
    if not repos:
        click.echo("没有已声明的仓库。")
        return
    for uri, sources in repos:
        click.echo(f"  {uri}")
        click.echo(f"      <- {sources}")
