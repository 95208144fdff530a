"""androidresolver 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import Any, Callable

import click

from androidresolver import __version__
from androidresolver.core.config import init_config
from androidresolver.core.exceptions import ValidationError
from androidresolver.services.container import init_container
from androidresolver.utils.logger import setup_logging

config_option = click.option(
    "--config", "config_path", default="resolver.yml", show_default=True,
    help="解析器配置文件路径",
)


def _svc(config_path: str, confirm: Callable[[str], bool] | None = None) -> Any:
    """按配置文件初始化全局服务容器"""
    try:
        config = init_config(config_path)
    except ValidationError as e:
        raise click.ClickException(f"{e}: " + "; ".join(e.details)) from e
    return init_container(config, confirm)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """androidresolver - Android 依赖解析工具"""
    setup_logging(
        level=os.getenv("ANDROIDRESOLVER_LOG_LEVEL", "INFO"),
        json_output=os.getenv("ANDROIDRESOLVER_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from androidresolver.cli.cmd_resolve import register as _reg_resolve  # noqa: E402
from androidresolver.cli.cmd_deps import register as _reg_deps  # noqa: E402
from androidresolver.cli.cmd_cache import register as _reg_cache  # noqa: E402

_reg_resolve(main)
_reg_deps(main)
_reg_cache(main)
