"""depfetch 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from pathlib import Path
from typing import Any

import click

from depfetch import __version__
from depfetch.services.container import get_container
from depfetch.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", default="depfetch.yml", help="配置文件路径")
def main(config: str) -> None:
    """depfetch - 锁定依赖包拉取与检出"""
    setup_logging(
        level=os.getenv("DEPFETCH_LOG_LEVEL", "INFO"),
        json_output=os.getenv("DEPFETCH_LOG_JSON", "") == "1",
    )
    if Path(config).exists():
        from depfetch.core.config import init_config
        from depfetch.services.container import reset_container
        init_config(config)
        reset_container()


# 注册各领域子命令
from depfetch.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_deps(main)
