"""CLI — 依赖包拉取与检出命令"""

from __future__ import annotations

from pathlib import Path

import click

from depfetch.cli import _svc
from depfetch.core.exceptions import DepFetchError
from depfetch.core.lockfile import format_lock, load_lock, parse_lock_variant, read_lock_data
from depfetch.core.models import LockEntry
from depfetch.core.staleness import lock_status


def register(group: click.Group) -> None:
    group.add_command(fetch)
    group.add_command(status)
    group.add_command(checkout)
    group.add_command(update)
    group.add_command(list_cache)


def _load_entries(lock: str | None) -> list[LockEntry]:
    cfg = _svc().config
    try:
        return load_lock(lock or cfg.lock_file, cfg.deps_dir)
    except DepFetchError as e:
        raise click.ClickException(str(e)) from e


def _find_entry(name: str, lock: str | None) -> LockEntry:
    for entry in _load_entries(lock):
        if entry.app == name:
            return entry
    raise click.ClickException(f"依赖 '{name}' 不在锁文件中")


@click.command()
@click.option("--lock", default=None, help="锁文件路径（默认读取配置）")
def fetch(lock: str | None) -> None:
    """拉取并检出锁文件中所有过期的依赖"""
    entries = _load_entries(lock)
    if not entries:
        click.echo("锁文件中没有依赖。")
        return
    report = _svc().checkout.sync(entries)
    for app in report.up_to_date:
        click.echo(f"  {app:20s} 已是最新")
    for app, ident in report.checked_out.items():
        click.echo(f"  {app:20s} 已检出 {ident.version}")
    for app, reason in report.failed.items():
        click.echo(f"  {app:20s} 失败: {reason}", err=True)
    if not report.success:
        raise click.ClickException(f"{len(report.failed)} 个依赖检出失败")


@click.command()
@click.option("--lock", default=None, help="锁文件路径（默认读取配置）")
def status(lock: str | None) -> None:
    """显示各依赖的检出状态"""
    cfg = _svc().config
    path = lock or cfg.lock_file
    try:
        data = read_lock_data(path)
        rows = [(app, parse_lock_variant(raw), raw) for app, raw in data.items()]
    except DepFetchError as e:
        raise click.ClickException(str(e)) from e
    if not rows:
        click.echo(f"锁文件为空或不存在: {path}")
        return
    for app, variant, raw in rows:
        dest = Path(cfg.deps_dir) / str(app)
        state = lock_status(dest, variant if variant is not None else raw)
        shown = format_lock(variant) or "-"
        click.echo(f"  {app:20s} {shown:28s} [{state.value}]")


def _run_checkout(name: str, lock: str | None, *, update: bool = False) -> None:
    entry = _find_entry(name, lock)
    orchestrator = _svc().checkout
    try:
        ident = orchestrator.update(entry) if update else orchestrator.checkout(entry)
    except DepFetchError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"就绪: {name} {ident.version} -> {entry.dest}")


@click.command()
@click.argument("name")
@click.option("--lock", default=None, help="锁文件路径（默认读取配置）")
def checkout(name: str, lock: str | None) -> None:
    """检出单个依赖（无论是否过期）"""
    _run_checkout(name, lock)


@click.command()
@click.argument("name")
@click.option("--lock", default=None, help="锁文件路径（默认读取配置）")
def update(name: str, lock: str | None) -> None:
    """更新单个依赖（等同完整重新检出）"""
    _run_checkout(name, lock, update=True)


@click.command(name="cache")
def list_cache() -> None:
    """列出本地缓存的依赖包"""
    cache = _svc().cache
    entries = cache.list_entries()
    if not entries:
        click.echo(f"缓存为空: {cache.root}")
        return
    for p in entries:
        click.echo(f"  {p.name:40s} {p.stat().st_size:>10d} 字节")
