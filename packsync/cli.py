"""
CLI 模块

命令行接口实现。
"""

import asyncio
from collections import Counter
from typing import List, Optional

import click
from loguru import logger

from packsync import __version__
from packsync.models import (
    DuplicateGroup,
    Instance,
    LoaderSelection,
    NeedsSelection,
    PackSyncConfig,
)
from packsync.orchestrator import PackSyncOrchestrator
from packsync.exceptions import (
    ManifestNotFoundError,
    PackSyncError,
    PersistFailedError,
)
from packsync.logger import setup_logger
from packsync.utils import load_config_file


def run_async(coro):
    """运行协程并把 PackSync 异常转换为 click 错误"""
    try:
        return asyncio.run(coro)
    except PersistFailedError as e:
        logger.error(f"清单保存失败: {e}")
        raise click.ClickException(f"{e}\n请重新运行 sync 或 repair 修复实例")
    except PackSyncError as e:
        logger.error(f"执行失败: {e}")
        raise click.ClickException(str(e))
    except click.ClickException:
        raise
    except Exception as e:
        logger.exception(f"运行时错误: {e}")
        raise click.ClickException(f"运行时错误: {e}")


def _check_source(descriptor, pack_id, version_id):
    if descriptor and (pack_id is not None or version_id is not None):
        raise click.UsageError("--descriptor 与 --pack-id/--version-id 不能同时使用")
    if not descriptor and (pack_id is None or version_id is None):
        raise click.UsageError("需要 --descriptor，或同时提供 --pack-id 与 --version-id")


def _echo_groups(groups: List[DuplicateGroup]):
    if not groups:
        click.echo("未发现重复制品")
        return
    click.echo(f"发现 {len(groups)} 组可能重复的制品:")
    for group in groups:
        click.echo(f"  [{group.category}] {group.identity}")
        for member in group.members:
            mark = " (受管)" if member in group.tracked else ""
            click.echo(f"    - {member}{mark}")


def source_options(func):
    """描述来源选项：本地描述文件或整合包目录"""
    func = click.option("--server", is_flag=True, help="服务器模式（跳过仅客户端文件）")(func)
    func = click.option("--version-id", type=int, help="整合包版本 ID")(func)
    func = click.option("--pack-id", type=int, help="整合包 ID")(func)
    func = click.option(
        "--descriptor",
        type=click.Path(exists=True, dir_okay=False),
        help="整合包版本描述文件 (JSON)",
    )(func)
    return func


@click.group()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="配置文件 (toml/json/yaml)",
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    help="同时写入日志文件（覆盖配置中的 log.file）",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[str],
    debug: bool,
    log_file: Optional[str],
):
    """PackSync - Minecraft 整合包实例同步工具"""
    try:
        data = load_config_file(config_path) if config_path else {}
        ctx.obj = PackSyncConfig.from_dict(data)
    except PackSyncError as e:
        raise click.ClickException(f"配置错误: {e}")

    log = ctx.obj.log
    setup_logger(
        level="DEBUG" if debug else log.level,
        log_file=log_file or log.file,
        rotation=log.rotation,
        retention=log.retention,
    )


@main.command()
@click.argument("instance", type=click.Path(file_okay=False))
@source_options
@click.pass_obj
def sync(
    config: PackSyncConfig,
    instance: str,
    descriptor: Optional[str],
    pack_id: Optional[int],
    version_id: Optional[int],
    server: bool,
):
    """将实例同步到指定整合包版本"""
    _check_source(descriptor, pack_id, version_id)

    async def run():
        async with PackSyncOrchestrator(config) as orchestrator:
            target = await orchestrator.load_descriptor(
                descriptor, pack_id, version_id, server=server
            )
            return await orchestrator.sync(Instance(instance), target)

    result, groups = run_async(run())

    click.echo(f"已同步到版本 {result.manifest.version_id}: {result.changes}")
    if result.skipped:
        click.echo(f"{len(result.skipped)} 个文件已是最新，未重新获取")
    for warning in result.warnings:
        click.echo(f"警告: 未能删除 {warning.path} ({warning.reason})")
    if groups:
        _echo_groups(groups)


@main.command()
@click.argument("instance", type=click.Path(exists=True, file_okay=False))
@click.pass_obj
def status(config: PackSyncConfig, instance: str):
    """显示实例当前安装的整合包版本"""

    async def run():
        async with PackSyncOrchestrator(config) as orchestrator:
            try:
                return await orchestrator.status(Instance(instance))
            except ManifestNotFoundError:
                return None

    manifest = run_async(run())
    if manifest is None:
        click.echo("该实例尚未同步")
        return

    click.echo(f"整合包: {manifest.pack_id or '-'}")
    click.echo(f"版本: {manifest.version_id or '-'}")
    click.echo(f"Minecraft: {manifest.mc_version or '-'}")
    click.echo(f"加载器: {manifest.mod_loader or '-'}")
    click.echo(f"受管文件: {len(manifest.entries)}")
    counts = Counter(entry.category.value for entry in manifest.entries)
    for category, count in sorted(counts.items()):
        click.echo(f"  {category}: {count}")


@main.command()
@click.argument("instance", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def verify(ctx: click.Context, instance: str):
    """检查受管文件是否缺失或损坏"""

    async def run():
        async with PackSyncOrchestrator(ctx.obj) as orchestrator:
            return await orchestrator.verify(Instance(instance))

    broken = run_async(run())
    if not broken:
        click.echo("所有受管文件完好")
        return

    click.echo(f"{len(broken)} 个文件缺失或损坏:")
    for path in broken:
        click.echo(f"  - {path}")
    ctx.exit(1)


@main.command()
@click.argument("instance", type=click.Path(file_okay=False))
@source_options
@click.pass_obj
def repair(
    config: PackSyncConfig,
    instance: str,
    descriptor: Optional[str],
    pack_id: Optional[int],
    version_id: Optional[int],
    server: bool,
):
    """重新获取缺失或损坏的受管文件"""
    _check_source(descriptor, pack_id, version_id)

    async def run():
        async with PackSyncOrchestrator(config) as orchestrator:
            target = await orchestrator.load_descriptor(
                descriptor, pack_id, version_id, server=server
            )
            return await orchestrator.repair(Instance(instance), target)

    result = run_async(run())
    click.echo(f"修复完成: {result.changes}")


@main.command()
@click.argument("instance", type=click.Path(exists=True, file_okay=False))
@click.option("--resolve", is_flag=True, help="逐组选择要保留的文件并删除其余文件")
@click.pass_obj
def dupes(config: PackSyncConfig, instance: str, resolve: bool):
    """报告可能重复的模组、资源包与光影包"""
    target = Instance(instance)

    async def find():
        async with PackSyncOrchestrator(config) as orchestrator:
            return await orchestrator.find_duplicates(target)

    async def keep_one(group: DuplicateGroup, keep: str):
        async with PackSyncOrchestrator(config) as orchestrator:
            return await orchestrator.resolve_duplicate(target, group, keep)

    groups = run_async(find())
    _echo_groups(groups)
    if not resolve:
        return

    # 交互式选择在事件循环之外进行
    for group in groups:
        click.echo(f"\n[{group.category}] {group.identity}:")
        for index, member in enumerate(group.members, start=1):
            click.echo(f"  {index}) {member}")
        choice = click.prompt(
            "保留哪一个 (0 跳过)",
            type=click.IntRange(0, len(group.members)),
        )
        if choice == 0:
            continue

        removed, warnings = run_async(keep_one(group, group.members[choice - 1]))
        for path in removed:
            click.echo(f"  已删除 {path}")
        for warning in warnings:
            click.echo(f"  警告: 未能删除 {warning.path} ({warning.reason})")


@main.command()
@click.argument("game_version")
@click.argument("loader")
@click.option("--version", "loader_version", help="加载器版本，prompt 表示列出候选")
@click.option("--non-interactive", is_flag=True, help="存在多个候选时直接失败")
@click.pass_obj
def loader(
    config: PackSyncConfig,
    game_version: str,
    loader: str,
    loader_version: Optional[str],
    non_interactive: bool,
):
    """
    解析模组加载器版本与安装器地址

    LOADER 可以是 forge、neoforge，或带版本的 forge-47.2.0 形式。
    """

    async def run():
        selection = LoaderSelection.parse(game_version, loader)
        async with PackSyncOrchestrator(config) as orchestrator:
            result = await orchestrator.resolve_loader(
                game_version, selection.loader, loader_version or selection.version
            )
            return orchestrator.loader_resolver, result

    resolver, result = run_async(run())
    if isinstance(result, NeedsSelection):
        if non_interactive:
            raise click.ClickException(
                f"{result.loader.value} 有 {len(result.candidates)} 个与 "
                f"Minecraft {game_version} 兼容的版本，请使用 --version 指定"
            )

        click.echo(f"{result.loader.value} 兼容版本（* 为推荐）:")
        for index, candidate in enumerate(result.candidates, start=1):
            click.echo(f"  {index}) {candidate}")
        choice = click.prompt("选择版本", type=click.IntRange(1, len(result.candidates)))
        artifact = resolver.select(
            game_version, result.loader, result.candidates[choice - 1]
        )
    else:
        artifact = result.artifact

    click.echo(f"{artifact.loader_id} (Minecraft {artifact.game_version})")
    click.echo(f"安装器: {artifact.installer_url}")
    if artifact.sha256:
        click.echo(f"SHA256: {artifact.sha256}")


if __name__ == "__main__":
    main()
