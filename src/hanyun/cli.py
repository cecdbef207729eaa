"""命令行入口：生成方案、导出课件/练习题/情景图片包，并管理本地灵感库。

约定：
- 启动时检查 API Key，缺失只提示不退出；生成类命令随后会以 `BackendUnavailable` 失败；
- 所有业务异常在命令边界统一转换为 `click.ClickException`，不改动已保存的记录；
- 导出文件写入配置中的输出目录（默认 `output/`）；
- 大纲与情景都可以先输出为 JSON，编辑后再通过 `--outline` / `--scenarios` 交回生成。
"""

import asyncio
import json
import mimetypes
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from hanyun.agents.orchestrator import LessonOrchestrator
from hanyun.common.client import GeminiClient
from hanyun.common.config import load_settings
from hanyun.common.errors import HanyunError
from hanyun.common.library import Library
from hanyun.common.records import apply_edits, new_batch
from hanyun.common.types import (
    ActivityPlan,
    BatchConfig,
    DeckConfig,
    ExerciseConfig,
    ExerciseType,
    Mode,
    OutlineItem,
    PPTStyle,
    Scenario,
    ScenarioStatus,
    UserInput,
)
from hanyun.common.utils import check_api_key, encode_data_uri, get_logger

logger = get_logger(__name__)


def _orchestrator(ctx: click.Context) -> LessonOrchestrator:
    obj = ctx.obj
    try:
        return LessonOrchestrator(obj["client_factory"](obj["settings"]))
    except HanyunError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


def _library(ctx: click.Context) -> Library:
    obj = ctx.obj
    if "library" not in obj:
        obj["library"] = Library(obj["settings"].library_dir)
    return obj["library"]


def _load_plan(ctx: click.Context, plan_id: str) -> ActivityPlan:
    plan = _library(ctx).get_plan(plan_id)
    if plan is None:
        raise click.ClickException(f"Plan {plan_id} not found in the library")
    return plan


def _run(coro):
    """执行一个异步操作，把业务异常转换为命令行错误。"""
    try:
        return asyncio.run(coro)
    except HanyunError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


def _save_artifact(ctx: click.Context, artifact) -> Path:
    path = artifact.write_to(ctx.obj["settings"].output_dir)
    click.echo(f"Saved {path}")
    return path


def _read_data_uri(path: Path) -> str:
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    return encode_data_uri(path.read_bytes(), mime)


@click.group()
@click.pass_context
def cli(ctx: click.Context):
    """汉韵灵感 (HanYun Inspiration): TCFL activity generator."""
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_settings()
        except ValidationError as e:
            raise click.UsageError(f"Invalid configuration: {e}") from e
    settings = ctx.obj["settings"]
    ctx.obj.setdefault("client_factory", GeminiClient)
    if not check_api_key(settings):
        click.echo("Warning: API Key not found. Generation commands will fail until GOOGLE_API_KEY is set.", err=True)


@cli.command()
@click.option("--theme", required=True, help="教学主题")
@click.option("--audience", "target_audience", required=True, help="教学对象")
@click.option("--level", required=True, help="学习者水平，例如 HSK 3")
@click.option("--native-language", required=True, help="学习者母语")
@click.option("--idea", "activity_idea", default=None, help="已有灵感（record 模式必填）")
@click.option("--requirements", default=None, help="具体要求")
@click.option("--mode", type=click.Choice(["record", "generate"]), default="record", show_default=True)
@click.option("--no-image", is_flag=True, help="保存时不生成配图")
@click.option("--save", is_flag=True, help="保存到灵感库")
@click.pass_context
def plan(ctx, theme, target_audience, level, native_language, activity_idea, requirements, mode, no_image, save):
    """生成教学活动方案。"""
    user_input = UserInput(
        theme=theme,
        target_audience=target_audience,
        level=level,
        native_language=native_language,
        activity_idea=activity_idea,
        requirements=requirements,
    )
    generation_mode = Mode(mode.upper())
    if generation_mode == Mode.RECORD and not activity_idea:
        raise click.UsageError("--idea is required in record mode")

    # 配图只随保存的方案持久化，未保存时不请求
    illustrate = save and not no_image
    result = _run(_orchestrator(ctx).draft_plan(user_input, generation_mode, illustrate=illustrate))
    if save:
        result = _library(ctx).save_plan(result)
        click.echo(f"Saved plan {result.id}")
    click.echo(result.model_dump_json(by_alias=True, exclude_none=True, exclude={"image_url"}, indent=2))


@cli.command()
@click.argument("plan_id")
@click.option("--requirements", default="", help="课件需求")
@click.pass_context
def outline(ctx, plan_id, requirements):
    """为已保存的方案生成课件大纲（JSON）。"""
    activity = _load_plan(ctx, plan_id)
    items = _run(_orchestrator(ctx).plan_outline(activity, requirements))
    click.echo(json.dumps([item.model_dump(by_alias=True) for item in items], ensure_ascii=False, indent=2))


@cli.command()
@click.argument("plan_id")
@click.option("--title", default=None, help="课件标题，默认使用方案标题")
@click.option("--style", type=click.Choice([s.value for s in PPTStyle]), default=PPTStyle.INK_WASH.value)
@click.option("--background", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="自定义背景图（自动切换为 CUSTOM_UPLOAD 风格）")
@click.option("--outline", "outline_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="已编辑的大纲 JSON 文件；不提供时自动生成")
@click.option("--requirements", default="", help="自动生成大纲时的需求")
@click.pass_context
def deck(ctx, plan_id, title, style, background, outline_file, requirements):
    """生成课件 (.pptx)。"""
    activity = _load_plan(ctx, plan_id)
    orchestrator = _orchestrator(ctx)

    custom_background = _read_data_uri(background) if background else None
    if custom_background:
        style = PPTStyle.CUSTOM_UPLOAD.value

    if outline_file:
        items = [OutlineItem.model_validate(i) for i in json.loads(outline_file.read_text(encoding="utf-8"))]
    else:
        items = _run(orchestrator.plan_outline(activity, requirements))

    try:
        config = DeckConfig(
            title=title or activity.title,
            style=PPTStyle(style),
            custom_background=custom_background,
            outline=items,
        )
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    _save_artifact(ctx, _run(orchestrator.build_deck(activity, config)))


@cli.command()
@click.argument("plan_id")
@click.option("--type", "types", multiple=True, type=click.Choice([t.value for t in ExerciseType]),
              default=[ExerciseType.MULTIPLE_CHOICE.value, ExerciseType.FILL_IN_BLANK.value], show_default=True)
@click.option("--count", default=3, show_default=True, type=click.IntRange(1, 10), help="每种题型的题目数量")
@click.option("--answer-key/--no-answer-key", default=True, show_default=True)
@click.option("--pinyin", is_flag=True, help="为文本加注拼音")
@click.pass_context
def worksheet(ctx, plan_id, types, count, answer_key, pinyin):
    """生成练习题 (.doc)。"""
    activity = _load_plan(ctx, plan_id)
    config = ExerciseConfig(
        types=[ExerciseType(t) for t in types],
        count=count,
        include_answer_key=answer_key,
        include_pinyin=pinyin,
    )
    _save_artifact(ctx, _run(_orchestrator(ctx).build_worksheet(activity, config)))


def _batch_config(focus_point: str, count: int) -> BatchConfig:
    try:
        return BatchConfig(focus_point=focus_point, count=count)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def _read_scenarios(path: Path) -> list[Scenario]:
    try:
        return [Scenario.model_validate(s) for s in json.loads(path.read_text(encoding="utf-8"))]
    except (ValueError, TypeError) as e:
        raise click.UsageError(f"Invalid scenarios file {path}: {e}") from e


@cli.command()
@click.argument("plan_id")
@click.option("--focus", "focus_point", required=True, help="教学重点")
@click.option("--count", default=3, show_default=True, type=click.IntRange(1, 5))
@click.pass_context
def scenarios(ctx, plan_id, focus_point, count):
    """设计练习情景（JSON），可编辑后交给 `images --scenarios` 生成图片。"""
    activity = _load_plan(ctx, plan_id)
    config = _batch_config(focus_point, count)
    items = _run(_orchestrator(ctx).prepare_batch(activity, config))
    payload = [item.model_dump(include={"description", "dialogue"}) for item in items]
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@cli.command()
@click.argument("plan_id")
@click.option("--focus", "focus_point", required=True, help="教学重点")
@click.option("--count", default=3, show_default=True, type=click.IntRange(1, 5))
@click.option("--scenarios", "scenarios_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="已编辑的情景 JSON 文件；不提供时自动设计")
@click.pass_context
def images(ctx, plan_id, focus_point, count, scenarios_file):
    """生成情景练习图片并打包 (.zip)。"""
    activity = _load_plan(ctx, plan_id)
    config = _batch_config(focus_point, count)
    reviewed = _read_scenarios(scenarios_file) if scenarios_file else None
    if reviewed is not None and not reviewed:
        raise click.UsageError(f"No scenarios in {scenarios_file}")
    orchestrator = _orchestrator(ctx)

    async def run():
        if reviewed is not None:
            items = new_batch(reviewed)
        else:
            items = await orchestrator.prepare_batch(activity, config)
        async for snapshot in orchestrator.stream_image_batch(items):
            done = sum(1 for item in snapshot if item.status in (ScenarioStatus.COMPLETED, ScenarioStatus.FAILED))
            click.echo(f"[{done}/{len(snapshot)}] " + " ".join(item.status.value for item in snapshot))
            items = snapshot
        return items

    items = _run(run())
    try:
        artifact = orchestrator.package_batch(items, activity, config.focus_point)
    except HanyunError as e:
        raise click.ClickException(f"打包下载失败 (Failed to zip files): {e}") from e
    _save_artifact(ctx, artifact)


@cli.group()
def library():
    """管理灵感库。"""


@library.command("list")
@click.option("--collection", "collection_id", default=None, help="只显示指定合集")
@click.pass_context
def list_plans(ctx, collection_id):
    lib = _library(ctx)
    for item in lib.plans_in(collection_id):
        click.echo(f"{item.id}\t{item.title}\t{item.theme or '未分类主题'}\t{lib.collection_label(item)}")


@library.command("show")
@click.argument("plan_id")
@click.pass_context
def show_plan(ctx, plan_id):
    activity = _load_plan(ctx, plan_id)
    click.echo(activity.model_dump_json(by_alias=True, exclude_none=True, exclude={"image_url"}, indent=2))


def _read_changes(path: Path) -> dict:
    """读取字段修改（JSON 对象），键可以是 camelCase 别名或字段名。"""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.UsageError(f"Invalid changes file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise click.UsageError(f"Invalid changes file {path}: expected a JSON object")
    by_alias = {to_camel(name): name for name in ActivityPlan.model_fields}
    return {by_alias.get(key, key): value for key, value in raw.items()}


@library.command("edit")
@click.argument("plan_id")
@click.option("--title", default=None)
@click.option("--rationale", default=None)
@click.option("--simulation-context", default=None)
@click.option("--simulation", default=None)
@click.option("--image-prompt", "image_prompt_description", default=None, help="配图描述")
@click.option("--changes", "changes_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="其余字段的修改（JSON 对象），例如 teachingGoals、steps")
@click.pass_context
def edit_plan(ctx, plan_id, changes_file, **fields):
    """编辑已保存的方案；ID 与创建时间保持不变。"""
    activity = _load_plan(ctx, plan_id)
    changes = _read_changes(changes_file) if changes_file else {}
    changes.update({name: value for name, value in fields.items() if value is not None})
    if not changes:
        raise click.UsageError("Nothing to edit")
    try:
        edited = apply_edits(activity, **changes)
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    _library(ctx).update_plan(edited)
    click.echo(f"Updated {edited.id}: {', '.join(sorted(changes))}")


@library.command("illustrate")
@click.argument("plan_id")
@click.pass_context
def illustrate_plan(ctx, plan_id):
    """重新生成方案配图；失败时保留原图。"""
    activity = _load_plan(ctx, plan_id)
    illustrated = _run(_orchestrator(ctx).illustrate(activity))
    if illustrated.image_url == activity.image_url:
        raise click.ClickException(f"Image generation failed; {plan_id} keeps its previous image")
    _library(ctx).update_plan(illustrated)
    click.echo(f"Illustrated {plan_id}")


@library.command("delete")
@click.argument("plan_id")
@click.confirmation_option(prompt="确定要删除这个灵感吗？ (Are you sure you want to delete?)")
@click.pass_context
def delete_plan(ctx, plan_id):
    if not _library(ctx).delete_plan(plan_id):
        raise click.ClickException(f"Plan {plan_id} not found in the library")
    click.echo(f"Deleted {plan_id}")


@library.command("create-collection")
@click.argument("name")
@click.option("--description", default="")
@click.pass_context
def create_collection(ctx, name, description):
    collection = _library(ctx).create_collection(name, description)
    click.echo(f"Created collection {collection.id}: {collection.name}")


@library.command("collections")
@click.pass_context
def list_collections(ctx):
    lib = _library(ctx)
    for collection in lib.collections:
        count = len(lib.plans_in(collection.id))
        click.echo(f"{collection.id}\t{collection.name}\t{count}")


@library.command("move")
@click.argument("plan_id")
@click.argument("collection_id")
@click.pass_context
def move_plan(ctx, plan_id, collection_id):
    """移动方案到合集；COLLECTION_ID 为空字符串时移出合集。"""
    lib = _library(ctx)
    try:
        moved = lib.move_to_collection(plan_id, collection_id)
    except KeyError:
        raise click.ClickException(f"Plan {plan_id} not found in the library")
    click.echo(f"{moved.id} -> {lib.collection_label(moved)}")


def main(argv: Optional[list[str]] = None):
    cli.main(args=argv, prog_name="hanyun", obj={})


if __name__ == "__main__":
    main()
