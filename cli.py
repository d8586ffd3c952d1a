"""CLI entry point — inspect projects and worlds via Rich console.

Usage:
  python cli.py projects                  # List reconciled projects
  python cli.py worlds                    # List cached worlds
  python cli.py show mainWorld            # World details and objects
  python cli.py find "eaxy-ai"            # Resolve a name, custom link or slug
  python cli.py goto project-world-3      # Navigate (falls back to the hub)
  python cli.py reload                    # Force reload from the definition source
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import Settings
from core.world import World
from world.orchestrator import Orchestrator

console = Console()


async def get_orchestrator(settings: Settings) -> Orchestrator:
    """Bootstrap an initialized orchestrator."""
    orch = Orchestrator(settings=settings)
    with console.status("Loading projects..."):
        await orch.initialize()
    return orch


def _vec(value) -> str:
    if value is None:
        return "-"
    return "(" + ", ".join(f"{v:.2f}" for v in value) + ")"


def _truncate(text: str | None, width: int = 40) -> str:
    if not text:
        return ""
    return text[:width] + "..." if len(text) > width else text


def print_world(world: World) -> None:
    console.print(Panel(
        f"[bold]{world.name}[/]\n"
        f"[dim]{world.description or ''}[/]\n\n"
        f"background={world.background_color} floor={world.floor_color} sky={world.sky_color}\n"
        f"ambient={world.ambient_light_color} x{world.ambient_light_intensity:.2f}  "
        f"directional={world.directional_light_color} x{world.directional_light_intensity:.2f}\n"
        f"camera={_vec(world.camera_position)} target={_vec(world.camera_target)}",
        title=world.id,
        border_style="cyan",
    ))

    table = Table(title=f"Objects ({len(world.objects)})")
    table.add_column("ID", style="bold")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Position")
    table.add_column("Scale")
    for obj in world.objects:
        table.add_row(obj.id, obj.type, _truncate(obj.title, 30), _vec(obj.position), _vec(obj.scale))
    console.print(table)


async def cmd_projects(args, settings: Settings) -> None:
    """List all projects."""
    orch = await get_orchestrator(settings)

    table = Table(title="Projects")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Media", justify="right")
    table.add_column("Assets", justify="right")
    table.add_column("Description")

    for project in orch.get_all_projects():
        status_style = "green" if project.status == "completed" else "yellow"
        table.add_row(
            str(project.id),
            project.name,
            f"[{status_style}]{project.status}[/]",
            project.type,
            str(len(project.media_objects)),
            str(len(project.asset_gallery)),
            _truncate(project.description),
        )

    console.print(table)
    await orch.close()


async def cmd_worlds(args, settings: Settings) -> None:
    """List cached worlds."""
    orch = await get_orchestrator(settings)

    table = Table(title="Worlds")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Objects", justify="right")
    table.add_column("Cards", justify="right")

    for world in orch.get_all_worlds():
        marker = " [cyan]*[/]" if world.id == orch.current_world_id else ""
        table.add_row(world.id + marker, world.name, str(len(world.objects)), str(len(world.project_cards())))

    console.print(table)
    await orch.close()


async def cmd_show(args, settings: Settings) -> None:
    """Show one world."""
    orch = await get_orchestrator(settings)

    world = orch.get_world(args.world_id)
    if world is None:
        console.print(f"[red]World not found: {args.world_id}[/]")
    else:
        print_world(world)

    await orch.close()


async def cmd_find(args, settings: Settings) -> None:
    """Find a project by name, custom link or slug."""
    orch = await get_orchestrator(settings)

    project = orch.get_project_by_name(args.query)
    if project is None:
        console.print(f"[red]No project matches: {args.query}[/]")
    else:
        console.print(Panel(
            f"[bold]{project.name}[/] (id {project.id})\n"
            f"[dim]{project.description}[/]\n\n"
            f"status: {project.status}   type: {project.type}\n"
            f"link: {project.link or '-'}   custom link: {project.custom_link or '-'}",
            title="Project",
            border_style="green",
        ))

    await orch.close()


async def cmd_goto(args, settings: Settings) -> None:
    """Navigate to a world and show where we ended up."""
    orch = await get_orchestrator(settings)

    world_id = await orch.set_current_world_id(args.world_id)
    if world_id != args.world_id:
        console.print(f"[yellow]{args.world_id} could not be resolved; now at {world_id}[/]")
    world = orch.current_world()
    if world is None:
        console.print("[dim]Worlds are still loading.[/]")
    else:
        print_world(world)
        console.print(f"camera target: {_vec(orch.get_camera_target())}")

    await orch.close()


async def cmd_reload(args, settings: Settings) -> None:
    """Force a reload from the definition source."""
    orch = Orchestrator(settings=settings)

    with console.status("Reloading project definitions..."):
        await orch.force_reload()

    console.print(
        f"[green]Reloaded {len(orch.get_all_projects())} projects, "
        f"{len(orch.get_all_worlds())} worlds.[/]"
    )
    await orch.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Portfolio Worlds CLI",
        prog="python cli.py",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # projects
    subparsers.add_parser("projects", help="List projects")

    # worlds
    subparsers.add_parser("worlds", help="List cached worlds")

    # show
    p_show = subparsers.add_parser("show", help="Show a world")
    p_show.add_argument("world_id", help="World id, e.g. mainWorld or project-world-3")

    # find
    p_find = subparsers.add_parser("find", help="Find a project by name, custom link or slug")
    p_find.add_argument("query", help="Name, custom link or slug")

    # goto
    p_goto = subparsers.add_parser("goto", help="Navigate to a world")
    p_goto.add_argument("world_id", help="Target world id")

    # reload
    subparsers.add_parser("reload", help="Force reload from the definition source")

    return parser


def main() -> None:
    settings = Settings()
    Path(settings.LOG_PATH).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[
            logging.FileHandler(settings.LOG_PATH, encoding="utf-8"),
        ],
    )

    parser = build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    cmd_map = {
        "projects": cmd_projects,
        "worlds": cmd_worlds,
        "show": cmd_show,
        "find": cmd_find,
        "goto": cmd_goto,
        "reload": cmd_reload,
    }

    handler = cmd_map.get(args.command)
    if handler:
        asyncio.run(handler(args, settings))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
