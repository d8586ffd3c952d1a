from rich.console import Console

import cli
from world.materializer import build_hub_world


def test_parser_knows_every_command():
    parser = cli.build_parser()
    assert parser.parse_args(["projects"]).command == "projects"
    assert parser.parse_args(["show", "mainWorld"]).world_id == "mainWorld"
    assert parser.parse_args(["find", "eaxy-ai"]).query == "eaxy-ai"
    assert parser.parse_args(["goto", "project-world-3"]).world_id == "project-world-3"
    assert parser.parse_args(["reload"]).command == "reload"
    assert parser.parse_args([]).command is None


def test_print_world_renders_objects(monkeypatch):
    console = Console(record=True, width=160)
    monkeypatch.setattr(cli, "console", console)

    cli.print_world(build_hub_world([]))

    output = console.export_text()
    assert "mainWorld" in output
    assert "Portfolio Main World" in output
    assert "Objects (0)" in output
