"""CLI entrypoints for rendering cards, listing themes and inspecting settings."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from cardforge_core import load_config
from cardforge_core.logging_setup import configure_logging, get_logger
from cardforge_renderer import CardEngine, CardForgeError, get_theme, list_themes, validate_layout

FORMATS = ["png", "jpeg", "webp"]


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _read_json(path: str) -> Any:
    return json.loads(Path(path).expanduser().read_text(encoding="utf-8"))


def _fail(exc: CardForgeError, event: str) -> int:
    get_logger("cli").error(str(exc), extra={"event": event})
    _print_json({"success": False, "error": exc.to_dict()})
    return 2


def _config_arg(args: argparse.Namespace):
    return load_config(Path(args.config).expanduser()) if getattr(args, "config", None) else load_config()


def cmd_render(args: argparse.Namespace) -> int:
    cfg = _config_arg(args)
    engine = CardEngine(cfg)
    layout = _read_json(args.layout)
    data = _read_json(args.data) if args.data else None

    try:
        validate_layout(layout)
        theme = get_theme(args.theme, strict=True) if args.theme else None
        card = engine.render(
            layout,
            data,
            width=args.width,
            height=args.height,
            dpi=args.dpi,
            format=args.format,
            theme=theme,
        )
    except CardForgeError as exc:
        return _fail(exc, "render_failed")

    out = Path(args.out).expanduser() if args.out else Path(args.layout).with_suffix("." + card.format)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(card.bytes)

    _print_json(
        {
            "success": True,
            "output": str(out),
            "width": card.width,
            "height": card.height,
            "mime_type": card.mime_type,
            "bytes": len(card.bytes),
            "cache": asdict(engine.assets.get_stats()),
        }
    )
    return 0


def cmd_themes(args: argparse.Namespace) -> int:
    if args.name:
        try:
            _print_json(get_theme(args.name, strict=True))
        except CardForgeError as exc:
            return _fail(exc, "theme_lookup_failed")
    else:
        _print_json(list_themes())
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        validate_layout(_read_json(args.layout))
    except CardForgeError as exc:
        return _fail(exc, "layout_invalid")
    _print_json({"success": True, "layout": args.layout})
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    _print_json(asdict(_config_arg(args)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cardforge", description="Render layout-driven card images")
    parser.add_argument("--config", default=None, help="Optional path to a config JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Render a layout JSON file to an image")
    render_cmd.add_argument("layout", help="Path to layout JSON")
    render_cmd.add_argument("--data", default=None, help="Path to JSON with token overrides")
    render_cmd.add_argument("--theme", default=None, help="Built-in theme name")
    render_cmd.add_argument("--out", default=None, help="Output file (defaults next to the layout)")
    render_cmd.add_argument("--format", default=None, choices=FORMATS)
    render_cmd.add_argument("--dpi", type=float, default=None)
    render_cmd.add_argument("--width", type=float, default=None)
    render_cmd.add_argument("--height", type=float, default=None)
    render_cmd.set_defaults(func=cmd_render)

    themes_cmd = sub.add_parser("themes", help="List built-in themes or print one")
    themes_cmd.add_argument("name", nargs="?", default=None)
    themes_cmd.set_defaults(func=cmd_themes)

    validate_cmd = sub.add_parser("validate", help="Check the structure of a layout JSON file")
    validate_cmd.add_argument("layout", help="Path to layout JSON")
    validate_cmd.set_defaults(func=cmd_validate)

    config_cmd = sub.add_parser("config", help="Print effective settings")
    config_cmd.set_defaults(func=cmd_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging(console=False)
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
