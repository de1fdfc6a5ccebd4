from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from pixel_relation.export import DEFAULT_BACKGROUND_HEX, ExportOptions, suggested_filename
from pixel_relation.io import image_to_grid, save_bitmap, write_relation_json
from pixel_relation.models import GRID_SIZES, InvalidIndex
from pixel_relation.session import EditSession


def _parse_rect(value: str) -> tuple[int, int, int, int]:
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(f"expected x0,y0,x1,y1 but got '{value}'")
    try:
        x0, y0, x1, y1 = (int(part) for part in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"rectangle corners must be integers: '{value}'") from exc
    return x0, y0, x1, y1


def _parse_scale(value: str) -> float:
    try:
        scale = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid scale '{value}'") from exc
    if scale <= 0:
        raise argparse.ArgumentTypeError("scale must be positive")
    return int(scale) if scale.is_integer() else scale


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixel-relation",
        description="Recolor a pixel-art selection relative to a base pixel.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    recolor = subparsers.add_parser(
        "recolor",
        help="Re-derive the selected cells from a new base color and export a PNG.",
    )
    recolor.add_argument("--image", required=True, help="Path or URL to the input image.")
    recolor.add_argument(
        "--grid-size",
        type=int,
        default=GRID_SIZES[0],
        choices=GRID_SIZES,
        help="Side length of the pixel grid.",
    )
    recolor.add_argument(
        "--select",
        type=_parse_rect,
        action="append",
        default=None,
        metavar="X0,Y0,X1,Y1",
        help="Inclusive cell rectangle to select. Repeatable. Defaults to the whole grid.",
    )
    recolor.add_argument(
        "--base",
        type=int,
        default=None,
        help="Index of the base cell. Defaults to the first selected cell.",
    )
    recolor.add_argument("--color", required=True, help="New base color as hex.")
    recolor.add_argument(
        "--keep-lightness",
        action="store_true",
        help="Keep the base cell's saturation and lightness, only take the hue of --color.",
    )
    recolor.add_argument(
        "--background",
        default=None,
        help=f"Flatten onto this hex color (e.g. {DEFAULT_BACKGROUND_HEX}). Transparent if omitted.",
    )
    recolor.add_argument(
        "--only-selected",
        action="store_true",
        help="Leave unselected cells transparent in the export.",
    )
    recolor.add_argument(
        "--scale",
        type=_parse_scale,
        default=1,
        help="Nearest-neighbor upscale factor for the export.",
    )
    recolor.add_argument(
        "--out",
        default=None,
        help="Output PNG path. Defaults to a name derived from the grid size.",
    )
    recolor.add_argument(
        "--relation-out",
        default=None,
        help="Optional JSON path for the extracted color relation.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    if args.command == "recolor":
        grid = image_to_grid(args.image, args.grid_size)
        session = EditSession(grid, keep_lightness=args.keep_lightness)
        if args.select:
            for rect in args.select:
                session.select_rect(*rect)
        else:
            session.select_all()

        try:
            session.confirm(args.base)
            session.set_base_color(args.color)
            options = ExportOptions(
                background="color" if args.background else "transparent",
                background_hex=args.background or DEFAULT_BACKGROUND_HEX,
                only_selected=args.only_selected,
                scale=args.scale,
            )
        except (InvalidIndex, ValueError) as exc:
            parser.error(str(exc))

        bitmap = session.export(options)
        out = args.out or suggested_filename(grid.size, args.only_selected)
        path = save_bitmap(bitmap, out)

        if args.relation_out and session.relation is not None:
            write_relation_json(session.relation, args.relation_out)

        print(
            json.dumps(
                {
                    "output": str(Path(path)),
                    "width": int(bitmap.shape[1]),
                    "height": int(bitmap.shape[0]),
                    "base_index": session.base_index,
                    "base_color": session.base_color,
                    "selected": grid.selected_count(),
                },
                indent=2,
            )
        )
        return

    parser.error("unknown command")


if __name__ == "__main__":
    main()
