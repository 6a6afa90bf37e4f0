"""Command line interface for inspecting, converting and exporting decks."""

from __future__ import annotations

import argparse
import json
import re
import sys
import typing as t
from pathlib import Path
from typing import Self

from slide_toolbox.config import load_config
from slide_toolbox.formats.registry import (
    CodecSelectionError,
    load_document,
    save_document,
)
from slide_toolbox.model.document import Document
from slide_toolbox.model.elements import ImageElement, ShapeElement, TextElement
from slide_toolbox.render.bitmap import render_thumbnail
from slide_toolbox.utils import configure_logging, logger
from slide_toolbox.validation import validate_path

_Handler = t.Callable[[argparse.Namespace, list[str]], int]

_SIZE_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
THUMBNAIL_NAME = "slide-{index:03d}.png"


class CliError(RuntimeError):
    """Raised when CLI arguments cannot be processed."""

    @classmethod
    def unrecognized_arguments(cls, extra: t.Sequence[str]) -> Self:
        joined = " ".join(extra)
        return cls(f"unrecognized arguments: {joined}")

    @classmethod
    def unsupported_command(cls, command: str) -> Self:
        return cls(f"unsupported command: {command}")

    @classmethod
    def invalid_size(cls, value: str) -> Self:
        return cls(f"expected a size like 320x180, got {value!r}")

    @classmethod
    def pdf_expected(cls, path: str) -> Self:
        return cls(f"export target must end in .pdf: {path}")

    @classmethod
    def no_codec(cls, message: str) -> Self:
        return cls(message)


def main(argv: t.Sequence[str] | None = None) -> int:
    """Parse *argv* and dispatch the requested command."""
    parser = _create_parser()
    try:
        args, extra = parser.parse_known_args(argv)
    except SystemExit as exc:  # pragma: no cover - argparse handles usage exits
        code = exc.code
        return code if isinstance(code, int) else 1

    configure_logging("DEBUG" if args.verbose else load_config()["log_level"])
    try:
        handler = _resolve_handler(args.command)
        return handler(args, extra)
    except CliError as exc:
        _write_line(sys.stderr, str(exc))
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.debug("command %s failed", args.command, exc_info=True)
        _write_line(sys.stderr, f"Error: {exc}")
        return 1


def _resolve_handler(command: str) -> _Handler:
    handlers: dict[str, _Handler] = {
        "info": _handle_info,
        "convert": _handle_convert,
        "export": _handle_export,
        "thumbnails": _handle_thumbnails,
    }
    try:
        return handlers[command]
    except KeyError as exc:
        raise CliError.unsupported_command(command) from exc


def _handle_info(args: argparse.Namespace, extra: list[str]) -> int:
    if extra:
        raise CliError.unrecognized_arguments(extra)
    _cmd_info(args.file, as_json=args.json)
    return 0


def _handle_convert(args: argparse.Namespace, extra: list[str]) -> int:
    if extra:
        raise CliError.unrecognized_arguments(extra)
    _cmd_convert(args.source, args.target)
    return 0


def _handle_export(args: argparse.Namespace, extra: list[str]) -> int:
    if extra:
        raise CliError.unrecognized_arguments(extra)
    if Path(args.target).suffix.lower() != ".pdf":
        raise CliError.pdf_expected(args.target)
    _cmd_convert(args.source, args.target)
    return 0


def _handle_thumbnails(args: argparse.Namespace, extra: list[str]) -> int:
    if extra:
        raise CliError.unrecognized_arguments(extra)
    size = _parse_size(args.size) if args.size else None
    _cmd_thumbnails(args.source, args.out_dir, size)
    return 0


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slide-toolbox",
        description="Inspect, convert and export ODP and PPTX presentations.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug messages instead of the configured log level.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info_parser = subparsers.add_parser(
        "info",
        help="Summarise a presentation.",
        description="Print the title, slide sizes and element counts of a presentation.",
    )
    info_parser.add_argument("file", help="ODP or PPTX presentation.")
    info_parser.add_argument("--json", action="store_true", help="Print JSON instead of text.")

    convert_parser = subparsers.add_parser(
        "convert",
        help="Convert a presentation to ODP or PDF.",
    )
    convert_parser.add_argument("source", help="ODP or PPTX presentation.")
    convert_parser.add_argument("target", help="Output path; the suffix selects the format.")

    export_parser = subparsers.add_parser(
        "export",
        help="Export a presentation as PDF, one page per slide.",
    )
    export_parser.add_argument("source", help="ODP or PPTX presentation.")
    export_parser.add_argument("target", help="Output PDF path.")

    thumbs_parser = subparsers.add_parser(
        "thumbnails",
        help="Render PNG thumbnails of every slide.",
    )
    thumbs_parser.add_argument("source", help="ODP or PPTX presentation.")
    thumbs_parser.add_argument(
        "--out-dir",
        required=True,
        help="Directory that receives slide-NNN.png files.",
    )
    thumbs_parser.add_argument(
        "--size",
        help="Maximum thumbnail size as WIDTHxHEIGHT; defaults to the configured size.",
    )

    return parser


def _parse_size(value: str) -> tuple[int, int]:
    match = _SIZE_RE.match(value)
    if match is None:
        raise CliError.invalid_size(value)
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise CliError.invalid_size(value)
    return width, height


def _load(path: str) -> Document:
    try:
        return load_document(path)
    except CodecSelectionError as exc:
        raise CliError.no_codec(str(exc)) from exc


def _cmd_info(path: str, *, as_json: bool) -> None:
    document = _load(path)
    slides = []
    for index, slide in enumerate(document.slides):
        counts = {"text": 0, "shape": 0, "image": 0}
        for element in slide.elements:
            match element:
                case TextElement():
                    counts["text"] += 1
                case ShapeElement():
                    counts["shape"] += 1
                case ImageElement():
                    counts["image"] += 1
        slides.append(
            {
                "index": index,
                "width": round(slide.size.width, 2),
                "height": round(slide.size.height, 2),
                "elements": counts,
            }
        )
    summary = {
        "title": document.title,
        "author": document.metadata.author,
        "slides": len(document.slides),
        "styles": sorted(document.styles),
        "images": len(document.assets),
        "pages": slides,
    }
    if as_json:
        _write_line(sys.stdout, json.dumps(summary, indent=2))
        return
    lines = [
        f"Title: {document.title or '(untitled)'}",
        f"Slides: {len(document.slides)}",
        f"Styles: {', '.join(summary['styles']) or 'none'}",
        f"Images: {len(document.assets)}",
    ]
    for entry in slides:
        counts = entry["elements"]
        lines.append(
            f"  {entry['index'] + 1}: {entry['width']:g}x{entry['height']:g}pt, "
            f"{counts['text']} text, {counts['shape']} shapes, {counts['image']} images"
        )
    _write_lines(sys.stdout, lines)


def _cmd_convert(source: str, target: str) -> None:
    document = _load(source)
    try:
        written = save_document(document, target)
    except CodecSelectionError as exc:
        raise CliError.no_codec(str(exc)) from exc
    _write_line(sys.stdout, str(written))


def _cmd_thumbnails(source: str, out_dir: str, size: tuple[int, int] | None) -> None:
    document = _load(source)
    directory = validate_path(out_dir)
    directory.mkdir(parents=True, exist_ok=True)
    written: list[str] = []
    for index in range(len(document.slides)):
        image = render_thumbnail(document, index, size)
        path = directory / THUMBNAIL_NAME.format(index=index + 1)
        image.save(path, format="PNG")
        written.append(str(path))
    _write_lines(sys.stdout, written)


def _write_line(stream: t.TextIO, text: str) -> None:
    stream.write(f"{text}\n")


def _write_lines(stream: t.TextIO, lines: t.Iterable[str]) -> None:
    collected = list(lines)
    if not collected:
        return
    stream.write("\n".join(collected) + "\n")


__all__ = ["CliError", "main"]
