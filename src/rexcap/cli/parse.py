"""CLI entrypoints decoding text line by line."""
from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Iterator, List, Optional

import typer

from ..cache import compile_or_get
from ..captures import group_names
from ..config import get_settings
from ..decoder import decode_record
from ..errors import CompileError, DecodeError
from ..registry import ShapeRegistry, load_shapes, parse_field_decl
from ..shapes import STRING, FieldSpec, OptionalOf, RecordShape
from ..utils.logging import configure_json_logger, decode_error_fields, flush_handlers, log_event

__all__ = ["inspect_command", "parse_command"]


def _fail(message: str, *, code: int = 2) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=code)


def _record_shapes(shape: RecordShape) -> Iterator[RecordShape]:
    """``shape`` and every record shape nested below it, each once."""

    seen: set[int] = set()
    pending = [shape]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for spec in current.fields:
            inner = spec.shape.inner if isinstance(spec.shape, OptionalOf) else spec.shape
            if isinstance(inner, RecordShape):
                pending.append(inner)


def _build_shape(
    pattern: Optional[str],
    field_decls: List[str],
    shapes_path: Optional[Path],
    shape_name: Optional[str],
) -> RecordShape:
    registry: Optional[ShapeRegistry] = None
    if shapes_path is not None or shape_name is not None:
        registry = load_shapes(shapes_path)

    if pattern is None:
        if registry is None or shape_name is None:
            _fail("Provide either --pattern or --shape (with --shapes or REXCAP_SHAPES_PATH)")
        shape = registry[shape_name]  # type: ignore[index]
    elif field_decls:
        fields = [parse_field_decl(decl, registry.shapes if registry else None) for decl in field_decls]
        shape = RecordShape("cli", pattern, fields)
    else:
        # no declarations: every group as an optional string
        fields = [FieldSpec(name, STRING, optional=True) for name in group_names(compile_or_get(pattern))]
        shape = RecordShape("cli", pattern, fields)

    # every pattern compiles before the first line is read
    for record in _record_shapes(shape):
        compile_or_get(record.pattern)
    return shape


def parse_command(
    input_path: str = typer.Argument("-", help="Text file to decode ('-' for stdin)"),
    pattern: Optional[str] = typer.Option(None, "--pattern", "-p", help="Regex with named capture groups"),
    field_decls: List[str] = typer.Option(
        [],
        "--field",
        "-f",
        help="Field declaration 'name[=group]:type[?]' (repeatable)",
    ),
    shapes_path: Optional[Path] = typer.Option(
        None,
        "--shapes",
        exists=True,
        dir_okay=False,
        help="YAML/TOML/JSON shape table",
    ),
    shape_name: Optional[str] = typer.Option(None, "--shape", help="Name of the shape to decode with"),
    output: Optional[Path] = typer.Option(
        None, "--output", dir_okay=False, help="Destination JSONL (default: stdout)"
    ),
    strict: bool = typer.Option(
        False,
        "--strict/--skip-unmatched",
        help="Stop at the first line that fails to decode instead of skipping it",
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", dir_okay=False, help="JSONL file receiving structured log events"
    ),
) -> None:
    """Decode every non-blank line into one JSON object per output line."""

    settings = get_settings()
    logger = configure_json_logger(log_file or settings.log_path, settings.log_level_number)

    try:
        shape = _build_shape(pattern, field_decls, shapes_path, shape_name)
    except CompileError as exc:
        _fail(str(exc))
    except (ValueError, KeyError, FileNotFoundError) as exc:
        _fail(str(exc).strip("'\""))

    trace_id = log_event(logger, "parse.start", input=input_path, shape=shape.name, pattern=shape.pattern)
    lines = decoded = skipped = 0

    with ExitStack() as stack:
        source: IO[str]
        if input_path == "-":
            source = typer.get_text_stream("stdin")
        else:
            path = Path(input_path)
            if not path.is_file():
                _fail(f"Input file '{input_path}' does not exist")
            source = stack.enter_context(path.open("r", encoding="utf-8"))
        sink: IO[str]
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            sink = stack.enter_context(output.open("w", encoding="utf-8"))
        else:
            sink = typer.get_text_stream("stdout")

        for line_no, line in enumerate(source, start=1):
            text = line.rstrip("\r\n")
            if not text.strip():
                continue
            lines += 1
            try:
                record = decode_record(shape, text)
            except CompileError as exc:
                # patterns are compiled before the loop; never retried per line
                flush_handlers(logger)
                _fail(str(exc))
            except DecodeError as exc:
                level = logging.ERROR if strict else logging.WARNING
                log_event(logger, "parse.line_error", trace_id=trace_id, level=level, error=exc, line=line_no)
                if strict:
                    flush_handlers(logger)
                    payload = {"line": line_no, **decode_error_fields(exc)}
                    _fail(json.dumps(payload, ensure_ascii=False), code=1)
                skipped += 1
                continue
            sink.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
            decoded += 1
        sink.flush()

    summary = {
        "lines": lines,
        "decoded": decoded,
        "skipped": skipped,
        "output": str(output) if output else "stdout",
    }
    log_event(logger, "parse.completed", trace_id=trace_id, **summary)
    flush_handlers(logger)
    typer.echo(json.dumps(summary, ensure_ascii=False), err=True)


def inspect_command(pattern: str = typer.Argument(..., help="Pattern to inspect")) -> None:
    """List the named groups of a pattern in declaration order."""

    try:
        compiled = compile_or_get(pattern)
    except CompileError as exc:
        typer.echo(
            json.dumps({"pattern": pattern, "error": exc.reason, "position": exc.position}, ensure_ascii=False),
            err=True,
        )
        raise typer.Exit(code=1)
    typer.echo(json.dumps({"pattern": pattern, "groups": group_names(compiled)}, indent=2, ensure_ascii=False))


