import argparse
import os
import sys
from dataclasses import replace
from typing import List, Optional

from jsonparquet.adapters.json_schema_adapter import JSONSchemaAdapter
from jsonparquet.codec.reader import read_records
from jsonparquet.codec.records import records_from_json_text, records_to_json
from jsonparquet.codec.writer import write_records
from jsonparquet.execution.settings import CodecSettings
from jsonparquet.outputs.tag_schema import parse_tag_schema, to_tag_json
from jsonparquet.outputs.yaml_schema_exporter import YAMLSchemaExporter
from jsonparquet.pipeline.schema_compiler import SchemaCompiler
from jsonparquet.utils.exceptions import JsonParquetError


class C:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"


def cprint(text: str, color: str = C.RESET, bold: bool = False):
    # Status lines go to stderr so stdout stays machine-readable
    if not sys.stderr.isatty():
        print(text, file=sys.stderr)
        return
    prefix = (C.BOLD if bold else "") + color
    print(f"{prefix}{text}{C.RESET}", file=sys.stderr)


def _compile(schema_path: str, name: Optional[str], settings: CodecSettings):
    document = JSONSchemaAdapter(schema_path, entity_name=name).parse()
    diagnostics = []
    schema = SchemaCompiler(strict=settings.strict).compile(
        document.root,
        document.definitions,
        name=document.name,
        diagnostics=diagnostics,
    )
    for diagnostic in diagnostics:
        cprint(f"[{diagnostic.severity}] {diagnostic.message}", C.YELLOW)
    return schema


def _load_schema(args: argparse.Namespace, settings: CodecSettings):
    if getattr(args, "tag_schema", None):
        with open(args.tag_schema, "r", encoding="utf-8") as f:
            return parse_tag_schema(f.read())
    return _compile(args.schema, args.name, settings)


# ==================================================
# COMMANDS
# ==================================================

def cmd_compile(args: argparse.Namespace, settings: CodecSettings):
    schema = _compile(args.schema, args.name, settings)
    if args.format == "yaml":
        print(YAMLSchemaExporter(schema).export_to_string())
    else:
        print(to_tag_json(schema, indent=2))


def cmd_write(args: argparse.Namespace, settings: CodecSettings):
    schema = _load_schema(args, settings)
    with open(args.records, "r", encoding="utf-8-sig") as f:
        records = records_from_json_text(f.read())

    payload = write_records(
        records,
        schema,
        row_group_parallelism=settings.row_group_parallelism,
        row_group_size=settings.row_group_size,
        compression=settings.compression,
    )

    os.makedirs(os.path.dirname(os.path.abspath(args.output)), exist_ok=True)
    with open(args.output, "wb") as f:
        f.write(payload)
    cprint(f"[DONE] {len(records)} records written to {args.output}", C.GREEN, bold=True)


def cmd_read(args: argparse.Namespace, settings: CodecSettings):
    schema = None
    if args.schema or args.tag_schema:
        schema = _load_schema(args, settings)

    with open(args.input, "rb") as f:
        payload = f.read()

    text = records_to_json(read_records(payload, schema), lines=True)
    if text:
        print(text)


def _settings_options(suppress: bool) -> argparse.ArgumentParser:
    # Accepted before or after the sub-command; SUPPRESS keeps the
    # sub-command from overwriting a value given globally
    extra = {"default": argparse.SUPPRESS} if suppress else {}
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument("--config", help="YAML settings file", **extra)
    options.add_argument("--strict", action="store_true", help="Abort on the first schema error", **extra)
    options.add_argument("--name", help="Root schema name (defaults to the schema file name)", **extra)
    options.add_argument("--parallelism", type=int, help="Row groups encoded concurrently", **extra)
    options.add_argument("--row-group-size", type=int, help="Rows per row group", **extra)
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="JSON Schema to Parquet accelerator CLI",
        parents=[_settings_options(suppress=False)],
    )
    shared = [_settings_options(suppress=True)]

    sub = parser.add_subparsers(dest="command", required=True)

    p_compile = sub.add_parser("compile", parents=shared, help="Compile a JSON Schema into a Parquet tag schema")
    p_compile.add_argument("schema", help="JSON Schema file")
    p_compile.add_argument("--format", default="json", choices=["json", "yaml"])
    p_compile.set_defaults(func=cmd_compile)

    p_write = sub.add_parser("write", parents=shared, help="Write JSON / JSONL records to a Parquet file")
    p_write.add_argument("schema", nargs="?", help="JSON Schema file")
    p_write.add_argument("records", help="JSON array or JSONL records file")
    p_write.add_argument("output", help="Parquet output path")
    p_write.add_argument("--tag-schema", help="Use a tag schema file instead of a JSON Schema")
    p_write.set_defaults(func=cmd_write)

    p_read = sub.add_parser("read", parents=shared, help="Print Parquet rows as JSON lines")
    p_read.add_argument("input", help="Parquet file")
    p_read.add_argument("--schema", help="JSON Schema to read with")
    p_read.add_argument("--tag-schema", help="Tag schema to read with")
    p_read.set_defaults(func=cmd_read)

    return parser


def _settings_from_args(args: argparse.Namespace) -> CodecSettings:
    settings = CodecSettings.from_yaml(args.config) if args.config else CodecSettings()
    settings = settings.with_env()

    overrides = {}
    if args.strict:
        overrides["strict"] = True
    if args.parallelism is not None:
        overrides["row_group_parallelism"] = args.parallelism
    if args.row_group_size is not None:
        overrides["row_group_size"] = args.row_group_size
    if overrides:
        settings = replace(settings, **overrides)
    return settings


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "write" and not (args.schema or args.tag_schema):
        parser.error("write needs a JSON Schema file or --tag-schema")

    try:
        settings = _settings_from_args(args)
        args.func(args, settings)
    except (JsonParquetError, OSError, ValueError) as e:
        cprint(f"\n[FAILED] {args.command} failed.", C.RED, bold=True)
        cprint(str(e), C.RED)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
