import os
from typing import Dict

import yaml

from jsonparquet.adapters.json_schema_adapter import JSONSchemaAdapter
from jsonparquet.codec.records import records_from_json_text
from jsonparquet.codec.writer import write_records
from jsonparquet.execution.settings import CodecSettings
from jsonparquet.observability.logger import RequestTimer, generate_request_id, log_event
from jsonparquet.outputs.tag_schema import to_tag_json
from jsonparquet.pipeline.schema_compiler import SchemaCompiler


class ConfigExecutor:
    """
    Executes compile + write using a YAML job configuration.

    Example config:

        schema: schemas/person.json
        records: data/people.jsonl
        output: out/people.parquet
        tag_output: out/people.tags.json   # optional
        settings:
          root_name: person
          row_group_size: 5000
          row_group_parallelism: 4
          strict: false
    """

    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()
        self.settings = CodecSettings.from_dict(self.config.get("settings")).with_env()

    # ------------------------------------------
    # Load YAML
    # ------------------------------------------
    def _load_config(self) -> Dict:
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        for key in ("schema", "records", "output"):
            if not config.get(key):
                raise ValueError(f"Config is missing required key: {key}")
        return config

    def _resolve(self, path: str) -> str:
        # Relative paths are relative to the config file
        if os.path.isabs(path):
            return path
        return os.path.join(os.path.dirname(os.path.abspath(self.config_path)), path)

    # ------------------------------------------
    # Execute Pipeline
    # ------------------------------------------
    def execute(self) -> Dict:
        request_id = generate_request_id()
        timer = RequestTimer()
        settings = self.settings

        log_event("CONFIG_EXECUTION_STARTED", {
            "request_id": request_id,
            "config": self.config_path,
        })

        document = JSONSchemaAdapter(
            self._resolve(self.config["schema"]),
            entity_name=settings.root_name,
        ).parse()

        diagnostics = []
        schema = SchemaCompiler(strict=settings.strict).compile(
            document.root,
            document.definitions,
            name=document.name,
            diagnostics=diagnostics,
        )

        with open(self._resolve(self.config["records"]), "r", encoding="utf-8-sig") as f:
            records = records_from_json_text(f.read())

        payload = write_records(
            records,
            schema,
            row_group_parallelism=settings.row_group_parallelism,
            row_group_size=settings.row_group_size,
            compression=settings.compression,
        )

        self._save_outputs(payload, schema)

        result = {
            "request_id": request_id,
            "schema": document.name,
            "rows": len(records),
            "bytes": len(payload),
            "output": self._resolve(self.config["output"]),
            "diagnostics": [d.to_dict() for d in diagnostics],
            "duration_seconds": timer.duration(),
        }
        log_event("CONFIG_EXECUTION_COMPLETED", result)
        return result

    # ------------------------------------------
    # Save Outputs
    # ------------------------------------------
    def _save_outputs(self, payload: bytes, schema):
        output = self._resolve(self.config["output"])
        os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
        with open(output, "wb") as f:
            f.write(payload)

        if self.config.get("tag_output"):
            tag_output = self._resolve(self.config["tag_output"])
            os.makedirs(os.path.dirname(tag_output) or ".", exist_ok=True)
            with open(tag_output, "w", encoding="utf-8") as f:
                f.write(to_tag_json(schema, indent=2))
