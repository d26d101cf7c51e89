import yaml
from typing import Any, Dict

from jsonparquet.canonical.field_spec import ParquetFieldSpec


def to_schema_dict(spec: ParquetFieldSpec) -> Dict[str, Any]:
    """
    Human-readable dictionary form of a compiled field.
    """
    field: Dict[str, Any] = {
        "name": spec.name,
        "type": spec.physical_type,
        "repetition": spec.repetition,
    }
    if spec.in_name:
        field["inname"] = spec.in_name
    if spec.logical_annotation:
        field["annotation"] = spec.logical_annotation
    if spec.metadata.description:
        field["description"] = spec.metadata.description
    if spec.metadata.enum is not None:
        field["enum"] = list(spec.metadata.enum)
    if spec.metadata.fallback_from:
        field["lossy_from"] = spec.metadata.fallback_from
    if spec.children:
        field["fields"] = [to_schema_dict(child) for child in spec.children]
    return field


class YAMLSchemaExporter:
    """
    Exports a compiled Parquet schema into YAML format.
    """

    def __init__(self, schema: ParquetFieldSpec):
        """
        :param schema: Root of a compiled schema tree
        """
        self.schema = schema

    def export_to_string(self) -> str:
        """
        Export schema as YAML string
        """
        return yaml.safe_dump(
            to_schema_dict(self.schema),
            sort_keys=False,
            default_flow_style=False,
        )

    def export_to_file(self, file_path: str):
        """
        Export schema to YAML file
        """
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.export_to_string())
