"""JSON output utilities with schema validation."""

import json
from pathlib import Path
from typing import Any

from provcheck.schemas.validator import validate_data


def write_json_strict(
    *,
    data: dict[str, Any] | list[Any],
    output_path: Path,
    schema_name: str,
) -> None:
    """Validate data against a packaged schema, then write it as indented JSON.

    Nothing is written when validation fails.

    Raises:
        ValueError: If data does not match the schema
    """
    validate_data(data, schema_name, strict=True)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
