"""Export JSON schemas for Document, SignatureData and LegacyReceipt."""

import json
from pathlib import Path

from backend.esign.models import DocumentView, LegacyReceipt, SignatureData


def main() -> None:
    """Export schemas to docs/schemas/."""
    schemas_dir = Path("docs/schemas")
    schemas_dir.mkdir(parents=True, exist_ok=True)

    for name, model in (
        ("Document", DocumentView),
        ("SignatureData", SignatureData),
        ("LegacyReceipt", LegacyReceipt),
    ):
        schema_path = schemas_dir / f"{name}.schema.json"
        with open(schema_path, "w", encoding="utf-8") as f:
            json.dump(model.model_json_schema(by_alias=True), f, indent=2, ensure_ascii=False)
        print(f"Exported {name} schema to {schema_path}")


if __name__ == "__main__":
    main()
