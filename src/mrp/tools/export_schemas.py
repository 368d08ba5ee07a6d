from __future__ import annotations
from pathlib import Path
import json
from mrp.engine.models import AbilityMetadata, StatusRecord
from mrp.engine.schema_models import ClauseListAdapter, Condition, StatusWithPercent
from pydantic import TypeAdapter

def export_schemas(out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    schemas = {
        "EffectClauseList.schema.json": ClauseListAdapter.json_schema(),
        "Condition.schema.json": TypeAdapter(Condition).json_schema(),
        "StatusWithPercent.schema.json": StatusWithPercent.model_json_schema(),
        "AbilityMetadata.schema.json": AbilityMetadata.model_json_schema(),
        "StatusRecord.schema.json": StatusRecord.model_json_schema(),
    }
    written = []
    for name, schema in schemas.items():
        path = out_dir / name
        path.write_text(json.dumps(schema, indent=2), encoding="utf-8")
        written.append(path)
    return written

if __name__ == "__main__":
    root = Path(__file__).resolve().parents[3] / "docs" / "schemas"
    export_schemas(root)
    print(f"Exported schemas to {root}")
