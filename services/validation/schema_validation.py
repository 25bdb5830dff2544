# services/validation/schema_validation.py
from functools import lru_cache
from pathlib import Path
import json
import jsonschema

REPO_ROOT = Path(__file__).resolve().parents[2]
SCHEMA_DIR = REPO_ROOT / "config" / "schemas"


@lru_cache(maxsize=8)
def _load_schema(name: str) -> dict:
    schema_path = SCHEMA_DIR / f"{name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")
    return json.loads(schema_path.read_text(encoding="utf-8"))


def validate_with_schema(data: dict, name: str):
    try:
        schema = _load_schema(name)
    except (OSError, ValueError) as e:
        return False, str(e)

    try:
        jsonschema.validate(instance=data, schema=schema)
        return True, "Valid"
    except jsonschema.exceptions.ValidationError as e:
        loc = "/".join(str(p) for p in e.absolute_path)
        return False, f"{loc}: {e.message}" if loc else e.message
