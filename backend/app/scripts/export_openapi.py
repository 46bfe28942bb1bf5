from __future__ import annotations

import json
import sys
from pathlib import Path

from backend.app.main import app
from backend.app.services.tool_dispatcher import TOOL_DESCRIPTIONS, TOOL_INPUT_MODELS


def build_tool_manifest() -> list[dict[str, object]]:
    """Tool definitions in the name/description/inputSchema shape tool-use clients expect."""
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": TOOL_INPUT_MODELS[name].model_json_schema(),
        }
        for name, description in TOOL_DESCRIPTIONS.items()
    ]


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    openapi_dir = Path(args[0]) if args else Path("openapi")
    openapi_dir.mkdir(parents=True, exist_ok=True)

    schema_path = openapi_dir / "openapi.json"
    schema_path.write_text(json.dumps(app.openapi(), indent=2), encoding="utf-8")
    manifest_path = openapi_dir / "tools.json"
    manifest_path.write_text(json.dumps(build_tool_manifest(), indent=2), encoding="utf-8")
    print(f"Wrote OpenAPI schema to {schema_path} and tool manifest to {manifest_path}")


if __name__ == "__main__":
    main()
