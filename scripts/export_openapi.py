#!/usr/bin/env python3
"""
Export OpenAPI specification from the StudyTrust FastAPI application.

Writes docs/openapi.json from the app's live schema; no server or API key
required.

Usage:
    python scripts/export_openapi.py                     # -> docs/openapi.json
    python scripts/export_openapi.py --output spec.json  # custom path
"""

import argparse
import json
from pathlib import Path

from studytrust.api import create_app

DEFAULT_OUTPUT = Path(__file__).resolve().parent.parent / "docs" / "openapi.json"


def export_openapi(output_path: Path = DEFAULT_OUTPUT) -> dict:
    """Export the OpenAPI schema.

    Args:
        output_path: File path to write

    Returns:
        The OpenAPI schema dict
    """
    schema = create_app().openapi()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(schema, indent=2), encoding="utf-8")

    print(f"✅ OpenAPI spec exported to: {output_path}")
    for path, methods in sorted(schema.get("paths", {}).items()):
        for method in methods:
            print(f"     {method.upper():6s} {path}")
    return schema


def main() -> None:
    parser = argparse.ArgumentParser(description="Export StudyTrust OpenAPI spec")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=DEFAULT_OUTPUT,
        help="Output file path (default: docs/openapi.json)",
    )
    args = parser.parse_args()

    schema = export_openapi(args.output)
    schemas_count = len(schema.get("components", {}).get("schemas", {}))
    print(f"\n📊 Summary: {len(schema.get('paths', {}))} paths, {schemas_count} schemas")


if __name__ == "__main__":
    main()
