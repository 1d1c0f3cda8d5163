#!/usr/bin/env python3
"""Export the OpenAPI schema of the classifier API to a JSON file."""

import argparse
import json
from pathlib import Path

from app.main import app

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--output", default=str(Path(__file__).parent / "openapi.json"))
    args = parser.parse_args()

    output_path = Path(args.output)
    openapi_schema = app.openapi()

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2, ensure_ascii=False)

    print(f"OpenAPI schema exported to: {output_path}")
