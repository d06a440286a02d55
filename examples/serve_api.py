#!/usr/bin/env python3
"""
Example: Serve the StudyTrust API

Starts the FastAPI app with uvicorn. The pipeline, including its analysis
cache, is built on the first request and lives as long as the process.

Requirements:
    pip install -e ".[server]"
    export OPENAI_API_KEY=...

Usage:
    python examples/serve_api.py --port 8000
    curl -X POST localhost:8000/analyze \\
        -H 'Content-Type: application/json' \\
        -d '{"input_type": "doi", "content": "10.1056/NEJMoa2034577"}'
"""

import argparse

import uvicorn

from studytrust.api import create_app
from studytrust.observability.log_setup import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the StudyTrust API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    configure_logging()
    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
