#!/usr/bin/env python3
"""
Example: Score a Study from Python

Runs the full pipeline on pasted study text (or a URL, DOI or PDF path
given on the command line) and prints the trust score and critique.

Requirements:
    pip install -e .
    export OPENAI_API_KEY=...

Usage:
    python examples/analyze_text.py
    python examples/analyze_text.py --doi 10.1056/NEJMoa2034577
    python examples/analyze_text.py --url https://example.org/study.html
    python examples/analyze_text.py --pdf paper.pdf
"""

import argparse
import asyncio
import base64
import sys
from pathlib import Path

from studytrust.core.exceptions import AnalysisFailedError
from studytrust.core.schemas import AnalysisRequest
from studytrust.observability.log_setup import configure_logging
from studytrust.orchestration.pipeline import analyze_study

SAMPLE_TEXT = """\
Title: Daily Walking and Blood Pressure in Older Adults: A Randomized Controlled Trial

Abstract
We randomly assigned 412 adults aged 65 years or older to a supervised walking
program or usual care for 12 weeks. Systolic blood pressure fell by 6.1 mmHg in
the walking group versus 1.4 mmHg with usual care (p < 0.001) (Smith et al., 2019).

Methods
Participants were recruited from three community clinics. Allocation was
concealed and outcome assessors were blinded [1].

References
1. Smith et al., 2019. Exercise and hypertension. J Hypertens.
"""


def build_request(args: argparse.Namespace) -> AnalysisRequest:
    if args.url:
        return AnalysisRequest(input_type="url", content=args.url)
    if args.doi:
        return AnalysisRequest(input_type="doi", content=args.doi)
    if args.pdf:
        data = Path(args.pdf).read_bytes()
        return AnalysisRequest(
            input_type="pdf",
            content=base64.b64encode(data).decode("ascii"),
            file_name=Path(args.pdf).name,
        )
    return AnalysisRequest(input_type="text", content=SAMPLE_TEXT)


async def main() -> int:
    """Analyze one study and print a short report."""
    parser = argparse.ArgumentParser(description="Score a scientific study")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--url", help="Study URL")
    group.add_argument("--doi", help="Study DOI")
    group.add_argument("--pdf", help="Path to a study PDF")
    args = parser.parse_args()

    configure_logging()
    request = build_request(args)

    print(f"🔬  Analyzing {request.input_type} input...")
    try:
        result = await analyze_study(request)
    except AnalysisFailedError as e:
        print(f"❌  {e.user_message}")
        return 1

    score = result.trust_score
    print(f"✅  Trust score: {score.overall}/100 ({score.rating.value})")
    print(f"    Adjustment factor: {score.adjustment:.2f}")
    print()

    print("📊  Breakdown:")
    for category, category_score in score.breakdown.by_category().items():
        print(
            f"    {category.value:22s} {category_score.score:4.1f}/{category_score.max_score:<4.1f}"
            f" ({category_score.percentage}%)"
        )
    print()

    metadata = result.metadata
    print(f"📄  Title: {metadata.title or 'unknown'}")
    print(f"    Study type: {metadata.study_type.value if metadata.study_type else 'unknown'}")
    if metadata.unverified_fields:
        print(f"    Unverified: {', '.join(metadata.unverified_fields)}")
    print()

    print("📝  Summary:")
    print(f"    {result.simple_summary}")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
