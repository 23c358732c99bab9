from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.pipeline.cache import build_cache_store  # noqa: E402
from app.services.analysis_service import run_analysis  # noqa: E402
from app.services.pdf_service import extract_text_from_pdf  # noqa: E402


def _read_profile(path: Path) -> str:
    if path.suffix.lower() == ".pdf":
        return extract_text_from_pdf(path.read_bytes())
    return path.read_text(encoding="utf-8", errors="replace")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the automation-risk analysis on a local resume file.")
    parser.add_argument("path", help="Resume file (.pdf or plain text)")
    parser.add_argument("--model", default=None, help="Model id, e.g. gemini-2.5-flash or gpt-4o-mini")
    parser.add_argument(
        "--cache",
        choices=["sqlite", "memory"],
        default=None,
        help="Cache backend override (defaults to CACHE_BACKEND).",
    )
    parser.add_argument("--out", default=None, help="Write the report JSON here instead of stdout")
    args = parser.parse_args()

    profile_text = _read_profile(Path(args.path))
    result = asyncio.run(
        run_analysis(profile_text, args.model, cache=build_cache_store(args.cache))
    )
    report = json.dumps(result.report.to_payload(), indent=2, ensure_ascii=False)

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(report + "\n", encoding="utf-8")
    else:
        print(report)
    source = "cache" if result.cache_hit else result.model
    print(f"final score {result.report.final_score:g}/10 ({source})", file=sys.stderr)


if __name__ == "__main__":
    main()
