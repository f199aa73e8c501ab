#!/usr/bin/env python3
"""
Basic fideldoc Usage Example

This example demonstrates the core workflow:
1. Score OCR quality for a batch of Amharic pages
2. Generate correction suggestions (local rules or a Gemini oracle)
3. Auto-apply high-confidence suggestions
4. Review the worst pages first
5. Export results
"""

import logging
import os
from pathlib import Path

from fideldoc import (
    BatchCoordinator,
    CorrectionPipeline,
    EngineSettings,
    GeminiOracle,
    export_batch_results,
    quality_stats,
    rank_documents_by_quality,
)

PAGES = [
    {"id": "page-1", "text": "ሰ#ላም ለዓለም። ኢትዮጵያ ሀገርxችን ናት።"},
    {"id": "page-2", "text": "ኢትዮጵያ ጥንታዊት ሀገር ናት።"},
    {"id": "page-3", "text": "የአማርኛ ፊደል A123 ብዙ ቁምፊዎች አሉት,ይህም"},
]


def progress(phase: str, percent: int) -> None:
    print(f"  [{percent:3d}%] {phase}")


def main():
    logging.basicConfig(level=logging.INFO)

    # ─────────────────────────────────────────────────────────────────────────
    # 1. Settings
    # ─────────────────────────────────────────────────────────────────────────

    # Without GEMINI_API_KEY the engine falls back to local rules
    api_key = os.environ.get("GEMINI_API_KEY")
    settings = EngineSettings(api_key=api_key, max_workers=2)
    oracle = GeminiOracle(api_key) if api_key else None

    # Settings can also come from YAML
    config_path = Path("fideldoc.yaml")
    if config_path.exists():
        settings = EngineSettings.from_yaml(config_path)

    # ─────────────────────────────────────────────────────────────────────────
    # 2. Single Document
    # ─────────────────────────────────────────────────────────────────────────

    pipeline = CorrectionPipeline(settings, oracle=oracle, auto_apply=True)
    single = pipeline.process_text(PAGES[0]["text"], PAGES[0]["id"])

    print(f"Score: {single.analysis.quality_score:.2f} ({single.analysis.grade})")
    for suggestion in single.suggestions:
        print(f"  {suggestion.original} -> {suggestion.corrected} ({suggestion.confidence:.2f})")
    print(f"Corrected: {single.corrected_text}")

    # ─────────────────────────────────────────────────────────────────────────
    # 3. Batch Processing
    # ─────────────────────────────────────────────────────────────────────────

    coordinator = BatchCoordinator(settings, oracle=oracle)
    result = coordinator.run(PAGES, progress=progress)

    print(f"\n{result.status.value}: {result.message}")
    for failure in result.failures:
        print(f"  failed #{failure.index} {failure.document_id}: {failure.error}")

    # ─────────────────────────────────────────────────────────────────────────
    # 4. Review Worst Pages First
    # ─────────────────────────────────────────────────────────────────────────

    for analysis in rank_documents_by_quality(result.documents):
        print(f"{analysis.document_id}: {analysis.grade} ({analysis.quality_score:.0%})")
        for issue in analysis.issues[:3]:
            print(f"  - {issue}")

    stats = quality_stats(result.documents)
    print(f"Average quality: {stats['average_quality']:.2f}, corrupted: {stats['corrupted']}")

    # ─────────────────────────────────────────────────────────────────────────
    # 5. Export
    # ─────────────────────────────────────────────────────────────────────────

    Path("batch_results.json").write_text(export_batch_results(result, "json"), encoding="utf-8")
    Path("batch_results.csv").write_text(export_batch_results(result, "csv"), encoding="utf-8")
    print(export_batch_results(result, "summary"))


if __name__ == "__main__":
    main()
