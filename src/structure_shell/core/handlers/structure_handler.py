# src/structure_shell/core/handlers/structure_handler.py
import argparse
import asyncio
import logging
import sys
from typing import List

from bs4 import ParserRejectedMarkup
from tqdm.auto import tqdm

from auditor.controllers.analysis_controller import StructureAnalysisTask, analyze_markup
from auditor.controllers.report_controller import ReportController
from auditor.dom.builder import DOMBuilder
from auditor.model import AnalysisState, StructureAnalysis
from fetcher.services.content_fetcher_service import ContentFetcherService
from structure_shell.core.managers.config_manager import config_manager
from structure_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def _data_prefix() -> str:
    return config_manager.get_nested("classifier.data_attribute_prefix", "data-a11y")


def _print_notice(title_key: str, description_key: str) -> None:
    print(f"⚠️  {title_key}: {description_key}", file=sys.stderr)


def _print_report(analysis: StructureAnalysis, as_json: bool) -> None:
    report = ReportController(analysis)
    print(report.to_json() if as_json else report.render_text())


async def _analyze_references(
        references: List[str], headings: bool, landmarks: bool
) -> List[StructureAnalysis]:
    """Runs one analysis task per reference over a shared fetcher session."""
    analyses: List[StructureAnalysis] = []
    async with ContentFetcherService(config_manager.get_nested("fetcher", {})) as fetcher:
        for reference in tqdm(references, desc="Analyzing", unit="page", disable=len(references) <= 1):
            task = StructureAnalysisTask(
                fetcher,
                headings_enabled=headings,
                landmarks_enabled=landmarks,
                data_prefix=_data_prefix(),
                on_notice=_print_notice,
            )
            analysis = await task.set_document_reference(reference)
            if analysis is not None:
                analyses.append(analysis)
    return analyses


def handle_analyze(args: List[str]) -> int:
    """
    Handler for 'analyze <url> [<url> ...]'.
    Fetches each document over HTTP and prints its heading and landmark report.
    """
    parser = argparse.ArgumentParser(prog="analyze", description="Analyze heading and landmark structure.")
    parser.add_argument("urls", nargs="+", help="Document URL(s) to analyze.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    parser.add_argument("--no-headings", action="store_true", help="Skip the heading analysis.")
    parser.add_argument("--no-landmarks", action="store_true", help="Skip the landmark analysis.")

    try:
        parsed = parser.parse_args(args)
    except SystemExit:
        return 1

    headings = config_manager.get_nested("analysis.headings", True) and not parsed.no_headings
    landmarks = config_manager.get_nested("analysis.landmarks", True) and not parsed.no_landmarks

    try:
        analyses = asyncio.run(_analyze_references(parsed.urls, headings, landmarks))
    except KeyboardInterrupt:
        print("\n🛑 Analysis interrupted.")
        return 1

    for analysis in analyses:
        _print_report(analysis, parsed.json)

    failed = [a.reference for a in analyses if a.state is AnalysisState.FAILED]
    if failed:
        logger.warning("%d of %d documents could not be analyzed", len(failed), len(analyses))
        return 1
    return 0


def handle_file(args: List[str]) -> int:
    """Handler for 'file <path>': analyzes a local markup file without any network access."""
    parser = argparse.ArgumentParser(prog="file", description="Analyze a local HTML file.")
    parser.add_argument("path", help="Path to an HTML file.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")

    try:
        parsed = parser.parse_args(args)
    except SystemExit:
        return 1

    path = PathUtils.resolve_markup_file(parsed.path)
    try:
        markup = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"❌ Could not read {path}: {e}")
        return 1

    try:
        headings, landmarks = analyze_markup(
            markup,
            headings=config_manager.get_nested("analysis.headings", True),
            landmarks=config_manager.get_nested("analysis.landmarks", True),
            builder=DOMBuilder(data_prefix=_data_prefix()),
        )
    except ParserRejectedMarkup as e:
        logger.error("Markup of %s was rejected by the parser: %s", path, e)
        print(f"❌ Could not parse {path}: {e}")
        return 1

    analysis = StructureAnalysis(
        reference=str(path), announce=False, headings=headings, landmarks=landmarks
    )
    _print_report(analysis, parsed.json)
    return 0
