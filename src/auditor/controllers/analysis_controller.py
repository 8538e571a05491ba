import logging
from typing import Callable, List, Optional, Protocol, Tuple

from bs4 import ParserRejectedMarkup

from auditor.dom.builder import DOMBuilder
from auditor.dom.classifier import DEFAULT_DATA_PREFIX
from auditor.dom.qngine import QNGINE
from auditor.model import AnalysisResult, AnalysisState, StructureAnalysis
from fetcher.services.content_fetcher_service import ContentFetchError

logger = logging.getLogger(__name__)

LOADING_ERROR_KEYS: Tuple[str, str] = (
    "structure.loading.error",
    "structure.loading.error.description",
)


class MarkupSource(Protocol):
    """What the analysis task needs from a markup provider."""

    async def fetch_content(self, reference: str) -> str: ...

    def clear_cache(self, reference: str) -> None: ...


def analyze_markup(
        markup: str,
        headings: bool = True,
        landmarks: bool = True,
        builder: Optional[DOMBuilder] = None,
        engine: Optional[QNGINE] = None,
) -> Tuple[AnalysisResult, AnalysisResult]:
    """
    Classifies, builds and audits one markup string synchronously.

    Every call creates new trees and diagnostics; nothing is shared between
    calls. A disabled structure yields an empty result.

    Returns:
        (heading result, landmark result)
    """
    builder = builder or DOMBuilder()
    engine = engine or QNGINE()
    soup = builder.parse_doc(markup)

    heading_result = AnalysisResult()
    if headings:
        tree = builder.build_heading_tree(builder.select_elements(soup, "headings"), soup)
        heading_result = AnalysisResult(tree=tree, diagnostics=engine.run_audit("headings", tree))

    landmark_result = AnalysisResult()
    if landmarks:
        tree = builder.build_landmark_tree(builder.select_elements(soup, "landmarks"), soup)
        landmark_result = AnalysisResult(tree=tree, diagnostics=engine.run_audit("landmarks", tree))

    return heading_result, landmark_result


class StructureAnalysisTask:
    """
    Re-entrant analysis run for one document reference.

    Every run fetches the current markup and recomputes everything from
    scratch. Runs are numbered with a monotonically increasing token; a run
    that completes after a newer one was issued is discarded, so subscribers
    only ever see the most recently issued completed run.

    The first completed run is published with announce=False so consumers
    can render diagnostics without an assertive announcement on page open.
    """

    def __init__(
            self,
            source: MarkupSource,
            headings_enabled: bool = True,
            landmarks_enabled: bool = True,
            data_prefix: str = DEFAULT_DATA_PREFIX,
            on_notice: Optional[Callable[[str, str], None]] = None,
    ):
        self.source = source
        self.headings_enabled = headings_enabled
        self.landmarks_enabled = landmarks_enabled
        self.on_notice = on_notice

        self.builder = DOMBuilder(data_prefix=data_prefix)
        self.engine = QNGINE()

        self.reference: Optional[str] = None
        self.state = AnalysisState.IDLE
        self.result: Optional[StructureAnalysis] = None
        self.first_run = True

        self._run_token = 0
        self._subscribers: List[Callable[[StructureAnalysis], None]] = []

    def subscribe(self, callback: Callable[[StructureAnalysis], None]) -> None:
        """Registers a consumer called with every published analysis."""
        self._subscribers.append(callback)

    async def set_document_reference(self, reference: str) -> Optional[StructureAnalysis]:
        """Runs the analysis when the reference changed; otherwise returns the current result."""
        if reference == self.reference and self.state is not AnalysisState.IDLE:
            return self.result
        self.reference = reference
        return await self.run()

    async def notify_edit_completed(self) -> Optional[StructureAnalysis]:
        """
        Called by the UI after a heading level or landmark role edit was saved.
        Drops the cached markup and analyzes the same reference again.
        """
        if not self.reference:
            logger.debug("Edit completed before any document reference was set; nothing to rerun.")
            return None
        self.source.clear_cache(self.reference)
        return await self.run()

    async def run(self) -> Optional[StructureAnalysis]:
        """
        Issues a full run for the current reference.

        Returns the published analysis, or None when this run was superseded
        by a newer one before it completed.
        """
        if not self.reference:
            raise ValueError("No document reference set for the structure analysis.")

        self._run_token += 1
        token = self._run_token
        reference = self.reference
        self.state = AnalysisState.RUNNING
        logger.debug("Run %d started for %s", token, reference)

        try:
            markup = await self.source.fetch_content(reference)
        except ContentFetchError as e:
            return self._fail(token, reference, str(e))
        except Exception as e:
            logger.error("Unexpected error fetching %s", reference, exc_info=True)
            return self._fail(token, reference, str(e))

        if token != self._run_token:
            logger.debug("Discarding run %d for %s; run %d is newer", token, reference, self._run_token)
            return None

        try:
            headings, landmarks = analyze_markup(
                markup,
                headings=self.headings_enabled,
                landmarks=self.landmarks_enabled,
                builder=self.builder,
                engine=self.engine,
            )
        except ParserRejectedMarkup as e:
            return self._fail(token, reference, f"markup rejected by parser: {e}")
        except Exception as e:
            logger.error("Unexpected error analyzing %s", reference, exc_info=True)
            return self._fail(token, reference, str(e))

        analysis = StructureAnalysis(
            reference=reference,
            run_token=token,
            state=AnalysisState.COMPLETE,
            announce=not self.first_run,
            headings=headings,
            landmarks=landmarks,
        )
        self.first_run = False
        logger.info(
            "Structure analysis of %s: %d heading issues, %d landmark issues",
            reference, headings.issue_count, landmarks.issue_count
        )
        return self._publish(analysis)

    def _fail(self, token: int, reference: str, reason: str) -> Optional[StructureAnalysis]:
        if token != self._run_token:
            logger.debug("Discarding failed run %d for %s; run %d is newer", token, reference, self._run_token)
            return None

        logger.error("Structure analysis of %s failed: %s", reference, reason)
        analysis = StructureAnalysis(
            reference=reference,
            run_token=token,
            state=AnalysisState.FAILED,
            announce=not self.first_run,
        )
        if self.on_notice:
            self.on_notice(*LOADING_ERROR_KEYS)
        return self._publish(analysis)

    def _publish(self, analysis: StructureAnalysis) -> StructureAnalysis:
        self.state = analysis.state
        self.result = analysis
        for callback in self._subscribers:
            callback(analysis)
        return analysis
