# ============================================================================
# src/prescription_resolution/processors/prescription/processor.py
# ============================================================================
"""
Prescription Analyzer

Turns raw OCR text of a prescription into a PrescriptionAnalysisResult.

Flow:
1. Normalize OCR artifacts (whole text, once)
2. Extract header fields (patient, doctor, date, ...)
3. Segment the medicine section into logical lines
4. Validate and parse each line
5. Resolve lines concurrently:
   exact match -> (miss) taxonomy -> candidate search -> scoring
6. Aggregate once every line has finished or been dropped

analyze() never raises for malformed input or collaborator failures.
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional, Tuple

from ...catalog.base import BaseCatalog
from ...classifiers.base import TaxonomyClassifier
from ...classifiers.client import create_classifier
from ...core.agent_base import Agent
from ...core.config import get_config
from ...core.context.line_context import LineContext
from ...core.context.medicine import ParsedMedicine, PrescriptionLine
from ...core.context.results import PrescriptionAnalysisResult
from ...extractors.line_segmenter import LineSegmenter
from ...extractors.prescription_info import PrescriptionInfoExtractor
from ...utils.exceptions import ParsingError
from ...utils.logging import LogAdapter, log_performance
from ...utils.text_normalizer import OCRNormalizer
from .agents.attribute_classifier import AttributeClassifier
from .agents.candidate_searcher import CandidateSearcher
from .agents.exact_matcher import ExactMatchResolver
from .agents.line_validator import LineValidator
from .agents.match_scorer import MatchScorer
from .agents.medicine_parser import MedicineNameParser
from .agents.result_aggregator import ResultAggregator

logger = logging.getLogger(__name__)


class PrescriptionAnalyzer:
    """
    Orchestrates the resolution pipeline for one prescription at a time.

    The analyzer holds no per-prescription state; concurrent analyze()
    calls on one instance are independent.
    """

    def __init__(
        self,
        catalog: BaseCatalog,
        classifier: Optional[TaxonomyClassifier] = None,
        config: Dict[str, Any] = None
    ):
        # Merge env config with passed config (passed config takes precedence)
        env_config = get_config()
        self.config = {**env_config, **(config or {})}
        self.logger = logging.getLogger(f"{__name__}.{self.get_name()}")

        self.catalog = catalog
        self.classifier = classifier or create_classifier(self.config)

        # Text stages
        self.normalizer = OCRNormalizer()
        self.segmenter = LineSegmenter()
        self.info_extractor = PrescriptionInfoExtractor()
        self.validator = LineValidator()
        self.parser = MedicineNameParser()

        # Per-line agents
        self.exact_matcher = ExactMatchResolver(catalog, self.config)
        self.attribute_classifier = AttributeClassifier(catalog, self.classifier, self.config)
        self.candidate_searcher = CandidateSearcher(catalog, self.config)
        self.match_scorer = MatchScorer(self.config)

        self.aggregator = ResultAggregator(self.config)

    def get_name(self) -> str:
        return "PrescriptionAnalyzer"

    def _get_agents(self) -> List[Agent]:
        """Agents run for a line the catalog could not match by name."""
        return [self.attribute_classifier, self.candidate_searcher, self.match_scorer]

    def _log_step(self, step: str, details: str = None):
        if details:
            self.logger.info(f"[STEP] {step}: {details}")
        else:
            self.logger.info(f"[STEP] {step}")

    # ------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------

    @log_performance(logger, "Prescription analysis")
    async def analyze(
        self,
        raw_text: Optional[str],
        extracted_info: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> PrescriptionAnalysisResult:
        """
        Analyze one prescription.

        Args:
            raw_text: OCR output (may be empty or garbled)
            extracted_info: Structured fields already provided by the OCR
                service; these win over fields found in the text
            timeout: Whole-analysis deadline in seconds; defaults to
                config['analysis_timeout'] (0 disables it)

        Returns:
            PrescriptionAnalysisResult
        """
        text = self.normalizer.normalize(raw_text or "")
        if not text.strip():
            self._log_step("Unreadable prescription", "empty OCR text")
            return self.aggregator.aggregate([], extracted_info=extracted_info, unreadable=True)

        info = {**self.info_extractor.extract(text), **(extracted_info or {})}

        lines = self.segmenter.segment(text)
        self._log_step("Segmentation complete", f"{len(lines)} line(s)")

        contexts, rejected = self.prepare_lines(lines)
        self._log_step("Validation complete", f"{len(contexts)} medicine line(s), {len(rejected)} rejected")

        if timeout is None:
            timeout = self.config.get('analysis_timeout', 0.0)
        completed, incomplete = await self.resolve_lines(contexts, timeout)

        result = self.aggregator.aggregate(
            completed,
            extracted_info=info,
            rejected_lines=rejected,
            incomplete=incomplete,
        )
        self.logger.info(
            f"Prescription analysis complete - {len(result.found_medicines)} found, "
            f"{len(result.not_found_medicines)} not found, "
            f"confidence: {result.overall_confidence:.2f}"
        )
        return result

    def analyze_sync(
        self,
        raw_text: Optional[str],
        extracted_info: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> PrescriptionAnalysisResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.analyze(raw_text, extracted_info=extracted_info, timeout=timeout))

    # ------------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------------

    def prepare_lines(self, lines: List[PrescriptionLine]) -> Tuple[List[LineContext], List[tuple]]:
        """Validate and parse segmented lines."""
        contexts: List[LineContext] = []
        rejected: List[tuple] = []

        for line in lines:
            verdict = self.validator.validate(line)
            if not verdict:
                rejected.append((line.text, verdict.reason))
                continue

            try:
                parsed = self.parser.parse(line)
            except ParsingError as e:
                logger.warning(f"Could not parse line {line.text!r}: {e}")
                parsed = ParsedMedicine(
                    original_text=line.text,
                    clean_text=line.text,
                    base_name=line.text,
                    source_line_index=line.source_line_index,
                    warnings=["unparseable"],
                )

            context = LineContext(line=line, parsed=parsed, line_index=len(contexts))
            for warning in parsed.warnings:
                context.add_warning(warning)
            contexts.append(context)

        return contexts, rejected

    async def resolve_lines(
        self,
        contexts: List[LineContext],
        timeout: Optional[float] = None
    ) -> Tuple[List[LineContext], bool]:
        """
        Resolve lines with bounded concurrency.

        Returns the contexts that finished, in line order, and whether any
        line was dropped by the deadline.
        """
        if not contexts:
            return [], False

        semaphore = asyncio.Semaphore(max(1, int(self.config.get('max_concurrent_lines', 4))))

        async def bounded(context: LineContext) -> LineContext:
            async with semaphore:
                return await self._resolve_guarded(context)

        tasks = [asyncio.create_task(bounded(context)) for context in contexts]
        done, pending = await asyncio.wait(tasks, timeout=timeout if timeout and timeout > 0 else None)

        if pending:
            logger.warning(f"Analysis deadline of {timeout}s reached; dropping {len(pending)} line(s)")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        completed = [
            context for context, task in zip(contexts, tasks)
            if task in done and not task.cancelled() and task.exception() is None
        ]
        return completed, bool(pending)

    async def _resolve_guarded(self, context: LineContext) -> LineContext:
        """A line that fails unexpectedly is kept as unmatched with its raw text."""
        log = LogAdapter(self.logger, {"line_index": context.line_index})
        try:
            return await self.resolve_line(context)
        except Exception as e:
            log.error(f"Resolution failed for {context.parsed.original_text!r}: {e}", exc_info=True)
            context.exact_match = None
            context.scored = []
            context.add_warning(f"resolution_failed: {e}")
            return context

    async def resolve_line(self, context: LineContext) -> LineContext:
        """Exact match first; on a miss build a profile and score candidates."""
        log = LogAdapter(self.logger, {"line_index": context.line_index})

        await self.exact_matcher.run(context)
        if context.exact_match is not None:
            return context

        for agent in self._get_agents():
            result = await agent.run(context)
            log.debug(f"{agent.get_name()}: {result.get('reasoning')}")

        return context


async def analyze_prescription(
    raw_text: Optional[str],
    catalog: BaseCatalog,
    classifier: Optional[TaxonomyClassifier] = None,
    extracted_info: Optional[Dict[str, Any]] = None,
    config: Dict[str, Any] = None
) -> PrescriptionAnalysisResult:
    """Convenience wrapper: build an analyzer and analyze one prescription."""
    analyzer = PrescriptionAnalyzer(catalog, classifier=classifier, config=config)
    return await analyzer.analyze(raw_text, extracted_info=extracted_info)
