"""Query orchestration combining retrieval and generation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence
from uuid import uuid4

from docrag.errors import DocRAGError, GenerationServiceError, InvalidQueryError
from docrag.metrics.observability import PipelineMetrics, TimedSection, get_logger
from docrag.models import Answer, RetrievedChunk
from docrag.services.boundary import call_boundary
from docrag.services.generation import GenerationBackend, TemplateGenerator

if TYPE_CHECKING:
    from docrag.retrieval.service import Retriever


@dataclass(frozen=True)
class PromptBuilderConfig:
    """Configuration for prompt construction."""

    delimiter: str = "\n---\n"


class PromptBuilder:
    """Builds the generation context from ranked chunks."""

    def __init__(self, config: PromptBuilderConfig | None = None) -> None:
        self._config = config or PromptBuilderConfig()

    def build_context(self, sources: Sequence[RetrievedChunk]) -> str:
        return self._config.delimiter.join(source.chunk.content for source in sources)


class QueryService:
    """Answers questions from stored knowledge. Holds no state between calls."""

    def __init__(
        self,
        retriever: Retriever,
        generator: GenerationBackend | None = None,
        prompt_builder: PromptBuilder | None = None,
        *,
        generation_timeout_seconds: float | None = None,
    ) -> None:
        self._retriever = retriever
        self._generator = generator or TemplateGenerator()
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._generation_timeout = generation_timeout_seconds
        self._logger = get_logger("query")

    def answer(self, question: str, *, top_k: int | None = None) -> Answer:
        try:
            return self._answer(question, top_k=top_k)
        except DocRAGError as exc:
            PipelineMetrics.observe_query_failure(exc.code)
            self._logger.warning("query.failed", error=exc.code, detail=exc.message)
            raise

    def _answer(self, question: str, *, top_k: int | None) -> Answer:
        if not question or not question.strip():
            raise InvalidQueryError("Query must not be empty")
        start = time.perf_counter()
        retrieval_start = time.perf_counter()
        sources = list(self._retriever.retrieve(question, top_k=top_k))
        retrieval_duration = time.perf_counter() - retrieval_start
        PipelineMetrics.observe_retrieval(
            retrieval_duration,
            len(sources),
            (source.score for source in sources),
        )
        self._logger.info(
            "retrieval.complete",
            chunk_count=len(sources),
            duration_seconds=retrieval_duration,
            top_k=top_k,
        )
        context = self._prompt_builder.build_context(sources)
        with TimedSection(PipelineMetrics.observe_generation) as generation:
            text = call_boundary(
                self._call_generator,
                question,
                context,
                sources,
                timeout=self._generation_timeout,
                error_cls=GenerationServiceError,
                operation="Answer generation",
            )
        self._logger.info(
            "generation.complete",
            duration_seconds=generation.elapsed,
            source_count=len(sources),
        )
        latency_ms = (time.perf_counter() - start) * 1000
        return Answer(
            text=text,
            sources=sources,
            query_id=uuid4().hex,
            latency_ms=latency_ms,
            retrieval_ms=retrieval_duration * 1000,
            generation_ms=generation.elapsed * 1000,
        )

    def _call_generator(self, question: str, context: str, sources: Sequence[RetrievedChunk]) -> str:
        return self._generator.generate(question=question, context=context, sources=sources)
