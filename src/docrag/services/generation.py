"""Generation backends for docrag."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from docrag.errors import GenerationServiceError
from docrag.models import RetrievedChunk

LOGGER = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful assistant. Use only the provided context to answer questions. "
    "If the answer is not in the context, say you do not know."
)
NO_CONTEXT_ANSWER = "I do not know. No relevant information was found in the uploaded documents."


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for answer generation."""

    model: str = "Qwen/Qwen2.5-1.8B-Instruct"
    max_new_tokens: int = 512
    temperature: float = 0.3
    use_model: bool = False
    device: str | None = None


class GenerationBackend(Protocol):
    """Protocol describing generation behaviour."""

    def generate(self, *, question: str, context: str, sources: Sequence[RetrievedChunk]) -> str:
        """Return an answer grounded in ``context``. Raises ``GenerationServiceError``."""


def build_messages(*, question: str, context: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": f"Context: {context}\n\nQuestion: {question}"},
    ]


class TemplateGenerator:
    """Simple deterministic generator used for tests and offline environments."""

    def generate(self, *, question: str, context: str, sources: Sequence[RetrievedChunk]) -> str:
        if not context.strip() or not sources:
            return NO_CONTEXT_ANSWER
        summary = sources[0].chunk.content
        names = "\n".join(
            f"[{index + 1}] {source.chunk.metadata.file_name} (chunk {source.chunk.chunk_index})"
            for index, source in enumerate(sources)
        )
        return (
            f"Summary: {summary}\n\n"
            f"Answer: Based on the provided documents, here is the best match for your question '{question}'.\n"
            f"Sources:\n{names}"
        )


class QwenGenerator:
    """Generator that optionally calls into Qwen models via Transformers."""

    def __init__(self, config: GenerationConfig | None = None, fallback: GenerationBackend | None = None) -> None:
        self._config = config or GenerationConfig()
        self._fallback = fallback or TemplateGenerator()
        self._tokenizer = None
        self._model = None
        if not self._config.use_model:
            LOGGER.info("QwenGenerator running in template-only mode.")
            return
        try:
            from transformers import AutoModelForCausalLM, AutoTokenizer

            self._tokenizer = AutoTokenizer.from_pretrained(self._config.model, trust_remote_code=True)
            self._model = AutoModelForCausalLM.from_pretrained(self._config.model, trust_remote_code=True)
            if self._tokenizer.pad_token is None and self._tokenizer.eos_token is not None:
                self._tokenizer.pad_token = self._tokenizer.eos_token
            if getattr(self._model.config, "pad_token_id", None) is None and self._tokenizer.pad_token_id is not None:
                self._model.config.pad_token_id = self._tokenizer.pad_token_id
            if self._config.device:
                self._model.to(self._config.device)
            LOGGER.info("Loaded generation model %s", self._config.model)
        except Exception as exc:  # pragma: no cover - defensive import
            LOGGER.warning("Falling back to template generator: %s", exc)
            self._tokenizer = None
            self._model = None

    def generate(self, *, question: str, context: str, sources: Sequence[RetrievedChunk]) -> str:
        if not context.strip() or not sources:
            return NO_CONTEXT_ANSWER
        if self._tokenizer is None or self._model is None:
            return self._fallback.generate(question=question, context=context, sources=sources)
        try:
            return self._generate_with_model(question=question, context=context)
        except Exception as exc:
            raise GenerationServiceError(f"Text generation failed: {exc}") from exc

    def _generate_with_model(self, *, question: str, context: str) -> str:  # pragma: no cover - needs model weights
        import torch

        messages = build_messages(question=question, context=context)
        if hasattr(self._tokenizer, "apply_chat_template"):
            prompt = self._tokenizer.apply_chat_template(messages, tokenize=False, add_generation_prompt=True)
        else:
            prompt = f"{SYSTEM_INSTRUCTION}\n\n{messages[1]['content']}\nAnswer:"
        tokenized = self._tokenizer(prompt, return_tensors="pt", padding=True)
        input_ids = tokenized.input_ids
        attention_mask = tokenized.attention_mask
        prompt_length = input_ids.shape[1]
        if self._config.device:
            input_ids = input_ids.to(self._config.device)
            attention_mask = attention_mask.to(self._config.device)
        with torch.no_grad():
            output = self._model.generate(
                input_ids,
                attention_mask=attention_mask,
                max_new_tokens=self._config.max_new_tokens,
                temperature=self._config.temperature,
            )
        generated = self._tokenizer.decode(output[0][prompt_length:], skip_special_tokens=True)
        return generated.strip()
