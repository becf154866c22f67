# knowledge_quiz/engine/summary.py
from __future__ import annotations

import logging
from typing import Sequence

from knowledge_quiz.ai.gemini_client import GeminiClient, ask_json
from knowledge_quiz.ai.prompt_builder import PromptBuildConfig, build_summary_prompt
from knowledge_quiz.ai.response_parser import parse_summary
from knowledge_quiz.domain.errors import SummaryError
from knowledge_quiz.domain.models import Configuration, HistoryItem, Summary

logger = logging.getLogger(__name__)

MIN_SUGGESTIONS = 3


class SummaryWriter:
    def __init__(self, gemini: GeminiClient, attempts: int = 3, build: PromptBuildConfig = PromptBuildConfig()):
        self.gemini = gemini
        self.attempts = attempts
        self.build = build

    def summarize(self, cfg: Configuration, history: Sequence[HistoryItem]) -> Summary:
        prompt = build_summary_prompt(cfg, history, self.build)
        try:
            summary = ask_json(
                self.gemini, prompt, parse_summary,
                attempts=self.attempts, document=cfg.document, label="SUMMARY",
            )
        except Exception as e:
            raise SummaryError(f"Failed to get quiz summary: {e}") from e

        if len(summary.suggestions) < MIN_SUGGESTIONS:
            logger.warning("Riepilogo con solo %d suggerimenti.", len(summary.suggestions))
        return summary
