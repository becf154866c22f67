# knowledge_quiz/engine/introduction.py
from __future__ import annotations

from knowledge_quiz.ai.gemini_client import GeminiClient, ask_json
from knowledge_quiz.ai.prompt_builder import PromptBuildConfig, build_introduction_prompt
from knowledge_quiz.ai.response_parser import parse_introduction
from knowledge_quiz.domain.errors import IntroductionFailure
from knowledge_quiz.domain.models import Configuration


class IntroductionSource:
    def __init__(self, gemini: GeminiClient, attempts: int = 3, build: PromptBuildConfig = PromptBuildConfig()):
        self.gemini = gemini
        self.attempts = attempts
        self.build = build

    def introduce(self, cfg: Configuration) -> str:
        """Testo introduttivo; "" se il modello non ha prodotto nulla (fallimento morbido)."""
        try:
            return ask_json(
                self.gemini, build_introduction_prompt(cfg, self.build), parse_introduction,
                attempts=self.attempts, document=cfg.document, label="INTRO",
            )
        except Exception as e:
            raise IntroductionFailure(f"Sorry, couldn't get the topic introduction: {e}") from e
