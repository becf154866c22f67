# knowledge_quiz/engine/question_source.py
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from knowledge_quiz.ai.gemini_client import GeminiClient, ask_json
from knowledge_quiz.ai.prompt_builder import PromptBuildConfig, build_question_prompt
from knowledge_quiz.ai.response_parser import parse_next_question
from knowledge_quiz.domain.errors import QuestionFetchError
from knowledge_quiz.domain.models import Configuration

logger = logging.getLogger(__name__)


class QuestionSource:
    """
    Adapter verso il generatore di domande.
    Risultato vuoto/assente = fine normale del quiz (None), NON un errore.
    """

    def __init__(self, gemini: GeminiClient, attempts: int = 3, build: PromptBuildConfig = PromptBuildConfig()):
        self.gemini = gemini
        self.attempts = attempts
        self.build = build

    def next_question(self, cfg: Configuration, answered: Sequence[Tuple[str, str]]) -> Optional[str]:
        prompt = build_question_prompt(cfg, answered, self.build)
        try:
            question = ask_json(
                self.gemini, prompt, parse_next_question,
                attempts=self.attempts, document=cfg.document, label="QUESTION",
            )
        except Exception as e:
            raise QuestionFetchError(f"Could not get the next question: {e}") from e

        if question is None:
            logger.info("Nessuna nuova domanda dopo %d risposte: fine quiz.", len(answered))
        return question
