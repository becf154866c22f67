# knowledge_quiz/engine/answer_evaluator.py
from __future__ import annotations

from functools import partial

from knowledge_quiz.ai.gemini_client import GeminiClient, ask_json
from knowledge_quiz.ai.prompt_builder import PromptBuildConfig, build_evaluation_prompt
from knowledge_quiz.ai.response_parser import parse_evaluation
from knowledge_quiz.domain.errors import EvaluationFailure
from knowledge_quiz.domain.models import Configuration, Evaluation
from knowledge_quiz.engine.scoring import ScoreConfig


def fallback_evaluation(cfg: Configuration) -> Evaluation:
    """Sostituto locale quando il valutatore fallisce: zero punti, spiegazione non vuota."""
    return Evaluation(
        score=0,
        explanation=(
            f"Could not evaluate your answer or provide an explanation in {cfg.language.value} "
            "at this time. Please make sure your answer is clear."
        ),
        illustration_request=None,
    )


class AnswerEvaluator:
    def __init__(
        self,
        gemini: GeminiClient,
        attempts: int = 3,
        score_cfg: ScoreConfig = ScoreConfig(),
        build: PromptBuildConfig = PromptBuildConfig(),
    ):
        self.gemini = gemini
        self.attempts = attempts
        self.score_cfg = score_cfg
        self.build = build

    def evaluate(self, cfg: Configuration, question: str, answer: str) -> Evaluation:
        """
        Ritorna (score 0..max, spiegazione, richiesta illustrazione opzionale).
        Il punteggio è normalizzato qui; gli errori diventano EvaluationFailure.
        """
        prompt = build_evaluation_prompt(cfg, question, answer, self.build, self.score_cfg)
        try:
            return ask_json(
                self.gemini, prompt, partial(parse_evaluation, cfg=self.score_cfg),
                attempts=self.attempts, document=cfg.document, label="EVAL",
            )
        except Exception as e:
            raise EvaluationFailure(str(e)) from e
