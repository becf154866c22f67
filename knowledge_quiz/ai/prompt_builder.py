# knowledge_quiz/ai/prompt_builder.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from knowledge_quiz.domain.models import Configuration, HistoryItem
from knowledge_quiz.engine.scoring import ScoreConfig


@dataclass(frozen=True)
class PromptBuildConfig:
    target_questions: int = 20
    strict_json_only: bool = True


def _document_block(cfg: Configuration, when_present: str, when_absent: str = "") -> str:
    return when_present if cfg.document is not None else when_absent


def _json_footer(schema: Dict[str, str], build: PromptBuildConfig) -> str:
    if not build.strict_json_only:
        return ""
    return "OUTPUT (JSON ONLY, no markdown fences):\n" + json.dumps(schema, indent=2)


def build_introduction_prompt(cfg: Configuration, build: PromptBuildConfig = PromptBuildConfig()) -> str:
    doc = _document_block(
        cfg,
        "The user attached a document. Your introduction MUST be consistent with it and draw its key points from it.",
        "Base the introduction on general knowledge about the topic.",
    )
    return f"""
You generate short introductory study text that prepares a student for a quiz.
{doc}

Topic: {cfg.topic}
Education level: {cfg.level.value}
Language: {cfg.language.value} (write ONLY in this language)

The text must be informative, engaging for the {cfg.level.value} level, a few short paragraphs,
PLAIN TEXT (no bold, italics or tables), addressed directly to the student.

{_json_footer({"introductionText": "string"}, build)}
""".strip()


def build_question_prompt(
    cfg: Configuration,
    answered: Sequence[Tuple[str, str]],
    build: PromptBuildConfig = PromptBuildConfig(),
) -> str:
    doc = _document_block(
        cfg,
        "You MUST base the questions primarily on the attached document, linking it to the topic where possible.",
    )
    if answered:
        transcript = "So far:\n" + "\n".join(f"Q: {q}\nA: {a}" for q, a in answered)
    else:
        transcript = "This is the first question: start with a foundational one."

    return f"""
You are an AI quiz master testing knowledge on a topic.
{doc}

Topic: {cfg.topic}
Education level: {cfg.level.value}
Language: {cfg.language.value} (every question MUST be in this language)

{transcript}

Formulate the next most relevant question. No yes/no questions; ask for a short explanation or factual recall.
Do not repeat questions. Aim for about {build.target_questions} questions if the topic supports it.
When the topic is genuinely exhausted for this level, set "nextQuestion" to "" to end the quiz.

{_json_footer({"nextQuestion": "string (empty string ends the quiz)"}, build)}
""".strip()


def build_evaluation_prompt(
    cfg: Configuration,
    question: str,
    answer: str,
    build: PromptBuildConfig = PromptBuildConfig(),
    score_cfg: ScoreConfig = ScoreConfig(),
) -> str:
    doc = _document_block(
        cfg,
        "The student may refer to the attached document: keep the evaluation consistent with it.",
    )
    return f"""
You are an expert educator evaluating a student's answer.
{doc}

Topic: {cfg.topic}
Education level: {cfg.level.value}
Language for the explanation: {cfg.language.value}

Question: {question}
Student's answer: {answer}

1. "awardedScore": integer from 0 to {score_cfg.max_score} ({score_cfg.max_score} = fully correct).
2. "explanation": tutor-style explanation in PLAIN TEXT, tailored to the level and language.
3. "imagePrompt": ONLY if a diagram would clearly help, a short English description of it; otherwise omit.

{_json_footer({"awardedScore": "integer", "explanation": "string", "imagePrompt": "string (optional)"}, build)}
""".strip()


def build_summary_prompt(
    cfg: Configuration,
    history: Sequence[HistoryItem],
    build: PromptBuildConfig = PromptBuildConfig(),
) -> str:
    doc = _document_block(cfg, "The quiz may have been based on the attached document: consider it.")
    lines: List[str] = []
    for item in history:
        score = "not evaluated" if item.awarded_score is None else f"{item.awarded_score}/{item.possible_score}"
        lines.append(f"Question: {item.question}\nAnswer: {item.answer}\nScore: {score}")
        if item.explanation:
            lines.append(f"Explanation: {item.explanation}")
        lines.append("---")
    transcript = "\n".join(lines) if lines else "(no questions were answered)"

    return f"""
You summarize a student's performance on a knowledge quiz.
{doc}

Topic: {cfg.topic}
Education level: {cfg.level.value}
Language: {cfg.language.value}

{transcript}

Provide in {cfg.language.value}:
1. "summary": constructive PLAIN TEXT summary of strengths and gaps.
2. "furtherLearningSuggestions": 3 to 5 topics to explore next.

{_json_footer({"summary": "string", "furtherLearningSuggestions": ["string"]}, build)}
""".strip()
