# knowledge_quiz/ai/response_parser.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from knowledge_quiz.domain.models import Evaluation, Summary
from knowledge_quiz.engine.scoring import ScoreConfig, clamp_score

MAX_SUGGESTIONS = 5


class ResponseParseError(Exception):
    pass


def parse_introduction(data: Dict[str, Any]) -> str:
    # testo vuoto = fallimento "morbido", lo decide il controller
    v = data.get("introductionText")
    if not isinstance(v, str):
        return ""
    return v.strip()


def parse_next_question(data: Dict[str, Any]) -> Optional[str]:
    """None = fine del quiz (NON un errore)."""
    v = data.get("nextQuestion")
    if not isinstance(v, str) or not v.strip():
        return None
    return v.strip()


def parse_evaluation(data: Dict[str, Any], cfg: ScoreConfig = ScoreConfig()) -> Evaluation:
    raw_score = data.get("awardedScore")
    if raw_score is None:
        raise ResponseParseError("Manca awardedScore")
    try:
        score = clamp_score(raw_score, cfg)
    except (TypeError, ValueError) as e:
        raise ResponseParseError(f"awardedScore non valido: {raw_score!r}") from e

    explanation = _require_str(data, "explanation")
    if not explanation:
        raise ResponseParseError("explanation vuota")

    return Evaluation(
        score=score,
        explanation=explanation,
        illustration_request=_optional_str(data, "imagePrompt"),
    )


def parse_summary(data: Dict[str, Any]) -> Summary:
    text = _require_str(data, "summary")
    if not text:
        raise ResponseParseError("summary vuoto")
    suggestions = _require_str_list(data, "furtherLearningSuggestions")
    return Summary(text=text, suggestions=suggestions[:MAX_SUGGESTIONS])


# --- Helpers ---
def _require_str(data, key):
    v = data.get(key)
    if not isinstance(v, str): raise ResponseParseError(f"Manca {key}")
    return v.strip()


def _optional_str(data, key) -> Optional[str]:
    v = data.get(key)
    if not isinstance(v, str) or not v.strip():
        return None
    return v.strip()


def _require_str_list(data, key) -> List[str]:
    v = data.get(key, [])
    if not isinstance(v, list): return []
    return [str(x).strip() for x in v if x is not None and str(x).strip()]
