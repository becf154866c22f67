# knowledge_quiz/engine/scoring.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from knowledge_quiz.domain.models import MAX_SCORE, HistoryItem, ScoreBoard, ScoreTally


@dataclass(frozen=True)
class ScoreConfig:
    """
    Regole punteggio:
    - ogni domanda vale max_score punti (0..max_score)
    - una risposta è da ripassare se awarded_score < review_threshold (3/5 = sotto il 60%)
    - a parità con la soglia NON si ripassa
    """
    max_score: int = MAX_SCORE
    review_threshold: int = 3


def clamp_score(value, cfg: ScoreConfig = ScoreConfig()) -> int:
    """
    Normalizza il punteggio restituito dal valutatore.
    Accetta int/float/stringhe numeriche; i bool NON sono punteggi.
    """
    if isinstance(value, bool):
        raise ValueError("Il punteggio non può essere un booleano.")
    score = int(round(float(value)))
    return max(0, min(cfg.max_score, score))


def is_review_eligible(item: HistoryItem, cfg: ScoreConfig = ScoreConfig()) -> bool:
    return item.awarded_score is not None and item.awarded_score < cfg.review_threshold


def fold_scores(scores: Iterable[Optional[int]], cfg: ScoreConfig = ScoreConfig()) -> ScoreTally:
    """Somma (ricalcolata da zero) dei punteggi presenti. Le domande senza voto non contano."""
    total = 0
    answered = 0
    for s in scores:
        if s is None:
            continue
        total += s
        answered += 1
    return ScoreTally(total=total, possible=answered * cfg.max_score, answered=answered)


def score_board(history: Iterable[HistoryItem], cfg: ScoreConfig = ScoreConfig()) -> ScoreBoard:
    """
    Tre serie sovrapposte:
    - fresh: punteggi della prima risposta
    - reviewed: punteggi attuali degli item ripassati
    - combined: punteggi attuali di tutto lo storico (= scoreTotal/scorePossible)
    """
    items = list(history)
    return ScoreBoard(
        fresh=fold_scores((i.first_score for i in items), cfg),
        reviewed=fold_scores((i.awarded_score for i in items if i.review_count > 0), cfg),
        combined=fold_scores((i.awarded_score for i in items), cfg),
    )
