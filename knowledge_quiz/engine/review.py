# knowledge_quiz/engine/review.py
from __future__ import annotations

from typing import List, Sequence

from knowledge_quiz.domain.models import HistoryItem
from knowledge_quiz.engine.scoring import ScoreConfig


def select_for_review(history: Sequence[HistoryItem], threshold: int = ScoreConfig().review_threshold) -> List[str]:
    """
    Chiavi degli item da ripassare, nell'ordine di risposta.
    Un item è idoneo solo se ha un voto e awarded_score < threshold.
    Va SEMPRE ricalcolato dallo storico corrente, mai aggiornato a pezzi.

    Vale anche come coda del round di ripasso successivo: un item rimasto
    in coda e non risolto è per definizione ancora sotto soglia, quindi
    l'unione "non risolti + nuovi idonei" coincide con questa selezione.
    """
    return [
        item.key
        for item in history
        if item.awarded_score is not None and item.awarded_score < threshold
    ]
