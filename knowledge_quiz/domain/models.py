# knowledge_quiz/domain/models.py
from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from knowledge_quiz.domain.enums import EducationLevel, Language, PendingCall, Phase

MAX_SCORE = 5


def question_key(question: str) -> str:
    """Identità di una domanda nella sessione: testo ripulito, case-insensitive."""
    return " ".join((question or "").split()).casefold()


@dataclass(frozen=True)
class ReferenceDocument:
    """Handle opaco del documento caricato: il core lo inoltra e basta."""
    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @staticmethod
    def from_path(path: str) -> "ReferenceDocument":
        p = Path(path)
        mime, _ = mimetypes.guess_type(p.name)
        return ReferenceDocument(name=p.name, mime_type=mime or "application/pdf", data=p.read_bytes())


@dataclass(frozen=True)
class Configuration:
    topic: str
    level: EducationLevel = EducationLevel.HIGH_SCHOOL
    language: Language = Language.ENGLISH
    document: Optional[ReferenceDocument] = None


@dataclass(frozen=True)
class Illustration:
    data: bytes = field(repr=False)
    mime_type: str = "image/png"
    width: int = 0
    height: int = 0
    path: Optional[str] = None


@dataclass(frozen=True)
class Evaluation:
    score: int
    explanation: str
    illustration_request: Optional[str] = None


@dataclass(frozen=True)
class Summary:
    text: str
    suggestions: List[str] = field(default_factory=list)


@dataclass
class HistoryItem:
    question: str
    answer: str
    awarded_score: Optional[int] = None
    possible_score: int = MAX_SCORE
    explanation: Optional[str] = None
    illustration_request: Optional[str] = None
    illustration: Optional[Illustration] = None
    illustration_pending: bool = False
    illustration_token: int = 0

    # punteggio della prima risposta (serie "fresh")
    first_score: Optional[int] = None
    review_count: int = 0

    @property
    def key(self) -> str:
        return question_key(self.question)

    @property
    def is_scored(self) -> bool:
        return self.awarded_score is not None


@dataclass(frozen=True)
class ScoreTally:
    total: int = 0
    possible: int = 0
    answered: int = 0

    @property
    def ratio(self) -> float:
        if self.possible <= 0:
            return 0.0
        return self.total / self.possible


@dataclass(frozen=True)
class ScoreBoard:
    fresh: ScoreTally = ScoreTally()
    reviewed: ScoreTally = ScoreTally()
    combined: ScoreTally = ScoreTally()


@dataclass
class Session:
    configuration: Optional[Configuration] = None
    phase: Phase = Phase.CONFIGURING
    history: List[HistoryItem] = field(default_factory=list)

    # REVIEW
    review_queue: List[str] = field(default_factory=list)
    review_cursor: int = 0
    in_review: bool = False
    review_round: int = 0

    current_question: Optional[str] = None
    introduction_text: Optional[str] = None
    summary: Optional[Summary] = None
    scores: ScoreBoard = field(default_factory=ScoreBoard)

    pending_narration_text: Optional[str] = None
    last_error: Optional[str] = None
    busy: Optional[PendingCall] = None
    generation: int = 0

    @property
    def score_total(self) -> int:
        return self.scores.combined.total

    @property
    def score_possible(self) -> int:
        return self.scores.combined.possible

    def find_item(self, key: str) -> Optional[HistoryItem]:
        for item in self.history:
            if item.key == key:
                return item
        return None

    def current_item(self) -> Optional[HistoryItem]:
        """L'item della domanda visualizzata (se già risposta)."""
        if not self.current_question:
            return None
        return self.find_item(question_key(self.current_question))
