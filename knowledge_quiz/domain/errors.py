# knowledge_quiz/domain/errors.py
from __future__ import annotations


class QuizError(Exception):
    pass


class ValidationError(QuizError):
    """Input locale non valido: nessun cambio di fase."""


class ConfigurationInvalid(ValidationError):
    pass


class AnswerInvalid(ValidationError):
    pass


class TransitionError(QuizError):
    """Azione non abilitata nella fase corrente (la UI la disabilita)."""


class EnrichmentFailure(QuizError):
    """Immagine o narrazione non disponibili: degradazione silenziosa."""


class EvaluationFailure(QuizError):
    """Valutazione fallita: sostituita con punteggio zero e spiegazione di fallback."""


class PhaseFetchFailure(QuizError):
    """Fallimento fatale per la fase corrente: la sessione passa in ERRED."""


class IntroductionFailure(PhaseFetchFailure):
    pass


class QuestionFetchError(PhaseFetchFailure):
    pass


class SummaryError(PhaseFetchFailure):
    pass
