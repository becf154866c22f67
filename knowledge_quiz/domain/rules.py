# knowledge_quiz/domain/rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from knowledge_quiz.domain.enums import EducationLevel, Language
from knowledge_quiz.domain.errors import AnswerInvalid, ConfigurationInvalid
from knowledge_quiz.domain.models import Configuration, ReferenceDocument


@dataclass(frozen=True)
class InputRules:
    """
    Limiti sugli input dell'utente.
    NOTA: il topic è validato una sola volta, al passaggio Configuring -> Introducing.
    """
    topic_min_chars: int = 3
    topic_max_chars: int = 100
    answer_max_chars: int = 500


def validate_configuration(
    topic: str,
    level: Union[EducationLevel, str] = EducationLevel.HIGH_SCHOOL,
    language: Union[Language, str] = Language.ENGLISH,
    document: Optional[ReferenceDocument] = None,
    rules: InputRules = InputRules(),
) -> Configuration:
    clean_topic = " ".join((topic or "").split())
    if len(clean_topic) < rules.topic_min_chars:
        raise ConfigurationInvalid(f"Topic must be at least {rules.topic_min_chars} characters.")
    if len(clean_topic) > rules.topic_max_chars:
        raise ConfigurationInvalid("Topic is too long.")

    return Configuration(
        topic=clean_topic,
        level=_coerce(EducationLevel, level, "education level"),
        language=_coerce(Language, language, "language"),
        document=document,
    )


def validate_answer(answer: str, rules: InputRules = InputRules()) -> str:
    clean = (answer or "").strip()
    if not clean:
        raise AnswerInvalid("Please provide an answer to continue.")
    if len(clean) > rules.answer_max_chars:
        raise AnswerInvalid("Answer is too long.")
    return clean


def score_bar(total: int, possible: int, bar_min: float = 0.0, bar_max: float = 1.0) -> Tuple[float, str]:
    """
    Converte il punteggio in:
    - posizione sulla barra (bar_min..bar_max)
    - etichetta "total/possible (pct%)"

    Utile per la UI "barra punteggio".
    """
    if possible <= 0:
        return bar_min, "0/0"
    progress = max(0.0, min(1.0, total / possible))
    pct = round(progress * 100)
    return bar_min + (bar_max - bar_min) * progress, f"{total}/{possible} ({pct}%)"


def _coerce(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        raise ConfigurationInvalid(f"Unsupported {label}: {value!r}") from None
