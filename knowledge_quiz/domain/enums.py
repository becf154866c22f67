# knowledge_quiz/domain/enums.py
from __future__ import annotations

from enum import Enum


class EducationLevel(str, Enum):
    PRESCHOOL = "Preschool"
    ELEMENTARY_SCHOOL = "ElementarySchool"
    MIDDLE_SCHOOL = "MiddleSchool"
    HIGH_SCHOOL = "HighSchool"
    COLLEGE = "College"
    GRADUATE = "Graduate"
    MASTERS = "Masters"
    PHD = "PhD"


class Language(str, Enum):
    ENGLISH = "English"
    SPANISH = "Spanish"
    FRENCH = "French"
    GERMAN = "German"
    CHINESE_SIMPLIFIED = "Chinese (Simplified)"
    JAPANESE = "Japanese"
    KOREAN = "Korean"
    ARABIC = "Arabic"
    HINDI = "Hindi"
    SWAHILI = "Swahili"
    PORTUGUESE = "Portuguese"

    @property
    def code(self) -> str:
        """Codice BCP-47 usato come hint per la narrazione."""
        return LANGUAGE_CODES[self]


LANGUAGE_CODES = {
    Language.ENGLISH: "en-US",
    Language.SPANISH: "es-ES",
    Language.FRENCH: "fr-FR",
    Language.GERMAN: "de-DE",
    Language.CHINESE_SIMPLIFIED: "cmn-CN",
    Language.JAPANESE: "ja-JP",
    Language.KOREAN: "ko-KR",
    Language.ARABIC: "ar-XA",
    Language.HINDI: "hi-IN",
    Language.SWAHILI: "sw-KE",
    Language.PORTUGUESE: "pt-BR",
}


class Phase(str, Enum):
    CONFIGURING = "configuring"
    INTRODUCING = "introducing"
    QUESTIONING = "questioning"
    EVALUATING = "evaluating"
    EXPLAINING = "explaining"
    SUMMARIZING = "summarizing"
    SUMMARIZED = "summarized"
    ERRED = "erred"


class PendingCall(str, Enum):
    """Quale collaboratore sta bloccando la transizione corrente."""
    INTRODUCTION = "introduction"
    QUESTION = "question"
    EVALUATION = "evaluation"
    SUMMARY = "summary"


class NarrationState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PLAYING = "playing"
    SILENT = "silent"
