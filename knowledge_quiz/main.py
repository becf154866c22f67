# knowledge_quiz/main.py
from __future__ import annotations

import logging
import os
from typing import Optional

from knowledge_quiz.ai.gemini_client import GeminiClient, GeminiConfig
from knowledge_quiz.domain.enums import EducationLevel, Language, Phase
from knowledge_quiz.domain.errors import TransitionError, ValidationError
from knowledge_quiz.domain.models import ReferenceDocument
from knowledge_quiz.domain.rules import score_bar
from knowledge_quiz.engine.answer_evaluator import AnswerEvaluator
from knowledge_quiz.engine.introduction import IntroductionSource
from knowledge_quiz.engine.question_source import QuestionSource
from knowledge_quiz.engine.session_engine import SessionEngine, SessionSettings
from knowledge_quiz.engine.summary import SummaryWriter
from knowledge_quiz.visuals.sd_client import SDClient, SDConfig
from knowledge_quiz.voice_narrator import (
    GoogleSpeechSynthesizer,
    NarrationChannel,
    PygameAudioPlayer,
    TTSConfig,
)

logger = logging.getLogger(__name__)


class Restart(Exception):
    pass


def _get_env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _ask(prompt: str) -> str:
    s = input(prompt).strip()
    if s.lower() in ("q", "quit", "exit"):
        raise KeyboardInterrupt()
    if s.lower() in ("r", "restart"):
        raise Restart()
    return s


def _choose(label: str, enum_cls, default):
    values = [m.value for m in enum_cls]
    print(f"{label}: " + ", ".join(values))
    s = _ask(f"{label} [{default.value}]: ")
    return s or default.value


def _build_narrator() -> Optional[NarrationChannel]:
    cfg = TTSConfig.from_env()
    if not cfg.enabled:
        return None
    try:
        return NarrationChannel(GoogleSpeechSynthesizer(cfg), PygameAudioPlayer())
    except Exception as e:
        # narrazione = arricchimento: si prosegue senza audio
        logger.warning("[AUDIO] Narrazione disattivata: %s", e)
        return NarrationChannel()


def build_engine(gemini: GeminiClient) -> SessionEngine:
    settings = SessionSettings.from_env()
    sd = SDClient(SDConfig.from_env())
    return SessionEngine(
        introduction=IntroductionSource(gemini, settings.attempts),
        questions=QuestionSource(gemini, settings.attempts),
        evaluator=AnswerEvaluator(gemini, settings.attempts, settings.score),
        summarizer=SummaryWriter(gemini, settings.attempts),
        illustrator=sd if sd.config.enabled else None,
        narrator=_build_narrator(),
        settings=settings,
    )


def _print_block(title: str, body: str) -> None:
    print("\n" + "=" * 80)
    print(title)
    print("-" * 80)
    print(body)
    print("=" * 80)


def _print_busy(engine: SessionEngine) -> None:
    msg = engine.busy_message()
    if msg:
        print(f"... {msg}")


def _configure(engine: SessionEngine) -> None:
    while engine.phase == Phase.CONFIGURING:
        topic = _ask("Topic: ")
        level = _choose("Level", EducationLevel, EducationLevel.HIGH_SCHOOL)
        language = _choose("Language", Language, Language.ENGLISH)
        pdf = _ask("Reference PDF path (Enter = none): ")
        document = None
        if pdf:
            try:
                document = ReferenceDocument.from_path(pdf)
            except OSError as e:
                print(f"Could not read the document: {e}")
                continue
        try:
            engine.configure(topic, level, language, document)
        except ValidationError as e:
            print(f"ERROR: {e}")


def _play(engine: SessionEngine) -> None:
    s = engine.session
    if s.phase == Phase.INTRODUCING:
        _print_block(f"Introduction: {s.configuration.topic}", s.introduction_text or s.last_error or "")
        _ask("Press Enter to start the quiz (R=restart, Q=quit) ")
        engine.acknowledge_introduction()

    while engine.phase in (Phase.QUESTIONING, Phase.EXPLAINING):
        s = engine.session
        if engine.phase == Phase.QUESTIONING:
            tag = f"REVIEW {s.review_cursor + 1}/{len(s.review_queue)}" if s.in_review else f"Question {len(s.history) + 1}"
            _print_block(tag, s.current_question or "")
            answer = _ask("Answer: ")
            try:
                item = engine.submit_answer(answer)
            except ValidationError as e:
                print(f"ERROR: {e}")
                continue
            if item is None:
                return
            _, label = score_bar(s.score_total, s.score_possible)
            print(f"\n--- RESULT: {item.awarded_score}/{item.possible_score} | Total: {label} ---")
            print(item.explanation)
            _print_busy(engine)
        else:
            _ask("Press Enter to continue ")
            item = engine.session.current_item()
            if item is not None and item.illustration is not None and item.illustration.path:
                print(f"Illustration saved to: {item.illustration.path}")
            engine.advance()


def _show_summary(engine: SessionEngine) -> bool:
    """True se l'utente avvia un ripasso."""
    s = engine.session
    board = s.scores
    _print_block(
        "Summary",
        f"{s.summary.text}\n\nSuggestions for further learning:\n" + "\n".join(f"- {x}" for x in s.summary.suggestions),
    )
    print(f"Score: {board.combined.total}/{board.combined.possible}"
          f" (first answers: {board.fresh.total}/{board.fresh.possible},"
          f" reviewed: {board.reviewed.total}/{board.reviewed.possible})")
    if not engine.can_start_review:
        return False
    s_in = _ask(f"{len(engine.review_eligible)} answers below the threshold. Start a review? [y/N] ")
    if s_in.lower() in ("y", "yes"):
        engine.start_review()
        return True
    return False


def main() -> int:
    logging.basicConfig(
        level=_get_env("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    gemini_cfg = GeminiConfig.from_env()
    if not gemini_cfg.api_key:
        print("ERROR: GEMINI_API_KEY is not set.")
        return 2

    engine = build_engine(GeminiClient(gemini_cfg))

    print("KNOWLEDGE QUIZ (CLI)")
    print(f"- Model: {gemini_cfg.model}")
    print("Press Q to quit, R to restart.\n")

    while True:
        try:
            _configure(engine)
            while True:
                _play(engine)
                if engine.phase == Phase.ERRED:
                    print(f"\nERROR: {engine.session.last_error}")
                    _ask("Press Enter to start over ")
                    raise Restart()
                if engine.phase != Phase.SUMMARIZED or not _show_summary(engine):
                    break
            _ask("\nQuiz complete. Press Enter for a new quiz ")
            raise Restart()
        except Restart:
            engine.restart()
        except TransitionError as e:
            logger.error("Azione non valida: %s", e)
            engine.restart()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye.")
            if engine.narrator is not None:
                engine.narrator.shutdown()
            return 0


if __name__ == "__main__":
    raise SystemExit(main())
