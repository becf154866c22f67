# knowledge_quiz/engine/session_engine.py
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Union

from knowledge_quiz.domain.enums import EducationLevel, Language, NarrationState, PendingCall, Phase
from knowledge_quiz.domain.errors import AnswerInvalid, ConfigurationInvalid, TransitionError
from knowledge_quiz.domain.models import Evaluation, HistoryItem, ReferenceDocument, Session, question_key
from knowledge_quiz.domain.rules import InputRules, validate_answer, validate_configuration
from knowledge_quiz.engine.answer_evaluator import fallback_evaluation
from knowledge_quiz.engine.review import select_for_review
from knowledge_quiz.engine.scoring import ScoreConfig, score_board

logger = logging.getLogger(__name__)

Listener = Callable[[Session], None]


@dataclass(frozen=True)
class SessionSettings:
    attempts: int = 3
    score: ScoreConfig = field(default_factory=ScoreConfig)
    rules: InputRules = field(default_factory=InputRules)

    @staticmethod
    def from_env() -> "SessionSettings":
        return SessionSettings(attempts=int(os.environ.get("QUIZ_ATTEMPTS", "3")))


def _spawn_daemon(target, *args) -> None:
    threading.Thread(target=target, args=args, daemon=True).start()


class SessionEngine:
    """
    Macchina a stati della sessione di quiz.

    Le chiamate "critiche" (introduzione, domanda, valutazione, riepilogo) bloccano
    il thread chiamante (la UI le lancia da un worker). Le chiamate di arricchimento
    (immagine, narrazione) partono su thread daemon e non bloccano mai le transizioni.

    Ogni completamento asincrono confronta il token di generazione della sessione:
    dopo un restart() i risultati vecchi vengono scartati.
    """

    def __init__(
        self,
        introduction,
        questions,
        evaluator,
        summarizer,
        illustrator=None,
        narrator=None,
        settings: SessionSettings = SessionSettings(),
        spawn: Callable = _spawn_daemon,
    ):
        self.introduction = introduction
        self.questions = questions
        self.evaluator = evaluator
        self.summarizer = summarizer
        self.illustrator = illustrator
        self.narrator = narrator
        self.settings = settings
        self._spawn = spawn

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._image_seq = 0
        self.session = Session()

    # --- VISTE ---
    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def review_eligible(self) -> List[str]:
        # sempre ricalcolato dallo storico corrente
        return select_for_review(self.session.history, self.settings.score.review_threshold)

    @property
    def can_acknowledge(self) -> bool:
        s = self.session
        return s.phase == Phase.INTRODUCING and s.busy is None

    @property
    def can_submit_answer(self) -> bool:
        s = self.session
        return s.phase == Phase.QUESTIONING and s.busy is None and bool(s.current_question)

    @property
    def can_advance(self) -> bool:
        return self.session.phase == Phase.EXPLAINING

    @property
    def can_start_review(self) -> bool:
        return self.session.phase == Phase.SUMMARIZED and bool(self.review_eligible)

    def busy_message(self) -> Optional[str]:
        s = self.session
        if s.busy == PendingCall.INTRODUCTION:
            return "Preparing topic introduction..."
        if s.busy == PendingCall.QUESTION:
            return "Generating next question..." if s.history else "Preparing your first question..."
        if s.busy == PendingCall.EVALUATION:
            return "Evaluating your answer..."
        if s.busy == PendingCall.SUMMARY:
            return "Generating your quiz summary..."

        item = s.current_item()
        if s.phase == Phase.EXPLAINING and item is not None and item.illustration_pending:
            return "Generating image for explanation..."
        if self.narrator is not None and self.narrator.state == NarrationState.FETCHING:
            return "Preparing audio narration..."
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- FASE 1: CONFIGURAZIONE + INTRODUZIONE ---
    def configure(
        self,
        topic: str,
        level: Union[EducationLevel, str] = EducationLevel.HIGH_SCHOOL,
        language: Union[Language, str] = Language.ENGLISH,
        document: Optional[ReferenceDocument] = None,
    ) -> Session:
        with self._lock:
            self._require(self.session.phase == Phase.CONFIGURING, "configure")
            self.session.last_error = None
            try:
                cfg = validate_configuration(topic, level, language, document, self.settings.rules)
            except ConfigurationInvalid as e:
                self.session.last_error = str(e)
                raise

            generation = self.session.generation + 1
            self.session = Session(
                configuration=cfg,
                phase=Phase.INTRODUCING,
                busy=PendingCall.INTRODUCTION,
                generation=generation,
            )
        self._notify()
        logger.info("Nuova sessione: topic=%r level=%s language=%s doc=%s",
                    cfg.topic, cfg.level.value, cfg.language.value, cfg.document is not None)

        try:
            text = self.introduction.introduce(cfg)
        except Exception as e:
            self._fail(generation, e)
            return self.session

        with self._lock:
            if self._stale(generation, "introduzione"):
                return self.session
            s = self.session
            s.busy = None
            if text and text.strip():
                s.introduction_text = text.strip()
                self._narrate(s.introduction_text)
            else:
                # fallimento morbido: errore inline, si può comunque proseguire
                s.last_error = (
                    f'Could not generate an introduction for "{cfg.topic}" in {cfg.language.value}. '
                    "You can still start the quiz."
                )
        self._notify()
        return self.session

    def acknowledge_introduction(self) -> Session:
        with self._lock:
            self._require(self.can_acknowledge, "acknowledge_introduction")
            self.session.last_error = None
            generation = self.session.generation
            self._enter_question_fetch(self.session)
        self._fetch_question(generation)
        return self.session

    # --- FASE 2: QUIZ ---
    def submit_answer(self, answer: str) -> Optional[HistoryItem]:
        with self._lock:
            self._require(self.can_submit_answer, "submit_answer")
            s = self.session
            s.last_error = None
            try:
                clean = validate_answer(answer, self.settings.rules)
            except AnswerInvalid as e:
                s.last_error = str(e)
                raise

            question = s.current_question
            cfg = s.configuration
            generation = s.generation
            s.phase = Phase.EVALUATING
            s.busy = PendingCall.EVALUATION
            self._silence()
        self._notify()

        try:
            evaluation = self.evaluator.evaluate(cfg, question, clean)
        except Exception as e:
            logger.warning("[EVAL] Valutazione fallita, uso il fallback: %s", e)
            evaluation = fallback_evaluation(cfg)

        with self._lock:
            if self._stale(generation, "valutazione"):
                return None
            s = self.session
            item = self._record(question, clean, evaluation)
            s.scores = score_board(s.history, self.settings.score)
            s.phase = Phase.EXPLAINING
            s.busy = None
            if item.illustration_request and self.illustrator is not None:
                self._request_illustration(item)
            self._narrate(item.explanation)
        self._notify()
        return item

    def advance(self) -> Session:
        """Dopo la spiegazione: prossima domanda, prossimo ripasso oppure riepilogo."""
        with self._lock:
            self._require(self.can_advance, "advance")
            s = self.session
            s.last_error = None
            generation = s.generation
            self._silence()

            if not s.in_review:
                self._enter_question_fetch(s)
                next_step = self._fetch_question
            else:
                s.review_cursor += 1
                item = self._review_item(s.review_cursor)
                if item is not None:
                    self._show_review_question(item)
                    next_step = None
                else:
                    logger.info("Ripasso %d completato.", s.review_round)
                    self._enter_summary(s)
                    next_step = self._summarize

        if next_step is None:
            self._notify()
        else:
            next_step(generation)
        return self.session

    def start_review(self) -> Session:
        with self._lock:
            self._require(self.can_start_review, "start_review")
            s = self.session
            s.last_error = None
            # non risolti del round precedente + nuovi idonei = selezione attuale
            s.review_queue = select_for_review(s.history, self.settings.score.review_threshold)
            s.review_cursor = 0
            s.review_round += 1
            s.in_review = True
            logger.info("Ripasso %d: %d domande.", s.review_round, len(s.review_queue))
            self._show_review_question(self._review_item(0))
        self._notify()
        return self.session

    def restart(self) -> Session:
        """Scarta la sessione (qualsiasi fase) e invalida ogni richiesta in volo."""
        with self._lock:
            generation = self.session.generation + 1
            if self.narrator is not None:
                self.narrator.cancel()
            self.session = Session(generation=generation)
        logger.info("Sessione azzerata (generazione %d).", generation)
        self._notify()
        return self.session

    # --- CORE ---
    def _fetch_question(self, generation: int) -> None:
        with self._lock:
            if self._stale(generation, "richiesta domanda"):
                return
            s = self.session
            self._enter_question_fetch(s)
            cfg = s.configuration
            answered = [(i.question, i.answer) for i in s.history]
        self._notify()

        try:
            question = self.questions.next_question(cfg, answered)
        except Exception as e:
            self._fail(generation, e)
            return

        if not question or not question.strip():
            self._summarize(generation)
            return

        with self._lock:
            if self._stale(generation, "domanda"):
                return
            s = self.session
            s.busy = None
            s.current_question = question.strip()
            self._narrate(s.current_question)
        self._notify()

    def _summarize(self, generation: int) -> None:
        with self._lock:
            if self._stale(generation, "riepilogo"):
                return
            s = self.session
            self._enter_summary(s)
            cfg = s.configuration
            history = list(s.history)
        self._notify()

        try:
            summary = self.summarizer.summarize(cfg, history)
        except Exception as e:
            self._fail(generation, e)
            return

        with self._lock:
            if self._stale(generation, "riepilogo"):
                return
            s = self.session
            s.summary = summary
            s.scores = score_board(s.history, self.settings.score)
            s.review_queue = select_for_review(s.history, self.settings.score.review_threshold)
            s.review_cursor = 0
            s.phase = Phase.SUMMARIZED
            s.busy = None
            self._narrate(summary.text)
        self._notify()

    @staticmethod
    def _enter_question_fetch(s: Session) -> None:
        # chiamare sotto lo stesso lock che ha verificato la guardia
        s.phase = Phase.QUESTIONING
        s.busy = PendingCall.QUESTION
        s.current_question = None

    @staticmethod
    def _enter_summary(s: Session) -> None:
        s.phase = Phase.SUMMARIZING
        s.busy = PendingCall.SUMMARY
        s.current_question = None
        s.in_review = False

    def _record(self, question: str, answer: str, evaluation: Evaluation) -> HistoryItem:
        """Aggiunge un item, oppure (stessa domanda) sostituisce voto e spiegazione."""
        s = self.session
        item = s.find_item(question_key(question))
        if item is None:
            item = HistoryItem(
                question=question,
                answer=answer,
                possible_score=self.settings.score.max_score,
                first_score=evaluation.score,
            )
            s.history.append(item)
        else:
            item.answer = answer
            item.review_count += 1

        item.awarded_score = evaluation.score
        item.explanation = evaluation.explanation
        item.illustration_request = evaluation.illustration_request
        item.illustration = None
        item.illustration_pending = False
        return item

    def _review_item(self, cursor: int) -> Optional[HistoryItem]:
        s = self.session
        while cursor < len(s.review_queue):
            item = s.find_item(s.review_queue[cursor])
            if item is not None:
                s.review_cursor = cursor
                return item
            cursor += 1
        s.review_cursor = cursor
        return None

    def _show_review_question(self, item: HistoryItem) -> None:
        s = self.session
        s.current_question = item.question
        s.phase = Phase.QUESTIONING
        s.busy = None
        self._narrate(item.question)

    # --- ARRICCHIMENTI ---
    def _request_illustration(self, item: HistoryItem) -> None:
        self._image_seq += 1
        item.illustration_token = self._image_seq
        item.illustration_pending = True
        self._spawn(
            self._illustrate,
            self.session.generation,
            item.key,
            item.illustration_token,
            item.illustration_request,
        )

    def _illustrate(self, generation: int, key: str, token: int, request: str) -> None:
        try:
            image = self.illustrator.generate_image(request)
        except Exception as e:
            logger.warning("[SD] Errore generazione immagine: %s", e)
            image = None

        with self._lock:
            if self._stale(generation, "immagine"):
                return
            item = self.session.find_item(key)
            if item is None or item.illustration_token != token:
                logger.debug("Immagine superata per %r: scartata.", key)
                return
            item.illustration_pending = False
            item.illustration = image
        self._notify()

    def _narrate(self, text: Optional[str]) -> None:
        # chiamare SOLO dopo aver salvato il testo nella sessione
        if not text or not text.strip():
            return
        s = self.session
        s.pending_narration_text = text
        if self.narrator is not None:
            self.narrator.speak(text, s.configuration.language)

    def _silence(self) -> None:
        self.session.pending_narration_text = None
        if self.narrator is not None:
            self.narrator.cancel()

    # --- UTILS ---
    def _require(self, allowed: bool, action: str) -> None:
        if not allowed:
            raise TransitionError(f"{action} non consentito in fase {self.session.phase.value}")

    def _stale(self, generation: int, what: str) -> bool:
        if self.session.generation != generation:
            logger.debug("Completamento %s della generazione %d scartato.", what, generation)
            return True
        return False

    def _fail(self, generation: int, error: Exception) -> None:
        with self._lock:
            if self._stale(generation, "errore"):
                return
            s = self.session
            logger.error("Sessione in errore durante %s: %s", s.busy.value if s.busy else s.phase.value, error)
            s.phase = Phase.ERRED
            s.busy = None
            s.last_error = str(error) or error.__class__.__name__
            self._silence()
        self._notify()

    def _notify(self) -> None:
        session = self.session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Listener di sessione fallito.")
