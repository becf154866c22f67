import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from knowledge_quiz.domain.models import Evaluation, Illustration, Summary  # noqa: E402
from knowledge_quiz.engine.session_engine import SessionEngine  # noqa: E402
from knowledge_quiz.voice_narrator import NarrationChannel  # noqa: E402


class ManualSpawner:
    """Raccoglie i job "in background" e li esegue solo quando il test lo chiede."""

    def __init__(self):
        self.jobs = []

    def __call__(self, target, *args):
        self.jobs.append((target, args))

    def run_all(self):
        jobs, self.jobs = self.jobs, []
        for target, args in jobs:
            target(*args)

    def run(self, index):
        target, args = self.jobs.pop(index)
        target(*args)


class FakeIntroduction:
    def __init__(self, text="Before we start, let's review some key points.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def introduce(self, cfg):
        self.calls.append(cfg)
        if self.error:
            raise self.error
        return self.text


class FakeQuestions:
    """Restituisce le domande in ordine; None a fine lista."""

    def __init__(self, questions=None, error=None):
        self.questions = list(questions or [])
        self.error = error
        self.calls = []

    def next_question(self, cfg, answered):
        self.calls.append(list(answered))
        if self.error:
            raise self.error
        if not self.questions:
            return None
        return self.questions.pop(0)


class FakeEvaluator:
    """scores: lista di punteggi (o eccezioni) consumati in ordine."""

    def __init__(self, scores=None, illustration_request=None):
        self.scores = list(scores or [])
        self.illustration_request = illustration_request
        self.calls = []

    def evaluate(self, cfg, question, answer):
        self.calls.append((question, answer))
        score = self.scores.pop(0) if self.scores else 5
        if isinstance(score, Exception):
            raise score
        return Evaluation(
            score=score,
            explanation=f"Explanation for {question}",
            illustration_request=self.illustration_request,
        )


class FakeSummarizer:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def summarize(self, cfg, history):
        self.calls.append(list(history))
        if self.error:
            raise self.error
        return Summary(text="Good work overall.", suggestions=["Light reactions", "Calvin cycle", "Chlorophyll"])


class FakeIllustrator:
    def __init__(self, error=None):
        self.error = error
        self.requests = []

    def generate_image(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return Illustration(data=b"png", width=4, height=3)


class FakeSynthesizer:
    def __init__(self, error=None, audio=True):
        self.error = error
        self.audio = audio
        self.calls = []

    def synthesize(self, text, language):
        self.calls.append((text, language))
        if self.error:
            raise self.error
        return f"audio:{text}".encode() if self.audio else None


class FakePlayer:
    def __init__(self):
        self.played = []
        self.stops = 0

    def play(self, audio, should_stop):
        self.played.append(audio)

    def stop(self):
        self.stops += 1


@pytest.fixture
def spawner():
    return ManualSpawner()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def narrator(spawner, player):
    return NarrationChannel(FakeSynthesizer(), player, spawn=spawner)


@pytest.fixture
def make_engine(spawner, narrator):
    """Costruisce un SessionEngine con collaboratori finti (sovrascrivibili)."""

    def _make(**overrides):
        parts = {
            "introduction": FakeIntroduction(),
            "questions": FakeQuestions(["What is photosynthesis?"]),
            "evaluator": FakeEvaluator(),
            "summarizer": FakeSummarizer(),
            "illustrator": FakeIllustrator(),
            "narrator": narrator,
        }
        parts.update(overrides)
        return SessionEngine(spawn=spawner, **parts)

    return _make
