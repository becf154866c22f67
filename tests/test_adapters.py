import pytest

from knowledge_quiz.domain.errors import EvaluationFailure, IntroductionFailure, QuestionFetchError, SummaryError
from knowledge_quiz.domain.models import Configuration, HistoryItem, ReferenceDocument
from knowledge_quiz.engine.answer_evaluator import AnswerEvaluator, fallback_evaluation
from knowledge_quiz.engine.introduction import IntroductionSource
from knowledge_quiz.engine.question_source import QuestionSource
from knowledge_quiz.engine.summary import SummaryWriter
from knowledge_quiz.domain.enums import Language


class FakeGemini:
    """Risponde con i payload in coda; le eccezioni in coda vengono sollevate."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []
        self.documents = []

    def generate_json(self, prompt, document=None):
        self.prompts.append(prompt)
        self.documents.append(document)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


CFG = Configuration(topic="Photosynthesis")


def test_question_source_returns_question():
    gemini = FakeGemini({"nextQuestion": "  What do plants need?  "})

    assert QuestionSource(gemini).next_question(CFG, []) == "What do plants need?"
    assert "first question" in gemini.prompts[0]


@pytest.mark.parametrize("payload", [{"nextQuestion": ""}, {"nextQuestion": 3}, {}])
def test_question_source_end_of_quiz(payload):
    assert QuestionSource(FakeGemini(payload)).next_question(CFG, [("Q1?", "a1")]) is None


def test_question_source_retries_then_succeeds():
    gemini = FakeGemini(RuntimeError("timeout"), {"nextQuestion": "Q2?"})

    assert QuestionSource(gemini, attempts=3).next_question(CFG, [("Q1?", "a1")]) == "Q2?"
    assert len(gemini.prompts) == 2
    assert "Q: Q1?\nA: a1" in gemini.prompts[0]


def test_question_source_wraps_errors():
    gemini = FakeGemini(RuntimeError("a"), RuntimeError("b"), RuntimeError("c"))

    with pytest.raises(QuestionFetchError):
        QuestionSource(gemini, attempts=3).next_question(CFG, [])
    assert len(gemini.prompts) == 3


def test_document_is_forwarded():
    doc = ReferenceDocument(name="notes.pdf", mime_type="application/pdf", data=b"%PDF")
    cfg = Configuration(topic="Photosynthesis", document=doc)
    gemini = FakeGemini({"nextQuestion": "Q?"})

    QuestionSource(gemini).next_question(cfg, [])

    assert gemini.documents == [doc]
    assert "attached document" in gemini.prompts[0]


def test_introduction_source():
    assert IntroductionSource(FakeGemini({"introductionText": " Hello "})).introduce(CFG) == "Hello"
    assert IntroductionSource(FakeGemini({})).introduce(CFG) == ""

    with pytest.raises(IntroductionFailure):
        IntroductionSource(FakeGemini(RuntimeError("down")), attempts=1).introduce(CFG)


def test_evaluator_clamps_score_and_drops_blank_image_prompt():
    gemini = FakeGemini({"awardedScore": 9, "explanation": "Correct.", "imagePrompt": "  "})

    evaluation = AnswerEvaluator(gemini).evaluate(CFG, "Q?", "A")

    assert evaluation.score == 5
    assert evaluation.explanation == "Correct."
    assert evaluation.illustration_request is None


def test_evaluator_keeps_image_prompt():
    gemini = FakeGemini({"awardedScore": "2", "explanation": "Partly.", "imagePrompt": "leaf cross section"})

    evaluation = AnswerEvaluator(gemini).evaluate(CFG, "Q?", "A")

    assert evaluation.score == 2
    assert evaluation.illustration_request == "leaf cross section"


def test_evaluator_retries_malformed_payloads_then_fails():
    gemini = FakeGemini({"awardedScore": 3}, {"explanation": "x"}, {"awardedScore": True, "explanation": "x"})

    with pytest.raises(EvaluationFailure):
        AnswerEvaluator(gemini, attempts=3).evaluate(CFG, "Q?", "A")
    assert len(gemini.prompts) == 3


def test_fallback_evaluation_mentions_language():
    evaluation = fallback_evaluation(Configuration(topic="Volcanoes", language=Language.FRENCH))

    assert evaluation.score == 0
    assert "French" in evaluation.explanation
    assert evaluation.illustration_request is None


def test_summary_writer_trims_suggestions():
    gemini = FakeGemini({"summary": "Well done.", "furtherLearningSuggestions": [f"s{i}" for i in range(7)]})
    history = [HistoryItem("Q1?", "a1", awarded_score=4, explanation="ok")]

    summary = SummaryWriter(gemini).summarize(CFG, history)

    assert summary.text == "Well done."
    assert summary.suggestions == ["s0", "s1", "s2", "s3", "s4"]
    assert "Score: 4/5" in gemini.prompts[0]


def test_summary_writer_tolerates_few_suggestions():
    gemini = FakeGemini({"summary": "Short quiz.", "furtherLearningSuggestions": ["one", " ", None]})

    assert SummaryWriter(gemini).summarize(CFG, []).suggestions == ["one"]


def test_summary_writer_rejects_blank_summary():
    gemini = FakeGemini({"summary": "  "})

    with pytest.raises(SummaryError):
        SummaryWriter(gemini, attempts=1).summarize(CFG, [])
