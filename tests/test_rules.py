import pytest

from knowledge_quiz.domain.enums import EducationLevel, Language
from knowledge_quiz.domain.errors import AnswerInvalid, ConfigurationInvalid, ValidationError
from knowledge_quiz.domain.models import ReferenceDocument
from knowledge_quiz.domain.rules import InputRules, score_bar, validate_answer, validate_configuration


def test_configuration_is_normalized():
    doc = ReferenceDocument(name="notes.pdf", mime_type="application/pdf", data=b"%PDF")

    cfg = validate_configuration("  The   Water cycle ", "College", "Japanese", doc)

    assert cfg.topic == "The Water cycle"
    assert cfg.level == EducationLevel.COLLEGE
    assert cfg.language == Language.JAPANESE
    assert cfg.language.code == "ja-JP"
    assert cfg.document is doc


@pytest.mark.parametrize("topic", ["", "  ", "ab", "x" * 101])
def test_topic_length_is_enforced(topic):
    with pytest.raises(ConfigurationInvalid):
        validate_configuration(topic)


def test_topic_bounds_are_inclusive():
    assert validate_configuration("abc").topic == "abc"
    assert len(validate_configuration("x" * 100).topic) == 100


def test_unknown_level_or_language():
    with pytest.raises(ConfigurationInvalid):
        validate_configuration("Photosynthesis", level="Kindergarten")
    with pytest.raises(ConfigurationInvalid):
        validate_configuration("Photosynthesis", language="Klingon")


def test_custom_rules():
    rules = InputRules(topic_min_chars=1, answer_max_chars=5)

    assert validate_configuration("a", rules=rules).topic == "a"
    with pytest.raises(AnswerInvalid):
        validate_answer("too long", rules)


def test_answer_validation():
    assert validate_answer("  light  ") == "light"
    assert validate_answer("x" * 500) == "x" * 500
    with pytest.raises(ValidationError):
        validate_answer("   ")
    with pytest.raises(AnswerInvalid):
        validate_answer("x" * 501)


def test_score_bar():
    assert score_bar(0, 0) == (0.0, "0/0")
    position, label = score_bar(7, 10, 0.0, 100.0)
    assert position == pytest.approx(70.0)
    assert label == "7/10 (70%)"
