from conftest import FakeEvaluator
from knowledge_quiz import main
from knowledge_quiz.domain.enums import Phase


def test_summary_screen_offers_review_in_english(make_engine, monkeypatch, capsys):
    engine = make_engine(evaluator=FakeEvaluator([1]))
    engine.configure("Photosynthesis")
    engine.acknowledge_introduction()
    engine.submit_answer("Plants eat sunlight")
    engine.advance()
    assert engine.phase == Phase.SUMMARIZED

    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        return "y"

    monkeypatch.setattr("builtins.input", fake_input)

    assert main._show_summary(engine) is True

    out = capsys.readouterr().out
    assert "Suggestions for further learning:" in out
    assert "Score: 1/5 (first answers: 1/5, reviewed: 0/0)" in out
    assert prompts == ["1 answers below the threshold. Start a review? [y/N] "]
    assert engine.session.in_review


def test_question_loop_prompts_in_english(make_engine, monkeypatch, capsys):
    engine = make_engine(evaluator=FakeEvaluator([4]))
    engine.configure("Photosynthesis")
    answers = iter(["", "Light becomes sugar", ""])
    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        return next(answers)

    monkeypatch.setattr("builtins.input", fake_input)

    main._play(engine)

    assert prompts == [
        "Press Enter to start the quiz (R=restart, Q=quit) ",
        "Answer: ",
        "Press Enter to continue ",
    ]
    assert "--- RESULT: 4/5 | Total: 4/5 (80%) ---" in capsys.readouterr().out
    assert engine.phase == Phase.SUMMARIZED
