import json

import pytest

from quizgenius.errors import ParseError, EmptyResultError, ElementValidationError
from quizgenius.services.normalizer import QuizNormalizer, quiz_normalizer


WELL_FORMED = [
    {
        "question": "What is the capital of France?",
        "options": ["A) London", "B) Paris", "C) Berlin", "D) Madrid"],
        "correctAnswer": "B",
        "explanation": "Paris is the capital and largest city of France.",
    },
    {
        "question": "Which planet is known as the Red Planet?",
        "options": ["A) Venus", "B) Mars", "C) Jupiter", "D) Saturn"],
        "correctAnswer": "B",
        "explanation": "Iron oxide gives Mars its red colour.",
    },
]


def make_question(question="What is 2 + 2?", options=None, answer="A", explanation="Basic arithmetic."):
    return {
        "question": question,
        "options": options if options is not None else ["4", "3", "5", "6"],
        "correctAnswer": answer,
        "explanation": explanation,
    }


def payload(result):
    return [q.to_document() for q in result.questions]


def test_well_formed_input_is_unchanged():
    result = quiz_normalizer.normalize(json.dumps(WELL_FORMED), 2)

    assert result.ok
    assert payload(result) == WELL_FORMED


def test_fenced_input_matches_unfenced():
    raw = json.dumps(WELL_FORMED, indent=2)
    fenced = quiz_normalizer.normalize(f"```json\n{raw}\n```", 2)
    plain = quiz_normalizer.normalize(raw, 2)

    assert fenced.ok
    assert payload(fenced) == payload(plain)


def test_unlabeled_options_are_relabeled_by_position():
    raw = json.dumps([make_question(options=["London", "Paris", "Berlin", "Madrid"], answer="B")])

    result = quiz_normalizer.normalize(raw, 1)

    assert result.questions[0].options == ["A) London", "B) Paris", "C) Berlin", "D) Madrid"]


def test_wrong_labels_are_replaced():
    raw = json.dumps([make_question(options=["D) one", "(c) two", "B. three", "A)four"])])

    result = quiz_normalizer.normalize(raw, 1)

    assert result.questions[0].options == ["A) one", "B) two", "C) three", "D) four"]


def test_option_text_starting_with_a_label_letter_is_kept():
    raw = json.dumps([make_question(options=["D.C.", "Boston", "Austin", "Chicago"])])

    result = quiz_normalizer.normalize(raw, 1)

    assert result.questions[0].options == ["A) D.C.", "B) Boston", "C) Austin", "D) Chicago"]


def test_leading_letter_is_kept_when_other_options_are_unlabeled():
    raw = json.dumps([make_question(options=["A. Lincoln", "Washington", "Jefferson", "Adams"])])

    result = quiz_normalizer.normalize(raw, 1)

    assert result.questions[0].options == ["A) A. Lincoln", "B) Washington", "C) Jefferson", "D) Adams"]


def test_invalid_answer_letter_is_repaired_to_a():
    raw = json.dumps([make_question(answer="e")])

    result = quiz_normalizer.normalize(raw, 1)

    assert result.ok
    assert result.questions[0].correct_answer == "A"


@pytest.mark.parametrize("answer, expected", [(" c ", "C"), ("d", "D"), ("B)", "B"), ("Paris", "A")])
def test_answer_is_trimmed_and_uppercased(answer, expected):
    result = quiz_normalizer.normalize(json.dumps([make_question(answer=answer)]), 1)

    assert result.questions[0].correct_answer == expected


def test_duplicate_questions_keep_first_occurrence():
    raw = json.dumps([
        make_question(question="What is 2 + 2?", explanation="first"),
        make_question(question="  what IS 2 +  2?  ", explanation="second"),
        make_question(question="What is 3 + 3?", options=["6", "5", "4", "3"]),
    ])

    result = quiz_normalizer.normalize(raw, 3)

    assert [q.explanation for q in result.questions] == ["first", "Basic arithmetic."]


def test_end_to_end_chatty_fenced_response():
    raw = (
        'Sure! ```json\n[{"question":"2+2?","options":["4","3","5","6"],'
        '"correctAnswer":"a","explanation":"Basic math"}]\n```'
    )

    result = quiz_normalizer.normalize(raw, 1)

    assert result.ok
    assert len(result.questions) == 1
    question = result.questions[0]
    assert question.question == "2+2?"
    assert question.options == ["A) 4", "B) 3", "C) 5", "D) 6"]
    assert question.correct_answer == "A"
    assert question.explanation == "Basic math"


def test_trailing_commas_are_removed():
    raw = """[
      {
        "question": "What is 2 + 2?",
        "options": ["4", "3", "5", "6",],
        "correctAnswer": "A",
        "explanation": "Basic arithmetic.",
      },
    ]"""

    result = quiz_normalizer.normalize(raw, 1)

    assert result.ok
    assert result.questions[0].options[3] == "D) 6"


def test_multiline_explanation_is_collapsed():
    raw = """[
      {
        "question": "What is 2 + 2?",
        "options": ["4", "3", "5", "6"],
        "correctAnswer": "A",
        "explanation": "Two plus two
            is four."
      }
    ]"""

    result = quiz_normalizer.normalize(raw, 1)

    assert result.ok
    assert result.questions[0].explanation == "Two plus two is four."


def test_array_found_after_bracketed_prose():
    raw = "Here are [1] questions for you:\n" + json.dumps([make_question()]) + "\nEnjoy!"

    result = quiz_normalizer.normalize(raw, 1)

    assert result.ok
    assert result.questions[0].question == "What is 2 + 2?"


def test_unparseable_text_is_a_parse_error():
    raw = "I'm sorry, I can't help with that."

    result = quiz_normalizer.normalize(raw, 5)

    assert not result.ok
    assert isinstance(result.error, ParseError)
    assert result.error.raw_text == raw
    assert result.questions == []


def test_non_string_input_is_a_parse_error():
    result = quiz_normalizer.normalize(None, 5)

    assert isinstance(result.error, ParseError)


@pytest.mark.parametrize("raw", ["[]", '{"questions": "none"}'])
def test_empty_or_non_array_is_an_empty_result(raw):
    result = quiz_normalizer.normalize(raw, 5)

    assert isinstance(result.error, EmptyResultError)


def test_invalid_elements_are_dropped():
    raw = json.dumps([
        {"question": "Missing everything else"},
        make_question(options=["only", "three", "options"]),
        make_question(explanation=""),
        "not an object",
        make_question(question="Kept?"),
    ])

    result = quiz_normalizer.normalize(raw, 5)

    assert result.ok
    assert [q.question for q in result.questions] == ["Kept?"]


def test_all_elements_invalid_is_an_empty_result():
    raw = json.dumps([make_question(options=["A", "B"]), {"question": "x"}])

    result = quiz_normalizer.normalize(raw, 2)

    assert isinstance(result.error, EmptyResultError)


def test_strict_policy_aborts_on_first_invalid_element():
    strict = QuizNormalizer(strict=True)
    raw = json.dumps([make_question(), make_question(question="Broken", options=["one"])])

    result = strict.normalize(raw, 2)

    assert isinstance(result.error, ElementValidationError)
    assert result.error.index == 1
    assert result.questions == []


def test_count_mismatch_is_not_an_error():
    result = quiz_normalizer.normalize(json.dumps([make_question()]), 10)

    assert result.ok
    assert len(result.questions) == 1
