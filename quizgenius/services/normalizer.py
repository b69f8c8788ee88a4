"""
Quiz response normalizer
Turns raw model text into validated four-option questions
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from quizgenius.config import settings
from quizgenius.errors import (
    NormalizationError,
    ParseError,
    EmptyResultError,
    ElementValidationError,
)
from quizgenius.schemas.quiz import QuestionRecord, OPTION_LABELS

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
TRAILING_COMMA = re.compile(r",(\s*[}\]])")
EXPLANATION_VALUE = re.compile(r'("explanation"\s*:\s*")((?:[^"\\]|\\.)*)(")', re.DOTALL)
LINE_BREAK = re.compile(r"\s*[\r\n]+\s*")
# "A) ", "(b) ", "C. ", "D: " but not "D.C." or a bare capital letter
OPTION_LABEL = re.compile(r"^\s*(?:\(?[A-Da-d]\)|[A-Da-d][.:](?=\s))\s*")
ANSWER_SUFFIX = re.compile(r"[).:]$")

REQUIRED_FIELDS = ("question", "options", "correctAnswer", "explanation")


@dataclass
class NormalizationResult:
    """Either the surviving questions or the reason there are none"""
    questions: List[QuestionRecord] = field(default_factory=list)
    error: Optional[NormalizationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QuizNormalizer:
    """
    Repairs and validates model output

    Repairs, in order:
    - markdown code fences removed
    - trailing commas removed
    - line breaks inside explanation strings collapsed
    - first decodable JSON array located inside surrounding prose

    Per question:
    - all of question/options/correctAnswer/explanation required
    - exactly four options, relabeled A) B) C) D) by position; existing
      labels are stripped only when every option carries one
    - unknown answer letters repaired to "A"
    - repeated question text dropped

    Lenient policy drops a bad question and keeps going; strict policy
    fails the whole batch on the first one.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def normalize(self, raw_text: str, expected_count: int = 0) -> NormalizationResult:
        """
        Normalize raw model output

        Args:
            raw_text: Text content of the model response
            expected_count: Number of questions requested (0 to skip the check)

        Returns:
            NormalizationResult with questions, or with a ParseError,
            EmptyResultError or ElementValidationError
        """
        raw_text = raw_text if isinstance(raw_text, str) else ""
        cleaned = self.clean(raw_text)

        try:
            parsed = self._extract_array(cleaned)
        except ValueError as e:
            logger.error(f"Failed to parse questions: {str(e)}")
            logger.error(f"Response text: {raw_text[:500]}")
            return NormalizationResult(
                error=ParseError(f"Failed to parse the generated questions: {str(e)}", raw_text)
            )

        if not isinstance(parsed, list) or not parsed:
            return NormalizationResult(
                error=EmptyResultError("Invalid response format: questions should be a non-empty array")
            )

        questions: List[QuestionRecord] = []
        seen = set()

        for index, element in enumerate(parsed):
            try:
                record = self._normalize_element(element, index)
            except ElementValidationError as e:
                if self.strict:
                    return NormalizationResult(error=e)
                logger.warning(f"Dropping question: {str(e)}")
                continue

            key = " ".join(record.question.split()).lower()
            if key in seen:
                logger.info(f"Dropping duplicate question at index {index}")
                continue
            seen.add(key)
            questions.append(record)

        if not questions:
            return NormalizationResult(
                error=EmptyResultError("No usable questions after validation")
            )

        if expected_count and len(questions) != expected_count:
            logger.warning(f"Expected {expected_count} questions, got {len(questions)}")

        return NormalizationResult(questions=questions)

    def clean(self, text: str) -> str:
        """Apply the textual repairs that come before parsing"""
        cleaned = CODE_FENCE.sub("", text)
        cleaned = TRAILING_COMMA.sub(r"\1", cleaned)
        cleaned = EXPLANATION_VALUE.sub(self._collapse_explanation, cleaned)
        return cleaned.strip()

    @staticmethod
    def _collapse_explanation(match: "re.Match") -> str:
        value = LINE_BREAK.sub(" ", match.group(2)).strip()
        return f"{match.group(1)}{value}{match.group(3)}"

    @staticmethod
    def _extract_array(text: str) -> Any:
        """
        Decode the first JSON array embedded in the text

        An array holding objects wins over an earlier one that does not
        (prose such as "here are [5] questions"). Falls back to decoding
        the whole text when no '[' starts a complete array. Raises
        ValueError when nothing decodes.
        """
        decoder = json.JSONDecoder()
        first_array = None
        start = text.find("[")
        while start != -1:
            try:
                value, end = decoder.raw_decode(text, start)
            except json.JSONDecodeError:
                value, end = None, start
            if isinstance(value, list):
                if any(isinstance(item, dict) for item in value):
                    return value
                if first_array is None:
                    first_array = value
            start = text.find("[", max(end, start + 1))

        if first_array is not None:
            return first_array
        return json.loads(text)

    def _normalize_element(self, element: Any, index: int) -> QuestionRecord:
        if not isinstance(element, dict):
            raise ElementValidationError(f"Invalid question format at index {index}: not an object", index)

        missing = [name for name in REQUIRED_FIELDS if not element.get(name)]
        if missing:
            raise ElementValidationError(
                f"Invalid question format at index {index}: missing {', '.join(missing)}", index
            )

        question = element["question"]
        options = element["options"]
        answer = element["correctAnswer"]
        explanation = element["explanation"]

        if not isinstance(question, str) or not question.strip():
            raise ElementValidationError(f"Invalid question format at index {index}: question", index)
        if not isinstance(explanation, str) or not explanation.strip():
            raise ElementValidationError(f"Invalid question format at index {index}: explanation", index)
        if not isinstance(answer, str):
            raise ElementValidationError(f"Invalid question format at index {index}: correctAnswer", index)
        if not isinstance(options, list) or len(options) != len(OPTION_LABELS):
            raise ElementValidationError(
                f"Invalid question format at index {index}: must have exactly {len(OPTION_LABELS)} options",
                index,
            )

        for label, option in zip(OPTION_LABELS, options):
            if isinstance(option, bool) or not isinstance(option, (str, int, float)):
                raise ElementValidationError(f"Invalid question format at index {index}: option {label}", index)

        # "A. Lincoln" among unlabeled options is text, not a label
        strip_labels = all(OPTION_LABEL.match(str(option)) for option in options)

        labeled = []
        for label, option in zip(OPTION_LABELS, options):
            text = str(option)
            if strip_labels:
                text = OPTION_LABEL.sub("", text)
            text = text.strip()
            if not text:
                raise ElementValidationError(f"Invalid question format at index {index}: empty option {label}", index)
            labeled.append(f"{label}) {text}")

        letter = ANSWER_SUFFIX.sub("", answer.strip().upper())
        if letter not in OPTION_LABELS:
            logger.info(f"Repairing answer {answer!r} at index {index} to 'A'")
            letter = "A"

        try:
            return QuestionRecord(
                question=question.strip(),
                options=labeled,
                correct_answer=letter,
                explanation=explanation.strip(),
            )
        except ValidationError as e:
            raise ElementValidationError(f"Invalid question format at index {index}: {str(e)}", index)


# Global instance
quiz_normalizer = QuizNormalizer(strict=settings.NORMALIZER_STRICT)
