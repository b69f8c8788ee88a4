"""
Gemini AI service for quiz generation
"""
import google.generativeai as genai
from quizgenius.config import settings
from quizgenius.errors import ConfigurationError, ModelRequestError
from quizgenius.schemas.quiz import QuestionRecord
from quizgenius.services.normalizer import quiz_normalizer
from quizgenius.utils.cache import cache_service
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a quiz generator that creates educational multiple-choice questions. "
    "Always respond with valid JSON arrays."
)


class QuizGenerationService:
    """Service for generating quiz questions with Gemini"""

    def __init__(self):
        self._model = None
        self._configured_key: Optional[str] = None

    def _get_model(self):
        """Configure the client on first use so a missing key fails per request"""
        api_key = settings.GEMINI_API_KEY
        if not api_key:
            logger.error("Environment variable GEMINI_API_KEY is not set")
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        if self._model is None or self._configured_key != api_key:
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(
                settings.GEMINI_MODEL,
                system_instruction=SYSTEM_INSTRUCTION,
            )
            self._configured_key = api_key
        return self._model

    def generate_quiz(
        self,
        topic: str,
        difficulty: str,
        number_of_questions: int,
        preferred_style: Optional[str] = "mixed",
        fresh: bool = False
    ) -> List[QuestionRecord]:
        """
        Generate validated quiz questions

        Args:
            topic: Quiz topic
            difficulty: easy/medium/hard/expert
            number_of_questions: Number of questions to request
            preferred_style: conceptual/practical/mixed
            fresh: Bypass the cache

        Returns:
            List of QuestionRecord

        Raises:
            ConfigurationError: API key missing
            ModelRequestError: The model call failed
            NormalizationError: The response held no usable questions
        """
        style = preferred_style or "mixed"
        cache_key = cache_service.generate_cache_key(topic, difficulty, number_of_questions, style)

        if not fresh:
            cached = cache_service.get(cache_key)
            if cached:
                return [QuestionRecord.model_validate(q) for q in cached]

        logger.info(f"Generating quiz for topic: {topic}")
        content = self.complete(self._create_quiz_prompt(topic, difficulty, number_of_questions, style))

        result = quiz_normalizer.normalize(content, number_of_questions)
        if not result.ok:
            raise result.error

        cache_service.set(cache_key, [q.to_document() for q in result.questions])
        return result.questions

    def complete(self, prompt: str) -> str:
        """Send one prompt to the model and return its text content"""
        model = self._get_model()
        try:
            response = model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(temperature=settings.QUIZ_TEMPERATURE),
            )
            return response.text
        except Exception as e:
            logger.error(f"Gemini request failed: {str(e)}")
            raise ModelRequestError(f"Gemini request failed: {str(e)}") from e

    def _create_quiz_prompt(
        self,
        topic: str,
        difficulty: str,
        number_of_questions: int,
        preferred_style: str
    ) -> str:
        """Create structured prompt for quiz generation"""

        return f"""You are a quiz generator. Create a {difficulty} difficulty quiz about {topic} with {number_of_questions} multiple choice questions.
Question style: {preferred_style}.

For each question, provide:
1. A clear question
2. Four options labeled as A, B, C, D
3. The correct answer letter
4. A brief explanation

Format your response as a valid JSON array of objects. Here's an example of the expected format:
[
  {{
    "question": "What is the capital of France?",
    "options": [
      "A) London",
      "B) Paris",
      "C) Berlin",
      "D) Madrid"
    ],
    "correctAnswer": "B",
    "explanation": "Paris is the capital and largest city of France."
  }}
]

Generate {number_of_questions} questions in this exact format. Make sure the response is a valid JSON array.
"""


# Global instance
quiz_generation_service = QuizGenerationService()
