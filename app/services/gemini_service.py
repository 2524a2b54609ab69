"""
Gemini AI service for daily quiz generation
"""
import google.generativeai as genai
from pydantic import ValidationError as SchemaValidationError
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.exceptions import GenerationError, GenerationValidationError
from app.schemas.quiz import GeneratedQuiz

logger = logging.getLogger(__name__)

QUESTION_COUNT = 3
OPTION_COUNT = 4

SYSTEM_INSTRUCTION = """You are a quiz generator that creates short educational quizzes.
Guidelines:
- Focus on topics that are educational, newsworthy, or culturally significant
- Avoid controversial political topics or misinformation
- Questions should test understanding, not just recall
- Each question must have exactly 4 options with only 1 correct answer
- Explanations should be informative and reference the source context"""


@dataclass
class GenerationResult:
    """Outcome of one generation call: either a validated quiz or the error"""
    quiz: Optional[GeneratedQuiz] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.quiz is not None

    @classmethod
    def success(cls, quiz: GeneratedQuiz) -> "GenerationResult":
        return cls(quiz=quiz)

    @classmethod
    def failure(cls, error: GenerationError) -> "GenerationResult":
        return cls(error=error)


class GeminiService:
    """Service for Gemini quiz generation"""

    def __init__(self, api_key: str, model_name: str = "gemini-2.0-flash", timeout: int = 60):
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        if api_key:
            genai.configure(api_key=api_key)
        else:
            logger.warning("GEMINI_API_KEY is not set; quiz generation will use fallback content")
        self.model = genai.GenerativeModel(model_name, system_instruction=SYSTEM_INSTRUCTION)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate_quiz(self, topic: str, difficulty: str = "medium") -> GenerationResult:
        """
        Generate a 3-question quiz about a topic

        Args:
            topic: Subject of the quiz
            difficulty: easy/medium/hard

        Returns:
            GenerationResult holding either the validated quiz or a
            GenerationError / GenerationValidationError. Never raises.
        """
        if not self.is_configured:
            return GenerationResult.failure(GenerationError("Gemini API key not configured"))

        prompt = self._create_quiz_prompt(topic, difficulty)

        try:
            response = self.model.generate_content(
                prompt,
                generation_config={
                    "response_mime_type": "application/json",
                    "temperature": 0.7
                },
                request_options={"timeout": self.timeout}
            )
            response_text = response.text
        except Exception as e:
            # The SDK raises a mix of google.api_core and ValueError types
            logger.error(f"Failed to generate quiz: {str(e)}")
            return GenerationResult.failure(GenerationError("Gemini request failed", details=str(e)))

        return self._parse_quiz_response(response_text)

    def _create_quiz_prompt(self, topic: str, difficulty: str) -> str:
        """Create structured prompt for quiz generation"""

        return f"""
Generate a {difficulty} level quiz about "{topic}" with EXACTLY {QUESTION_COUNT} questions.

Requirements:
- Each question has EXACTLY {OPTION_COUNT} multiple choice options
- Only one correct answer per question, given as its index (0-3) in "correct"
- Include a brief explanation for each correct answer
- "source_context" describes what about the topic inspired the question
- Title should be descriptive, description should explain what the quiz covers

Return ONLY valid JSON in this exact format (no markdown, no preamble):

{{
  "title": "Quiz title",
  "description": "What the quiz covers",
  "trending_topic": "{topic}",
  "questions": [
    {{
      "question": "Question text here?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct": 1,
      "explanation": "Why option B is correct",
      "source_context": "What inspired this question"
    }}
  ]
}}
"""

    def _parse_quiz_response(self, response_text: str) -> GenerationResult:
        """Parse and validate Gemini's quiz response"""
        payload = self._extract_json(response_text or "")
        if payload is None:
            logger.error(f"Response text: {(response_text or '')[:500]}")
            return GenerationResult.failure(
                GenerationError("Unable to parse quiz data from Gemini response")
            )

        try:
            quiz = GeneratedQuiz.model_validate(payload)
        except SchemaValidationError as e:
            logger.warning(f"Gemini returned an invalid quiz: {e.error_count()} schema errors")
            return GenerationResult.failure(
                GenerationValidationError("Generated quiz failed validation", details=str(e))
            )

        return GenerationResult.success(quiz)

    @staticmethod
    def _extract_json(response_text: str) -> Optional[Dict[str, Any]]:
        cleaned = response_text.strip()

        # Remove markdown code blocks
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:-3].strip()
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:-3].strip()

        match = re.search(r"\{[\s\S]*\}", cleaned)
        if not match:
            return None

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse quiz JSON: {str(e)}")
            return None

        return data if isinstance(data, dict) else None

    def test_connection(self) -> bool:
        """Send a minimal request to check the API key and model"""
        if not self.is_configured:
            return False
        try:
            response = self.model.generate_content(
                "Reply with OK.",
                generation_config={"max_output_tokens": 5},
                request_options={"timeout": self.timeout}
            )
            return bool(response.text)
        except Exception as e:
            logger.error(f"Gemini connection test failed: {str(e)}")
            return False
