"""
Question set provider: loads questions from the Open Trivia DB or a local JSON file.
"""
import json
import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote
from uuid import uuid4

import httpx

from .models import Question
from .quiz_engine import fisher_yates_shuffle


OPENTDB_URL = "https://opentdb.com/api.php"

FALLBACK_QUESTIONS: List[Dict[str, Any]] = [
    {
        "id": "q1",
        "question": "What is the capital of France?",
        "choices": ["Paris", "London", "Rome", "Berlin"],
        "correct": "Paris",
        "category": "Geography",
        "difficulty": "easy",
        "timeLimit": 30
    },
    {
        "id": "q2",
        "question": "2 + 2 equals?",
        "choices": ["3", "4", "5", "22"],
        "correct": "4",
        "category": "Mathematics",
        "difficulty": "easy",
        "timeLimit": 30
    },
    {
        "id": "q3",
        "question": "Which language runs in a web browser?",
        "choices": ["Java", "C", "Python", "JavaScript"],
        "correct": "JavaScript",
        "category": "Technology",
        "difficulty": "easy",
        "timeLimit": 30
    }
]


class QuestionProviderError(Exception):
    """Raised when a question source cannot deliver questions."""
    pass


def decode_url3986(value: Any) -> str:
    """Decode an RFC 3986 percent-encoded string, returning the input on failure."""
    text = "" if value is None else str(value)
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


class QuestionProvider:
    """Supplies question lists from the remote trivia API or a local file."""

    def __init__(
        self,
        questions_file: str = "./questions.json",
        api_url: str = OPENTDB_URL,
        timeout: float = 10.0,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the provider.

        Args:
            questions_file: Path to the local JSON question list
            api_url: Open Trivia DB endpoint
            timeout: HTTP timeout in seconds
            rng: Random source for choice shuffling
            transport: Optional httpx transport (used by tests)
        """
        self.questions_file = Path(questions_file)
        self.api_url = api_url
        self.timeout = timeout
        self.rng = rng or random.Random()
        self.transport = transport
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []
        self.fallback_active = False

    async def fetch_remote(
        self,
        count: int,
        category: Optional[int] = None,
        difficulty: Optional[str] = None
    ) -> List[Question]:
        """
        Fetch multiple-choice questions from the Open Trivia DB.

        Raises:
            QuestionProviderError: On network, HTTP or payload errors
        """
        params: Dict[str, str] = {
            "amount": str(count),
            "type": "multiple",
            "encode": "url3986"
        }
        if category:
            params["category"] = str(category)
        if difficulty:
            params["difficulty"] = str(difficulty)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.api_url, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            self.logger.error(f"Trivia API request failed: {e}")
            raise QuestionProviderError(f"Trivia API request failed: {e}") from e
        except ValueError as e:
            self.logger.error(f"Trivia API returned invalid JSON: {e}")
            raise QuestionProviderError("Trivia API returned invalid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise QuestionProviderError("Trivia API payload has no 'results' array")

        response_code = data.get("response_code", 0)
        if response_code != 0:
            raise QuestionProviderError(f"Trivia API responded with code {response_code}")

        questions = []
        for index, record in enumerate(data["results"]):
            try:
                questions.append(self._parse_remote_record(record))
            except (ValueError, TypeError, KeyError) as e:
                self.logger.warning(f"Skipping remote question {index}: {e}")

        self.logger.info(f"Fetched {len(questions)} questions from trivia API")
        return questions

    def _parse_remote_record(self, record: Dict[str, Any]) -> Question:
        correct = decode_url3986(record["correct_answer"])
        incorrect = [decode_url3986(a) for a in record["incorrect_answers"]]
        return Question.from_dict({
            "id": uuid4().hex,
            "question": decode_url3986(record["question"]),
            "correct": correct,
            "choices": fisher_yates_shuffle(incorrect + [correct], self.rng),
            "category": decode_url3986(record.get("category", "")),
            "difficulty": decode_url3986(record.get("difficulty", "")),
        })

    def fetch_local(self) -> List[Question]:
        """
        Load questions from the local JSON file.

        Returns the embedded fallback list when the file is missing, unreadable
        or holds no valid questions.
        """
        self.load_errors.clear()
        self.fallback_active = False

        try:
            with open(self.questions_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            self.load_errors.append(f"Question file not found: {self.questions_file}")
            return self._create_fallback_questions()
        except json.JSONDecodeError as e:
            self.load_errors.append(f"Invalid JSON in {self.questions_file}: {e}")
            return self._create_fallback_questions()
        except OSError as e:
            self.load_errors.append(f"Failed to read {self.questions_file}: {e}")
            return self._create_fallback_questions()

        records = self.extract_records(data)
        if records is None:
            self.load_errors.append(f"Invalid question list structure in {self.questions_file}")
            return self._create_fallback_questions()

        questions = self.parse_questions(records)
        if not questions:
            self.load_errors.append(f"No valid questions found in {self.questions_file}")
            return self._create_fallback_questions()

        self.logger.info(f"Loaded {len(questions)} questions from {self.questions_file}")
        return questions

    @staticmethod
    def extract_records(data: Any) -> Optional[List[Any]]:
        """
        Find the question records in a parsed JSON document.

        Accepts a bare array or an object with a 'questions' array.
        """
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("questions"), list):
            return data["questions"]
        return None

    def parse_questions(self, records: List[Any]) -> List[Question]:
        """Normalize raw records, skipping those that are not valid questions."""
        questions = []
        seen_ids = set()
        for index, record in enumerate(records):
            try:
                question = Question.from_dict(record)
            except (ValueError, TypeError) as e:
                self.logger.warning(f"Skipping question {index}: {e}")
                self.load_errors.append(f"Question {index}: {e}")
                continue
            if question.id in seen_ids:
                self.logger.warning(f"Skipping question {index}: duplicate id {question.id}")
                continue
            seen_ids.add(question.id)
            questions.append(question)
        return questions

    def _create_fallback_questions(self) -> List[Question]:
        """Build the embedded fallback question list."""
        for error in self.load_errors:
            self.logger.warning(error)
        self.fallback_active = True
        self.logger.warning("Using embedded fallback questions")
        return [Question.from_dict(record) for record in FALLBACK_QUESTIONS]

    def get_loading_summary(self) -> Dict[str, Any]:
        return {
            'has_errors': bool(self.load_errors),
            'errors': list(self.load_errors),
            'fallback_active': self.fallback_active,
            'questions_file': str(self.questions_file)
        }
