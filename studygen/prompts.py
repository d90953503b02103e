"""Prompt templates for question and insights generation."""

from typing import List

from studygen.config import settings
from studygen.models import (
    GenerationRequest,
    TestResult,
    is_multiple_choice,
    is_true_false,
)

TRUNCATION_MARKER = "\n\n[Content truncated...]"

# Number of wrong answers summarized in an insights prompt
MAX_INSIGHT_EXAMPLES = 3

TRUE_FALSE_RULES = (
    '- True/false questions: "options" must be exactly ["True", "False"] and '
    '"correctAnswer" must be exactly "True" or "False".'
)
MULTIPLE_CHOICE_RULES = (
    "- Multiple-choice questions: provide exactly 4 options with one correct "
    'answer; "correctAnswer" must match the text of one option exactly.'
)


def truncate_content(content: str, budget: int) -> str:
    """Cut content to ``budget`` characters, appending a marker if cut."""
    if len(content) <= budget:
        return content
    return content[:budget] + TRUNCATION_MARKER


def _type_rules(question_types: List[str]) -> List[str]:
    rules = []
    if any(is_true_false(t) for t in question_types):
        rules.append(TRUE_FALSE_RULES)
    if any(is_multiple_choice(t) for t in question_types):
        rules.append(MULTIPLE_CHOICE_RULES)
    return rules


def build_generation_prompt(request: GenerationRequest) -> str:
    """Render the primary question generation prompt.

    Args:
        request: The generation request

    Returns:
        Prompt text asking for a single JSON object with a ``questions`` array
    """
    content = truncate_content(request.content, settings.content_char_budget)
    types = ", ".join(request.question_types)

    parameters = [
        f"- Number of questions: exactly {request.question_count}",
        f"- Question types: {types}",
        f"- Difficulty: {request.difficulty.value}",
    ]
    if request.subject:
        parameters.append(f"- Subject: {request.subject}")
    if request.focus:
        parameters.append(f"- Focus on: {request.focus}")

    requirements = [
        "- Every question must be answerable strictly from the content above. "
        "Do not use outside knowledge.",
        '- For each question include "sourceText": a sentence copied verbatim '
        "from the content that supports the correct answer.",
        '- Use only these question types in the "type" field: ' + types + ".",
        *_type_rules(request.question_types),
    ]

    return f"""You are an expert educator writing a quiz from a student's study notes.

CONTENT:
{content}

PARAMETERS:
{chr(10).join(parameters)}

REQUIREMENTS:
{chr(10).join(requirements)}

Respond with a single JSON object and nothing else, in this format:
{{
  "questions": [
    {{
      "type": "{request.question_types[0]}",
      "question": "Question text",
      "options": ["..."],
      "correctAnswer": "...",
      "explanation": "Why the answer is correct, referencing the content",
      "sourceText": "Exact sentence from the content"
    }}
  ]
}}

Generate exactly {request.question_count} questions."""


def build_simplified_prompt(request: GenerationRequest) -> str:
    """Render the shorter prompt used for the fallback model."""
    content = truncate_content(request.content, settings.content_char_budget)
    rules = _type_rules(request.question_types)
    return (
        f"Create {request.question_count} {request.difficulty.value} "
        f"{' and '.join(request.question_types)} questions from this content:\n\n"
        f"{content}\n\n"
        + ("\n".join(rules) + "\n\n" if rules else "")
        + 'Return only a JSON object with a "questions" array. Each question '
        "needs: type, question, options, correctAnswer, explanation, sourceText "
        "(copied verbatim from the content)."
    )


def build_insights_prompt(result: TestResult) -> str:
    """Render the prompt asking for feedback on a completed test."""
    wrong = result.wrong_questions()
    correct_count = max(result.total_questions - len(wrong), 0)

    examples = []
    for index, question in enumerate(wrong[:MAX_INSIGHT_EXAMPLES], start=1):
        examples.append(
            f"{index}. Question: {question.question_text}\n"
            f"   Correct answer: {result.correct_answers.get(question.id)}\n"
            f"   Student answer: {result.user_answers.get(question.id)}"
        )

    return f"""You are an educational assessment expert. Give the student brief, personalized feedback.

TEST: {result.test_title or "Untitled test"}
SCORE: {result.score:g}% ({correct_count}/{result.total_questions} correct)

INCORRECT ANSWERS:
{chr(10).join(examples) if examples else "None"}

Respond with a single JSON object and nothing else:
{{
  "overallPerformance": "One or two sentences",
  "strengths": ["..."],
  "weaknesses": ["..."],
  "studyRecommendations": ["..."],
  "focusAreas": ["..."]
}}"""
