from typing import Any, Dict, Optional, Tuple


def answers_error(answers: Any) -> Optional[str]:
    """Return a message when answers is not {questionId: str | [str, ...]}, else None."""
    if not isinstance(answers, dict):
        return "answers must be an object keyed by question id"
    for question_id, value in answers.items():
        if isinstance(value, str):
            continue
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            continue
        return f"answer for {question_id} must be a string or a list of strings"
    return None


def is_correct(question: Dict, submitted: Any) -> bool:
    """
    Checkbox questions need the exact set of correct options; other gradable
    types are correct when the single answer is one of correctAnswers.
    """
    correct = question.get("correctAnswers") or []
    if question.get("type") == "checkbox":
        if not isinstance(submitted, list) or not all(isinstance(s, str) for s in submitted):
            return False
        return set(correct) == set(submitted)
    return isinstance(submitted, str) and submitted in correct


def grade_submission(exam: Dict, answers: Dict) -> Tuple[int, int]:
    """Return (score, gradable_question_count). Paragraph questions are not graded."""
    score = 0
    total = 0
    for question in exam.get("questions", []):
        if question.get("type") == "paragraph":
            continue
        total += 1
        if is_correct(question, answers.get(question.get("id"))):
            score += 1
    return score, total


def gradable_count(exam: Dict) -> int:
    return sum(1 for q in exam.get("questions", []) if q.get("type") != "paragraph")
