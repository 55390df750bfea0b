"""
Answer Evaluator: strict comparison of a typed answer with a card's back.
"""


def normalize_answer(text: str) -> str:
    """
    Strip surrounding whitespace and lowercase.

    Internal whitespace, accents and punctuation are compared as typed.
    """
    return text.strip().lower()


def evaluate(user_text: str, correct_text: str) -> bool:
    """
    Returns:
        bool: True if both answers are equal after normalization.
    """
    return normalize_answer(user_text) == normalize_answer(correct_text)


def is_blank(text: str) -> bool:
    return not text.strip()
