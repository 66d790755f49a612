"""Нечёткий поиск: подсказка "did you mean ..." для опечаток в именах.

Пример:
    fuzz = fuzzy_searcher(["one", "two", "three"])
    fuzz("on")        # ["one"]
    fuzz2 = fuzzy_searcher(["one", "two", "three"], limit=2)
    fuzz2("t")        # ["two", "three"]
"""

from difflib import SequenceMatcher
from typing import Callable, Iterable

MAX_PATTERN_LENGTH = 32
# кандидаты со score ниже этого значения не предлагаются
MATCH_CUTOFF = 0.5


def _no_match(pattern: str) -> list[str]:
    return []


def fuzzy_searcher(values: Iterable[str], limit: int = 1) -> Callable[[str], list[str]]:
    """Создать функцию поиска по values.

    values перебираются только при первом вызове (и копируются), так что
    можно передавать генератор по большому json-дереву.
    """
    if isinstance(values, (list, tuple, set, frozenset, dict)) and len(values) == 0:
        return _no_match

    candidates: list[tuple[str, str]] | None = None

    def search(pattern: str) -> list[str]:
        nonlocal candidates
        if candidates is None:
            candidates = [(value, value.lower()) for value in values]
        if not candidates:
            return []

        query = pattern[:MAX_PATTERN_LENGTH].lower()
        if not query:
            return []

        scored = []
        for index, (value, lowered) in enumerate(candidates):
            score, ratio = _score(query, lowered)
            if score >= MATCH_CUTOFF:
                scored.append((-score, -ratio, index, value))
        scored.sort()
        return [value for *_, value in scored[:limit]]

    return search


def _score(query: str, candidate: str) -> tuple[float, float]:
    """(лучший score, score по всей строке).

    Если запрос короче кандидата, ещё сравниваем его с каждым окном кандидата
    той же длины: так "on" хорошо совпадает с "one".
    """
    ratio = SequenceMatcher(None, query, candidate).ratio()
    best = ratio
    size = len(query)
    if size < len(candidate):
        for start in range(len(candidate) - size + 1):
            window = SequenceMatcher(None, query, candidate[start:start + size]).ratio()
            if window > best:
                best = window
                if best == 1.0:
                    break
    return best, ratio
