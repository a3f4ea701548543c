# knowledge/similarity.py
import re
import unicodedata

from businessmeter.db.results import StoreResult
from businessmeter.knowledge.models import ConversationPair, LearnedKnowledge


def normalize(text: str) -> str:
    """
    Makes text usable for simple word matching:
    - lowercasing
    - NFKC (Arabic/Persian presentation forms folded)
    - punctuation removed
    - double spaces removed
    """
    text = unicodedata.normalize("NFKC", text or "").lower().strip()
    text = text.replace("\u200c", " ")  # zero-width non-joiner
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def jaccard_score(a: str, b: str) -> float:
    wa = set(normalize(a).split())
    wb = set(normalize(b).split())
    if not wa or not wb:
        return 0.0
    return len(wa & wb) / len(wa | wb)


class ExactQuestionPolicy:
    """Duplicate only under exact string equality of the question."""

    name = "exact"

    def find(self, repository, pair: ConversationPair) -> StoreResult[LearnedKnowledge]:
        return repository.find_by_question(pair.question)


class JaccardQuestionPolicy:
    """Best word-overlap match inside the pair's category, above a threshold."""

    name = "jaccard"

    def __init__(self, threshold: float = 0.8):
        self.threshold = threshold

    def find(self, repository, pair: ConversationPair) -> StoreResult[LearnedKnowledge]:
        candidates = repository.list_pairs(pair.category, limit=None)
        if not candidates.is_ok:
            return candidates

        best = None
        best_score = 0.0

        for row in candidates.value:
            score = jaccard_score(pair.question, row.question)
            if score > best_score:
                best, best_score = row, score

        if best is not None and best_score >= self.threshold:
            return StoreResult.success(best)
        return StoreResult.missing()


def build_duplicate_policy(name: str, threshold: float = 0.8):
    if name == "jaccard":
        return JaccardQuestionPolicy(threshold)
    return ExactQuestionPolicy()
