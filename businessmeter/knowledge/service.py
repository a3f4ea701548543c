# knowledge/service.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from businessmeter.knowledge.classifier import Category, CategoryClassifier, classify
from businessmeter.knowledge.models import ConversationPair, LearnedKnowledge
from businessmeter.knowledge.similarity import ExactQuestionPolicy

logger = logging.getLogger(__name__)

MIN_QUESTION_CHARS = 10
MIN_ANSWER_CHARS = 20

LEARNING_WINDOW = timedelta(hours=24)
LEARNING_CHAT_LIMIT = 50


def format_knowledge(rows: list[LearnedKnowledge]) -> str:
    """Render retrieved pairs as a block for the system prompt."""
    if not rows:
        return ""

    text = "\n\n📚 **دانش یادگیری شده از مکالمات قبلی:**\n\n"
    for index, k in enumerate(rows, start=1):
        text += f"{index}. سوال: {k.question}\n"
        text += f"   پاسخ: {k.answer}\n\n"
    return text


class KnowledgeService:
    """
    Learns question/answer pairs from stored chats and serves them back
    as prompt context.

    Storage errors never escape: reads degrade to empty results and
    writes report False.
    """

    def __init__(
        self,
        repository,
        chats,
        classifier: CategoryClassifier = classify,
        duplicate_policy=None,
    ):
        self.repository = repository
        self.chats = chats
        self.classifier = classifier
        self.duplicate_policy = duplicate_policy or ExactQuestionPolicy()

    # -----------------------------
    # 1. EXTRACTION
    # -----------------------------
    def extract_pairs(self, chat_id: int) -> list[ConversationPair]:
        result = self.chats.messages_for_chat(chat_id)
        if not result.is_ok:
            return []

        messages = result.value
        pairs = []

        for current, following in zip(messages, messages[1:]):
            if current.role != "user" or following.role != "model":
                continue

            # skip very short or meaningless turns
            if len(current.content) > MIN_QUESTION_CHARS and len(following.content) > MIN_ANSWER_CHARS:
                pairs.append(ConversationPair(
                    question=current.content,
                    answer=following.content,
                    category=self.classifier(current.content),
                ))

        return pairs

    # -----------------------------
    # 2. STORAGE
    # -----------------------------
    def save_pair(self, pair: ConversationPair, source_message_id: Optional[int] = None) -> bool:
        existing = self.duplicate_policy.find(self.repository, pair)

        if existing.is_error:
            return False

        if existing.is_ok:
            # a repeated question raises the quality score
            return self.repository.increment_quality(existing.value.id).is_ok

        inserted = self.repository.insert(pair, source_message_id)
        if inserted.is_ok:
            logger.info("✅ New knowledge saved: %s", pair.category.value)
        return inserted.is_ok

    # -----------------------------
    # 3. RETRIEVAL
    # -----------------------------
    def retrieve(self, question: str, limit: int = 5) -> str:
        category = self.classifier(question)

        result = self.repository.top_for_category(category, limit)
        if not result.is_ok or not result.value:
            return ""

        # every retrieval counts as usage; no transaction around read + bump
        for knowledge in result.value:
            self.repository.increment_usage(knowledge.id)

        return format_knowledge(result.value)

    # -----------------------------
    # 4. BATCH LEARNING
    # -----------------------------
    def run_batch_learning(self, now: Optional[datetime] = None) -> int:
        """
        Walk chats updated in the last 24h (newest 50) and save their pairs.

        Re-running does not duplicate rows but does raise quality scores
        again for pairs it has already seen.
        """
        now = now or datetime.now(timezone.utc)

        recent = self.chats.recent_chats(now - LEARNING_WINDOW, LEARNING_CHAT_LIMIT)
        if not recent.is_ok:
            return 0

        learned = 0
        for chat in recent.value:
            for pair in self.extract_pairs(chat.id):
                if self.save_pair(pair):
                    learned += 1

        logger.info("🎓 Learned %s knowledge items from recent conversations", learned)
        return learned

    # -----------------------------
    # 5. ADMIN
    # -----------------------------
    def list_pairs(self, category: Optional[Category] = None, limit: int = 100):
        if category is None:
            return self.repository.list_all(limit)
        return self.repository.list_by_category(category, limit)

    def delete_pair(self, knowledge_id: int):
        return self.repository.delete(knowledge_id)

    def stats(self):
        return self.repository.stats()
