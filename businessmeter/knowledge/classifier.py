# knowledge/classifier.py
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple


class Category(str, Enum):
    finance = "Finance"
    marketing = "Marketing"
    sales = "Sales"
    hr = "HR"
    product_management = "ProductManagement"
    general = "General"

    @property
    def label(self) -> str:
        """Persian display name used in the admin panel."""
        return CATEGORY_LABELS[self]

    @classmethod
    def lookup(cls, value: str) -> Optional["Category"]:
        """Stored value or Persian label, None when it is neither."""
        for category in cls:
            if value in (category.value, CATEGORY_LABELS[category]):
                return category
        return None

    @classmethod
    def parse(cls, value: str) -> "Category":
        return cls.lookup(value) or cls.general


CATEGORY_LABELS = {
    Category.finance: "مالی",
    Category.marketing: "مارکتینگ",
    Category.sales: "فروش",
    Category.hr: "منابع انسانی",
    Category.product_management: "مدیریت محصول",
    Category.general: "عمومی",
}

# Order matters: the first category with a hit wins.
CATEGORY_KEYWORDS: Sequence[Tuple[Category, Sequence[str]]] = (
    (Category.finance, [
        "مالی",
        "حسابداری",
        "بودجه",
        "finance",
        "financial",
        "accounting",
        "budget",
    ]),
    (Category.marketing, [
        "مارکتینگ",
        "بازاریابی",
        "تبلیغات",
        "marketing",
        "advertising",
    ]),
    (Category.sales, [
        "فروش",
        "مشتری",
        "sales",
        "customer",
    ]),
    (Category.hr, [
        "منابع انسانی",
        "استخدام",
        "کارمند",
        "human resources",
        "hiring",
        "employee",
    ]),
    (Category.product_management, [
        "محصول",
        "تولید",
        "product",
    ]),
)

CategoryClassifier = Callable[[str], Category]


class KeywordCategoryClassifier:
    """
    Substring keyword matcher. Any `str -> Category` callable can take
    its place in KnowledgeService.
    """

    def __init__(self, keywords: Sequence[Tuple[Category, Sequence[str]]] = CATEGORY_KEYWORDS):
        self.keywords = [
            (category, [k.lower() for k in words])
            for category, words in keywords
        ]

    def __call__(self, text: str) -> Category:
        q = (text or "").lower()

        for category, words in self.keywords:
            if any(k in q for k in words):
                return category

        return Category.general


classify = KeywordCategoryClassifier()
