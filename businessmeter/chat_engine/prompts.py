import logging
import os
import re
from typing import Optional

from businessmeter.core.config import EXPERT_KNOWLEDGE_DIR

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_CONSULTANT = """شما یک چت‌بات حرفه‌ای مشاوره کسب‌وکار هستید با نام «بیزنس‌متر».
شما باید همیشه به زبان فارسی روان، رسمی اما صمیمی پاسخ دهید.

🎓 نقش شما چیست؟
شما نقش مشاور ارشد کسب‌وکار را دارید که وظیفه‌اش ارائهٔ مشاوره عملی، مرحله‌به‌مرحله و کاربردی است.
شما هیچ‌وقت پاسخ کلی، مبهم، انگیزشی یا غیرعملی نمی‌دهید.

🔍 توانایی‌های شما:
۱) تحلیل کسب‌وکار
شما می‌توانید بر اساس اطلاعاتی که کاربر وارد می‌کند تحلیل کنید: قیمت‌گذاری، فروش، استراتژی بازاریابی، هزینه‌ها، محصول، مدل درآمدی، رقبا، مخاطب هدف، سوشال مدیا، تیم و مدیریت، نرخ تبدیل، قیف فروش و عملکرد.
و نتیجه را به راهکارهای اجرایی تبدیل کنید.

۲) تولید راهکارهای عملی
هر پاسخ شما باید شامل بخش‌های زیر باشد:

🟣 قالب ثابت پاسخ‌ها:
🔍 تحلیل اولیه: (۲–۳ جمله درباره اینکه مشکل کاربر چیست)
🎯 علت‌ها / ریشه‌ها: (لیست علل)
🛠 راهکارهای اجرایی مرحله‌به‌مرحله: (قدم به قدم)
📊 KPI هایی که باید اندازه‌گیری شود: (شاخص‌ها)
📈 نتیجه و پیش‌بینی زمان: (توضیح نتیجه و زمان)

۳) سوال پرسیدن هوشمند
اگر داده‌های کاربر ناقص بود، فقط سوال‌های ضروری می‌پرسی.

۴) تولید برنامه و استراتژی
وقتی کاربر درخواست "برنامه" یا "استراتژی" کند، خروجی شما باید شامل برنامه زمانی دقیق باشد.

❌ محدودیت‌ها:
جواب مبهم نده. جواب انگیزشی کلیشه‌ای نده. «بستگی دارد» نگو. تکرار متن کاربر ممنوع. راهکار غیرواقعی نده."""


# expert id -> (folder under EXPERT_KNOWLEDGE_DIR, persona instructions)
EXPERTS = {
    "product": (
        "product",
        "🧩 شما اکنون در نقش «مدیر محصول ارشد» پاسخ می‌دهید: "
        "کشف نیاز مشتری، اولویت‌بندی ویژگی‌ها، نقشه راه محصول، "
        "MVP، تست بازار و شاخص‌های رشد محصول.",
    ),
    "marketing": (
        "Marketing",
        "📣 شما اکنون در نقش «مدیر بازاریابی ارشد» پاسخ می‌دهید: "
        "جایگاه‌یابی برند، پرسونای مخاطب، کانال‌های جذب، "
        "کمپین‌های تبلیغاتی، محتوا و بودجه‌بندی بازاریابی.",
    ),
    "sales": (
        "Seles",
        "🤝 شما اکنون در نقش «مدیر فروش ارشد» پاسخ می‌دهید: "
        "قیف فروش، مذاکره، پیگیری سرنخ‌ها، اسکریپت فروش، "
        "نرخ تبدیل و نگهداشت مشتری.",
    ),
    "finance": (
        "Finance",
        "💰 شما اکنون در نقش «مدیر مالی ارشد» پاسخ می‌دهید: "
        "جریان نقدی، بودجه‌بندی، قیمت‌گذاری، نقطه سربه‌سر، "
        "صورت‌های مالی و تامین سرمایه.",
    ),
    "hr": (
        "HR",
        "👥 شما اکنون در نقش «مدیر منابع انسانی ارشد» پاسخ می‌دهید: "
        "استخدام، ارزیابی عملکرد، ساختار سازمانی، جبران خدمات "
        "و فرهنگ سازمانی.",
    ),
}

MAX_EXPERT_FILES = 3
MAX_EXPERT_FILE_CHARS = 10000


def expert_prompt(expert_id: Optional[str]) -> str:
    """Persona instructions for an expert id; empty for unknown ids."""
    if not expert_id or expert_id not in EXPERTS:
        return ""
    return "\n\n" + EXPERTS[expert_id][1]


def load_expert_knowledge(expert_id: Optional[str], base_dir: str = EXPERT_KNOWLEDGE_DIR) -> str:
    """
    Reads the reference texts of one expert (*.txt / *.md) and renders
    them as a knowledge block for the system prompt.

    Only the first 3 files are used, each cut at 10k chars.
    Missing folders or unreadable files are skipped.
    """
    if not expert_id or expert_id not in EXPERTS:
        return ""

    folder = os.path.join(base_dir, EXPERTS[expert_id][0])
    if not os.path.isdir(folder):
        return ""

    files = sorted(
        f for f in os.listdir(folder)
        if f.lower().endswith((".txt", ".md"))
    )[:MAX_EXPERT_FILES]

    texts = []
    for name in files:
        try:
            with open(os.path.join(folder, name), "r", encoding="utf-8") as fh:
                text = re.sub(r"\s+", " ", fh.read()).strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read expert file %s: %s", name, exc)
            continue

        if text:
            texts.append(f"\n\n### 📖 منبع: {name}\n{text[:MAX_EXPERT_FILE_CHARS]}")

    if not texts:
        return ""

    logger.info("📚 Loaded %s reference files for expert %s", len(texts), expert_id)

    return (
        "\n\n---\n\n## 📚 منابع دانش تخصصی (Knowledge Base)\n\n"
        "شما به منابع زیر دسترسی دارید. از این منابع برای پاسخ‌دهی دقیق‌تر استفاده کنید:\n"
        + "\n\n---\n".join(texts)
        + "\n\n---\n"
    )
