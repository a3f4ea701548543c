from datetime import datetime
import pytz

TEHRAN = pytz.timezone("Asia/Tehran")


def build_time_context(now: datetime | None = None) -> str:
    now = now or datetime.now(TEHRAN)

    hour = now.hour
    if hour < 6:
        part = "شب"
    elif hour < 12:
        part = "صبح"
    elif hour < 18:
        part = "بعدازظهر"
    else:
        part = "عصر"

    return (
        f"تاریخ امروز (میلادی): {now.strftime('%Y-%m-%d')}. "
        f"ساعت فعلی به وقت تهران: {now.strftime('%H:%M')}. "
        f"بخش روز: {part}."
    )
