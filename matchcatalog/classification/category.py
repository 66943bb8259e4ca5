# matchcatalog/classification/category.py
from typing import List, Optional, Tuple

from matchcatalog.models.enums import Category

# Evaluated top to bottom; the first category with a matching keyword wins.
# Table tennis precedes tennis so "table tennis" is not taken for tennis.
# Only football-specific names live here; shared tournament words are in
# FALLBACK_FOOTBALL_KEYWORDS.
CATEGORY_KEYWORDS: List[Tuple[Category, Tuple[str, ...]]] = [
    (
        Category.FOOTBALL,
        (
            "足球", "英超", "西甲", "德甲", "意甲", "法甲", "中超", "中甲", "欧联",
            "欧协联", "亚冠", "世欧预", "欧预赛", "足协杯", "荷甲", "葡超", "苏超",
            "日职", "韩k", "美职联", "沙特联", "英冠", "uefa",
            "premier league", "la liga", "bundesliga", "serie a",
        ),
    ),
    (
        Category.BASKETBALL,
        ("篮球", "男篮", "女篮", "nba", "cba", "wcba", "euroleague", "ncaa", "篮"),
    ),
    (
        Category.TABLE_TENNIS,
        ("乒乓", "乒超", "wtt", "ittf", "table tennis"),
    ),
    (
        Category.TENNIS,
        ("网球", "温网", "法网", "美网", "澳网", "atp", "wta", "tennis"),
    ),
    (
        Category.VOLLEYBALL,
        ("排球", "排超", "女排", "男排", "volleyball", "vnl"),
    ),
    (
        Category.COMBAT,
        ("拳击", "格斗", "搏击", "摔跤", "柔道", "跆拳道", "ufc", "mma", "boxing", "pfl"),
    ),
    (
        Category.BADMINTON,
        ("羽毛球", "羽联", "羽超", "bwf", "badminton"),
    ),
    (
        Category.BILLIARDS,
        ("斯诺克", "台球", "桌球", "九球", "snooker", "billiards"),
    ),
    (
        Category.ATHLETICS,
        ("田径", "马拉松", "钻石联赛", "athletics", "marathon"),
    ),
    (
        Category.ESPORTS,
        (
            "电竞", "英雄联盟", "王者荣耀", "和平精英", "lpl", "kpl", "lck",
            "dota", "cs2", "csgo", "valorant", "esports", "lol",
        ),
    ),
]

# Tournament names shared by several sports ("男篮世界杯", "女排世界杯"). They
# mean football only when no sport-specific keyword matched.
FALLBACK_FOOTBALL_KEYWORDS: Tuple[str, ...] = (
    "世界杯", "欧洲杯", "美洲杯", "亚洲杯", "世预", "欧冠", "国王杯", "fifa",
    "champions league",
)


def classify_category(competition_name: Optional[str]) -> str:
    """Maps a competition name to a sport category code, or "" when unknown."""
    if not competition_name:
        return ""
    text = competition_name.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category.value
    if any(keyword in text for keyword in FALLBACK_FOOTBALL_KEYWORDS):
        return Category.FOOTBALL.value
    return ""
