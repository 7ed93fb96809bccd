# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Keyword task classifier used for smart routing on paid plans.

Patterns are matched as plain substrings of the lower-cased prompt, in a
fixed order; the first category with a match wins. Vocabulary covers
English and Indonesian.
"""

import re

from ..types.plan import TaskType

LONG_PROMPT_WORDS = 100
SHORT_QUESTION_CHARS = 50

_RESEARCH = [
    re.compile(
        r"research|riset|cari tahu|find|search|browse|web|data terkini|news|berita|fakta"
    ),
    re.compile(r"current|latest|newest|terbaru|terkini"),
]
_SHORT_QUESTION = re.compile(r"what is|apa itu|siapa|who is")

_CODE = [
    re.compile(r"code|kode|program|function|fungsi|class|api|endpoint|bug|fix|error|debug"),
    re.compile(r"react|next|node|typescript|python|sql|database|schema|deploy|git"),
    re.compile(r"implement|buatkan|buat|bikin|create|generate|refactor|test|coding|ngoding"),
    re.compile(r"website|web|app|aplikasi|landing page|form|button|navbar|sidebar|component"),
]

_DESIGN = [
    re.compile(r"design|desain|ui|ux|layout|tampilan|warna|color|logo|image|gambar|poster"),
    re.compile(r"creative|imaginative|story|cerita|poem|puisi|idea|ide|brainstorm"),
]

_REASONING = [
    re.compile(r"architecture|arsitektur|system design|sistem|plan|strategy|strategi"),
    re.compile(
        r"analyze|analisis|evaluate|evaluasi|compare|bandingkan|pros cons|kelebihan kekurangan"
    ),
]


def _matches(patterns: list[re.Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def classify_task(prompt: str) -> TaskType:
    """
    Classify a prompt into a TaskType.

    Order: research, code, design, reasoning (keywords or more than 100
    words), then chat as the default.
    """
    lower = prompt.lower()

    if _matches(_RESEARCH, lower) or (
        _SHORT_QUESTION.search(lower) and len(prompt) < SHORT_QUESTION_CHARS
    ):
        return TaskType.RESEARCH
    if _matches(_CODE, lower):
        return TaskType.CODE
    if _matches(_DESIGN, lower):
        return TaskType.DESIGN
    if _matches(_REASONING, lower) or len(prompt.split(" ")) > LONG_PROMPT_WORDS:
        return TaskType.REASONING
    return TaskType.CHAT


__all__ = ["classify_task"]
