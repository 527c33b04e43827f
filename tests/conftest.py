from __future__ import annotations

import pytest

from fakes import make_summary
from news_edition.models import Edition


@pytest.fixture
def morning_edition() -> Edition:
    return Edition(
        local_date="2025-05-06",
        time_of_day="morning",
        local_time="07:15:00",
        articles=[
            make_summary("Council approves budget"),
            make_summary(
                "Rover finds ancient lake bed",
                source="https://text.npr.org/nx-s1-1",
                category="Science & Technology",
                tags=[],
            ),
        ],
    )


@pytest.fixture
def evening_edition() -> Edition:
    return Edition(
        local_date="2025-05-06",
        time_of_day="evening",
        local_time="20:30:00",
        articles=[make_summary("Storm closes highway", source="https://text.npr.org/nx-s1-2")],
    )
