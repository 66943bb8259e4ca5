# matchcatalog/normalization/status.py
from datetime import datetime, timedelta
from typing import Optional

from matchcatalog.models.enums import MatchStatus

# Roughly one broadcast: kick-off plus extra time and post-match coverage
DEFAULT_STATUS_WINDOW = timedelta(hours=3)


def infer_status(
    scheduled: Optional[datetime],
    reference_now: datetime,
    window: timedelta = DEFAULT_STATUS_WINDOW,
    end: Optional[datetime] = None,
) -> MatchStatus:
    """Lifecycle status of a match at `reference_now`.

    Live covers the closed interval [scheduled, scheduled + window]; a
    published `end` replaces the upper bound. An unknown schedule is
    reported as not started.
    """
    if scheduled is None:
        return MatchStatus.NOT_STARTED
    if reference_now < scheduled:
        return MatchStatus.NOT_STARTED
    finish = end if end is not None and end >= scheduled else scheduled + window
    if reference_now > finish:
        return MatchStatus.FINISHED
    return MatchStatus.LIVE
