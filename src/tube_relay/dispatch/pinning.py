"""Pin rotation — keeps one older post pinned per subreddit.

With a subreddit's history ordered oldest first, the pinned submission is
always the second newest one. A fresh post therefore never gets pinned
straight away; it takes over once the next video arrives.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tube_relay.engine.models.submission import Submission
    from tube_relay.engine.models.subreddit import Subreddit
    from tube_relay.engine.repository.submissions import SubmissionRepository
    from tube_relay.reddit.client import RedditClient
    from tube_relay.reddit.models import OAuthToken

logger = logging.getLogger(__name__)


def pin_candidate(history: list[Submission]) -> Submission | None:
    """Return the submission that should be pinned, if there is one."""
    if len(history) < 2:
        return None
    return history[-2]


def currently_pinned(history: list[Submission]) -> Submission | None:
    """Return the most recent pinned submission, if any."""
    for submission in reversed(history):
        if submission.stickied:
            return submission
    return None


class PinRotation:
    """Moves a subreddit's pin from the current post to the candidate."""

    def __init__(self, submissions: SubmissionRepository, reddit: RedditClient) -> None:
        self._submissions = submissions
        self._reddit = reddit

    async def rotate(self, token: OAuthToken, subreddit: Subreddit) -> bool:
        """Rotate the pin in *subreddit*.

        Does nothing when nothing is pinned yet, when there are fewer than
        two submissions, or when the candidate already holds the pin. Each
        provider call is persisted only after it succeeds.

        Returns:
            True if the pin moved.

        Raises:
            UpstreamFailure: If either sticky call fails.
            PersistenceFailure: If a state change cannot be stored.
        """
        history = await self._submissions.list_for_subreddit(subreddit.id)
        candidate = pin_candidate(history)
        pinned = currently_pinned(history)
        if candidate is None or pinned is None:
            logger.debug("No pin rotation for r/%s", subreddit.name)
            return False
        if candidate.id == pinned.id:
            return False

        await self._reddit.set_sticky(token, pinned.id, state=False)
        await self._submissions.set_stickied(pinned.id, stickied=False)
        await self._reddit.set_sticky(token, candidate.id, state=True)
        await self._submissions.set_stickied(candidate.id, stickied=True)
        logger.info("Moved pin in r/%s from %s to %s", subreddit.name, pinned.id, candidate.id)
        return True
