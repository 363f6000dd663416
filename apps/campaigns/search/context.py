from dataclasses import dataclass
from datetime import timedelta
from typing import FrozenSet, Optional

from django.utils import timezone


class Clock:
    def now(self):
        raise NotImplementedError


class SystemClock(Clock):
    def now(self):
        return timezone.now()


class FrozenClock(Clock):
    """Fixed clock for tests and replays."""

    def __init__(self, moment):
        self.moment = moment

    def now(self):
        return self.moment

    def advance(self, **kwargs):
        self.moment = self.moment + timedelta(**kwargs)
        return self.moment


@dataclass(frozen=True)
class ActorContext:
    """Who is asking: the user id and the campaigns they bookmarked."""

    user_id: Optional[int] = None
    bookmarked_ids: FrozenSet[int] = frozenset()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def anonymous(cls):
        return cls()

    @classmethod
    def for_user(cls, user, load_bookmarks=True):
        if user is None or not getattr(user, "is_authenticated", False):
            return cls()
        if not load_bookmarks:
            return cls(user_id=user.pk)

        from apps.campaigns.models import Bookmark

        ids = Bookmark.objects.filter(user_id=user.pk).values_list("campaign_id", flat=True)
        return cls(user_id=user.pk, bookmarked_ids=frozenset(ids))
