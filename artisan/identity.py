"""
Caller identity: the self-declared profile and the admin flag.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError
from artisan.cache import Family, Mutation, QueryKey
from artisan.domain import UserProfile
from artisan.lift import from_result

if TYPE_CHECKING:
    from artisan.session import MarketSession


class IdentityService:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    def caller_profile(self) -> LazyCoroResult[UserProfile | None, MarketError]:
        """``Ok(None)`` when the caller has not set a profile yet."""
        match self.session.caller():
            case Error(e):
                return from_result(Error(e))
            case Ok(me):
                return self.session.read(
                    QueryKey(Family.CALLER_PROFILE, (me.id,)),
                    lambda store, caller: store.get_user_profile(caller, caller.id),
                )

    def save_caller_profile(self, profile: UserProfile) -> LazyCoroResult[None, MarketError]:
        return self.session.mutate(
            Mutation.SAVE_CALLER_PROFILE,
            lambda store, me: store.save_user_profile(me, profile),
        )

    def is_caller_admin(self) -> Result[bool, MarketError]:
        match self.session.caller():
            case Ok(me):
                return Ok(me.is_admin)
            case Error(e):
                return Error(e)


__all__ = ("IdentityService",)
