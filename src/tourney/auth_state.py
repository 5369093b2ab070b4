"""
Sign-in lifecycle for a single session.

A session moves through explicit states as events arrive:

    unauthenticated --sign_in_started--> authenticating
    authenticating  --signed_in-------> awaiting_profile
    awaiting_profile --profile_loaded--> ready
    any             --failed----------> error
    any             --signed_out------> unauthenticated

Loading the profile right after sign-up can race the profile being written,
so ``load_profile`` retries a fetch with bounded exponential backoff.
"""
import logging
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_RETRIES = 5
DEFAULT_PROFILE_DELAY = 1.0


class AuthState:
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AWAITING_PROFILE = "awaiting_profile"
    READY = "ready"
    ERROR = "error"


class AuthEvent:
    SIGN_IN_STARTED = "sign_in_started"
    SIGNED_IN = "signed_in"
    PROFILE_LOADED = "profile_loaded"
    SIGNED_OUT = "signed_out"
    FAILED = "failed"


# (state, event) -> next state; FAILED and SIGNED_OUT are accepted everywhere
TRANSITIONS = {
    (AuthState.UNAUTHENTICATED, AuthEvent.SIGN_IN_STARTED): AuthState.AUTHENTICATING,
    (AuthState.ERROR, AuthEvent.SIGN_IN_STARTED): AuthState.AUTHENTICATING,
    (AuthState.AUTHENTICATING, AuthEvent.SIGNED_IN): AuthState.AWAITING_PROFILE,
    (AuthState.AWAITING_PROFILE, AuthEvent.PROFILE_LOADED): AuthState.READY,
    # A profile refresh while signed in
    (AuthState.READY, AuthEvent.PROFILE_LOADED): AuthState.READY,
}


class InvalidTransition(Exception):
    """Raised when an event is not allowed in the session's current state."""

    def __init__(self, state, event):
        self.state = state
        self.event = event
        super().__init__(f"Cannot handle '{event}' while {state}")


class ProfileNotFound(Exception):
    """Raised when the profile is still missing after every retry."""


class AuthSession:
    """Holds the current auth state, user id, profile and last error."""

    def __init__(self):
        self.state = AuthState.UNAUTHENTICATED
        self.user_id = None
        self.profile: Optional[Dict] = None
        self.error: Optional[str] = None

    def dispatch(self, event: str, **payload) -> str:
        if event == AuthEvent.SIGNED_OUT:
            self.state = AuthState.UNAUTHENTICATED
            self.user_id = None
            self.profile = None
            self.error = None
            return self.state
        if event == AuthEvent.FAILED:
            self.state = AuthState.ERROR
            self.error = payload.get('error')
            return self.state

        next_state = TRANSITIONS.get((self.state, event))
        if next_state is None:
            raise InvalidTransition(self.state, event)

        if event == AuthEvent.SIGN_IN_STARTED:
            self.error = None
        elif event == AuthEvent.SIGNED_IN:
            self.user_id = payload.get('user_id')
        elif event == AuthEvent.PROFILE_LOADED:
            self.profile = payload.get('profile')

        logger.debug("Auth %s: %s -> %s", event, self.state, next_state)
        self.state = next_state
        return self.state

    @property
    def is_ready(self) -> bool:
        return self.state == AuthState.READY

    def to_dict(self) -> Dict:
        return {
            'state': self.state,
            'user_id': self.user_id,
            'profile': self.profile,
            'error': self.error,
        }


def load_profile(fetch: Callable[[], Optional[Dict]], retries: int = DEFAULT_PROFILE_RETRIES,
                 delay: float = DEFAULT_PROFILE_DELAY, sleep: Callable[[float], None] = time.sleep) -> Dict:
    """
    Call ``fetch`` until it returns a profile.

    Waits ``delay``, then twice that, and so on between attempts; after
    ``retries`` empty results raises ``ProfileNotFound``. Exceptions from
    ``fetch`` propagate unchanged.
    """
    wait = delay
    for attempt in range(1, retries + 1):
        profile = fetch()
        if profile:
            return profile
        logger.info("Profile not available yet (attempt %d/%d)", attempt, retries)
        if attempt < retries:
            sleep(wait)
            wait *= 2
    raise ProfileNotFound(f"Profile not found after {retries} attempts")


def sign_in(session: AuthSession, user_id, fetch_profile: Callable[[], Optional[Dict]],
            retries: int = DEFAULT_PROFILE_RETRIES, delay: float = DEFAULT_PROFILE_DELAY,
            sleep: Callable[[float], None] = time.sleep) -> AuthSession:
    """Walk ``session`` from sign-in to ready, or to error if no profile loads."""
    session.dispatch(AuthEvent.SIGN_IN_STARTED)
    session.dispatch(AuthEvent.SIGNED_IN, user_id=user_id)
    try:
        profile = load_profile(fetch_profile, retries=retries, delay=delay, sleep=sleep)
    except ProfileNotFound as e:
        session.dispatch(AuthEvent.FAILED, error=str(e))
        return session
    session.dispatch(AuthEvent.PROFILE_LOADED, profile=profile)
    return session
