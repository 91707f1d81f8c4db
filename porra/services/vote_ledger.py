"""
Vote Ledger for the Porra

Enforces the vote lifecycle for a (player, race) pair:

    UNSET --cast--> OPEN(rider) --change--> LOCKED(rider)

A player may change an open vote exactly once; the change locks it. Voting
for the same rider again is a reconfirmation and never locks. A rider can be
chosen at most ``VOTE_CAP`` times per season unless it is already the
player's current pick for the race.
"""

import enum
import logging
from collections import namedtuple
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from porra import db
from porra.models import Player, Race, Rider, Vote
from porra.utils.deadline import is_voting_open
from porra.utils.locks import keyed_lock

logger = logging.getLogger(__name__)

DEFAULT_VOTE_CAP = 3

ACTION_INSERT = "insert"
ACTION_UPDATE = "update"
ACTION_NONE = "none"

MSG_NO_RACE = "Could not determine the next race."
MSG_VOTING_CLOSED = "The voting deadline has passed."
MSG_PLAYER_NOT_FOUND = "Player not found."
MSG_RIDER_NOT_FOUND = "Rider not found."
MSG_LOCKED = "You have already changed your vote for this race. No further changes permitted."
MSG_RECONFIRMED = "You have reconfirmed your vote."
MSG_RECORDED = "Vote recorded successfully!"
MSG_ALREADY_VOTED = "A vote already exists for this race."
MSG_NOT_OPEN = "Only an open vote can be locked."

VoteResult = namedtuple("VoteResult", ["success", "message"])
VoteDecision = namedtuple("VoteDecision", ["accepted", "action", "message", "state"])


class VoteStatus(enum.Enum):
    UNSET = "unset"
    OPEN = "open"
    LOCKED = "locked"


class VoteState:
    """Tagged lifecycle state of a single (player, race) vote"""

    __slots__ = ("status", "rider_id")

    def __init__(self, status, rider_id=None):
        if status is VoteStatus.UNSET and rider_id is not None:
            raise ValueError("An unset vote has no rider")
        if status is not VoteStatus.UNSET and rider_id is None:
            raise ValueError(f"A {status.value} vote needs a rider")
        self.status = status
        self.rider_id = rider_id

    def __eq__(self, other):
        return (
            isinstance(other, VoteState)
            and self.status is other.status
            and self.rider_id == other.rider_id
        )

    def __repr__(self):
        if self.status is VoteStatus.UNSET:
            return "<VoteState UNSET>"
        return f"<VoteState {self.status.name}({self.rider_id})>"

    @classmethod
    def unset(cls):
        return cls(VoteStatus.UNSET)

    @classmethod
    def from_vote(cls, vote):
        """Build the state of a stored vote row (None means no vote yet)"""
        if vote is None:
            return cls.unset()
        status = VoteStatus.LOCKED if vote.is_locked else VoteStatus.OPEN
        return cls(status, vote.rider_id)

    @property
    def is_locked(self):
        return self.status is VoteStatus.LOCKED

    def cast(self, rider_id):
        """First vote for the race"""
        if self.status is not VoteStatus.UNSET:
            return self._reject(MSG_ALREADY_VOTED)
        return VoteDecision(
            True, ACTION_INSERT, MSG_RECORDED, VoteState(VoteStatus.OPEN, rider_id)
        )

    def change(self, rider_id):
        """Switch an open vote to another rider; the switch locks it"""
        if self.status is VoteStatus.LOCKED:
            return self._reject(MSG_LOCKED)
        if self.status is VoteStatus.UNSET:
            return self.cast(rider_id)
        if rider_id == self.rider_id:
            return VoteDecision(True, ACTION_NONE, MSG_RECONFIRMED, self)
        return VoteDecision(
            True, ACTION_UPDATE, MSG_RECORDED, VoteState(VoteStatus.LOCKED, rider_id)
        )

    def lock(self):
        """Freeze an open vote on its current rider"""
        if self.status is not VoteStatus.OPEN:
            return self._reject(MSG_NOT_OPEN)
        return VoteDecision(
            True, ACTION_UPDATE, MSG_RECORDED, VoteState(VoteStatus.LOCKED, self.rider_id)
        )

    def submit(self, rider_id):
        """Apply a vote request for ``rider_id`` in whatever state we are in"""
        if self.status is VoteStatus.UNSET:
            return self.cast(rider_id)
        return self.change(rider_id)

    def _reject(self, message):
        return VoteDecision(False, ACTION_NONE, message, self)


def decide_vote(
    rider_id,
    state,
    next_race_exists=True,
    voting_open=True,
    player_known=True,
    rider_known=True,
    history_count=0,
    vote_cap=DEFAULT_VOTE_CAP,
    rider_name=None,
):
    """
    Decide whether a vote request is accepted and which mutation it needs.

    Args:
        rider_id: rider the player wants to vote for
        state: current VoteState of the player's vote for the next race
        history_count: votes this player already cast for ``rider_id`` this season

    Returns:
        VoteDecision: ``accepted`` flag, storage ``action`` (insert/update/none),
        human-readable ``message`` and the resulting ``state``
    """
    if not next_race_exists:
        return VoteDecision(False, ACTION_NONE, MSG_NO_RACE, state)
    if not voting_open:
        return VoteDecision(False, ACTION_NONE, MSG_VOTING_CLOSED, state)
    if not player_known:
        return VoteDecision(False, ACTION_NONE, MSG_PLAYER_NOT_FOUND, state)
    if not rider_known:
        return VoteDecision(False, ACTION_NONE, MSG_RIDER_NOT_FOUND, state)

    is_reconfirmation = (
        state.status is not VoteStatus.UNSET and state.rider_id == rider_id
    )
    if history_count >= vote_cap and not is_reconfirmation:
        name = rider_name or f"rider {rider_id}"
        return VoteDecision(
            False,
            ACTION_NONE,
            f"You have already voted for {name} {vote_cap} times.",
            state,
        )

    return state.submit(rider_id)


class VoteLedger:
    """Validates vote requests for the next race and writes them to the store"""

    def __init__(self, vote_cap=None, deadline_hour=None):
        self.vote_cap = vote_cap
        self.deadline_hour = deadline_hour

    def _config(self, key, value, default):
        if value is not None:
            return value
        return current_app.config.get(key, default)

    def submit_vote(self, player_id, rider_id, now=None):
        """
        Cast, change or reconfirm a player's vote for the next race.

        Returns:
            VoteResult: (success, message); nothing is written on rejection
        """
        now = now or datetime.now(timezone.utc)
        vote_cap = self._config("VOTE_CAP", self.vote_cap, DEFAULT_VOTE_CAP)
        deadline_hour = self._config("VOTING_DEADLINE_HOUR", self.deadline_hour, 14)

        try:
            next_race = Race.get_next_race(now)
            if not next_race:
                return VoteResult(False, MSG_NO_RACE)

            with keyed_lock("vote", player_id, next_race.id):
                player = db.session.get(Player, player_id)
                rider = db.session.get(Rider, rider_id)
                existing = Vote.get_for(player_id, next_race.id)

                decision = decide_vote(
                    rider_id,
                    VoteState.from_vote(existing),
                    voting_open=is_voting_open(now, next_race.race_date, deadline_hour),
                    player_known=player is not None,
                    rider_known=rider is not None,
                    history_count=Vote.count_for_rider(player_id, rider_id),
                    vote_cap=vote_cap,
                    rider_name=rider.name if rider else None,
                )

                if not decision.accepted:
                    logger.info(
                        f"Vote declined for player {player_id} race {next_race.id}: {decision.message}"
                    )
                    return VoteResult(False, decision.message)

                if decision.action == ACTION_NONE:
                    return VoteResult(True, decision.message)

                if not self._apply(decision, player_id, next_race.id, rider_id):
                    db.session.rollback()
                    return VoteResult(False, MSG_LOCKED)

                db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Error saving vote for player {player_id}: {e}")
            return VoteResult(False, f"Error saving vote: {e}")

        # Force session refresh so derived stats see the new vote
        db.session.expire_all()
        logger.info(
            f"Vote {decision.action} for player {player_id} race {next_race.id} rider {rider_id}"
        )
        _notify_votes_changed(next_race.id)

        return VoteResult(True, decision.message)

    def _apply(self, decision, player_id, race_id, rider_id):
        """Write the decided mutation; False when the compare-and-swap lost"""
        if decision.action == ACTION_INSERT:
            db.session.add(
                Vote(
                    player_id=player_id,
                    race_id=race_id,
                    rider_id=rider_id,
                    is_locked=False,
                )
            )
            db.session.flush()
            return True

        # Only an unlocked row may be changed
        updated = (
            Vote.query.filter_by(player_id=player_id, race_id=race_id, is_locked=False)
            .update(
                {"rider_id": rider_id, "is_locked": True},
                synchronize_session=False,
            )
        )
        return updated == 1


def _notify_votes_changed(race_id):
    from porra.utils.cache_utils import invalidate_model_cache

    invalidate_model_cache("Vote")

    try:
        from porra.socketio_handlers import broadcast_votes_updated

        broadcast_votes_updated(race_id)
    except Exception as e:
        logger.error(f"Error emitting vote update: {e}")
