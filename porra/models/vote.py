from datetime import datetime, timezone

from porra import db


class Vote(db.Model):
    __tablename__ = "votes"

    # Composite identity: one vote per player per race
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), primary_key=True)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), primary_key=True)

    rider_id = db.Column(db.Integer, db.ForeignKey("riders.id"), nullable=False)

    # Set the first time the player changes this vote; no changes afterwards
    is_locked = db.Column(db.Boolean, nullable=False, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    rider = db.relationship("Rider", foreign_keys=[rider_id])
    race = db.relationship("Race", foreign_keys=[race_id])

    __table_args__ = (
        db.Index("idx_vote_player_rider", "player_id", "rider_id"),
        db.Index("idx_vote_race", "race_id"),
    )

    def __repr__(self):
        return f"<Vote player={self.player_id} race={self.race_id} rider={self.rider_id} locked={self.is_locked}>"

    @property
    def state(self):
        """Tagged lifecycle state of this vote (OPEN or LOCKED)"""
        from porra.services.vote_ledger import VoteState

        return VoteState.from_vote(self)

    @staticmethod
    def get_for(player_id, race_id):
        return Vote.query.filter_by(player_id=player_id, race_id=race_id).first()

    @staticmethod
    def count_for_rider(player_id, rider_id):
        """Votes cast by a player for a rider across the whole season"""
        return Vote.query.filter_by(player_id=player_id, rider_id=rider_id).count()

    def to_dict(self):
        """Convert vote to dictionary for API responses"""
        return {
            "player_id": self.player_id,
            "race_id": self.race_id,
            "rider_id": self.rider_id,
            "is_locked": bool(self.is_locked),
        }
