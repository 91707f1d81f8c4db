from datetime import datetime, timezone

from porra import db


class Point(db.Model):
    """Points credited to a player for one session; written only by the scoring engine"""

    __tablename__ = "points"

    id = db.Column(db.Integer, primary_key=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    race_id = db.Column(db.Integer, db.ForeignKey("races.id"), nullable=False)
    rider_id = db.Column(db.Integer, db.ForeignKey("riders.id"), nullable=False)

    # Session the points were scored in (external session id + "RAC 1" style label)
    session_id = db.Column(db.String(64), nullable=False)
    session_name = db.Column(db.String(50))

    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    rider = db.relationship("Rider", foreign_keys=[rider_id])
    race = db.relationship("Race", foreign_keys=[race_id])

    # At most one batch per (race, session) is enforced by the scoring engine
    __table_args__ = (
        db.Index("idx_point_race_session", "race_id", "session_id"),
        db.Index("idx_point_player", "player_id"),
    )

    def __repr__(self):
        return f"<Point player={self.player_id} race={self.race_id} {self.session_name} +{self.points}>"

    @staticmethod
    def session_already_scored(race_id, session_id):
        return (
            db.session.query(Point.id)
            .filter_by(race_id=race_id, session_id=session_id)
            .first()
            is not None
        )

    def to_dict(self):
        """Convert point to dictionary for API responses"""
        return {
            "id": self.id,
            "player_id": self.player_id,
            "race_id": self.race_id,
            "rider_id": self.rider_id,
            "session_id": self.session_id,
            "session_name": self.session_name,
            "points": self.points,
        }
