from datetime import datetime, timezone

from flask import current_app

from porra import db


def _deadline_hour():
    return current_app.config.get("VOTING_DEADLINE_HOUR", 14)


class Race(db.Model):
    __tablename__ = "races"

    # Sequential ids assigned by the calendar import (1..N in date order)
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)

    # Race identification
    name = db.Column(db.String(200), nullable=False)
    country = db.Column(db.String(100))
    circuit = db.Column(db.String(200))
    dates = db.Column(db.String(50))  # Display string, e.g. "27 FEB - 1 MAR"
    flag = db.Column(db.String(8))

    # Calendar
    race_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(30))

    # External ID for results feed integration
    external_event_id = db.Column(db.String(64), unique=True, index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (db.Index("idx_race_date", "race_date"),)

    def __repr__(self):
        return f"<Race {self.id} {self.name} {self.race_date}>"

    @property
    def voting_deadline(self):
        """Instant (UTC) at which voting for this race closes"""
        from porra.utils.deadline import compute_voting_deadline

        return compute_voting_deadline(self.race_date, _deadline_hour())

    def is_voting_open(self, now=None):
        """Check if votes are still accepted for this race"""
        from porra.utils.deadline import is_voting_open

        return is_voting_open(
            now or datetime.now(timezone.utc), self.race_date, _deadline_hour()
        )

    @staticmethod
    def get_calendar():
        """All races ordered by race date"""
        return Race.query.order_by(Race.race_date, Race.id).all()

    @staticmethod
    def get_next_race(today=None):
        """Earliest race on or after today, or the final race of the season"""
        from porra.utils.deadline import find_next_race

        return find_next_race(Race.get_calendar(), today)

    @staticmethod
    def get_by_external_id(external_event_id):
        return Race.query.filter_by(external_event_id=external_event_id).first()

    @staticmethod
    def lock_row(race_id):
        """SELECT ... FOR UPDATE on one race; held until the transaction ends"""
        return Race.query.filter_by(id=race_id).with_for_update().one()

    def to_dict(self):
        """Convert race to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "circuit": self.circuit,
            "dates": self.dates,
            "flag": self.flag,
            "race_date": self.race_date.isoformat() if self.race_date else None,
            "status": self.status,
            "external_event_id": self.external_event_id,
        }
