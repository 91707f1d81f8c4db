from porra import db


class Player(db.Model):
    __tablename__ = "players"

    # Ids come from the seed list, never generated
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(80), nullable=False)

    votes = db.relationship("Vote", backref="player", lazy="dynamic")
    points = db.relationship("Point", backref="player", lazy="dynamic")

    def __repr__(self):
        return f"<Player {self.id} {self.name}>"

    def to_dict(self):
        """Convert player to dictionary for API responses"""
        return {"id": self.id, "name": self.name}
