from porra import db


class Rider(db.Model):
    __tablename__ = "riders"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(100), nullable=False)
    number = db.Column(db.Integer, nullable=False, index=True)  # Race number
    team = db.Column(db.String(100), nullable=False)
    image_url = db.Column(db.String(500))

    def __repr__(self):
        return f"<Rider #{self.number} {self.name}>"

    @staticmethod
    def get_number_lookup(riders=None):
        """Map race number -> rider id (highest id wins when numbers repeat)"""
        if riders is None:
            riders = Rider.query.all()
        return {
            rider.number: rider.id
            for rider in sorted(riders, key=lambda r: r.id)
        }

    def to_dict(self):
        """Convert rider to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "number": self.number,
            "team": self.team,
            "image_url": self.image_url,
        }
