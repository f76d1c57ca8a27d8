"""
Reference data: airports and airlines used by the flight details form.
"""
from ..extensions import db


class Airport(db.Model):
    __tablename__ = 'airports'

    id = db.Column(db.Integer, primary_key=True)
    iata_code = db.Column(db.String(3), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    city = db.Column(db.String(100))
    country = db.Column(db.String(100))

    def __repr__(self):
        return f'<Airport {self.iata_code}>'

    def to_dict(self):
        return {
            'id': self.id,
            'iata_code': self.iata_code,
            'name': self.name,
            'city': self.city,
            'country': self.country,
        }


class Airline(db.Model):
    __tablename__ = 'airlines'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, index=True)
    country = db.Column(db.String(100))

    codes = db.relationship('AirlineCode', backref='airline', lazy='select',
                            cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Airline {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'country': self.country,
            'codes': [c.to_dict() for c in self.codes],
        }


class AirlineCode(db.Model):
    __tablename__ = 'airline_codes'

    id = db.Column(db.Integer, primary_key=True)
    airline_id = db.Column(db.Integer, db.ForeignKey('airlines.id'), nullable=False, index=True)
    iata_code = db.Column(db.String(2), index=True)
    icao_code = db.Column(db.String(3), index=True)
    is_primary = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {'iata_code': self.iata_code, 'icao_code': self.icao_code, 'is_primary': bool(self.is_primary)}
